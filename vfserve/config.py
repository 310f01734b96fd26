"""
Configuration loading and management for vfserve
"""

import yaml
import logging
import time
from pathlib import Path
from typing import Dict, Any, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from .models import (
    Config, ServerConfig, VfsConfig, LoggingConfig, ClipboardConfig,
    HotReloadConfig, DEFAULT_ADDR, DEFAULT_PORT, DEFAULT_BUFFER_SIZE,
    DEFAULT_MAPPING_FILE, NAME_PATH_SEPARATOR, MAX_SIZE, MAX_UPLOAD_SIZE,
)

logger = logging.getLogger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """File system event handler for config file changes"""

    def __init__(self, config_path: Path, callback):
        self.config_path = config_path.resolve()
        self.callback = callback
        self.last_modified = 0
        self.debounce_ms = 1000

    def on_modified(self, event):
        if event.is_directory:
            return

        file_path = Path(event.src_path).resolve()
        if file_path == self.config_path:
            # Debounce multiple events
            now = time.time() * 1000
            if now - self.last_modified < self.debounce_ms:
                return
            self.last_modified = now

            logger.info(f"Configuration file changed: {file_path}")
            try:
                self.callback()
            except Exception as e:
                logger.error(f"Failed to reload configuration: {e}")


class ConfigManager:
    """Configuration manager with hot reload support"""

    def __init__(self, config_path: str = "vfserve.yaml"):
        self.config_path = Path(config_path).resolve()
        self.config: Optional[Config] = None
        self.observer: Optional[Observer] = None
        self.reload_callbacks = []
        self.prepare_hooks = []

    def load_config(self) -> Config:
        """
        Load configuration from YAML file

        Defaults are used only when nothing has been loaded yet; a failed
        reload keeps the configuration already in use.
        """
        try:
            if not self.config_path.exists():
                if self.config is not None:
                    logger.error(f"Configuration file disappeared, keeping previous: {self.config_path}")
                    return self.config
                logger.warning(f"Configuration file not found: {self.config_path}")
                return self._publish(Config())

            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

            config = parse_config(data)
            logger.info(f"Configuration loaded from {self.config_path}")
            return self._publish(config)

        except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError) as e:
            if self.config is not None:
                logger.error(f"Failed to reload configuration, keeping previous: {e}")
                return self.config
            logger.error(f"Failed to load configuration: {e}")
            return self._publish(Config())

    def _publish(self, config: Config) -> Config:
        # Hooks run before the config becomes visible to readers
        for hook in self.prepare_hooks:
            hook(config)
        self.config = config
        return config

    def start_watching(self):
        """Start watching configuration file for changes"""
        if not self.config or not self.config.hotReload.enabled or not self.config.hotReload.watchConfig:
            return

        if self.observer:
            return  # Already watching

        try:
            self.observer = Observer()
            handler = ConfigFileHandler(
                self.config_path,
                self._on_config_changed
            )
            handler.debounce_ms = self.config.hotReload.debounceMs

            watch_dir = self.config_path.parent
            self.observer.schedule(handler, str(watch_dir), recursive=False)
            self.observer.start()

            logger.info(f"Started watching configuration file: {self.config_path}")

        except OSError as e:
            logger.error(f"Failed to start configuration file watcher: {e}")
            self.observer = None

    def stop_watching(self):
        """Stop watching configuration file"""
        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None
            logger.info("Stopped watching configuration file")

    def _on_config_changed(self):
        """Handle configuration file changes"""
        old_config = self.config
        new_config = self.load_config()
        if new_config is old_config:
            return

        for callback in self.reload_callbacks:
            try:
                callback(old_config, new_config)
            except Exception as e:
                logger.error(f"Configuration reload callback failed: {e}")

        if old_config and old_config.server.address != new_config.server.address:
            logger.warning("Listener address changed; restart the server to apply it")

        logger.info("Configuration reloaded successfully")

    def add_prepare_hook(self, hook):
        """Add hook that adjusts each newly loaded configuration before it is used"""
        self.prepare_hooks.append(hook)

    def add_reload_callback(self, callback):
        """Add callback to be called when configuration is reloaded"""
        self.reload_callbacks.append(callback)

    def get_config(self) -> Config:
        """Get current configuration"""
        if self.config is None:
            self.config = self.load_config()
        return self.config


def parse_config(data: Dict[str, Any]) -> Config:
    """Parse configuration data into Config object"""

    # Server
    server_data = data.get('server') or {}
    server = ServerConfig(
        addr=str(server_data.get('addr', DEFAULT_ADDR)),
        port=int(server_data.get('port', DEFAULT_PORT)),
        buffer_size=int(server_data.get('buffer_size', DEFAULT_BUFFER_SIZE)),
        read_timeout=float(server_data.get('read_timeout', 30.0)),
        upload_dir=str(server_data.get('upload_dir', '.')),
        max_upload_size=int(server_data.get('max_upload_size', MAX_UPLOAD_SIZE)),
        acknowledge_uploads=bool(server_data.get('acknowledge_uploads', False)),
        sequential=bool(server_data.get('sequential', False))
    )
    if server.buffer_size <= 0:
        raise ValueError(f"server.buffer_size must be positive, got {server.buffer_size}")
    if server.max_upload_size < 0:
        raise ValueError(f"server.max_upload_size must not be negative, got {server.max_upload_size}")

    # VFS mapping
    vfs_data = data.get('vfs') or {}
    vfs = VfsConfig(
        mapping_file=str(vfs_data.get('mapping_file', DEFAULT_MAPPING_FILE)),
        separator=str(vfs_data.get('separator', NAME_PATH_SEPARATOR)),
        max_size=int(vfs_data.get('max_size', MAX_SIZE)),
        fallback_to_mapping=bool(vfs_data.get('fallback_to_mapping', True))
    )
    if len(vfs.separator) != 1:
        raise ValueError(f"vfs.separator must be a single character, got {vfs.separator!r}")

    # Logging
    logging_data = data.get('logging') or {}
    logging_config = LoggingConfig(
        json=logging_data.get('json', False),
        file=logging_data.get('file', ''),
        level=logging_data.get('level', 'INFO'),
        max_size_mb=logging_data.get('max_size_mb', 100),
        backup_count=logging_data.get('backup_count', 5)
    )

    # Clipboard
    clipboard_data = data.get('clipboard') or {}
    clipboard = ClipboardConfig(
        enabled=clipboard_data.get('enabled', True),
        command=clipboard_data.get('command', ClipboardConfig.command)
    )

    # Hot reload
    reload_data = data.get('hotReload') or {}
    hot_reload = HotReloadConfig(
        enabled=reload_data.get('enabled', True),
        watchConfig=reload_data.get('watchConfig', True),
        debounceMs=reload_data.get('debounceMs', 1000)
    )

    return Config(
        server=server,
        vfs=vfs,
        logging=logging_config,
        clipboard=clipboard,
        hotReload=hot_reload
    )


# Global configuration manager instance
config_manager = ConfigManager()


def load_config(config_path: str = "vfserve.yaml") -> Config:
    """Load configuration from file"""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()


def get_config() -> Config:
    """Get current configuration"""
    return config_manager.get_config()
