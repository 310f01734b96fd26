"""
Command line entry point for vfserve
"""

import argparse
import asyncio
import logging
import logging.handlers
import os
import sys
from pathlib import Path

from . import config as config_module
from .clipboard import copy_download_command
from .models import Config
from .server import VfsServer


logger = logging.getLogger(__name__)


def setup_logging(config: Config):
    """Setup logging configuration"""
    log_config = config.logging

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(log_config.level).upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    # Create formatter
    if log_config.json:
        formatter = logging.Formatter(
            '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","msg":"%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if configured
    if log_config.file:
        log_file = Path(log_config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=log_config.max_size_mb * 1024 * 1024,
            backupCount=log_config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="vfserve file server")
    parser.add_argument("--config", "-c", default=None, help="Configuration file path")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument("--mapping", "-m", default=None, help="VFS mapping file")
    parser.add_argument("--no-clipboard", action="store_true", help="Do not copy the download command")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line overrides on top of the file configuration"""
    if args.host:
        config.server.addr = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.mapping:
        config.vfs.mapping_file = args.mapping
    if args.no_clipboard:
        config.clipboard.enabled = False
    return config


async def run(server: VfsServer):
    try:
        await server.start()
    except OSError as e:
        logger.error(f"Failed to bind {server.config.server.address}: {e}")
        raise SystemExit(1)

    copy_download_command(server.config)
    try:
        await server.serve_forever()
    finally:
        await server.close()


def main(argv=None):
    """Main entry point for running the server"""
    args = build_parser().parse_args(argv)

    config_path = args.config or os.getenv("VFSERVE_CONFIG", "vfserve.yaml")
    config = config_module.load_config(config_path)
    manager = config_module.config_manager

    setup_logging(config)

    # Command line flags survive hot reloads of the file
    apply_overrides(config, args)
    manager.add_prepare_hook(lambda new: apply_overrides(new, args))
    manager.start_watching()

    server = VfsServer(manager.get_config)
    try:
        asyncio.run(run(server))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        manager.stop_watching()


if __name__ == "__main__":
    main()
