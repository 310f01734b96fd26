"""
Data models and constants for vfserve
"""

from enum import Enum
from typing import Optional
from dataclasses import dataclass, field


# Largest file served as-is; anything bigger is replaced by OVERSIZE_NOTICE
MAX_SIZE = 128 * 1024

OVERSIZE_NOTICE = b"File exceeds the maximum size that can be served"

# Largest body accepted by POST
MAX_UPLOAD_SIZE = 100 * 1024 * 1024

DEFAULT_MAPPING_FILE = "tmp.vfs"
NAME_PATH_SEPARATOR = "$"

DEFAULT_ADDR = "127.0.0.1"
DEFAULT_PORT = 7878

# Size of the first read from a connection
DEFAULT_BUFFER_SIZE = 1024


class Method(Enum):
    """Request methods understood by the decoder"""
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class FileEntry:
    """A logical name and the physical path backing it"""
    name: str
    path: str = ""

    def __post_init__(self):
        if not self.path:
            object.__setattr__(self, "path", "./" + self.name)

    def to_line(self, separator: str = NAME_PATH_SEPARATOR) -> str:
        return f"{self.name}{separator}{self.path}"


@dataclass
class Request:
    """Minimal parsed request"""
    method: Method
    target: str
    body: bytes = b""
    content_length: Optional[int] = None


@dataclass
class ServerConfig:
    """Listener and connection settings"""
    addr: str = DEFAULT_ADDR
    port: int = DEFAULT_PORT
    buffer_size: int = DEFAULT_BUFFER_SIZE
    read_timeout: float = 30.0
    upload_dir: str = "."
    max_upload_size: int = MAX_UPLOAD_SIZE
    acknowledge_uploads: bool = False
    sequential: bool = False

    @property
    def address(self) -> str:
        return f"{self.addr}:{self.port}"


@dataclass
class VfsConfig:
    """Mapping file settings"""
    mapping_file: str = DEFAULT_MAPPING_FILE
    separator: str = NAME_PATH_SEPARATOR
    max_size: int = MAX_SIZE
    fallback_to_mapping: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration"""
    json: bool = False
    file: str = ""
    level: str = "INFO"
    max_size_mb: int = 100
    backup_count: int = 5


@dataclass
class ClipboardConfig:
    """Startup clipboard command"""
    enabled: bool = True
    command: str = "wget -f http://{address}/"


@dataclass
class HotReloadConfig:
    """Hot reload configuration"""
    enabled: bool = True
    watchConfig: bool = True
    debounceMs: int = 1000


@dataclass
class Config:
    """Main configuration container"""
    server: ServerConfig = field(default_factory=ServerConfig)
    vfs: VfsConfig = field(default_factory=VfsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    clipboard: ClipboardConfig = field(default_factory=ClipboardConfig)
    hotReload: HotReloadConfig = field(default_factory=HotReloadConfig)
