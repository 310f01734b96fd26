"""
vfserve: minimal raw-TCP file server backed by a virtual file system mapping
Built with asyncio + aiofiles
"""

__version__ = "1.0.0"
__author__ = "vfserve"
__description__ = "Minimal file server resolving logical names through a VFS mapping"
