"""
Utility functions for vfserve
"""

from pathlib import Path
import logging

logger = logging.getLogger(__name__)


class PathTraversalError(Exception):
    """Raised when path traversal attack is detected"""
    pass


def normalize_path(path: str) -> str:
    """Normalize path separators for cross-platform compatibility"""
    return path.replace('\\', '/')


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    size = float(size_bytes)

    while size >= 1024.0 and i < len(size_names) - 1:
        size /= 1024.0
        i += 1

    if i == 0:
        return f"{int(size)} {size_names[i]}"
    else:
        return f"{size:.1f} {size_names[i]}"


def safe_join(root_path: Path, rel_path: str) -> Path:
    """
    Safely join root path with relative path, preventing directory traversal

    Args:
        root_path: Root directory path
        rel_path: Relative path to join

    Returns:
        Resolved absolute path within root

    Raises:
        PathTraversalError: If path would escape root directory
    """

    rel_path = normalize_path(rel_path.strip()).lstrip('/')

    parts = []
    for part in rel_path.split('/'):
        if not part or part == '.':
            continue
        if part == '..':
            raise PathTraversalError(f"Path traversal detected: {rel_path}")
        parts.append(part)

    base_path = root_path.resolve()
    full_path = base_path.joinpath(*parts) if parts else base_path

    # Resolve symlinks without requiring the target to exist
    resolved_path = full_path.resolve(strict=False)

    try:
        resolved_path.relative_to(base_path)
    except ValueError:
        raise PathTraversalError(f"Path traversal detected: {rel_path}")

    return resolved_path
