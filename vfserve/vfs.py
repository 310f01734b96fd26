"""
Virtual file system mapping: logical names resolved to physical paths

The mapping lives in a flat text file, one ``name$path`` record per line.
It is read again for every connection, so edits take effect on the next
request without restarting the server.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

import aiofiles

from .models import FileEntry, NAME_PATH_SEPARATOR

logger = logging.getLogger(__name__)


class VfsError(Exception):
    """Generic mapping error"""
    pass


class MappingFileError(VfsError):
    """Mapping file is missing or unreadable"""
    pass


class MappingFormatError(VfsError):
    """Mapping file contains a record that cannot be parsed"""
    pass


class VfsStore:
    """Ordered collection of file entries, looked up by logical name"""

    def __init__(self, entries: Optional[List[FileEntry]] = None):
        self._entries: List[FileEntry] = list(entries or [])

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FileEntry]:
        return iter(self._entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, VfsStore):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"VfsStore({self._entries!r})"

    def add(self, entry: FileEntry) -> "VfsStore":
        self._entries.append(entry)
        return self

    def remove_by_name(self, name: str) -> int:
        """Remove every entry called ``name``; returns how many went away"""
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if entry.name != name]
        return before - len(self._entries)

    def lookup_by_name(self, name: str) -> Optional[FileEntry]:
        """Return the first entry whose name equals ``name``"""
        for entry in self._entries:
            if entry.name == name:
                return entry
        return None

    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def dumps(self, separator: str = NAME_PATH_SEPARATOR) -> str:
        """Render the store in the mapping file format"""
        return "".join(entry.to_line(separator) + "\n" for entry in self._entries)


def parse_line(line: str, separator: str = NAME_PATH_SEPARATOR) -> Optional[FileEntry]:
    """
    Parse one mapping record

    Blank lines yield ``None``. A record without a separator is a bare name
    and gets the default ``./name`` path.

    Raises:
        MappingFormatError: If the name part is empty
    """
    line = line.strip()
    if not line:
        return None

    name, _, path = line.partition(separator)
    if not name:
        raise MappingFormatError(f"Mapping record has no name: {line!r}")

    return FileEntry(name=name, path=path)


def parse_mapping(text: str, separator: str = NAME_PATH_SEPARATOR) -> VfsStore:
    """Build a store from mapping file text"""
    store = VfsStore()
    for lineno, line in enumerate(text.splitlines(), start=1):
        try:
            entry = parse_line(line, separator)
        except MappingFormatError as e:
            raise MappingFormatError(f"line {lineno}: {e}")
        if entry is not None:
            store.add(entry)
    return store


async def load_store(
    mapping_path: Union[str, Path],
    separator: str = NAME_PATH_SEPARATOR,
) -> VfsStore:
    """
    Load the mapping file

    Raises:
        MappingFileError: If the file is missing, unreadable or not UTF-8
        MappingFormatError: If a record is malformed
    """
    try:
        async with aiofiles.open(mapping_path, 'r', encoding='utf-8') as f:
            text = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise MappingFileError(f"Failed to read mapping file {mapping_path}: {e}")

    store = parse_mapping(text, separator)
    logger.debug(f"Loaded {len(store)} entries from {mapping_path}")
    return store


async def save_store(
    store: VfsStore,
    mapping_path: Union[str, Path],
    separator: str = NAME_PATH_SEPARATOR,
) -> None:
    """Persist the store, replacing the mapping file atomically"""
    mapping_path = Path(mapping_path)
    tmp_path = mapping_path.with_suffix(mapping_path.suffix + ".tmp")
    try:
        async with aiofiles.open(tmp_path, 'w', encoding='utf-8') as f:
            await f.write(store.dumps(separator))
        tmp_path.replace(mapping_path)
    except OSError as e:
        raise MappingFileError(f"Failed to write mapping file {mapping_path}: {e}")

    logger.info(f"Saved {len(store)} entries to {mapping_path}")


def fallback_entry(mapping_path: Union[str, Path]) -> FileEntry:
    """Entry served for names with no match: the mapping file itself"""
    mapping_path = str(mapping_path)
    return FileEntry(name=mapping_path, path=mapping_path)
