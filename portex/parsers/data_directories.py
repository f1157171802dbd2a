"""
Data Directory Table
=====================

The optional header ends with an array of ``NumberOfRvaAndSizes``
8-byte ``(VirtualAddress, Size)`` pairs.  The format defines 16 slots;
images may declare more, but only the first 16 are consumed.  Slots the
image does not declare read as ``(0, 0)``.

RVAs are carried as opaque integers here.  Resolving them to file
content is the job of whatever consumes a particular table (imports,
resources, relocations, ...).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Union

from portex.core.errors import TruncatedDataError
from portex.parsers.constants import (
    DATA_DIRECTORY_SIZE,
    MAX_DATA_DIRECTORIES,
    DataDirectoryKind,
)
from portex.parsers.reader import ByteReader

_ENTRY_LAYOUT = struct.Struct("<II")


@dataclass(frozen=True, slots=True)
class DataDirectory:
    """One ``(RVA, size)`` pair."""
    virtual_address: int = 0
    size: int = 0

    @property
    def is_present(self) -> bool:
        return self.virtual_address != 0 or self.size != 0


_ABSENT = DataDirectory()


@dataclass(frozen=True, slots=True)
class DataDirectories:
    """The decoded directory table.

    Attributes:
        entries: Effective entries, ``min(declared_count, 16)`` of them.
        declared_count: Raw ``NumberOfRvaAndSizes`` from the optional header.
    """
    entries: tuple[DataDirectory, ...]
    declared_count: int

    @property
    def count(self) -> int:
        """Number of entries actually decoded (never more than 16)."""
        return len(self.entries)

    def get(self, kind: Union[DataDirectoryKind, int]) -> DataDirectory:
        """Return the slot for *kind*, ``(0, 0)`` when it was not declared."""
        index = int(kind)
        if not 0 <= index < MAX_DATA_DIRECTORIES:
            raise IndexError(f"data directory index out of range: {index}")
        if index < len(self.entries):
            return self.entries[index]
        return _ABSENT

    def all_slots(self) -> list[tuple[DataDirectoryKind, DataDirectory]]:
        """All 16 slots paired with their kind, absent ones as ``(0, 0)``."""
        return [(kind, self.get(kind)) for kind in DataDirectoryKind]

    def __getitem__(self, kind: Union[DataDirectoryKind, int]) -> DataDirectory:
        return self.get(kind)

    def __iter__(self) -> Iterator[DataDirectory]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def read_data_directories(
    reader: ByteReader,
    offset: int,
    declared_count: int,
    region_end: int,
) -> DataDirectories:
    """Decode the directory array that follows the optional header fields.

    Args:
        reader: Buffer reader.
        offset: File offset just past the variant's fixed fields.
        declared_count: ``NumberOfRvaAndSizes``.
        region_end: End of the declared optional header
            (start + ``SizeOfOptionalHeader``).

    Raises:
        TruncatedDataError: The effective entries do not fit inside the
            declared optional header or the buffer.
    """
    count = min(declared_count, MAX_DATA_DIRECTORIES)
    needed = count * DATA_DIRECTORY_SIZE

    if offset + needed > region_end:
        raise TruncatedDataError(offset, needed, region_end - offset, "optional header")
    reader.require(offset, needed)

    entries = tuple(
        DataDirectory(*reader.unpack(_ENTRY_LAYOUT, offset + i * DATA_DIRECTORY_SIZE))
        for i in range(count)
    )
    return DataDirectories(entries=entries, declared_count=declared_count)
