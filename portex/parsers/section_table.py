"""
Section Header Table
=====================

``NumberOfSections`` fixed 40-byte records starting immediately after the
*declared* optional header (``SizeOfOptionalHeader``, which may include
vendor padding beyond the variant's fixed fields and directories).

Record layout::

    +0   Name                   8   raw bytes, NUL padded, may be unterminated
    +8   VirtualSize            4
    +12  VirtualAddress         4   RVA
    +16  SizeOfRawData          4
    +20  PointerToRawData       4   file offset
    +24  PointerToRelocations   4
    +28  PointerToLinenumbers   4
    +32  NumberOfRelocations    2
    +34  NumberOfLinenumbers    2
    +36  Characteristics        4

Section names are kept exactly as stored.  A name that fills all eight
bytes, or the ``/NNN`` long-name form, refers to the COFF string table;
that is reported through :class:`SectionHeader` helpers and never
resolved here.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from portex.core.errors import InconsistentSectionCountError
from portex.parsers.constants import (
    SECTION_HEADER_SIZE,
    SECTION_NAME_SIZE,
    SectionCharacteristics,
    section_alignment,
)
from portex.parsers.reader import ByteReader, ByteSpan

_SECTION_LAYOUT = struct.Struct("<8sIIIIIIHHI")


@dataclass(frozen=True, slots=True)
class SectionHeader:
    """One decoded section table record.

    Attributes:
        name: The 8 raw name bytes.
        offset: File offset of this record in the section table.
    """
    name: bytes
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: SectionCharacteristics
    offset: int

    # ------------------------------------------------------------------ #
    #  Naming
    # ------------------------------------------------------------------ #

    @property
    def display_name(self) -> str:
        """Name up to the first NUL, decoded as ASCII with replacement."""
        return self.name.split(b"\x00", 1)[0].decode("ascii", errors="replace")

    @property
    def name_is_unterminated(self) -> bool:
        """True when all eight name bytes are used (no NUL terminator)."""
        return b"\x00" not in self.name

    @property
    def string_table_offset(self) -> int | None:
        """Offset into the COFF string table for ``/NNN`` long names."""
        raw = self.name.split(b"\x00", 1)[0]
        if len(raw) < 2 or raw[:1] != b"/":
            return None
        digits = raw[1:]
        if not digits.isdigit():
            return None
        return int(digits)

    # ------------------------------------------------------------------ #
    #  Characteristics
    # ------------------------------------------------------------------ #

    @property
    def alignment(self) -> int | None:
        """Byte alignment from the ``IMAGE_SCN_ALIGN_*`` field, if any."""
        return section_alignment(self.characteristics)

    @property
    def is_code(self) -> bool:
        return bool(self.characteristics & SectionCharacteristics.CNT_CODE)

    @property
    def is_executable(self) -> bool:
        return bool(self.characteristics & SectionCharacteristics.MEM_EXECUTE)

    @property
    def is_readable(self) -> bool:
        return bool(self.characteristics & SectionCharacteristics.MEM_READ)

    @property
    def is_writable(self) -> bool:
        return bool(self.characteristics & SectionCharacteristics.MEM_WRITE)

    @property
    def raw_data_span(self) -> ByteSpan:
        """File span holding the section's raw data (not bounds-checked)."""
        return ByteSpan(self.pointer_to_raw_data, self.size_of_raw_data)


def read_section_table(
    reader: ByteReader,
    offset: int,
    count: int,
) -> tuple[SectionHeader, ...]:
    """Decode *count* section headers starting at *offset*.

    Raises:
        InconsistentSectionCountError: The declared table runs past the
            end of the buffer.
    """
    size = count * SECTION_HEADER_SIZE
    available = len(reader) - offset
    if offset < 0 or size > available:
        fits = max(available, 0) // SECTION_HEADER_SIZE
        raise InconsistentSectionCountError(count, offset, size, available, fits)

    sections: list[SectionHeader] = []
    for index in range(count):
        record_offset = offset + index * SECTION_HEADER_SIZE
        (
            name,
            virtual_size,
            virtual_address,
            size_of_raw_data,
            pointer_to_raw_data,
            pointer_to_relocations,
            pointer_to_linenumbers,
            number_of_relocations,
            number_of_linenumbers,
            characteristics,
        ) = reader.unpack(_SECTION_LAYOUT, record_offset)

        sections.append(SectionHeader(
            name=bytes(name[:SECTION_NAME_SIZE]),
            virtual_size=virtual_size,
            virtual_address=virtual_address,
            size_of_raw_data=size_of_raw_data,
            pointer_to_raw_data=pointer_to_raw_data,
            pointer_to_relocations=pointer_to_relocations,
            pointer_to_linenumbers=pointer_to_linenumbers,
            number_of_relocations=number_of_relocations,
            number_of_linenumbers=number_of_linenumbers,
            characteristics=SectionCharacteristics(characteristics),
            offset=record_offset,
        ))

    return tuple(sections)
