"""
PE Image Decoder
=================

Runs the header readers in dependency order and assembles a
:class:`PEImage`::

    DOS header -> PE signature + COFF header -> optional header
               -> data directories -> section table

Each stage locates the next from values it decoded, so the first failure
aborts the whole decode.  Callers get either a fully validated image or
exactly one :class:`~portex.core.errors.PEFormatError`; no partially
populated image is ever returned.

Usage::

    image = decode_pe_image(Path("app.exe").read_bytes())
    if image.is_pe32_plus:
        print(hex(image.image_base))
    text = image.section_by_name(".text")
    code = image.section_data(text)

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from portex.core.errors import TruncatedDataError
from portex.parsers.coff_header import CoffHeader, read_coff_header
from portex.parsers.constants import COFF_HEADER_SIZE, PE_SIGNATURE_SIZE
from portex.parsers.data_directories import DataDirectories, read_data_directories
from portex.parsers.dos_header import DosHeader, read_dos_header
from portex.parsers.optional_header import (
    OptionalHeader,
    OptionalHeaderPE32Plus,
    read_optional_header,
)
from portex.parsers.reader import ByteReader, ByteSpan, BytesLike
from portex.parsers.section_table import SectionHeader, read_section_table


@dataclass(frozen=True, slots=True)
class PEImage:
    """A fully decoded PE header set.

    Attributes:
        dos_header: MZ stub fields.
        coff_header: COFF file header.
        optional_header: PE32 or PE32+ optional header.
        data_directories: Directory table from the optional header tail.
        sections: Section headers in table order.
        optional_header_offset: File offset of the optional header.
        section_table_offset: File offset of the first section header.
        buffer: Read-only view of the decoded bytes (borrowed).
    """
    dos_header: DosHeader
    coff_header: CoffHeader
    optional_header: OptionalHeader
    data_directories: DataDirectories
    sections: tuple[SectionHeader, ...]
    optional_header_offset: int
    section_table_offset: int
    buffer: memoryview = field(repr=False, compare=False)

    @property
    def is_pe32_plus(self) -> bool:
        return isinstance(self.optional_header, OptionalHeaderPE32Plus)

    @property
    def image_base(self) -> int:
        return self.optional_header.image_base

    @property
    def entry_point(self) -> int:
        """Entry point RVA."""
        return self.optional_header.address_of_entry_point

    def section_by_name(self, name: Union[str, bytes]) -> SectionHeader | None:
        """First section whose name (up to NUL) equals *name*."""
        if isinstance(name, str):
            name = name.encode("ascii", errors="replace")
        for section in self.sections:
            if section.name.split(b"\x00", 1)[0] == name:
                return section
        return None

    def view(self, span: ByteSpan) -> memoryview:
        """Borrowed view of *span* within the decoded buffer.

        Raises:
            TruncatedDataError: The span is not fully inside the buffer.
        """
        length = len(self.buffer)
        if span.offset < 0 or span.length < 0 or span.end > length:
            raise TruncatedDataError(span.offset, span.length, length - span.offset)
        return self.buffer[span.offset:span.end]

    def section_data(self, section: SectionHeader) -> memoryview:
        """Raw file bytes of *section*."""
        return self.view(section.raw_data_span)


def decode_pe_image(data: BytesLike) -> PEImage:
    """Decode the PE headers of *data*.

    Args:
        data: Complete file contents; never copied.

    Returns:
        The decoded :class:`PEImage`.

    Raises:
        PEFormatError: The first structural problem met, as one of its
            typed subclasses.
    """
    reader = ByteReader(data)

    dos_header = read_dos_header(reader)
    coff_header = read_coff_header(reader, dos_header.e_lfanew)

    optional_offset = dos_header.e_lfanew + PE_SIGNATURE_SIZE + COFF_HEADER_SIZE
    declared_size = coff_header.size_of_optional_header
    optional_header = read_optional_header(reader, optional_offset, declared_size)

    data_directories = read_data_directories(
        reader,
        optional_offset + optional_header.fixed_size,
        optional_header.number_of_rva_and_sizes,
        optional_offset + declared_size,
    )

    section_offset = optional_offset + declared_size
    sections = read_section_table(reader, section_offset, coff_header.number_of_sections)

    return PEImage(
        dos_header=dos_header,
        coff_header=coff_header,
        optional_header=optional_header,
        data_directories=data_directories,
        sections=sections,
        optional_header_offset=optional_offset,
        section_table_offset=section_offset,
        buffer=reader.buffer,
    )
