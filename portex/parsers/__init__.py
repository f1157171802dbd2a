"""
Portex Parsers
===============

The PE header decode pipeline.  Everything here is pure: no file I/O,
no logging, and no dependency on the engine or output layers.
"""

from portex.parsers.coff_header import CoffHeader, read_coff_header
from portex.parsers.constants import (
    DataDirectoryKind,
    DllCharacteristics,
    FileCharacteristics,
    MachineType,
    OptionalHeaderMagic,
    SectionCharacteristics,
    Subsystem,
    flag_names,
    section_alignment,
)
from portex.parsers.data_directories import (
    DataDirectories,
    DataDirectory,
    read_data_directories,
)
from portex.parsers.dos_header import DosHeader, read_dos_header
from portex.parsers.optional_header import (
    OptionalHeader,
    OptionalHeaderPE32,
    OptionalHeaderPE32Plus,
    read_optional_header,
)
from portex.parsers.pe_image import PEImage, decode_pe_image
from portex.parsers.reader import ByteReader, ByteSpan
from portex.parsers.section_table import SectionHeader, read_section_table

__all__ = [
    "ByteReader",
    "ByteSpan",
    "CoffHeader",
    "DataDirectories",
    "DataDirectory",
    "DataDirectoryKind",
    "DllCharacteristics",
    "DosHeader",
    "FileCharacteristics",
    "MachineType",
    "OptionalHeader",
    "OptionalHeaderMagic",
    "OptionalHeaderPE32",
    "OptionalHeaderPE32Plus",
    "PEImage",
    "SectionCharacteristics",
    "SectionHeader",
    "Subsystem",
    "decode_pe_image",
    "flag_names",
    "read_coff_header",
    "read_data_directories",
    "read_dos_header",
    "read_optional_header",
    "read_section_table",
    "section_alignment",
]
