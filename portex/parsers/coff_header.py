"""
COFF File Header Reader
========================

Validates the ``PE\\0\\0`` signature at ``e_lfanew`` and decodes the
20-byte COFF file header that follows it.

Layout (offsets relative to the signature)::

    +4   Machine                2
    +6   NumberOfSections       2
    +8   TimeDateStamp          4
    +12  PointerToSymbolTable   4
    +16  NumberOfSymbols        4
    +20  SizeOfOptionalHeader   2
    +22  Characteristics        2
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from portex.core.errors import InvalidSignatureError
from portex.parsers.constants import (
    COFF_HEADER_SIZE,
    PE_SIGNATURE,
    PE_SIGNATURE_SIZE,
    FileCharacteristics,
    MachineType,
)
from portex.parsers.reader import ByteReader

_COFF_LAYOUT = struct.Struct("<HHIIIHH")


@dataclass(frozen=True, slots=True)
class CoffHeader:
    """Decoded COFF file header.

    Attributes:
        machine: Target CPU; ``MachineType.UNRECOGNIZED`` for unknown codes.
        machine_code: Raw ``Machine`` value as stored in the file.
        number_of_sections: Entries in the section table.
        time_date_stamp: Low 32 bits of the creation time (``time_t``).
        pointer_to_symbol_table: File offset of the COFF symbol table, or 0.
        number_of_symbols: Entries in the COFF symbol table.
        size_of_optional_header: Declared optional header size in bytes.
        characteristics: File attribute flags, unknown bits preserved.
    """
    machine: MachineType
    machine_code: int
    number_of_sections: int
    time_date_stamp: int
    pointer_to_symbol_table: int
    number_of_symbols: int
    size_of_optional_header: int
    characteristics: FileCharacteristics

    @property
    def is_dll(self) -> bool:
        return bool(self.characteristics & FileCharacteristics.DLL)

    @property
    def is_executable(self) -> bool:
        return bool(self.characteristics & FileCharacteristics.EXECUTABLE_IMAGE)


def read_coff_header(reader: ByteReader, pe_offset: int) -> CoffHeader:
    """Decode the signature and COFF header located at ``pe_offset``.

    Args:
        reader: Buffer reader.
        pe_offset: ``e_lfanew`` from the DOS header.

    Raises:
        TruncatedDataError: Fewer than 24 bytes remain at ``pe_offset``.
        InvalidSignatureError: The signature is not ``PE\\0\\0``.
    """
    reader.require(pe_offset, PE_SIGNATURE_SIZE + COFF_HEADER_SIZE)

    signature = reader.read_u32(pe_offset)
    if signature != PE_SIGNATURE:
        raise InvalidSignatureError("PE", pe_offset, PE_SIGNATURE, signature)

    (
        machine,
        number_of_sections,
        time_date_stamp,
        pointer_to_symbol_table,
        number_of_symbols,
        size_of_optional_header,
        characteristics,
    ) = reader.unpack(_COFF_LAYOUT, pe_offset + PE_SIGNATURE_SIZE)

    return CoffHeader(
        machine=MachineType.from_raw(machine),
        machine_code=machine,
        number_of_sections=number_of_sections,
        time_date_stamp=time_date_stamp,
        pointer_to_symbol_table=pointer_to_symbol_table,
        number_of_symbols=number_of_symbols,
        size_of_optional_header=size_of_optional_header,
        characteristics=FileCharacteristics(characteristics),
    )
