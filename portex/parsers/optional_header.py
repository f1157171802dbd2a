"""
Optional Header Reader
=======================

Decodes the PE optional header, whose layout is selected at run time by
its leading 2-byte magic:

    ========  ============  ==========================================
    Magic     Variant       Differences
    ========  ============  ==========================================
    0x10B     PE32          32-bit ImageBase and stack/heap sizes,
                            carries BaseOfData (96 fixed bytes)
    0x20B     PE32+         64-bit ImageBase and stack/heap sizes,
                            no BaseOfData (112 fixed bytes)
    ========  ============  ==========================================

The two variants are independent frozen dataclasses forming the
:data:`OptionalHeader` union.  Consumers dispatch with ``match`` and must
handle both cases::

    match header:
        case OptionalHeaderPE32():
            ...
        case OptionalHeaderPE32Plus():
            ...

The data-directory array that follows the fixed fields is decoded
separately by :mod:`portex.parsers.data_directories`.

References:
    - Microsoft. (2024). PE Format, "Optional Header (Image Only)".
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Union

from portex.core.errors import TruncatedDataError, UnsupportedOptionalHeaderMagicError
from portex.parsers.constants import (
    PE32_FIXED_SIZE,
    PE32_PLUS_FIXED_SIZE,
    DllCharacteristics,
    OptionalHeaderMagic,
    Subsystem,
)
from portex.parsers.reader import ByteReader

# Standard fields | Windows-specific fields
_PE32_LAYOUT = struct.Struct(
    "<HBB" "IIIIII"           # magic, linker version, sizes, entry, bases
    "III" "HHHHHH"            # image base, alignments, versions
    "IIII" "HH"               # win32 version, sizes, checksum, subsystem, dll flags
    "IIII" "II"               # stack/heap reserve+commit, loader flags, rva count
)
_PE32_PLUS_LAYOUT = struct.Struct(
    "<HBB" "IIIII"            # no BaseOfData
    "Q" "II" "HHHHHH"
    "IIII" "HH"
    "QQQQ" "II"
)


@dataclass(frozen=True, slots=True)
class OptionalHeaderPE32:
    """PE32 (32-bit) optional header fixed fields."""
    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    base_of_data: int
    image_base: int
    section_alignment: int
    file_alignment: int
    major_operating_system_version: int
    minor_operating_system_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    check_sum: int
    subsystem: Subsystem
    subsystem_code: int
    dll_characteristics: DllCharacteristics
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int

    kind: ClassVar[str] = "PE32"
    fixed_size: ClassVar[int] = PE32_FIXED_SIZE


@dataclass(frozen=True, slots=True)
class OptionalHeaderPE32Plus:
    """PE32+ (64-bit) optional header fixed fields."""
    magic: int
    major_linker_version: int
    minor_linker_version: int
    size_of_code: int
    size_of_initialized_data: int
    size_of_uninitialized_data: int
    address_of_entry_point: int
    base_of_code: int
    image_base: int
    section_alignment: int
    file_alignment: int
    major_operating_system_version: int
    minor_operating_system_version: int
    major_image_version: int
    minor_image_version: int
    major_subsystem_version: int
    minor_subsystem_version: int
    win32_version_value: int
    size_of_image: int
    size_of_headers: int
    check_sum: int
    subsystem: Subsystem
    subsystem_code: int
    dll_characteristics: DllCharacteristics
    size_of_stack_reserve: int
    size_of_stack_commit: int
    size_of_heap_reserve: int
    size_of_heap_commit: int
    loader_flags: int
    number_of_rva_and_sizes: int

    kind: ClassVar[str] = "PE32+"
    fixed_size: ClassVar[int] = PE32_PLUS_FIXED_SIZE


OptionalHeader = Union[OptionalHeaderPE32, OptionalHeaderPE32Plus]


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def read_optional_header(
    reader: ByteReader,
    offset: int,
    declared_size: int,
) -> OptionalHeader:
    """Decode the optional header's fixed fields.

    Args:
        reader: Buffer reader.
        offset: File offset just past the COFF header.
        declared_size: ``SizeOfOptionalHeader`` from the COFF header.

    Returns:
        :class:`OptionalHeaderPE32` or :class:`OptionalHeaderPE32Plus`.

    Raises:
        TruncatedDataError: The declared region is not in the buffer, or
            is too small for the magic or for the selected variant.
        UnsupportedOptionalHeaderMagicError: Magic is not 0x10B / 0x20B.
    """
    reader.require(offset, declared_size)
    if declared_size < 2:
        raise TruncatedDataError(offset, 2, declared_size, "optional header")

    magic = reader.read_u16(offset)
    match magic:
        case OptionalHeaderMagic.PE32:
            _require_declared(offset, declared_size, PE32_FIXED_SIZE)
            return _decode_pe32(reader, offset)
        case OptionalHeaderMagic.PE32_PLUS:
            _require_declared(offset, declared_size, PE32_PLUS_FIXED_SIZE)
            return _decode_pe32_plus(reader, offset)
        case _:
            raise UnsupportedOptionalHeaderMagicError(magic, offset)


def _require_declared(offset: int, declared_size: int, needed: int) -> None:
    if declared_size < needed:
        raise TruncatedDataError(offset, needed, declared_size, "optional header")


def _decode_pe32(reader: ByteReader, offset: int) -> OptionalHeaderPE32:
    (
        magic, major_linker, minor_linker,
        size_of_code, size_of_init, size_of_uninit,
        entry_point, base_of_code, base_of_data,
        image_base, section_alignment, file_alignment,
        major_os, minor_os, major_image, minor_image,
        major_subsystem, minor_subsystem,
        win32_version, size_of_image, size_of_headers, check_sum,
        subsystem, dll_characteristics,
        stack_reserve, stack_commit, heap_reserve, heap_commit,
        loader_flags, number_of_rva_and_sizes,
    ) = reader.unpack(_PE32_LAYOUT, offset)

    return OptionalHeaderPE32(
        magic=magic,
        major_linker_version=major_linker,
        minor_linker_version=minor_linker,
        size_of_code=size_of_code,
        size_of_initialized_data=size_of_init,
        size_of_uninitialized_data=size_of_uninit,
        address_of_entry_point=entry_point,
        base_of_code=base_of_code,
        base_of_data=base_of_data,
        image_base=image_base,
        section_alignment=section_alignment,
        file_alignment=file_alignment,
        major_operating_system_version=major_os,
        minor_operating_system_version=minor_os,
        major_image_version=major_image,
        minor_image_version=minor_image,
        major_subsystem_version=major_subsystem,
        minor_subsystem_version=minor_subsystem,
        win32_version_value=win32_version,
        size_of_image=size_of_image,
        size_of_headers=size_of_headers,
        check_sum=check_sum,
        subsystem=Subsystem.from_raw(subsystem),
        subsystem_code=subsystem,
        dll_characteristics=DllCharacteristics(dll_characteristics),
        size_of_stack_reserve=stack_reserve,
        size_of_stack_commit=stack_commit,
        size_of_heap_reserve=heap_reserve,
        size_of_heap_commit=heap_commit,
        loader_flags=loader_flags,
        number_of_rva_and_sizes=number_of_rva_and_sizes,
    )


def _decode_pe32_plus(reader: ByteReader, offset: int) -> OptionalHeaderPE32Plus:
    (
        magic, major_linker, minor_linker,
        size_of_code, size_of_init, size_of_uninit,
        entry_point, base_of_code,
        image_base, section_alignment, file_alignment,
        major_os, minor_os, major_image, minor_image,
        major_subsystem, minor_subsystem,
        win32_version, size_of_image, size_of_headers, check_sum,
        subsystem, dll_characteristics,
        stack_reserve, stack_commit, heap_reserve, heap_commit,
        loader_flags, number_of_rva_and_sizes,
    ) = reader.unpack(_PE32_PLUS_LAYOUT, offset)

    return OptionalHeaderPE32Plus(
        magic=magic,
        major_linker_version=major_linker,
        minor_linker_version=minor_linker,
        size_of_code=size_of_code,
        size_of_initialized_data=size_of_init,
        size_of_uninitialized_data=size_of_uninit,
        address_of_entry_point=entry_point,
        base_of_code=base_of_code,
        image_base=image_base,
        section_alignment=section_alignment,
        file_alignment=file_alignment,
        major_operating_system_version=major_os,
        minor_operating_system_version=minor_os,
        major_image_version=major_image,
        minor_image_version=minor_image,
        major_subsystem_version=major_subsystem,
        minor_subsystem_version=minor_subsystem,
        win32_version_value=win32_version,
        size_of_image=size_of_image,
        size_of_headers=size_of_headers,
        check_sum=check_sum,
        subsystem=Subsystem.from_raw(subsystem),
        subsystem_code=subsystem,
        dll_characteristics=DllCharacteristics(dll_characteristics),
        size_of_stack_reserve=stack_reserve,
        size_of_stack_commit=stack_commit,
        size_of_heap_reserve=heap_reserve,
        size_of_heap_commit=heap_commit,
        loader_flags=loader_flags,
        number_of_rva_and_sizes=number_of_rva_and_sizes,
    )
