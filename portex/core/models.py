"""
Portex Report Models
=====================

Pydantic models describing the outcome of decoding one file.  They are
the serialisable face of :class:`~portex.parsers.pe_image.PEImage`:
enumerations are rendered as names, bit sets as integer values plus the
list of set flag names, and a failed decode carries an :class:`ErrorInfo`
instead of header data.

The decoded records themselves stay frozen dataclasses; these models are
built from them by :class:`~portex.core.engine.PortexEngine`.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# File and error information
# ---------------------------------------------------------------------------

class FileInfo(BaseModel):
    """The analysed input.

    Attributes:
        path: Resolved filesystem path, or ``"<memory>"`` for raw buffers.
        size: Buffer size in bytes.
        sha256: SHA-256 of the whole buffer.
    """
    path: str = ""
    size: int = 0
    sha256: str = ""


class ErrorInfo(BaseModel):
    """A decode failure as reported by :class:`~portex.core.errors.PEFormatError`.

    ``details`` holds the error-specific fields (required size, expected
    and actual signature, declared section count, ...).
    """
    kind: str
    message: str
    offset: int = 0
    details: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Header information
# ---------------------------------------------------------------------------

class CoffInfo(BaseModel):
    """COFF file header."""
    machine: str = "UNKNOWN"
    machine_label: str = ""
    machine_code: int = 0
    number_of_sections: int = 0
    time_date_stamp: int = 0
    pointer_to_symbol_table: int = 0
    number_of_symbols: int = 0
    size_of_optional_header: int = 0
    characteristics: int = 0
    characteristic_flags: list[str] = Field(default_factory=list)


class OptionalHeaderInfo(BaseModel):
    """Optional header, flattened across the PE32 and PE32+ variants.

    ``base_of_data`` is ``None`` for PE32+ images, which do not have it.
    """
    kind: str = "PE32"
    magic: int = 0
    linker_version: str = ""
    size_of_code: int = 0
    size_of_initialized_data: int = 0
    size_of_uninitialized_data: int = 0
    address_of_entry_point: int = 0
    base_of_code: int = 0
    base_of_data: Optional[int] = None
    image_base: int = 0
    section_alignment: int = 0
    file_alignment: int = 0
    operating_system_version: str = ""
    image_version: str = ""
    subsystem_version: str = ""
    win32_version_value: int = 0
    size_of_image: int = 0
    size_of_headers: int = 0
    check_sum: int = 0
    subsystem: str = "UNKNOWN"
    subsystem_code: int = 0
    dll_characteristics: int = 0
    dll_characteristic_flags: list[str] = Field(default_factory=list)
    size_of_stack_reserve: int = 0
    size_of_stack_commit: int = 0
    size_of_heap_reserve: int = 0
    size_of_heap_commit: int = 0
    loader_flags: int = 0
    number_of_rva_and_sizes: int = 0


class DataDirectoryInfo(BaseModel):
    """One data-directory slot.

    Attributes:
        index: Slot number (0-15).
        name: ``DataDirectoryKind`` member name.
        declared: Whether the image's ``NumberOfRvaAndSizes`` covers the slot.
    """
    index: int
    name: str
    virtual_address: int = 0
    size: int = 0
    declared: bool = False

    @property
    def is_present(self) -> bool:
        return self.virtual_address != 0 or self.size != 0


class SectionInfo(BaseModel):
    """One section header.

    Attributes:
        name: Display name (up to the first NUL).
        raw_name: The 8 stored name bytes, hex encoded.
        long_name_offset: String-table offset for ``/NNN`` names.
        name_unterminated: All eight name bytes are used.
        alignment: Decoded ``IMAGE_SCN_ALIGN_*`` value in bytes.
        offset: File offset of the header record.
    """
    index: int = 0
    name: str = ""
    raw_name: str = ""
    long_name_offset: Optional[int] = None
    name_unterminated: bool = False
    virtual_size: int = 0
    virtual_address: int = 0
    size_of_raw_data: int = 0
    pointer_to_raw_data: int = 0
    pointer_to_relocations: int = 0
    pointer_to_linenumbers: int = 0
    number_of_relocations: int = 0
    number_of_linenumbers: int = 0
    characteristics: int = 0
    characteristic_flags: list[str] = Field(default_factory=list)
    alignment: Optional[int] = None
    offset: int = 0


# ---------------------------------------------------------------------------
# Aggregate report
# ---------------------------------------------------------------------------

class DecodeReport(BaseModel):
    """Everything known about one decode attempt.

    On success ``coff``, ``optional_header``, ``data_directories`` and
    ``sections`` are populated and ``error`` is ``None``.  On failure only
    ``file`` and ``error`` carry information.
    """
    file: FileInfo = Field(default_factory=FileInfo)
    success: bool = False
    format: str = ""
    e_lfanew: int = 0
    coff: Optional[CoffInfo] = None
    optional_header: Optional[OptionalHeaderInfo] = None
    data_directories: list[DataDirectoryInfo] = Field(default_factory=list)
    declared_directory_count: int = 0
    sections: list[SectionInfo] = Field(default_factory=list)
    error: Optional[ErrorInfo] = None
    decoded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0

    @property
    def present_directories(self) -> list[DataDirectoryInfo]:
        return [d for d in self.data_directories if d.is_present]

    @property
    def section_count(self) -> int:
        return len(self.sections)
