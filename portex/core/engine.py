"""
Portex Analysis Engine
=======================

Reads a file, hands its bytes to :func:`~portex.parsers.decode_pe_image`
and turns the outcome into a :class:`~portex.core.models.DecodeReport`.

Pipeline:
    1. Check the file exists and is within ``decoder.max_file_size``
    2. Read the whole file and hash it (SHA-256)
    3. Decode DOS, COFF, optional header, data directories, sections
    4. Convert the decoded records (or the decode error) into a report

A malformed image is an expected outcome, not a crash: the engine
catches :class:`~portex.core.errors.PEFormatError`, logs it as a warning
and returns a report with ``success=False``.  Problems reading the file
raise :class:`AnalysisError`.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from shared.config import PortexConfig
from shared.logger import PortexLogger

from portex.core.errors import PEFormatError
from portex.core.models import (
    CoffInfo,
    DataDirectoryInfo,
    DecodeReport,
    ErrorInfo,
    FileInfo,
    OptionalHeaderInfo,
    SectionInfo,
)
from portex.parsers.coff_header import CoffHeader
from portex.parsers.constants import SECTION_ALIGN_MASK, flag_names
from portex.parsers.data_directories import DataDirectories
from portex.parsers.optional_header import (
    OptionalHeader,
    OptionalHeaderPE32,
    OptionalHeaderPE32Plus,
)
from portex.parsers.pe_image import PEImage, decode_pe_image
from portex.parsers.reader import BytesLike
from portex.parsers.section_table import SectionHeader


class AnalysisError(Exception):
    """The input could not be read or is outside the configured limits."""


class PortexEngine:
    """Decode files and produce :class:`DecodeReport` objects.

    Usage::

        engine = PortexEngine()
        report = engine.analyze("app.exe")
        if report.success:
            print(report.optional_header.image_base)
    """

    def __init__(
        self,
        config: PortexConfig | None = None,
        logger: PortexLogger | None = None,
    ) -> None:
        self._config: PortexConfig = config or PortexConfig()
        self._logger: PortexLogger = logger or PortexLogger("engine")

    # ------------------------------------------------------------------ #
    #  Entry points
    # ------------------------------------------------------------------ #

    def analyze(self, file_path: str | Path) -> DecodeReport:
        """Read *file_path* and decode it.

        Raises:
            AnalysisError: The file is missing, unreadable, or larger
                than ``decoder.max_file_size``.
        """
        path = Path(file_path)
        with self._logger.operation("read"):
            data = self._read_file(path)
        return self.analyze_bytes(data, source=str(path.resolve()))

    def analyze_bytes(self, data: BytesLike, source: str = "<memory>") -> DecodeReport:
        """Decode an in-memory buffer."""
        file_info = FileInfo(
            path=source,
            size=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
        )

        image: PEImage | None = None
        failure: PEFormatError | None = None

        with self._logger.operation("decode"):
            with self._logger.timed(f"decode {source}") as timer:
                try:
                    image = decode_pe_image(data)
                except PEFormatError as exc:
                    failure = exc

            if failure is not None:
                self._logger.warning(
                    "Decode failed for %s: %s", source, failure,
                    path=source, kind=failure.kind, offset=failure.offset,
                )
                return DecodeReport(
                    file=file_info,
                    success=False,
                    error=_error_info(failure),
                    duration_ms=round(timer.elapsed * 1000.0, 3),
                )

            self._logger.debug(
                "Decoded %s image: machine=%s sections=%d directories=%d",
                image.optional_header.kind,
                image.coff_header.machine.name,
                len(image.sections),
                image.data_directories.count,
                path=source,
            )
            report = build_report(image, file_info)
            report.duration_ms = round(timer.elapsed * 1000.0, 3)
            return report

    # ------------------------------------------------------------------ #
    #  File access
    # ------------------------------------------------------------------ #

    def _read_file(self, path: Path) -> bytes:
        if not path.is_file():
            raise AnalysisError(f"File not found: {path}")

        try:
            size = path.stat().st_size
        except OSError as exc:
            raise AnalysisError(f"Cannot stat {path}: {exc}") from exc

        max_size = self._config.decoder.max_file_size
        if size > max_size:
            raise AnalysisError(
                f"File too large: {size:,} bytes (max: {max_size:,} bytes)"
            )

        try:
            data = path.read_bytes()
        except OSError as exc:
            raise AnalysisError(f"Cannot read {path}: {exc}") from exc

        self._logger.debug("Read %d bytes from %s", len(data), path, size=len(data))
        return data


# ---------------------------------------------------------------------------
# Record -> report conversion
# ---------------------------------------------------------------------------

def build_report(image: PEImage, file_info: FileInfo) -> DecodeReport:
    """Convert a decoded :class:`PEImage` into a successful report."""
    return DecodeReport(
        file=file_info,
        success=True,
        format=image.optional_header.kind,
        e_lfanew=image.dos_header.e_lfanew,
        coff=_coff_info(image.coff_header),
        optional_header=_optional_header_info(image.optional_header),
        data_directories=_directory_infos(image.data_directories),
        declared_directory_count=image.data_directories.declared_count,
        sections=[_section_info(i, s) for i, s in enumerate(image.sections, 1)],
    )


def _error_info(exc: PEFormatError) -> ErrorInfo:
    details = exc.to_dict()
    for key in ("kind", "message", "offset"):
        details.pop(key, None)
    return ErrorInfo(kind=exc.kind, message=str(exc), offset=exc.offset, details=details)


def _coff_info(coff: CoffHeader) -> CoffInfo:
    return CoffInfo(
        machine=coff.machine.name,
        machine_label=coff.machine.label,
        machine_code=coff.machine_code,
        number_of_sections=coff.number_of_sections,
        time_date_stamp=coff.time_date_stamp,
        pointer_to_symbol_table=coff.pointer_to_symbol_table,
        number_of_symbols=coff.number_of_symbols,
        size_of_optional_header=coff.size_of_optional_header,
        characteristics=int(coff.characteristics),
        characteristic_flags=flag_names(coff.characteristics),
    )


def _optional_header_info(header: OptionalHeader) -> OptionalHeaderInfo:
    match header:
        case OptionalHeaderPE32():
            base_of_data: int | None = header.base_of_data
        case OptionalHeaderPE32Plus():
            base_of_data = None

    return OptionalHeaderInfo(
        kind=header.kind,
        magic=header.magic,
        linker_version=f"{header.major_linker_version}.{header.minor_linker_version}",
        size_of_code=header.size_of_code,
        size_of_initialized_data=header.size_of_initialized_data,
        size_of_uninitialized_data=header.size_of_uninitialized_data,
        address_of_entry_point=header.address_of_entry_point,
        base_of_code=header.base_of_code,
        base_of_data=base_of_data,
        image_base=header.image_base,
        section_alignment=header.section_alignment,
        file_alignment=header.file_alignment,
        operating_system_version=(
            f"{header.major_operating_system_version}."
            f"{header.minor_operating_system_version}"
        ),
        image_version=f"{header.major_image_version}.{header.minor_image_version}",
        subsystem_version=(
            f"{header.major_subsystem_version}.{header.minor_subsystem_version}"
        ),
        win32_version_value=header.win32_version_value,
        size_of_image=header.size_of_image,
        size_of_headers=header.size_of_headers,
        check_sum=header.check_sum,
        subsystem=header.subsystem.name,
        subsystem_code=header.subsystem_code,
        dll_characteristics=int(header.dll_characteristics),
        dll_characteristic_flags=flag_names(header.dll_characteristics),
        size_of_stack_reserve=header.size_of_stack_reserve,
        size_of_stack_commit=header.size_of_stack_commit,
        size_of_heap_reserve=header.size_of_heap_reserve,
        size_of_heap_commit=header.size_of_heap_commit,
        loader_flags=header.loader_flags,
        number_of_rva_and_sizes=header.number_of_rva_and_sizes,
    )


def _directory_infos(directories: DataDirectories) -> list[DataDirectoryInfo]:
    return [
        DataDirectoryInfo(
            index=int(kind),
            name=kind.name,
            virtual_address=entry.virtual_address,
            size=entry.size,
            declared=int(kind) < directories.count,
        )
        for kind, entry in directories.all_slots()
    ]


def _section_info(index: int, section: SectionHeader) -> SectionInfo:
    return SectionInfo(
        index=index,
        name=section.display_name,
        raw_name=section.name.hex(),
        long_name_offset=section.string_table_offset,
        name_unterminated=section.name_is_unterminated,
        virtual_size=section.virtual_size,
        virtual_address=section.virtual_address,
        size_of_raw_data=section.size_of_raw_data,
        pointer_to_raw_data=section.pointer_to_raw_data,
        pointer_to_relocations=section.pointer_to_relocations,
        pointer_to_linenumbers=section.pointer_to_linenumbers,
        number_of_relocations=section.number_of_relocations,
        number_of_linenumbers=section.number_of_linenumbers,
        characteristics=int(section.characteristics),
        characteristic_flags=flag_names(section.characteristics, SECTION_ALIGN_MASK),
        alignment=section.alignment,
        offset=section.offset,
    )
