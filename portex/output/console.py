"""
Portex Console Output
======================

Rich terminal display of a :class:`~portex.core.models.DecodeReport`:
file and COFF panels, an optional-header table, the data-directory table
and the section table.  A failed decode is shown as a single error panel
naming the error kind and the offending offset.
"""

from __future__ import annotations

from rich.markup import escape
from rich.panel import Panel

from shared.console import PortexConsole

from portex.core.models import (
    CoffInfo,
    DataDirectoryInfo,
    DecodeReport,
    ErrorInfo,
    FileInfo,
    OptionalHeaderInfo,
    SectionInfo,
)
from portex.output.report import timestamp_to_datetime

# Short permission string for the three memory-access bits.
_ACCESS_FLAGS: list[tuple[str, str]] = [
    ("MEM_READ", "R"),
    ("MEM_WRITE", "W"),
    ("MEM_EXECUTE", "X"),
]


def _hex(value: int) -> str:
    return f"0x{value:x}"


def _flags(names: list[str]) -> str:
    return ", ".join(names) if names else "[dim]none[/dim]"


def _access(section: SectionInfo) -> str:
    return "".join(
        letter if name in section.characteristic_flags else "-"
        for name, letter in _ACCESS_FLAGS
    )


class PortexConsoleOutput:
    """Render decode reports to the terminal.

    Usage::

        output = PortexConsoleOutput()
        output.display(report)

    Args:
        console: Console to draw on; a new one is created if omitted.
        show_empty_directories: List all 16 directory slots instead of
            only the non-zero ones.
    """

    def __init__(
        self,
        console: PortexConsole | None = None,
        *,
        show_empty_directories: bool = False,
    ) -> None:
        self._console: PortexConsole = console or PortexConsole()
        self._show_empty = show_empty_directories

    def display(self, report: DecodeReport) -> None:
        self._console.section("PORTEX -- PE Header Decoder")
        self.display_file(report.file, report)

        if not report.success:
            if report.error is not None:
                self.display_error(report.error)
            self._console.divider()
            return

        if report.coff is not None:
            self.display_coff(report.coff)
        if report.optional_header is not None:
            self.display_optional_header(report.optional_header)
        self.display_directories(report.data_directories, report.declared_directory_count)
        self.display_sections(report.sections)
        self._console.divider()

    # ------------------------------------------------------------------ #
    #  Panels
    # ------------------------------------------------------------------ #

    def display_file(self, info: FileInfo, report: DecodeReport) -> None:
        lines: list[str] = [
            f"[bold]File:[/bold]      {escape(info.path)}",
            f"[bold]Size:[/bold]      {info.size:,} bytes",
            f"[bold]SHA-256:[/bold]   {info.sha256}",
        ]
        if report.success:
            lines.append(f"[bold]Format:[/bold]    {report.format}")
            lines.append(f"[bold]e_lfanew:[/bold]  {_hex(report.e_lfanew)}")

        self._console.print(Panel(
            "\n".join(lines),
            title="[bold bright_cyan]File Information[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        ))
        self._console.blank()

    def display_error(self, error: ErrorInfo) -> None:
        lines = [
            f"[bold]Kind:[/bold]     {error.kind}",
            f"[bold]Offset:[/bold]   {_hex(error.offset)}",
            f"[bold]Message:[/bold]  {escape(error.message)}",
        ]
        for key, value in error.details.items():
            lines.append(f"[dim]{key}:[/dim] {escape(str(value))}")

        self._console.print(Panel(
            "\n".join(lines),
            title="[bold red]Decode Failed[/bold red]",
            border_style="red",
            padding=(1, 2),
        ))
        self._console.blank()

    def display_coff(self, coff: CoffInfo) -> None:
        built = timestamp_to_datetime(coff.time_date_stamp)
        stamp = _hex(coff.time_date_stamp)
        if built is not None:
            stamp += f" ({built:%Y-%m-%d %H:%M:%S} UTC)"

        lines = [
            f"[bold]Machine:[/bold]           {coff.machine_label} ({_hex(coff.machine_code)})",
            f"[bold]Sections:[/bold]          {coff.number_of_sections}",
            f"[bold]TimeDateStamp:[/bold]     {stamp}",
            f"[bold]Symbol table:[/bold]      {_hex(coff.pointer_to_symbol_table)} "
            f"({coff.number_of_symbols} symbols)",
            f"[bold]Optional header:[/bold]   {coff.size_of_optional_header} bytes",
            f"[bold]Characteristics:[/bold]   {_hex(coff.characteristics)} "
            f"{_flags(coff.characteristic_flags)}",
        ]
        self._console.print(Panel(
            "\n".join(lines),
            title="[bold bright_cyan]COFF File Header[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        ))
        self._console.blank()

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def display_optional_header(self, header: OptionalHeaderInfo) -> None:
        self._console.section(f"Optional Header ({header.kind})")

        rows: list[tuple[str, str]] = [
            ("Magic", _hex(header.magic)),
            ("Linker version", header.linker_version),
            ("Size of code", _hex(header.size_of_code)),
            ("Size of initialized data", _hex(header.size_of_initialized_data)),
            ("Size of uninitialized data", _hex(header.size_of_uninitialized_data)),
            ("Entry point RVA", _hex(header.address_of_entry_point)),
            ("Base of code", _hex(header.base_of_code)),
        ]
        if header.base_of_data is not None:
            rows.append(("Base of data", _hex(header.base_of_data)))
        rows.extend([
            ("Image base", _hex(header.image_base)),
            ("Section alignment", _hex(header.section_alignment)),
            ("File alignment", _hex(header.file_alignment)),
            ("OS version", header.operating_system_version),
            ("Image version", header.image_version),
            ("Subsystem version", header.subsystem_version),
            ("Win32 version value", str(header.win32_version_value)),
            ("Size of image", _hex(header.size_of_image)),
            ("Size of headers", _hex(header.size_of_headers)),
            ("Checksum", _hex(header.check_sum)),
            ("Subsystem", f"{header.subsystem} ({header.subsystem_code})"),
            ("DLL characteristics",
             f"{_hex(header.dll_characteristics)} {_flags(header.dll_characteristic_flags)}"),
            ("Stack reserve / commit",
             f"{_hex(header.size_of_stack_reserve)} / {_hex(header.size_of_stack_commit)}"),
            ("Heap reserve / commit",
             f"{_hex(header.size_of_heap_reserve)} / {_hex(header.size_of_heap_commit)}"),
            ("Loader flags", _hex(header.loader_flags)),
            ("Number of RVAs and sizes", str(header.number_of_rva_and_sizes)),
        ])

        self._console.table(
            [("Field", {"style": "bold"}), "Value"],
            rows,
        )
        self._console.blank()

    def display_directories(
        self,
        directories: list[DataDirectoryInfo],
        declared_count: int,
    ) -> None:
        self._console.section("Data Directories")

        if declared_count > len([d for d in directories if d.declared]):
            self._console.warning(
                f"NumberOfRvaAndSizes declares {declared_count} entries; only 16 are read"
            )

        shown = directories if self._show_empty else [d for d in directories if d.is_present]
        if not shown:
            self._console.info(f"No data directories in use (declared: {declared_count})")
            self._console.blank()
            return

        self._console.table(
            [
                ("#", {"style": "dim", "width": 4, "justify": "right"}),
                ("Directory", {"style": "bold"}),
                ("RVA", {"justify": "right"}),
                ("Size", {"justify": "right"}),
            ],
            (
                (
                    entry.index,
                    entry.name if entry.declared else f"[dim]{entry.name}[/dim]",
                    _hex(entry.virtual_address),
                    _hex(entry.size),
                )
                for entry in shown
            ),
        )
        self._console.blank()

    def display_sections(self, sections: list[SectionInfo]) -> None:
        self._console.section("Sections")

        if not sections:
            self._console.info("Image has no sections")
            self._console.blank()
            return

        rows: list[tuple[str, ...]] = []
        for sec in sections:
            name = escape(sec.name) if sec.name else "<unnamed>"
            if sec.long_name_offset is not None:
                name += f" [dim](strtab+{sec.long_name_offset})[/dim]"
            elif sec.name_unterminated:
                name += " [dim](unterminated)[/dim]"
            flags = _flags(sec.characteristic_flags)
            if sec.alignment is not None:
                flags += f" [dim]align={sec.alignment}[/dim]"
            rows.append((
                str(sec.index),
                name,
                _hex(sec.virtual_address),
                _hex(sec.virtual_size),
                _hex(sec.pointer_to_raw_data),
                _hex(sec.size_of_raw_data),
                _access(sec),
                f"{_hex(sec.characteristics)} {flags}",
            ))

        self._console.table(
            [
                ("#", {"style": "dim", "width": 4, "justify": "right"}),
                ("Name", {"style": "bold", "min_width": 8}),
                ("VirtAddr", {"justify": "right"}),
                ("VirtSize", {"justify": "right"}),
                ("RawPtr", {"justify": "right"}),
                ("RawSize", {"justify": "right"}),
                ("Access", {"justify": "center"}),
                "Characteristics",
            ],
            rows,
            show_lines=True,
        )
        self._console.blank()
