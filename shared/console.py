"""
Portex Console Interface
=========================

Rich-powered console wrapper used by the ``portex`` command and its
output renderers.  Adds themed section rules, status messages and a
quick table helper on top of :class:`rich.console.Console`.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import IO, Any, Iterable, Sequence, Union

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

# A column label, or a label with keyword options for Table.add_column.
Column = Union[str, tuple[str, dict[str, Any]]]

_PORTEX_THEME = Theme(
    {
        "portex.section": "bold bright_magenta",
        "portex.success": "bold green",
        "portex.warning": "bold yellow",
        "portex.error": "bold red",
        "portex.info": "bold bright_blue",
        "portex.dim": "dim white",
        "portex.value": "bright_white",
        "portex.flag": "bright_cyan",
    }
)


class PortexConsole:
    """Themed console shared by the CLI and the report renderers.

    Usage::

        con = PortexConsole()
        con.section("COFF Header")
        con.success("Decoded 5 sections")

    Args:
        quiet: Suppress all output.
        stderr: Write to standard error instead of standard output.
        file: Explicit stream, mainly for capturing output in tests.
        width: Fixed console width; ``None`` lets Rich detect it.
    """

    def __init__(
        self,
        *,
        quiet: bool = False,
        stderr: bool = False,
        file: IO[str] | None = None,
        width: int | None = None,
    ) -> None:
        self._console = Console(
            theme=_PORTEX_THEME,
            quiet=quiet,
            stderr=stderr,
            file=file,
            width=width,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Structure
    # ------------------------------------------------------------------ #

    def section(self, title: str) -> None:
        """Print a section rule."""
        self._console.rule(f"  {title}  ", style="portex.section", characters="─")
        self._console.print()

    def divider(self, style: str = "dim") -> None:
        self._console.rule(style=style)

    def blank(self, count: int = 1) -> None:
        for _ in range(count):
            self._console.print()

    # ------------------------------------------------------------------ #
    #  Status messages
    # ------------------------------------------------------------------ #

    # Messages are printed literally, never parsed as markup.

    def success(self, message: str) -> None:
        self._console.print(f"[portex.success][✔] SUCCESS:[/portex.success] {escape(message)}")

    def warning(self, message: str) -> None:
        self._console.print(f"[portex.warning][⚠] WARNING:[/portex.warning] {escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[portex.error][✘] ERROR:[/portex.error] {escape(message)}")

    def info(self, message: str) -> None:
        self._console.print(f"[portex.info][ℹ] INFO:[/portex.info] {escape(message)}")

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def table(
        self,
        columns: Sequence[Column],
        rows: Iterable[Sequence[Any]],
        *,
        title: str | None = None,
        caption: str | None = None,
        show_lines: bool = False,
    ) -> None:
        """Render a themed table; every cell is stringified.

        Cells are Rich markup, so callers escape untrusted text.

        Args:
            columns: Header labels, or ``(label, options)`` pairs whose
                options go to :meth:`rich.table.Table.add_column`
                (``justify``, ``style``, ``width``, ...).
            rows: Row sequences.
            title: Optional table title.
            caption: Optional footer caption.
            show_lines: Draw separators between rows.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=show_lines,
            padding=(0, 1),
        )
        for column in columns:
            if isinstance(column, str):
                tbl.add_column(column)
            else:
                name, options = column
                tbl.add_column(name, **options)
        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))
        self._console.print(tbl)

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)
