"""DOS (MZ) stub header reader."""

from __future__ import annotations

from dataclasses import dataclass

from portex.core.errors import InvalidSignatureError
from portex.parsers.constants import DOS_HEADER_SIZE, DOS_LFANEW_OFFSET, DOS_MAGIC
from portex.parsers.reader import ByteReader


@dataclass(frozen=True, slots=True)
class DosHeader:
    """The two DOS-header fields a PE decoder relies on.

    Attributes:
        e_magic: ``MZ`` signature (0x5A4D).
        e_lfanew: File offset of the ``PE\\0\\0`` signature.
    """
    e_magic: int
    e_lfanew: int


def read_dos_header(reader: ByteReader) -> DosHeader:
    """Validate the MZ stub and locate the PE signature.

    Raises:
        TruncatedDataError: The buffer is shorter than the 64-byte header.
        InvalidSignatureError: ``e_magic`` is not ``MZ``.
    """
    reader.require(0, DOS_HEADER_SIZE)

    e_magic = reader.read_u16(0)
    if e_magic != DOS_MAGIC:
        raise InvalidSignatureError("DOS", 0, DOS_MAGIC, e_magic)

    return DosHeader(
        e_magic=e_magic,
        e_lfanew=reader.read_u32(DOS_LFANEW_OFFSET),
    )
