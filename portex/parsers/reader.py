"""
Bounds-Checked Byte Reader
===========================

Random-access, little-endian reads over an immutable byte buffer.

PE structures are located by offsets decoded from earlier structures, so
reads are addressed by absolute offset rather than through a sequential
cursor.  Every read checks ``offset + size <= len(buffer)`` first and
raises :class:`~portex.core.errors.TruncatedDataError` when the data is
not there; :mod:`struct` never sees an out-of-range request, so no
``struct.error`` or ``IndexError`` can escape.

All formats use the ``<`` prefix: little-endian, standard sizes, no
native alignment.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Union

from portex.core.errors import TruncatedDataError

BytesLike = Union[bytes, bytearray, memoryview]

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")


@dataclass(frozen=True, slots=True)
class ByteSpan:
    """A bounded region of the source buffer, resolved on demand.

    Spans are plain offset/length pairs; they hold no reference to the
    buffer and are turned into a view by :meth:`ByteReader.span`.
    """
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


class ByteReader:
    """Offset-addressed reader over a borrowed, read-only buffer.

    The caller's bytes are wrapped in a read-only :class:`memoryview`;
    nothing is copied unless :meth:`read_bytes` is asked for a copy.

    Usage::

        reader = ByteReader(raw_bytes)
        magic = reader.read_u16(0)
        machine, count = reader.unpack(struct.Struct("<HH"), 0x44)
    """

    __slots__ = ("_view",)

    def __init__(self, data: BytesLike) -> None:
        self._view: memoryview = memoryview(data).cast("B").toreadonly()

    def __len__(self) -> int:
        return len(self._view)

    @property
    def buffer(self) -> memoryview:
        """The underlying read-only view."""
        return self._view

    # ------------------------------------------------------------------ #
    #  Bounds checking
    # ------------------------------------------------------------------ #

    def require(self, offset: int, size: int) -> None:
        """Ensure ``size`` bytes exist at ``offset``.

        Raises:
            TruncatedDataError: If the range is negative or runs past the
                end of the buffer.
        """
        length = len(self._view)
        if offset < 0 or size < 0 or offset + size > length:
            raise TruncatedDataError(offset, size, length - offset)

    # ------------------------------------------------------------------ #
    #  Scalar reads
    # ------------------------------------------------------------------ #

    def read_u8(self, offset: int) -> int:
        """Read an unsigned 8-bit value."""
        return self.unpack(_U8, offset)[0]

    def read_u16(self, offset: int) -> int:
        """Read an unsigned 16-bit little-endian value."""
        return self.unpack(_U16, offset)[0]

    def read_u32(self, offset: int) -> int:
        """Read an unsigned 32-bit little-endian value."""
        return self.unpack(_U32, offset)[0]

    def read_u64(self, offset: int) -> int:
        """Read an unsigned 64-bit little-endian value."""
        return self.unpack(_U64, offset)[0]

    def unpack(self, layout: struct.Struct, offset: int) -> tuple[int, ...]:
        """Decode a pre-compiled little-endian layout at ``offset``."""
        self.require(offset, layout.size)
        return layout.unpack_from(self._view, offset)

    # ------------------------------------------------------------------ #
    #  Byte spans
    # ------------------------------------------------------------------ #

    def read_bytes(self, offset: int, length: int) -> bytes:
        """Return a copy of ``length`` bytes at ``offset``."""
        self.require(offset, length)
        return self._view[offset:offset + length].tobytes()

    def view(self, offset: int, length: int) -> memoryview:
        """Return a borrowed, zero-copy view of ``length`` bytes at ``offset``."""
        self.require(offset, length)
        return self._view[offset:offset + length]

    def span(self, span: ByteSpan) -> memoryview:
        """Resolve a :class:`ByteSpan` to a borrowed view."""
        return self.view(span.offset, span.length)
