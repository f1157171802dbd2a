"""
Portex Decode Errors
=====================

Typed failures raised by the PE decode pipeline.  Every error derives
from :class:`PEFormatError` so callers can treat "this is not a PE image
we accept" as a single condition, while still inspecting the precise
kind and the offending region.

Taxonomy::

    PEFormatError
    ├── TruncatedDataError
    │   └── InconsistentSectionCountError
    ├── InvalidSignatureError
    └── UnsupportedOptionalHeaderMagicError

Irregularities the format explicitly allows (unknown machine codes,
unknown characteristic bits, an oversized ``NumberOfRvaAndSizes``,
unterminated section names) are not errors and never raise.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format
"""

from __future__ import annotations

from typing import Any


class PEFormatError(Exception):
    """Base class for every decode failure.

    Attributes:
        kind: Stable short name of the failure, used in reports.
        offset: File offset of the offending region.
    """

    kind: str = "PEFormat"

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(message)
        self.offset = offset

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for JSON reports."""
        return {
            "kind": self.kind,
            "message": str(self),
            "offset": self.offset,
        }


class TruncatedDataError(PEFormatError):
    """A structurally required region is not fully present.

    Args:
        offset: Start of the region that was requested.
        size: Number of bytes the structure needs.
        available: Bytes actually available from *offset* inside *region*.
        region: What bounded the read (``"buffer"`` or a header name).
    """

    kind = "TruncatedData"

    def __init__(
        self,
        offset: int,
        size: int,
        available: int,
        region: str = "buffer",
    ) -> None:
        self.size = size
        self.available = max(available, 0)
        self.region = region
        super().__init__(
            f"Truncated data: need {size} bytes at offset 0x{offset:x}, "
            f"{region} provides {self.available}",
            offset,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            size=self.size,
            available=self.available,
            region=self.region,
        )
        return data


class InvalidSignatureError(PEFormatError):
    """The ``MZ`` or ``PE\\0\\0`` signature does not match.

    Args:
        structure: Which signature failed (``"DOS"`` or ``"PE"``).
        offset: File offset of the signature.
        expected: Expected little-endian value.
        actual: Value found in the buffer.
    """

    kind = "InvalidSignature"

    def __init__(
        self,
        structure: str,
        offset: int,
        expected: int,
        actual: int,
    ) -> None:
        self.structure = structure
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid {structure} signature at offset 0x{offset:x}: "
            f"expected 0x{expected:x}, found 0x{actual:x}",
            offset,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(
            structure=self.structure,
            expected=self.expected,
            actual=self.actual,
        )
        return data


class UnsupportedOptionalHeaderMagicError(PEFormatError):
    """The optional header magic is neither PE32 (0x10B) nor PE32+ (0x20B)."""

    kind = "UnsupportedOptionalHeaderMagic"

    def __init__(self, magic: int, offset: int) -> None:
        self.magic = magic
        super().__init__(
            f"Unsupported optional header magic 0x{magic:04x} "
            f"at offset 0x{offset:x}",
            offset,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["magic"] = self.magic
        return data


class InconsistentSectionCountError(TruncatedDataError):
    """``NumberOfSections`` declares a table that runs past the buffer end.

    Subclasses :class:`TruncatedDataError`: the section table is a
    structurally required region that is not fully present.

    Args:
        declared: Section count from the COFF header.
        offset: File offset where the section table starts.
        size: Byte size of the declared table.
        available: Bytes available from *offset* to the end of the buffer.
        fits: Number of whole 40-byte records that would have fit.
    """

    kind = "InconsistentSectionCount"

    def __init__(
        self,
        declared: int,
        offset: int,
        size: int,
        available: int,
        fits: int,
    ) -> None:
        self.declared = declared
        self.fits = fits
        super().__init__(offset, size, available, "buffer")
        self.args = (
            f"Inconsistent section count: {declared} section headers "
            f"declared at offset 0x{offset:x}, only {fits} fit in the buffer",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(declared=self.declared, fits=self.fits)
        return data
