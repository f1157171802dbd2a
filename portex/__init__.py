"""
Portex -- PE Header Decoder
============================

Decodes the headers of Windows Portable Executable (``.exe`` / ``.dll``)
images from a raw byte buffer into frozen, typed records: the DOS stub,
the COFF file header, the PE32 or PE32+ optional header, the
data-directory table and the section table.

Input is treated as untrusted.  Every offset and length is checked
before use and malformed data produces a typed
:class:`~portex.core.errors.PEFormatError`, never a misread.

Modules:
    - portex.parsers: Pure decode pipeline (no I/O, no logging)
    - portex.core.errors: Error taxonomy
    - portex.core.models: Pydantic report models
    - portex.core.engine: File analysis orchestrator
    - portex.output: Console and JSON report output
    - portex.cli: Click-based command-line interface

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format
    - Pietrek, M. (2002). An In-Depth Look into the Win32 Portable
      Executable File Format. MSDN Magazine.
"""

from portex.core.errors import (
    InconsistentSectionCountError,
    InvalidSignatureError,
    PEFormatError,
    TruncatedDataError,
    UnsupportedOptionalHeaderMagicError,
)
from portex.parsers import (
    OptionalHeaderPE32,
    OptionalHeaderPE32Plus,
    PEImage,
    SectionHeader,
    decode_pe_image,
)

__version__ = "1.0.0"
__all__ = [
    "InconsistentSectionCountError",
    "InvalidSignatureError",
    "OptionalHeaderPE32",
    "OptionalHeaderPE32Plus",
    "PEFormatError",
    "PEImage",
    "SectionHeader",
    "TruncatedDataError",
    "UnsupportedOptionalHeaderMagicError",
    "decode_pe_image",
]
