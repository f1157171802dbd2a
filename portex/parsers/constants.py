"""
PE/COFF Format Constants
=========================

Magic numbers, structure sizes, enumerations and characteristic bit sets
of the Portable Executable format.

Enumerations that come from an open-ended numeric field (machine type,
subsystem) carry an explicit ``UNRECOGNIZED`` member so that new codes
decode without failing.  Characteristic fields are :class:`enum.IntFlag`
subclasses: bits without a named member are kept in the value rather
than dropped, so vendor-specific flags survive decoding.

References:
    - Microsoft. (2024). PE Format. Microsoft Learn.
      https://learn.microsoft.com/en-us/windows/win32/debug/pe-format
"""

from __future__ import annotations

import enum


# ---------------------------------------------------------------------------
# Signatures and layout
# ---------------------------------------------------------------------------

DOS_MAGIC: int = 0x5A4D           # "MZ"
PE_SIGNATURE: int = 0x00004550    # "PE\0\0"

DOS_HEADER_SIZE: int = 0x40
DOS_LFANEW_OFFSET: int = 0x3C
PE_SIGNATURE_SIZE: int = 4
COFF_HEADER_SIZE: int = 20

PE32_FIXED_SIZE: int = 96         # Optional header fields before the directories
PE32_PLUS_FIXED_SIZE: int = 112

DATA_DIRECTORY_SIZE: int = 8
MAX_DATA_DIRECTORIES: int = 16

SECTION_HEADER_SIZE: int = 40
SECTION_NAME_SIZE: int = 8


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class OptionalHeaderMagic(enum.IntEnum):
    """Magic values selecting the optional header layout."""
    PE32 = 0x10B
    PE32_PLUS = 0x20B


class MachineType(enum.IntEnum):
    """Target CPU of the image (``IMAGE_FILE_MACHINE_*``)."""
    UNRECOGNIZED = -1
    UNKNOWN = 0x0
    ALPHA = 0x184
    ALPHA64 = 0x284
    AM33 = 0x1D3
    AMD64 = 0x8664
    ARM = 0x1C0
    ARM64 = 0xAA64
    ARMNT = 0x1C4
    EBC = 0xEBC
    I386 = 0x14C
    IA64 = 0x200
    LOONGARCH32 = 0x6232
    LOONGARCH64 = 0x6264
    M32R = 0x9041
    MIPS16 = 0x266
    MIPSFPU = 0x366
    MIPSFPU16 = 0x466
    POWERPC = 0x1F0
    POWERPCFP = 0x1F1
    R4000 = 0x166
    RISCV32 = 0x5032
    RISCV64 = 0x5064
    RISCV128 = 0x5128
    SH3 = 0x1A2
    SH3DSP = 0x1A3
    SH4 = 0x1A6
    SH5 = 0x1A8
    THUMB = 0x1C2
    WCEMIPSV2 = 0x169

    @classmethod
    def from_raw(cls, code: int) -> MachineType:
        """Map a raw ``Machine`` code, falling back to ``UNRECOGNIZED``."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNRECOGNIZED

    @property
    def label(self) -> str:
        """Short human-readable architecture name."""
        return _MACHINE_LABELS.get(self, self.name)


_MACHINE_LABELS: dict[MachineType, str] = {
    MachineType.UNRECOGNIZED: "Unrecognized",
    MachineType.UNKNOWN: "Any",
    MachineType.AMD64: "x64",
    MachineType.I386: "x86",
    MachineType.ARM64: "ARM64",
    MachineType.ARMNT: "ARM Thumb-2",
    MachineType.IA64: "IA-64",
    MachineType.EBC: "EFI byte code",
    MachineType.RISCV32: "RISC-V 32",
    MachineType.RISCV64: "RISC-V 64",
    MachineType.RISCV128: "RISC-V 128",
}


class Subsystem(enum.IntEnum):
    """Windows subsystem required to run the image."""
    UNRECOGNIZED = -1
    UNKNOWN = 0
    NATIVE = 1
    WINDOWS_GUI = 2
    WINDOWS_CUI = 3
    OS2_CUI = 5
    POSIX_CUI = 7
    NATIVE_WINDOWS = 8
    WINDOWS_CE_GUI = 9
    EFI_APPLICATION = 10
    EFI_BOOT_SERVICE_DRIVER = 11
    EFI_RUNTIME_DRIVER = 12
    EFI_ROM = 13
    XBOX = 14
    WINDOWS_BOOT_APPLICATION = 16

    @classmethod
    def from_raw(cls, code: int) -> Subsystem:
        """Map a raw ``Subsystem`` code, falling back to ``UNRECOGNIZED``."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNRECOGNIZED


class DataDirectoryKind(enum.IntEnum):
    """Slot index of each entry in the data-directory table."""
    EXPORT = 0
    IMPORT = 1
    RESOURCE = 2
    EXCEPTION = 3
    CERTIFICATE = 4
    BASE_RELOCATION = 5
    DEBUG = 6
    ARCHITECTURE = 7
    GLOBAL_PTR = 8
    TLS = 9
    LOAD_CONFIG = 10
    BOUND_IMPORT = 11
    IAT = 12
    DELAY_IMPORT = 13
    CLR_RUNTIME_HEADER = 14
    RESERVED = 15


# ---------------------------------------------------------------------------
# Characteristic bit sets
# ---------------------------------------------------------------------------

class FileCharacteristics(enum.IntFlag):
    """COFF header ``Characteristics`` (``IMAGE_FILE_*``)."""
    RELOCS_STRIPPED = 0x0001
    EXECUTABLE_IMAGE = 0x0002
    LINE_NUMS_STRIPPED = 0x0004
    LOCAL_SYMS_STRIPPED = 0x0008
    AGGRESSIVE_WS_TRIM = 0x0010
    LARGE_ADDRESS_AWARE = 0x0020
    RESERVED_0040 = 0x0040
    BYTES_REVERSED_LO = 0x0080
    MACHINE_32BIT = 0x0100
    DEBUG_STRIPPED = 0x0200
    REMOVABLE_RUN_FROM_SWAP = 0x0400
    NET_RUN_FROM_SWAP = 0x0800
    SYSTEM = 0x1000
    DLL = 0x2000
    UP_SYSTEM_ONLY = 0x4000
    BYTES_REVERSED_HI = 0x8000


class DllCharacteristics(enum.IntFlag):
    """Optional header ``DllCharacteristics`` (``IMAGE_DLLCHARACTERISTICS_*``)."""
    RESERVED_0001 = 0x0001
    RESERVED_0002 = 0x0002
    RESERVED_0004 = 0x0004
    RESERVED_0008 = 0x0008
    HIGH_ENTROPY_VA = 0x0020
    DYNAMIC_BASE = 0x0040
    FORCE_INTEGRITY = 0x0080
    NX_COMPAT = 0x0100
    NO_ISOLATION = 0x0200
    NO_SEH = 0x0400
    NO_BIND = 0x0800
    APPCONTAINER = 0x1000
    WDM_DRIVER = 0x2000
    GUARD_CF = 0x4000
    TERMINAL_SERVER_AWARE = 0x8000


class SectionCharacteristics(enum.IntFlag):
    """Section header ``Characteristics`` (``IMAGE_SCN_*``).

    The 4-bit alignment field (``IMAGE_SCN_ALIGN_*``, bits 20-23) is an
    encoded number rather than independent flags; it is exposed through
    :func:`section_alignment` instead of members.
    """
    TYPE_NO_PAD = 0x00000008
    CNT_CODE = 0x00000020
    CNT_INITIALIZED_DATA = 0x00000040
    CNT_UNINITIALIZED_DATA = 0x00000080
    LNK_OTHER = 0x00000100
    LNK_INFO = 0x00000200
    LNK_REMOVE = 0x00000800
    LNK_COMDAT = 0x00001000
    GPREL = 0x00008000
    MEM_PURGEABLE = 0x00020000
    MEM_LOCKED = 0x00040000
    MEM_PRELOAD = 0x00080000
    LNK_NRELOC_OVFL = 0x01000000
    MEM_DISCARDABLE = 0x02000000
    MEM_NOT_CACHED = 0x04000000
    MEM_NOT_PAGED = 0x08000000
    MEM_SHARED = 0x10000000
    MEM_EXECUTE = 0x20000000
    MEM_READ = 0x40000000
    MEM_WRITE = 0x80000000


SECTION_ALIGN_MASK: int = 0x00F00000
_SECTION_ALIGN_SHIFT: int = 20


def section_alignment(characteristics: int) -> int | None:
    """Decode the ``IMAGE_SCN_ALIGN_*`` field into a byte alignment.

    Returns:
        Alignment in bytes (1 .. 8192), or ``None`` when the field is zero
        (no alignment given) or holds the undefined value 0xF.
    """
    code = (int(characteristics) & SECTION_ALIGN_MASK) >> _SECTION_ALIGN_SHIFT
    if code == 0 or code == 0xF:
        return None
    return 1 << (code - 1)


def flag_names(flags: enum.IntFlag, ignore_mask: int = 0) -> list[str]:
    """List the names of the single-bit members set in *flags*.

    Bits with no named member are reported as one trailing ``0x...``
    entry so that nothing set in the raw value goes unmentioned.

    Args:
        flags: Any :class:`enum.IntFlag` value.
        ignore_mask: Bits to leave out entirely (e.g. an encoded field
            that the caller renders separately).
    """
    value = int(flags) & ~ignore_mask
    names: list[str] = []
    known = 0
    for member in type(flags).__members__.values():
        bit = int(member)
        if bit == 0 or bit & (bit - 1):
            continue
        if known & bit:
            continue
        known |= bit
        if value & bit:
            names.append(member.name)
    unknown = value & ~known
    if unknown:
        names.append(f"0x{unknown:x}")
    return names
