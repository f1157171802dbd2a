"""Tests for the DOS, COFF and optional header readers."""

import struct

import pytest

from portex.core.errors import (
    InvalidSignatureError,
    TruncatedDataError,
    UnsupportedOptionalHeaderMagicError,
)
from portex.parsers.coff_header import read_coff_header
from portex.parsers.constants import (
    DllCharacteristics,
    FileCharacteristics,
    MachineType,
    Subsystem,
)
from portex.parsers.dos_header import read_dos_header
from portex.parsers.optional_header import (
    _PE32_LAYOUT,
    _PE32_PLUS_LAYOUT,
    OptionalHeaderPE32,
    OptionalHeaderPE32Plus,
    read_optional_header,
)
from portex.parsers.reader import ByteReader

from tests.pe_builder import PE32_DEFAULTS, PE32_PLUS_DEFAULTS, build_pe, pack_optional_fields


class TestDosHeader:

    def test_reads_magic_and_lfanew(self):
        image = build_pe(e_lfanew=0x80)
        dos = read_dos_header(ByteReader(image))
        assert dos.e_magic == 0x5A4D
        assert dos.e_lfanew == 0x80

    def test_bad_magic(self):
        data = bytearray(build_pe())
        data[0:2] = b"ZM"
        with pytest.raises(InvalidSignatureError) as info:
            read_dos_header(ByteReader(data))
        assert info.value.structure == "DOS"
        assert info.value.actual == 0x4D5A

    def test_short_buffer(self):
        with pytest.raises(TruncatedDataError):
            read_dos_header(ByteReader(b"MZ" + b"\x00" * 0x3D))

    def test_exactly_64_bytes(self):
        data = bytearray(0x40)
        data[0:2] = b"MZ"
        struct.pack_into("<I", data, 0x3C, 0x1234)
        assert read_dos_header(ByteReader(data)).e_lfanew == 0x1234


class TestCoffHeader:

    def test_fields(self):
        image = build_pe(
            machine=0x8664,
            characteristics=0x0022,
            time_date_stamp=0x65000000,
            pointer_to_symbol_table=0x9000,
            number_of_symbols=12,
        )
        coff = read_coff_header(ByteReader(image), 0x40)
        assert coff.machine is MachineType.AMD64
        assert coff.machine_code == 0x8664
        assert coff.number_of_sections == 1
        assert coff.time_date_stamp == 0x65000000
        assert coff.pointer_to_symbol_table == 0x9000
        assert coff.number_of_symbols == 12
        assert coff.size_of_optional_header == 240
        assert coff.characteristics == (
            FileCharacteristics.EXECUTABLE_IMAGE | FileCharacteristics.LARGE_ADDRESS_AWARE
        )
        assert coff.is_executable
        assert not coff.is_dll

    def test_unknown_machine_tolerated(self):
        coff = read_coff_header(ByteReader(build_pe(machine=0xBEEF)), 0x40)
        assert coff.machine is MachineType.UNRECOGNIZED
        assert coff.machine_code == 0xBEEF

    def test_machine_labels(self):
        assert MachineType.AMD64.label == "x64"
        assert MachineType.I386.label == "x86"
        assert MachineType.MIPS16.label == "MIPS16"

    def test_bad_signature(self):
        data = bytearray(build_pe())
        data[0x40:0x44] = b"PE\x00\x01"
        with pytest.raises(InvalidSignatureError) as info:
            read_coff_header(ByteReader(data), 0x40)
        assert info.value.offset == 0x40
        assert info.value.expected == 0x00004550

    def test_truncated(self):
        data = build_pe()[:0x40 + 20]
        with pytest.raises(TruncatedDataError):
            read_coff_header(ByteReader(data), 0x40)

    def test_lfanew_beyond_buffer(self):
        with pytest.raises(TruncatedDataError):
            read_coff_header(ByteReader(build_pe()), 0xFFFFFF00)


class TestOptionalHeader:

    def test_fixed_layout_sizes(self):
        assert _PE32_LAYOUT.size == OptionalHeaderPE32.fixed_size == 96
        assert _PE32_PLUS_LAYOUT.size == OptionalHeaderPE32Plus.fixed_size == 112

    def test_pe32_fields(self):
        raw = pack_optional_fields(PE32_DEFAULTS, pe32_plus=False)
        header = read_optional_header(ByteReader(raw), 0, len(raw))
        assert isinstance(header, OptionalHeaderPE32)
        assert header.kind == "PE32"
        assert header.base_of_data == 0x2000
        assert header.image_base == 0x00400000
        assert header.size_of_stack_reserve == 0x100000
        assert header.subsystem is Subsystem.WINDOWS_CUI
        assert header.number_of_rva_and_sizes == 16
        for name, value in PE32_DEFAULTS.items():
            assert int(getattr(header, name if name != "subsystem" else "subsystem_code")) == value

    def test_pe32_plus_fields(self):
        raw = pack_optional_fields(PE32_PLUS_DEFAULTS, pe32_plus=True)
        header = read_optional_header(ByteReader(raw), 0, len(raw))
        assert isinstance(header, OptionalHeaderPE32Plus)
        assert header.kind == "PE32+"
        assert not hasattr(header, "base_of_data")
        assert header.image_base == 0x0000000140000000
        assert header.size_of_stack_reserve == 0x0000000100000000
        assert header.size_of_heap_reserve == 0x0000000200000000
        assert header.dll_characteristics & DllCharacteristics.NX_COMPAT
        assert header.dll_characteristics & DllCharacteristics.HIGH_ENTROPY_VA

    def test_variants_dispatch_with_match(self):
        raw = pack_optional_fields(PE32_PLUS_DEFAULTS, pe32_plus=True)
        header = read_optional_header(ByteReader(raw), 0, len(raw))
        match header:
            case OptionalHeaderPE32():
                bits = 32
            case OptionalHeaderPE32Plus():
                bits = 64
        assert bits == 64

    @pytest.mark.parametrize("magic", [0x0000, 0x0107, 0x010C, 0x020A, 0xFFFF])
    def test_unsupported_magic(self, magic):
        raw = pack_optional_fields({**PE32_DEFAULTS, "magic": magic}, pe32_plus=False)
        with pytest.raises(UnsupportedOptionalHeaderMagicError) as info:
            read_optional_header(ByteReader(raw), 0, len(raw))
        assert info.value.magic == magic

    def test_declared_region_beyond_buffer(self):
        raw = pack_optional_fields(PE32_PLUS_DEFAULTS, pe32_plus=True)
        with pytest.raises(TruncatedDataError):
            read_optional_header(ByteReader(raw), 0, len(raw) + 8)

    def test_declared_size_below_magic(self):
        raw = pack_optional_fields(PE32_DEFAULTS, pe32_plus=False)
        with pytest.raises(TruncatedDataError):
            read_optional_header(ByteReader(raw), 0, 1)

    def test_declared_size_too_small_for_pe32_plus(self):
        """A PE32-sized region cannot hold the 112-byte PE32+ fields."""
        raw = pack_optional_fields(PE32_PLUS_DEFAULTS, pe32_plus=True)
        with pytest.raises(TruncatedDataError) as info:
            read_optional_header(ByteReader(raw), 0, 96)
        assert info.value.size == 112
        assert info.value.region == "optional header"

    def test_unknown_subsystem_and_dll_bits_kept(self):
        values = {**PE32_DEFAULTS, "subsystem": 99, "dll_characteristics": 0x8010}
        raw = pack_optional_fields(values, pe32_plus=False)
        header = read_optional_header(ByteReader(raw), 0, len(raw))
        assert header.subsystem is Subsystem.UNRECOGNIZED
        assert header.subsystem_code == 99
        assert int(header.dll_characteristics) == 0x8010
