"""Tests for the data-directory and section tables."""

import struct

import pytest

from portex.core.errors import InconsistentSectionCountError, TruncatedDataError
from portex.parsers.constants import (
    DataDirectoryKind,
    SectionCharacteristics,
    flag_names,
    section_alignment,
)
from portex.parsers.data_directories import DataDirectory, read_data_directories
from portex.parsers.reader import ByteReader, ByteSpan
from portex.parsers.section_table import read_section_table

from tests.pe_builder import SectionSpec


def _directory_bytes(entries):
    return b"".join(struct.pack("<II", rva, size) for rva, size in entries)


class TestDataDirectories:

    def test_reads_declared_entries(self):
        raw = _directory_bytes([(0x1000, 0x10), (0x2000, 0x20), (0, 0)])
        dirs = read_data_directories(ByteReader(raw), 0, 3, len(raw))
        assert dirs.count == 3
        assert dirs.declared_count == 3
        assert dirs[0] == DataDirectory(0x1000, 0x10)
        assert dirs[DataDirectoryKind.IMPORT] == DataDirectory(0x2000, 0x20)
        assert not dirs.get(DataDirectoryKind.RESOURCE).is_present

    def test_absent_slots_are_zero(self):
        raw = _directory_bytes([(0x1000, 0x10)])
        dirs = read_data_directories(ByteReader(raw), 0, 1, len(raw))
        assert dirs.get(DataDirectoryKind.CLR_RUNTIME_HEADER) == DataDirectory(0, 0)
        assert len(dirs.all_slots()) == 16
        assert list(dirs) == [DataDirectory(0x1000, 0x10)]

    def test_declared_count_capped_at_16(self):
        """Twenty declared over a sixteen-slot region reads sixteen."""
        raw = _directory_bytes([(i + 1, i + 2) for i in range(16)])
        dirs = read_data_directories(ByteReader(raw), 0, 20, len(raw))
        assert dirs.count == 16
        assert len(dirs) == 16
        assert dirs.declared_count == 20
        assert dirs[DataDirectoryKind.RESERVED] == DataDirectory(16, 17)

    def test_zero_declared(self):
        dirs = read_data_directories(ByteReader(b""), 0, 0, 0)
        assert dirs.count == 0
        assert dirs[DataDirectoryKind.EXPORT] == DataDirectory(0, 0)

    def test_entries_outside_declared_region(self):
        raw = _directory_bytes([(0, 0)] * 16)
        with pytest.raises(TruncatedDataError) as info:
            read_data_directories(ByteReader(raw), 0, 16, 8 * 15)
        assert info.value.region == "optional header"

    def test_entries_outside_buffer(self):
        raw = _directory_bytes([(0, 0)] * 4)
        with pytest.raises(TruncatedDataError):
            read_data_directories(ByteReader(raw), 0, 5, 0x1000)

    def test_index_out_of_range(self):
        dirs = read_data_directories(ByteReader(b""), 0, 0, 0)
        with pytest.raises(IndexError):
            dirs.get(16)


class TestSectionTable:

    def test_decodes_records(self):
        specs = [
            SectionSpec(b".text", 0x100, 0x1000, 0x200, 0x400, 1, 2, 3, 4, 0x60000020),
            SectionSpec(b".reloc", 0x10, 0x5000, 0x200, 0x600, characteristics=0x42000040),
        ]
        raw = b"\xee" * 8 + b"".join(s.pack() for s in specs)
        sections = read_section_table(ByteReader(raw), 8, 2)

        assert len(sections) == 2
        text, reloc = sections
        assert text.name == b".text\x00\x00\x00"
        assert text.display_name == ".text"
        assert text.virtual_size == 0x100
        assert text.virtual_address == 0x1000
        assert text.size_of_raw_data == 0x200
        assert text.pointer_to_raw_data == 0x400
        assert text.pointer_to_relocations == 1
        assert text.pointer_to_linenumbers == 2
        assert text.number_of_relocations == 3
        assert text.number_of_linenumbers == 4
        assert text.offset == 8
        assert reloc.offset == 48
        assert text.is_code and text.is_executable and text.is_readable
        assert not text.is_writable
        assert reloc.characteristics & SectionCharacteristics.MEM_DISCARDABLE

    def test_zero_sections(self):
        assert read_section_table(ByteReader(b""), 0, 0) == ()

    def test_count_exceeds_buffer(self):
        raw = SectionSpec().pack() * 2
        with pytest.raises(InconsistentSectionCountError) as info:
            read_section_table(ByteReader(raw), 0, 3)
        assert info.value.declared == 3
        assert info.value.fits == 2
        assert isinstance(info.value, TruncatedDataError)

    def test_table_offset_past_end(self):
        with pytest.raises(InconsistentSectionCountError) as info:
            read_section_table(ByteReader(b"\x00" * 10), 50, 1)
        assert info.value.fits == 0

    def test_unterminated_name(self):
        raw = SectionSpec(name=b"LONGNAME").pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert section.name == b"LONGNAME"
        assert section.name_is_unterminated
        assert section.display_name == "LONGNAME"
        assert section.string_table_offset is None

    def test_long_name_reference(self):
        raw = SectionSpec(name=b"/123").pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert section.string_table_offset == 123
        assert not section.name_is_unterminated

    def test_non_numeric_slash_name(self):
        raw = SectionSpec(name=b"/abc").pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert section.string_table_offset is None

    def test_non_ascii_name(self):
        raw = SectionSpec(name=b"\xff\xfeab").pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert section.display_name == "\ufffd\ufffdab"

    def test_alignment_and_raw_span(self):
        raw = SectionSpec(
            pointer_to_raw_data=0x400,
            size_of_raw_data=0x200,
            characteristics=0x60500020,
        ).pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert section.alignment == 16
        assert section.raw_data_span == ByteSpan(0x400, 0x200)

    def test_unknown_bits_preserved(self):
        raw = SectionSpec(characteristics=0x60000020 | 0x00000001).pack()
        (section,) = read_section_table(ByteReader(raw), 0, 1)
        assert int(section.characteristics) == 0x60000021


class TestFlagHelpers:

    @pytest.mark.parametrize("code, expected", [
        (0x00000000, None),
        (0x00100000, 1),
        (0x00500000, 16),
        (0x00E00000, 8192),
        (0x00F00000, None),
    ])
    def test_section_alignment(self, code, expected):
        assert section_alignment(code) == expected

    def test_flag_names_lists_known_and_unknown(self):
        flags = SectionCharacteristics(0x60000020 | 0x1)
        assert flag_names(flags) == ["CNT_CODE", "MEM_EXECUTE", "MEM_READ", "0x1"]

    def test_flag_names_ignores_alignment_field(self):
        flags = SectionCharacteristics(0x40300040)
        assert flag_names(flags, 0x00F00000) == ["CNT_INITIALIZED_DATA", "MEM_READ"]
