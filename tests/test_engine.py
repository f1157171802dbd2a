"""Tests for the analysis engine and report models."""

import hashlib
import json

import pytest

from shared.config import PortexConfig
from shared.logger import PortexLogger

from portex.core.engine import AnalysisError, PortexEngine
from portex.core.models import DecodeReport

from tests.pe_builder import SectionSpec, build_pe


@pytest.fixture
def quiet_logger():
    return PortexLogger("test.engine", console_output=False)


@pytest.fixture
def engine(quiet_logger):
    return PortexEngine(logger=quiet_logger)


class TestSuccessfulDecode:

    def test_report_from_file(self, engine, write_file, pe64_bytes):
        path = write_file(pe64_bytes)
        report = engine.analyze(path)

        assert isinstance(report, DecodeReport)
        assert report.success
        assert report.error is None
        assert report.format == "PE32+"
        assert report.e_lfanew == 0x40
        assert report.file.path == str(path.resolve())
        assert report.file.size == len(pe64_bytes)
        assert report.file.sha256 == hashlib.sha256(pe64_bytes).hexdigest()
        assert report.duration_ms >= 0.0

    def test_coff_info(self, engine, pe64_bytes):
        coff = engine.analyze_bytes(pe64_bytes).coff
        assert coff.machine == "AMD64"
        assert coff.machine_label == "x64"
        assert coff.machine_code == 0x8664
        assert coff.characteristic_flags == ["EXECUTABLE_IMAGE", "LARGE_ADDRESS_AWARE"]

    def test_optional_header_info_pe32_plus(self, engine, pe64_bytes):
        header = engine.analyze_bytes(pe64_bytes).optional_header
        assert header.kind == "PE32+"
        assert header.base_of_data is None
        assert header.image_base == 0x140000000
        assert header.linker_version == "14.29"
        assert header.subsystem == "WINDOWS_CUI"
        assert header.subsystem_code == 3
        assert "NX_COMPAT" in header.dll_characteristic_flags

    def test_optional_header_info_pe32(self, engine, pe32_bytes):
        header = engine.analyze_bytes(pe32_bytes).optional_header
        assert header.kind == "PE32"
        assert header.base_of_data == 0x2000

    def test_directories(self, engine, pe64_bytes):
        report = engine.analyze_bytes(pe64_bytes)
        assert len(report.data_directories) == 16
        assert report.declared_directory_count == 16
        present = report.present_directories
        assert [d.name for d in present] == ["IMPORT", "RESOURCE"]
        assert present[0].virtual_address == 0x2000

    def test_undeclared_directories_marked(self, engine):
        report = engine.analyze_bytes(build_pe(optional={"number_of_rva_and_sizes": 4}))
        declared = [d.declared for d in report.data_directories]
        assert declared == [True] * 4 + [False] * 12

    def test_sections(self, engine):
        data = build_pe(sections=[
            SectionSpec(b".text", characteristics=0x60500020),
            SectionSpec(b"/17", characteristics=0x42000040),
        ])
        report = engine.analyze_bytes(data)
        text, long_name = report.sections
        assert report.section_count == 2
        assert text.index == 1
        assert text.name == ".text"
        assert text.raw_name == b".text\x00\x00\x00".hex()
        assert text.alignment == 16
        assert text.characteristic_flags == ["CNT_CODE", "MEM_EXECUTE", "MEM_READ"]
        assert long_name.long_name_offset == 17
        assert "MEM_DISCARDABLE" in long_name.characteristic_flags

    def test_report_serialises(self, engine, pe64_bytes):
        dumped = engine.analyze_bytes(pe64_bytes).model_dump(mode="json")
        json.dumps(dumped)
        assert dumped["coff"]["number_of_sections"] == 3


class TestFailedDecode:

    def test_truncated_image(self, engine, x64_text_bytes):
        report = engine.analyze_bytes(x64_text_bytes[:0x100])
        assert not report.success
        assert report.coff is None
        assert report.sections == []
        assert report.error.kind == "TruncatedData"
        assert report.error.offset == 0x58
        assert report.error.details["size"] == 240

    def test_bad_signature(self, engine):
        report = engine.analyze_bytes(b"\x00" * 0x80)
        assert report.error.kind == "InvalidSignature"
        assert report.error.details["structure"] == "DOS"

    def test_section_count_error(self, engine):
        report = engine.analyze_bytes(build_pe(number_of_sections=5))
        assert report.error.kind == "InconsistentSectionCount"
        assert report.error.details["declared"] == 5
        assert report.error.details["fits"] == 1

    def test_failure_logged_as_warning(self, tmp_path, x64_text_bytes):
        log_file = tmp_path / "portex.log"
        logger = PortexLogger(
            "test.engine.file",
            log_level="DEBUG",
            log_file=log_file,
            json_logs=True,
            console_output=False,
        )
        PortexEngine(logger=logger).analyze_bytes(x64_text_bytes[:10], source="tiny.bin")

        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        warnings = [r for r in records if r["level"] == "WARNING"]
        assert len(warnings) == 1
        assert warnings[0]["operation"] == "decode"
        assert warnings[0]["fields"]["kind"] == "TruncatedData"
        assert warnings[0]["fields"]["path"] == "tiny.bin"


class TestFileAccess:

    def test_missing_file(self, engine, tmp_path):
        with pytest.raises(AnalysisError, match="not found"):
            engine.analyze(tmp_path / "missing.exe")

    def test_directory_rejected(self, engine, tmp_path):
        with pytest.raises(AnalysisError):
            engine.analyze(tmp_path)

    def test_size_limit(self, quiet_logger, write_file, pe64_bytes):
        config = PortexConfig()
        config.decoder.max_file_size = 100
        engine = PortexEngine(config=config, logger=quiet_logger)
        with pytest.raises(AnalysisError, match="too large"):
            engine.analyze(write_file(pe64_bytes))
