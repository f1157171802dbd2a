"""Shared fixtures for the portex test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

import shared.config as config_module

from tests.pe_builder import SectionSpec, build_pe, build_x64_text_image


@pytest.fixture
def pe64_bytes() -> bytes:
    """PE32+ image with three sections and a couple of directories."""
    return build_pe(
        pe32_plus=True,
        directories=[(0, 0), (0x2000, 0x28), (0x3000, 0x1F0)],
        sections=[
            SectionSpec(b".text", 0x0F00, 0x1000, 0x1000, 0x400, characteristics=0x60000020),
            SectionSpec(b".rdata", 0x0200, 0x2000, 0x0200, 0x1400, characteristics=0x40000040),
            SectionSpec(b".data", 0x0100, 0x3000, 0x0200, 0x1600, characteristics=0xC0000040),
        ],
    )


@pytest.fixture
def pe32_bytes() -> bytes:
    """PE32 (i386) DLL image with one section."""
    return build_pe(
        pe32_plus=False,
        machine=0x14C,
        characteristics=0x2102,
        sections=[SectionSpec(b".text", characteristics=0x60000020)],
    )


@pytest.fixture
def x64_text_bytes() -> bytes:
    return build_x64_text_image()


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes to a file in tmp_path and return its path."""
    def _write(data: bytes, name: str = "sample.exe") -> Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture(autouse=True)
def _reset_config_cache():
    config_module._cached = None
    yield
    config_module._cached = None
