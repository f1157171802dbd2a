"""
Portex Configuration Management
================================

Dataclass configuration tree for the ``portex`` command, persisted as
TOML.  Example ``portex.toml``::

    [global]
    log_level = "INFO"
    log_file = "logs/portex.log"
    log_json = true
    report_dir = "reports"

    [decoder]
    max_file_size = 268435456
    show_empty_directories = false

References:
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, get_type_hints

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Looked up in the working directory when no path is given.
DEFAULT_CONFIG_NAME = "portex.toml"


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Logging and output locations."""

    log_level: str = "WARNING"
    log_file: str = ""
    log_json: bool = False
    report_dir: str = "."


@dataclass(frozen=False, slots=True)
class DecoderConfig:
    """Limits and presentation switches for the decode command.

    ``max_file_size`` caps how much the engine is willing to read into
    memory before handing the buffer to the decoder.
    """

    max_file_size: int = 268_435_456  # 256 MiB
    show_empty_directories: bool = False


@dataclass(frozen=False, slots=True)
class PortexConfig:
    """Root of the configuration tree.

    Usage:
        >>> config = PortexConfig.load()                # ./portex.toml if present
        >>> config = PortexConfig.load("custom.toml")
        >>> config.decoder.max_file_size
        268435456
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)

    @classmethod
    def load(cls, path: str | Path | None = None) -> PortexConfig:
        """Load configuration from a TOML file.

        Missing sections and keys fall back to defaults.  When *path* is
        ``None`` and ``portex.toml`` is absent, pure defaults are returned.

        Raises:
            FileNotFoundError: *path* was given explicitly and does not exist.
            tomllib.TOMLDecodeError: The file is not valid TOML.
            ValueError: A section is not a table or a value has the wrong type.
        """
        config_path = Path(path) if path is not None else Path.cwd() / DEFAULT_CONFIG_NAME

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        return cls(
            global_config=_build_section("global", GlobalConfig, raw.get("global", {})),
            decoder=_build_section("decoder", DecoderConfig, raw.get("decoder", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _build_section(name: str, section_cls: type, data: Any) -> Any:
    """Instantiate *section_cls* from the keys it declares; others are ignored.

    Raises:
        ValueError: The section is not a table, or a known key holds a
            value of the wrong type.
    """
    if not isinstance(data, dict):
        raise ValueError(f"[{name}] must be a table, got {type(data).__name__}")

    hints = get_type_hints(section_cls)
    values: dict[str, Any] = {}
    for f in fields(section_cls):
        if f.name not in data:
            continue
        value = data[f.name]
        expected = hints[f.name]
        # TOML booleans are ints to isinstance(); keep them apart.
        if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
            raise ValueError(
                f"[{name}] {f.name} must be {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        values[f.name] = value
    return section_cls(**values)


_cached: Optional[PortexConfig] = None


def get_config(path: str | Path | None = None) -> PortexConfig:
    """Return the process-wide configuration, loading it on first use.

    Passing *path* always reloads and replaces the cached tree.
    """
    global _cached
    if _cached is None or path is not None:
        _cached = PortexConfig.load(path)
    return _cached
