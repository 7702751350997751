"""
Curation TOML Configuration Loader

Loads curation.toml with environment variable overrides.

Environment variable mapping:
    [curation] address           → CURATION_ADDRESS
    [curation] min_deposit       → CURATION_MIN_DEPOSIT
    [curation] apply_stage_len   → CURATION_APPLY_STAGE_LEN
    [curation] dispensation_pct  → CURATION_DISPENSATION_PCT
    [logging]  level             → CURATION_LOG_LEVEL
    [logging]  file_output       → CURATION_LOG_FILE_OUTPUT

``dispensation_pct`` accepts an integer fraction of 10^18 or a percent
string such as ``"60%"`` or ``"12.5%"``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional, Union

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from .logger import get_logger
from .constants import (
    DEFAULT_APPLY_STAGE_LEN,
    DEFAULT_COORDINATOR_ADDRESS,
    DEFAULT_DISPENSATION_PCT,
    DEFAULT_MIN_DEPOSIT,
    PCT_BASE,
    parse_bool,
)
from .exceptions import ValidationError
from .parameters import require_pct, require_uint64

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "curation.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_pct(value: Union[int, str]) -> int:
    """
    Read a dispensation percentage.

    ``600000000000000000`` and ``"60%"`` both mean sixty percent.
    """
    if isinstance(value, bool):
        raise ValidationError("dispensation_pct cannot be a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text.endswith("%"):
                fraction = Decimal(text[:-1].strip()) * PCT_BASE / 100
                if fraction != fraction.to_integral_value():
                    raise ValidationError(f"dispensation_pct {value!r} is too precise")
                return int(fraction)
            return int(text)
        except (InvalidOperation, ValueError) as e:
            raise ValidationError(f"Invalid dispensation_pct {value!r}") from e
    raise ValidationError(f"Invalid dispensation_pct {value!r}")


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} cannot be a boolean")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name} must be an integer, got {value!r}") from e


# ---------------------------------------------------------------------------
# Section dataclasses: mirror every [section] of curation.example.toml
# ---------------------------------------------------------------------------


@dataclass
class CurationSectionConfig:
    """[curation] section."""
    address: str = DEFAULT_COORDINATOR_ADDRESS
    min_deposit: int = DEFAULT_MIN_DEPOSIT
    apply_stage_len: int = DEFAULT_APPLY_STAGE_LEN
    dispensation_pct: int = DEFAULT_DISPENSATION_PCT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurationSectionConfig":
        return cls(
            address=data.get("address", DEFAULT_COORDINATOR_ADDRESS),
            min_deposit=_parse_int("min_deposit", data.get("min_deposit", DEFAULT_MIN_DEPOSIT)),
            apply_stage_len=_parse_int(
                "apply_stage_len", data.get("apply_stage_len", DEFAULT_APPLY_STAGE_LEN)
            ),
            dispensation_pct=parse_pct(data.get("dispensation_pct", DEFAULT_DISPENSATION_PCT)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("CURATION_ADDRESS"):
            self.address = v
        if v := os.environ.get("CURATION_MIN_DEPOSIT"):
            self.min_deposit = _parse_int("CURATION_MIN_DEPOSIT", v)
        if v := os.environ.get("CURATION_APPLY_STAGE_LEN"):
            self.apply_stage_len = _parse_int("CURATION_APPLY_STAGE_LEN", v)
        if v := os.environ.get("CURATION_DISPENSATION_PCT"):
            self.dispensation_pct = parse_pct(v)

    def validate(self) -> None:
        if not self.address:
            raise ValidationError("address cannot be empty")
        require_uint64("min_deposit", self.min_deposit)
        require_uint64("apply_stage_len", self.apply_stage_len)
        require_pct("dispensation_pct", self.dispensation_pct)


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=bool(parse_bool(data.get("file_output", False))),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("CURATION_LOG_LEVEL"):
            self.level = v.upper()
        if v := os.environ.get("CURATION_LOG_FILE_OUTPUT"):
            self.file_output = parse_bool(v) is True

    def validate(self) -> None:
        if self.level not in LOG_LEVELS:
            raise ValidationError(f"Invalid log level: {self.level}")


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


@dataclass
class CurationConfig:
    """Complete coordinator configuration."""
    curation: CurationSectionConfig = field(default_factory=CurationSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)
    source: Optional[str] = None

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CurationConfig":
        """Create CurationConfig from a parsed TOML dict."""
        return cls(
            curation=CurationSectionConfig.from_dict(data.get("curation", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "CurationConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning(f"Config file not found: {config_path} — using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ValidationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.source = str(path)
        cfg.apply_env()
        logger.debug(f"Loaded configuration from {path}")
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.curation.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ValidationError: on invalid config
        """
        self.curation.validate()
        self.logging.validate()
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "source": self.source,
            "curation": {
                "address": self.curation.address,
                "min_deposit": self.curation.min_deposit,
                "apply_stage_len": self.curation.apply_stage_len,
                "dispensation_pct": self.curation.dispensation_pct,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------


def load_config(path: Optional[Union[str, Path]] = None) -> CurationConfig:
    """
    Load coordinator configuration.

    Resolution order:
        1. Explicit *path* argument
        2. CURATION_CONFIG env var
        3. ./curation.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("CURATION_CONFIG", DEFAULT_CONFIG_FILE)

    return CurationConfig.from_file(path)
