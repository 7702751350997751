"""
Configuration & CLI Test Suite

Coverage:
  parse_pct      : integer fractions and percent strings
  CurationConfig : defaults, TOML loading, env overrides, validation
  load_config    : resolution order
  Curation.from_config
  CLI            : `curation config`, `curation quote`
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from curation.cli import cli, format_pct
from curation.config import CurationConfig, load_config, parse_pct
from curation.constants import (
    DEFAULT_APPLY_STAGE_LEN,
    DEFAULT_COORDINATOR_ADDRESS,
    DEFAULT_DISPENSATION_PCT,
    DEFAULT_MIN_DEPOSIT,
    PCT_BASE,
)
from curation.coordinator import Curation
from curation.collaborators import RegistryApp, StakeVoting, StakingLedger
from curation.exceptions import ValidationError


ENV_VARS = (
    "CURATION_CONFIG",
    "CURATION_ADDRESS",
    "CURATION_MIN_DEPOSIT",
    "CURATION_APPLY_STAGE_LEN",
    "CURATION_DISPENSATION_PCT",
    "CURATION_LOG_LEVEL",
    "CURATION_LOG_FILE_OUTPUT",
)

SAMPLE_TOML = """
[curation]
address = "0xCURATION"
min_deposit = 250
apply_stage_len = 86400
dispensation_pct = "50%"

[logging]
level = "warning"
file_output = false
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def write_config(tmp_path, text=SAMPLE_TOML, name="curation.toml"):
    path = tmp_path / name
    path.write_text(text)
    return path


# ══════════════════════════════════════════════════════════════════════
#  PERCENTAGES
# ══════════════════════════════════════════════════════════════════════


class TestParsePct:

    def test_integer_passthrough(self):
        assert parse_pct(6 * 10 ** 17) == 6 * 10 ** 17

    def test_percent_strings(self):
        assert parse_pct("60%") == 60 * 10 ** 16
        assert parse_pct(" 100 % ") == PCT_BASE
        assert parse_pct("12.5%") == 125 * 10 ** 15
        assert parse_pct("0%") == 0

    def test_numeric_string(self):
        assert parse_pct("600000000000000000") == 6 * 10 ** 17

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            parse_pct("sixty")
        with pytest.raises(ValidationError):
            parse_pct(True)
        with pytest.raises(ValidationError):
            parse_pct(0.6)

    def test_format_pct(self):
        assert format_pct(60 * 10 ** 16) == "60%"
        assert format_pct(125 * 10 ** 15) == "12.5%"


# ══════════════════════════════════════════════════════════════════════
#  CONFIG LOADING
# ══════════════════════════════════════════════════════════════════════


class TestCurationConfig:

    def test_defaults(self):
        cfg = CurationConfig()
        assert cfg.curation.address == DEFAULT_COORDINATOR_ADDRESS
        assert cfg.curation.min_deposit == DEFAULT_MIN_DEPOSIT
        assert cfg.curation.apply_stage_len == DEFAULT_APPLY_STAGE_LEN
        assert cfg.curation.dispensation_pct == DEFAULT_DISPENSATION_PCT
        assert cfg.logging.level == "INFO"
        assert cfg.validate() is True

    def test_from_file(self, tmp_path):
        cfg = CurationConfig.from_file(write_config(tmp_path))
        assert cfg.curation.address == "0xCURATION"
        assert cfg.curation.min_deposit == 250
        assert cfg.curation.apply_stage_len == 86400
        assert cfg.curation.dispensation_pct == PCT_BASE // 2
        assert cfg.logging.level == "WARNING"
        assert cfg.source.endswith("curation.toml")

    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = CurationConfig.from_file(tmp_path / "absent.toml")
        assert cfg.curation.min_deposit == DEFAULT_MIN_DEPOSIT
        assert cfg.source is None

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CURATION_MIN_DEPOSIT", "999")
        monkeypatch.setenv("CURATION_DISPENSATION_PCT", "25%")
        monkeypatch.setenv("CURATION_ADDRESS", "0xOTHER")
        monkeypatch.setenv("CURATION_LOG_LEVEL", "error")
        cfg = CurationConfig.from_file(write_config(tmp_path))
        assert cfg.curation.min_deposit == 999
        assert cfg.curation.dispensation_pct == PCT_BASE // 4
        assert cfg.curation.address == "0xOTHER"
        assert cfg.logging.level == "ERROR"

    def test_bad_env_value_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CURATION_APPLY_STAGE_LEN", "soon")
        with pytest.raises(ValidationError):
            CurationConfig.from_file(write_config(tmp_path))

    def test_malformed_toml_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            CurationConfig.from_file(write_config(tmp_path, text="[curation\nmin_deposit ="))

    def test_validate_rejects_out_of_range(self):
        cfg = CurationConfig.from_dict({"curation": {"dispensation_pct": "101%"}})
        with pytest.raises(ValidationError):
            cfg.validate()
        cfg = CurationConfig.from_dict({"curation": {"min_deposit": -5}})
        with pytest.raises(ValidationError):
            cfg.validate()
        cfg = CurationConfig.from_dict({"logging": {"level": "LOUD"}})
        with pytest.raises(ValidationError):
            cfg.validate()

    def test_to_dict(self, tmp_path):
        d = CurationConfig.from_file(write_config(tmp_path)).to_dict()
        assert d["curation"]["min_deposit"] == 250
        assert d["logging"]["level"] == "WARNING"


class TestLoadConfig:

    def test_explicit_path(self, tmp_path):
        assert load_config(write_config(tmp_path)).curation.min_deposit == 250

    def test_env_path(self, tmp_path, monkeypatch):
        path = write_config(tmp_path, name="other.toml")
        monkeypatch.setenv("CURATION_CONFIG", str(path))
        assert load_config().curation.min_deposit == 250

    def test_working_directory_file(self, tmp_path, monkeypatch):
        write_config(tmp_path)
        monkeypatch.chdir(tmp_path)
        assert load_config().curation.min_deposit == 250

    def test_defaults_when_nothing_found(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config().curation.min_deposit == DEFAULT_MIN_DEPOSIT


class TestFromConfig:

    def test_builds_initialized_coordinator(self, tmp_path):
        cfg = load_config(write_config(tmp_path))
        curation = Curation.from_config(cfg, RegistryApp(), StakingLedger(), StakeVoting())
        assert curation.is_initialized
        assert curation.address == "0xCURATION"
        assert curation.min_deposit == 250
        assert curation.dispensation_pct == PCT_BASE // 2

    def test_invalid_config_rejected(self):
        cfg = CurationConfig.from_dict({"curation": {"apply_stage_len": -1}})
        with pytest.raises(ValidationError):
            Curation.from_config(cfg, RegistryApp(), StakingLedger(), StakeVoting())


# ══════════════════════════════════════════════════════════════════════
#  CLI
# ══════════════════════════════════════════════════════════════════════


class TestCLI:

    def test_config_command(self, tmp_path):
        result = CliRunner().invoke(cli, ["config", "--path", str(write_config(tmp_path))])
        assert result.exit_code == 0, result.output
        assert "0xCURATION" in result.output
        assert "50%" in result.output

    def test_config_json(self, tmp_path):
        result = CliRunner().invoke(cli, ["config", "--path", str(write_config(tmp_path)), "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["curation"]["min_deposit"] == 250
        assert data["curation"]["dispensation_pct"] == str(PCT_BASE // 2)

    def test_config_invalid(self, tmp_path):
        path = write_config(tmp_path, text='[curation]\ndispensation_pct = "150%"\n')
        result = CliRunner().invoke(cli, ["config", "--path", str(path)])
        assert result.exit_code != 0
        assert "dispensation_pct" in result.output

    def test_quote(self):
        result = CliRunner().invoke(cli, [
            "quote", "--deposit", "100", "--pct", "60%",
            "--winning-total", "70", "--voter-stake", "10", "--json",
        ])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["amount"] == 60
        assert data["pool"] == 40
        assert data["reward"] == 5

    def test_quote_text(self):
        result = CliRunner().invoke(cli, ["quote", "-d", "100", "-p", "60%"])
        assert result.exit_code == 0, result.output
        assert "Winner receives:   60" in result.output
        assert "Voter pool:        40" in result.output

    def test_quote_requires_both_stakes(self):
        result = CliRunner().invoke(cli, ["quote", "-d", "100", "-p", "60%", "-w", "70"])
        assert result.exit_code == 2

    def test_quote_rejects_bad_pct(self):
        result = CliRunner().invoke(cli, ["quote", "-d", "100", "-p", "150%"])
        assert result.exit_code == 1
        assert "dispensation_pct" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "curation" in result.output
