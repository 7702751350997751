"""
Curation Constants

This module consolidates the protocol constants of the curation coordinator
and the environment configuration used by the logging subsystem. Constants
are organized by category for easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# FIXED-POINT ARITHMETIC
# ==================================================================================
# Percentages are fractions of PCT_BASE (10^18 == 100%)
PCT_BASE = 10 ** 18
MAX_UINT64 = 2 ** 64 - 1


# ==================================================================================
# LOCK TIME UNITS (as reported by the staking collaborator)
# ==================================================================================
TIME_UNIT_BLOCKS = 0
TIME_UNIT_SECONDS = 1


# ==================================================================================
# ACCESS CONTROL ROLES
# ==================================================================================
CHANGE_PARAMS_ROLE = "CHANGE_PARAMS_ROLE"
CHANGE_VOTING_APP_ROLE = "CHANGE_VOTING_APP_ROLE"


# ==================================================================================
# DEFAULT PARAMETERS
# ==================================================================================
DEFAULT_COORDINATOR_ADDRESS = "curation"
DEFAULT_MIN_DEPOSIT = 100
DEFAULT_APPLY_STAGE_LEN = 1000
DEFAULT_DISPENSATION_PCT = 60 * 10 ** 16  # 60%

ENTRY_ID_DIGEST_SIZE = 32


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        # ast.literal_eval expects "True"/"False"
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
