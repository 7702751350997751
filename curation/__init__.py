"""
Curation Package — token-curated registry coordinator

Core imports are lazily loaded so that ``curation.constants`` and
``curation.logger`` stay importable on their own.
For direct module access, import from submodules:

    from curation.coordinator import Curation
    from curation.collaborators import RegistryApp, StakingLedger, StakeVoting
    from curation.exceptions import CurationError
"""

__version__ = "1.0.0"

_LAZY = {
    'Curation': 'coordinator',
    'CurationConfig': 'config',
    'load_config': 'config',
    'ManualClock': 'clock',
    'SystemClock': 'clock',
    'CurationError': 'exceptions',
    'PCT_BASE': 'constants',
    'MAX_UINT64': 'constants',
}


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    module = _LAZY.get(name)
    if module is None:
        raise AttributeError(f"module 'curation' has no attribute {name!r}")
    from importlib import import_module
    return getattr(import_module(f".{module}", __name__), name)

__all__ = ['__version__', *_LAZY]
