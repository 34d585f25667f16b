"""
Configuration protocols.

Application-level hooks for tuning change management defaults.
"""

from .changes_config import ChangesConfig, set_changes_config, get_changes_config

__all__ = [
    "ChangesConfig",
    "set_changes_config",
    "get_changes_config",
]
