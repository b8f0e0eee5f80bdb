"""
DBUpgrader - In-place major version upgrades of an embedded database cluster
"""

__version__ = "0.1.0"

from .core import DatabaseUpgrader, UpgraderError

__all__ = ["DatabaseUpgrader", "UpgraderError"]
