"""
Module lifecycle core.

Tracks which feature modules exist on disk (descriptor store), which are
enabled (registry), how they depend on each other (resolver), and installs,
removes and exports them as zip archives (installer). ModuleManager is the
facade callers use.
"""

from modhub.core.modules.manager import ModuleManager

__all__ = ["ModuleManager"]
