"""
Interfaces module - Contracts for external collaborators.
"""

from agent_browser.interfaces.snapshot import (
    CURSOR_ROLES,
    RefEntry,
    RefMap,
    SnapshotOptions,
    EnhancedSnapshot,
    ISnapshotProvider,
)

__all__ = [
    "CURSOR_ROLES",
    "RefEntry",
    "RefMap",
    "SnapshotOptions",
    "EnhancedSnapshot",
    "ISnapshotProvider",
]
