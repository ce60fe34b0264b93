"""
Snapshot Interface - Contract for the accessibility snapshot builder.

The snapshot builder renders the active page as an accessibility tree and
assigns a short reference token ("e1", "e2", ...) to each element of
interest. Agent Browser only consumes its output: the rendered tree and
the reference map used to address elements in later calls.

Example:
    >>> snapshot = await manager.get_snapshot(interactive=True)
    >>> print(snapshot.tree)
    - button "Submit" [ref=e1]
    >>> await manager.get_locator("@e1").click()
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from playwright.async_api import Page


# Pseudo-roles for elements found only through pointer affordances
# (cursor:pointer, onclick, tabindex) rather than an ARIA role.
CURSOR_ROLES = frozenset({"clickable", "focusable"})


@dataclass(frozen=True)
class RefEntry:
    """
    One entry of a reference map.
    
    Either a semantic entry (ARIA role + accessible name, plus an index
    when several elements share both) or a structural entry carrying a
    unique CSS selector for cursor-interactive elements.
    
    Attributes:
        role: ARIA role, or a pseudo-role from CURSOR_ROLES
        name: Accessible name (optional)
        nth: Disambiguation index among elements with the same role+name
        selector: CSS selector, set for structural entries
    """
    role: str
    name: Optional[str] = None
    nth: Optional[int] = None
    selector: Optional[str] = None
    
    @property
    def is_structural(self) -> bool:
        """True when the entry must be resolved through its selector."""
        return self.role in CURSOR_ROLES and bool(self.selector)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefEntry":
        """Create from the collaborator's dictionary form."""
        return cls(
            role=data["role"],
            name=data.get("name"),
            nth=data.get("nth"),
            selector=data.get("selector"),
        )


RefMap = Dict[str, RefEntry]


@dataclass
class SnapshotOptions:
    """Options forwarded to the snapshot builder."""
    interactive: bool = False
    cursor: bool = False
    max_depth: Optional[int] = None
    compact: bool = False
    selector: Optional[str] = None


@dataclass
class EnhancedSnapshot:
    """Rendered tree plus the reference map produced with it."""
    tree: str
    refs: RefMap = field(default_factory=dict)


class ISnapshotProvider(ABC):
    """Abstract accessibility snapshot builder."""
    
    @abstractmethod
    async def snapshot(self, page: "Page", options: SnapshotOptions) -> EnhancedSnapshot:
        """
        Build a snapshot of the page.
        
        Args:
            page: The active Playwright page
            options: What to include in the snapshot
            
        Returns:
            The tree rendering and its reference map
        """
        ...
