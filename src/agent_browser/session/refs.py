"""
Reference Resolver - Turn snapshot refs into Playwright locators.

Refs are the short tokens ("e1", "e2", ...) a snapshot assigns to
elements. Callers may write them as "e1", "@e1" or "ref=e1".
"""

import re
from typing import Any, Optional, TYPE_CHECKING

from agent_browser.interfaces.snapshot import RefEntry, RefMap

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page


_BARE_REF = re.compile(r"^e\d+$")


def parse_ref(arg: str) -> Optional[str]:
    """
    Extract the ref id from a ref argument.
    
    Returns:
        The bare id ("e1"), or None when the argument is not a ref
    """
    if arg.startswith("@"):
        return arg[1:]
    if arg.startswith("ref="):
        return arg[4:]
    if _BARE_REF.match(arg):
        return arg
    return None


class RefResolver:
    """
    Resolves refs against the reference map of the last snapshot.
    
    The map is replaced wholesale by update(); resolution never mutates it.
    """
    
    def __init__(self) -> None:
        self._refs: RefMap = {}
    
    @property
    def refs(self) -> RefMap:
        return self._refs
    
    def update(self, refs: RefMap) -> None:
        """Replace the reference map (called after every snapshot)."""
        self._refs = dict(refs)
    
    def clear(self) -> None:
        self._refs = {}
    
    def is_ref(self, selector: str) -> bool:
        """Check if a selector looks like a ref."""
        return parse_ref(selector) is not None
    
    def lookup(self, ref_arg: str) -> Optional[RefEntry]:
        ref = parse_ref(ref_arg)
        if not ref:
            return None
        return self._refs.get(ref)
    
    def resolve(self, page: "Page", ref_arg: str) -> Optional["Locator"]:
        """
        Build a locator for a ref.
        
        Args:
            page: Page to scope the locator to
            ref_arg: Ref in any accepted form
            
        Returns:
            A locator, or None if the ref is malformed or unknown so the
            caller can treat the input as a plain selector instead
        """
        entry = self.lookup(ref_arg)
        if entry is None:
            return None
        
        # Cursor-interactive elements: the stored selector is already unique
        if entry.is_structural:
            return page.locator(entry.selector)
        
        options: dict[str, Any] = {}
        if entry.name:
            options = {"name": entry.name, "exact": True}
        locator = page.get_by_role(entry.role, **options)
        
        if entry.nth is not None:
            locator = locator.nth(entry.nth)
        
        return locator
    
    def get_locator(self, page: "Page", selector_or_ref: str) -> "Locator":
        """Resolve a ref, falling back to a regular selector."""
        locator = self.resolve(page, selector_or_ref)
        if locator is not None:
            return locator
        return page.locator(selector_or_ref)
