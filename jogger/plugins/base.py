"""
Query-provider contract.

Every provider answers ``query(text)`` with ranked entries and performs its
side effect in ``select(entry)``. ``icon()``, ``prefix()`` and
``has_entry()`` describe it to the launcher UI.
"""
from typing import List, Optional

from jogger.applications.catalog import SearchEntry


class Plugin:
    """Base class for query providers. Subclasses set _name/_icon/_prefix."""

    def __init__(self):
        self._name = "plugin"
        self._icon: Optional[str] = None
        self._prefix: Optional[str] = None

    @property
    def name(self) -> str:
        return self._name

    def icon(self) -> Optional[str]:
        return self._icon

    def prefix(self) -> Optional[str]:
        """Text that routes a query to this provider (None: no prefix)."""
        return self._prefix

    def has_entry(self) -> bool:
        """Whether the provider is listed as an entry of its own."""
        return False

    def query(self, text: str) -> List[SearchEntry]:
        return []

    def select(self, entry: SearchEntry) -> bool:
        """Act on a chosen entry. Returns True on success."""
        return False
