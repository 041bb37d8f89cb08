"""
Applications provider - searches the catalog and launches what is chosen.
"""
from typing import List

from jogger.applications.catalog import SearchEntry
from jogger.plugins.base import Plugin


class ApplicationsPlugin(Plugin):
    """Ranked application search over an AppDatabase."""

    def __init__(self, database=None):
        """
        Args:
            database: AppDatabase to read (default: the shared instance)
        """
        super().__init__()
        self._name = "Applications"
        self._icon = "application-x-executable"
        self._database = database

    @property
    def database(self):
        if self._database is None:
            from jogger.database import get_database
            self._database = get_database()
        return self._database

    def query(self, text: str) -> List[SearchEntry]:
        return self.database.query(text)

    def select(self, entry: SearchEntry) -> bool:
        """Launch the entry's application (or action), then count the selection."""
        launched = self.database.launch(entry.identity, entry.action)
        if launched:
            self.database.record_selection(entry.identity)
        return launched
