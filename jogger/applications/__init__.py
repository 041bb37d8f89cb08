"""
Application index: description-file loading, usage counts, fuzzy scoring
and the Catalog snapshot that answers queries.
"""
from jogger.applications.catalog import Catalog, SearchEntry
from jogger.applications.desktop_entry import ApplicationAction, ApplicationRecord, load_desktop_entries

__all__ = ["Catalog", "SearchEntry", "ApplicationAction", "ApplicationRecord", "load_desktop_entries"]
