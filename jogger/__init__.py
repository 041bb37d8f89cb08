"""
Jogger - application index, ranked fuzzy search and MIME handler resolution
over the XDG description files installed on the system.
"""
from jogger.database import (
    AppDatabase,
    get_database,
    load_catalog,
    resolve_default_handler,
    resolve_handlers,
)

__all__ = [
    "AppDatabase",
    "get_database",
    "load_catalog",
    "resolve_default_handler",
    "resolve_handlers",
]
