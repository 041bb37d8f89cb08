"""
jogger.mime - default and alternative handlers for content types.

Modules:
- mimeapps: per-directory mimeapps.list sources
- hierarchy: shared-mime-info parents and aliases
- resolver: cascading handler resolution
- guess: MIME type of a path
"""
from jogger.mime.hierarchy import MimeHierarchy
from jogger.mime.mimeapps import MimeAppsSource
from jogger.mime.resolver import HandlerResolver

__all__ = ["MimeHierarchy", "MimeAppsSource", "HandlerResolver"]
