"""
Handler resolution - which applications can open a MIME type, best first.

The target type is resolved completely before any of its ancestors; the
ancestors follow breadth first. For each type, defaults are taken first
(one per source), then each source in precedence order contributes its
added associations, records what it removes, and finally offers the
applications installed in its directory that declare the type.

A removal only affects the source that declares it and the sources after
it, for the current type: it never retracts what a higher-precedence source
already contributed.
"""
from collections import deque
from typing import Callable, List, Optional, Protocol, Sequence, Set

from jogger.applications.desktop_entry import ApplicationRecord
from jogger.mime.mimeapps import MimeAppsSource


class HierarchyProvider(Protocol):
    def parents(self, mime_type: str) -> List[str]:
        ...


RecordLookup = Callable[[str], Optional[ApplicationRecord]]


class HandlerResolver:
    """Cascading resolution over ordered MimeApps sources."""

    def __init__(
        self,
        sources: Sequence[MimeAppsSource],
        hierarchy: HierarchyProvider,
        lookup: RecordLookup,
        dedupe_defaults: bool = False,
    ):
        """
        Args:
            sources: MimeApps sources, highest precedence first
            hierarchy: Provides the immediate parents of a MIME type
            lookup: identity -> ApplicationRecord (None when unknown)
            dedupe_defaults: Emit a default at most once even when several
                sources declare the same one
        """
        self.sources = tuple(sources)
        self.hierarchy = hierarchy
        self.lookup = lookup
        self.dedupe_defaults = dedupe_defaults

    def resolve(self, mime_type: str) -> List[ApplicationRecord]:
        """
        Ordered handlers for ``mime_type``, most preferred first.

        Returns:
            Records; empty when nothing can open the type
        """
        from jogger.core.logger import get_logger

        seen: Set[str] = set()
        openers: List[ApplicationRecord] = []
        visited: Set[str] = set()
        queue = deque([mime_type])

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            queue.extend(self.hierarchy.parents(current))
            self._resolve_level(current, seen, openers)

        get_logger().debug(f"[RESOLVE] {mime_type} -> {[r.identity for r in openers]}")
        return openers

    def resolve_default(self, mime_type: str) -> Optional[ApplicationRecord]:
        """The preferred handler for ``mime_type``, if any."""
        handlers = self.resolve(mime_type)
        return handlers[0] if handlers else None

    def _resolve_level(self, mime_type: str, seen: Set[str], openers: List[ApplicationRecord]) -> None:
        removed: Set[str] = set()

        # Default pass: the first resolvable default of every source
        for source in self.sources:
            for identity in source.defaults_for(mime_type):
                record = self.lookup(identity)
                if record is None:
                    continue
                if not (self.dedupe_defaults and identity in seen):
                    openers.append(record)
                seen.add(identity)
                break

        for source in self.sources:
            for identity in source.added_for(mime_type):
                if identity in removed or identity in seen:
                    continue
                seen.add(identity)
                record = self.lookup(identity)
                if record is not None:
                    openers.append(record)

            removed.update(source.removed_for(mime_type))

            for identity in source.present:
                if identity in removed or identity in seen:
                    continue
                record = self.lookup(identity)
                if record is None:
                    continue
                if mime_type in record.mime_types:
                    seen.add(identity)
                    openers.append(record)
