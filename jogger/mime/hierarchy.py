"""
MIME type hierarchy backed by the shared-mime-info database.

Only the two text tables are needed: ``subclasses`` (``child parent`` per
line) and ``aliases`` (``alias canonical`` per line), read from every
``mime`` directory in XDG data precedence order.
"""
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set


TEXT_PLAIN = "text/plain"


def _read_pairs(path: Path) -> List[tuple]:
    from jogger.core.logger import get_logger

    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        return []
    except OSError as e:
        get_logger().warning(f"[MIME] Could not read {path}: {e}")
        return []

    pairs = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) == 2 and not line.startswith("#"):
            pairs.append((parts[0], parts[1]))
    return pairs


class MimeHierarchy:
    """Parent/alias lookups over MIME types."""

    def __init__(
        self,
        parents: Optional[Mapping[str, Sequence[str]]] = None,
        aliases: Optional[Mapping[str, str]] = None,
        implicit_text_plain: bool = True,
    ):
        """
        Args:
            parents: MIME type -> direct parents, in order
            aliases: alias -> canonical MIME type
            implicit_text_plain: treat text/* types without declared
                parents as subclasses of text/plain
        """
        self._parents: Dict[str, List[str]] = {k: list(v) for k, v in (parents or {}).items()}
        self._aliases: Dict[str, str] = dict(aliases or {})
        self.implicit_text_plain = implicit_text_plain

    @classmethod
    def from_directories(cls, directories: Iterable[Path]) -> "MimeHierarchy":
        """Merge the tables of every directory, earlier directories first."""
        from jogger.core.logger import get_logger

        parents: Dict[str, List[str]] = {}
        aliases: Dict[str, str] = {}
        for directory in directories:
            directory = Path(directory)
            for child, parent in _read_pairs(directory / "subclasses"):
                known = parents.setdefault(child, [])
                if parent not in known:
                    known.append(parent)
            for alias, canonical in _read_pairs(directory / "aliases"):
                aliases.setdefault(alias, canonical)

        get_logger().debug(f"[MIME] Hierarchy: {len(parents)} subclass entries, {len(aliases)} aliases")
        return cls(parents, aliases)

    def unalias(self, mime_type: str) -> str:
        return self._aliases.get(mime_type, mime_type)

    def parents(self, mime_type: str) -> List[str]:
        """
        Immediate parents of ``mime_type``. When the type itself declares
        none, the parents of the type it is an alias of are used; a text/*
        type left without parents falls back to text/plain.
        """
        parents = list(self._parents.get(mime_type, ()))
        if not parents:
            mime_type = self.unalias(mime_type)
            parents = list(self._parents.get(mime_type, ()))
        if (
            not parents
            and self.implicit_text_plain
            and mime_type.startswith("text/")
            and mime_type != TEXT_PLAIN
        ):
            parents.append(TEXT_PLAIN)
        return parents

    def ancestors(self, mime_type: str) -> List[str]:
        """``mime_type`` followed by its ancestors, breadth first, without repeats."""
        order: List[str] = []
        seen: Set[str] = set()
        queue = deque([mime_type])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            order.append(current)
            queue.extend(self.parents(current))
        return order

    def is_subclass(self, mime_type: str, ancestor: str) -> bool:
        return self.unalias(ancestor) in {self.unalias(t) for t in self.ancestors(mime_type)}

    def common_ancestor(self, a: str, b: str) -> Optional[str]:
        """Nearest type (breadth first from ``b``) that ``a`` also descends from."""
        ancestors_of_a = set(self.ancestors(a))
        for candidate in self.ancestors(b):
            if candidate in ancestors_of_a:
                return candidate
        return None

    def common_ancestor_multiple(self, mime_types: Iterable[str]) -> Optional[str]:
        """Fold common_ancestor over several types; None if any pair shares nothing."""
        result: Optional[str] = None
        first = True
        for mime_type in mime_types:
            if first:
                result, first = mime_type, False
                continue
            if result is None:
                return None
            result = self.common_ancestor(result, mime_type)
        return result
