"""
MimeApps sources - one per directory that may hold a ``mimeapps.list``.

A source records which description files physically live in its directory
(``present``) and the default/added/removed associations its override file
declares. Association lists keep their file order; ``present`` is sorted by
identity, so resolution never depends on hash or directory-listing order.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from jogger.core.config import Config


DEFAULT_SECTION = "[Default Applications]"
ADDED_SECTION = "[Added Associations]"
REMOVED_SECTION = "[Removed Associations]"

_SECTION_FIELDS = {
    DEFAULT_SECTION: "defaults",
    ADDED_SECTION: "added",
    REMOVED_SECTION: "removed",
}

DESKTOP_SUFFIX = ".desktop"

Associations = Dict[str, Tuple[str, ...]]


class MimeAppsParseError(ValueError):
    """An override file that does not follow the section/key=value grammar."""

    def __init__(self, line_number: int, line: str, reason: str):
        super().__init__(f"line {line_number}: {reason}: {line!r}")
        self.line_number = line_number
        self.line = line


def _parse_identities(value: str) -> Tuple[str, ...]:
    identities = []
    for item in value.rstrip(";").split(";"):
        item = item.strip()
        if item.endswith(DESKTOP_SUFFIX):
            item = item[:-len(DESKTOP_SUFFIX)]
        if item and item not in identities:
            identities.append(item)
    return tuple(identities)


def parse_mimeapps_list(text: str) -> Dict[str, Associations]:
    """
    Parse the contents of a ``mimeapps.list``.

    Lines equal to a section header switch sections, blank lines are
    ignored, every other line must be ``mime/type=id1;id2;``. A later line
    for the same MIME type in the same section replaces the earlier one.

    Returns:
        {"defaults": {...}, "added": {...}, "removed": {...}}

    Raises:
        MimeAppsParseError: on a line that is none of the above, or on an
            association before any section header
    """
    maps: Dict[str, Associations] = {"defaults": {}, "added": {}, "removed": {}}
    current: Optional[str] = None

    for line_number, line in enumerate(text.splitlines(), start=1):
        if line in _SECTION_FIELDS:
            current = _SECTION_FIELDS[line]
            continue
        if not line.strip():
            continue

        mime_type, sep, value = line.partition("=")
        if not sep:
            raise MimeAppsParseError(line_number, line, "expected mime/type=ids")
        if current is None:
            raise MimeAppsParseError(line_number, line, "association outside of a section")

        maps[current][mime_type.strip()] = _parse_identities(value)

    return maps


def list_present(directory: Path) -> Tuple[str, ...]:
    """
    Identities of description files directly inside ``directory``
    (non-recursive). A missing or unreadable directory has none.
    """
    try:
        names = os.listdir(directory)
    except OSError:
        return ()
    return tuple(sorted(
        name[:-len(DESKTOP_SUFFIX)]
        for name in names
        if name.endswith(DESKTOP_SUFFIX) and len(name) > len(DESKTOP_SUFFIX)
    ))


@dataclass(frozen=True)
class MimeAppsSource:
    """Associations contributed by one directory."""
    directory: Optional[Path] = None
    present: Tuple[str, ...] = ()
    defaults: Associations = field(default_factory=dict)
    added: Associations = field(default_factory=dict)
    removed: Associations = field(default_factory=dict)

    @classmethod
    def from_directory(cls, directory: Path, file_name: Optional[str] = None) -> "MimeAppsSource":
        """
        Build the source for ``directory``.

        A missing override file means no associations. A malformed one is
        logged and dropped as a whole; ``present`` is kept either way.
        """
        from jogger.core.logger import get_logger
        logger = get_logger()

        directory = Path(directory)
        present = list_present(directory)
        path = directory / (file_name or Config.MIMEAPPS_FILE_NAME)

        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return cls(directory, present)
        except OSError as e:
            logger.warning(f"[MIME] Could not read {path}: {e}")
            return cls(directory, present)

        try:
            maps = parse_mimeapps_list(text)
        except MimeAppsParseError as e:
            logger.warning(f"[MIME] Ignoring malformed {path}: {e}")
            return cls(directory, present)

        logger.debug(
            f"[MIME] {path}: {len(maps['defaults'])} defaults, "
            f"{len(maps['added'])} added, {len(maps['removed'])} removed"
        )
        return cls(directory, present, maps["defaults"], maps["added"], maps["removed"])

    def defaults_for(self, mime_type: str) -> Tuple[str, ...]:
        return self.defaults.get(mime_type, ())

    def added_for(self, mime_type: str) -> Tuple[str, ...]:
        return self.added.get(mime_type, ())

    def removed_for(self, mime_type: str) -> Tuple[str, ...]:
        return self.removed.get(mime_type, ())


def load_sources(directories: Iterable[Path]) -> List[MimeAppsSource]:
    """One source per directory, keeping the given precedence order."""
    return [MimeAppsSource.from_directory(d) for d in directories]
