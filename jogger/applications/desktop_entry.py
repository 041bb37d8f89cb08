"""
Application records and the loader that builds them from description files.

Description files (``*.desktop``) are discovered under the XDG
``applications`` directories, parsed, localized and normalized into
ApplicationRecord objects. A bad directory or file never aborts a load; it
simply contributes nothing.
"""
import configparser
import os
import re
import shlex
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from jogger.core.config import Config


DESKTOP_GROUP = "Desktop Entry"
ACTION_GROUP_PREFIX = "Desktop Action "
DESKTOP_SUFFIX = ".desktop"

# Exec field codes. None of them receive arguments here, so all are removed.
FIELD_CODES = set("fFuUdDnNickvm")

_FIELD_CODE_RE = re.compile(r"%(.)")
# A field code standing alone as an argument, optionally quoted, with the
# whitespace before it
_STANDALONE_FIELD_CODE_RE = re.compile(r"""(?:^|\s+)(["']?)%[fFuUdDnNickvm]\1(?=\s|$)""")

_STRING_ESCAPES = {"s": " ", "n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


class DesktopEntryError(ValueError):
    """A description file that cannot be turned into a record."""


# ============================================================================
# Record model
# ============================================================================

def _split_argv(command: Optional[str]) -> List[str]:
    if not command:
        return []
    try:
        parts = shlex.split(command)
    except ValueError:
        # Unbalanced quotes: fall back to plain whitespace splitting
        parts = command.split()
    return [p for p in parts if p]


@dataclass(frozen=True)
class TerminalArgs:
    """Hints a terminal emulator publishes about its own command line."""
    exec: Optional[str] = None
    app_id: Optional[str] = None
    title: Optional[str] = None
    dir: Optional[str] = None
    hold: Optional[str] = None


@dataclass(frozen=True)
class ApplicationAction:
    """A declared sub-action of an application (e.g. "New Private Window")."""
    key: str
    name: str
    icon: Optional[str] = None
    command: Optional[str] = None

    @property
    def inert(self) -> bool:
        """True when the action has nothing to run."""
        return not self.command

    def argv(self) -> List[str]:
        return _split_argv(self.command)


@dataclass(eq=False)
class ApplicationRecord:
    """
    One launchable application.

    Everything except ``usage_count`` is fixed once the record has been
    loaded; identity equality is what the catalog and the resolver rely on.
    """
    identity: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    working_directory: Optional[Path] = None
    categories: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    actions: Dict[str, ApplicationAction] = field(default_factory=dict)
    command: Optional[str] = None
    raw_command: Optional[str] = None
    terminal: bool = False
    mime_types: FrozenSet[str] = frozenset()
    usage_count: int = 0
    file_path: Optional[Path] = None
    terminal_args: TerminalArgs = field(default_factory=TerminalArgs)
    display: bool = True

    def __eq__(self, other) -> bool:
        if not isinstance(other, ApplicationRecord):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    @property
    def icon_name(self) -> str:
        return self.icon or Config.MISSING_ICON

    @property
    def is_terminal_emulator(self) -> bool:
        return "TerminalEmulator" in self.categories

    def argv(self) -> List[str]:
        """Tokenized command line with field codes already removed."""
        return _split_argv(self.command)

    def program(self) -> str:
        """The executable of the command line, or "" when there is none."""
        argv = self.argv()
        return argv[0] if argv else ""


# ============================================================================
# Value helpers
# ============================================================================

def strip_field_codes(command: str) -> str:
    """
    Remove every field code (%f, %U, %i, %c, ...) from a command template.

    ``%%`` becomes a literal ``%``; unknown codes are left untouched.
    A code that was a whole argument is removed together with the
    whitespace before it; everything else, quoted text included, is kept
    as written.
    """
    def _replace(match: "re.Match") -> str:
        code = match.group(1)
        if code == "%":
            return "%"
        if code in FIELD_CODES:
            return ""
        return match.group(0)

    stripped = _STANDALONE_FIELD_CODE_RE.sub("", command)
    stripped = _FIELD_CODE_RE.sub(_replace, stripped)
    return stripped.strip()


def unescape_string(value: str) -> str:
    """Undo description-file escapes (\\s, \\n, \\t, \\r, \\\\)."""
    if "\\" not in value:
        return value
    out = []
    chars = iter(value)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_STRING_ESCAPES.get(nxt, "\\" + nxt))
        else:
            out.append(ch)
    return "".join(out)


def split_list(value: Optional[str]) -> List[str]:
    """
    Split a ``;``-separated list value, honouring ``\\;`` escapes and
    dropping empty items.
    """
    if not value:
        return []
    items, current = [], []
    chars = iter(value)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            if nxt == ";":
                current.append(";")
            else:
                current.append(_STRING_ESCAPES.get(nxt, "\\" + nxt))
        elif ch == ";":
            items.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    items.append("".join(current).strip())
    return [item for item in items if item]


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1")


def collect_localized(section: Mapping[str, str], key: str) -> List[Tuple[str, str]]:
    """
    All variants of a localized key as (locale-tag, raw value) pairs.
    The unlocalized value uses the empty tag.
    """
    variants = []
    prefix = key + "["
    for name, value in section.items():
        if name == key:
            variants.append(("", value))
        elif name.startswith(prefix) and name.endswith("]"):
            variants.append((name[len(prefix):-1], value))
    return variants


def resolve_localized(variants: List[Tuple[str, str]], locales: Iterable[str]) -> Optional[str]:
    """
    Pick the variant for the first matching locale, then the unlocalized one.

    Returns:
        The raw value, or None when the key is absent altogether
    """
    by_tag = dict(variants)
    for locale in locales:
        if locale in by_tag:
            return by_tag[locale]
    return by_tag.get("")


def _localized_string(section, key: str, locales: List[str]) -> Optional[str]:
    value = resolve_localized(collect_localized(section, key), locales)
    if value is None:
        return None
    return unescape_string(value)


# ============================================================================
# Parsing
# ============================================================================

def _read_groups(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser(
        interpolation=None,
        delimiters=("=",),
        comment_prefixes=("#",),
        empty_lines_in_values=False,
        default_section="\x00",
    )
    # Keys are case sensitive (Name vs name)
    parser.optionxform = str
    try:
        parser.read_string(path.read_text(encoding="utf-8", errors="replace"), source=str(path))
    except configparser.Error as e:
        raise DesktopEntryError(f"{path}: {e}") from e
    return parser


def parse_desktop_file(
    path: Path,
    identity: str,
    locales: List[str],
    ignored: Optional[Set[Tuple[str, str]]] = None,
    usage: Optional[Mapping[str, int]] = None,
) -> ApplicationRecord:
    """
    Parse one description file into an ApplicationRecord.

    Args:
        path: The ``.desktop`` file
        identity: Identity derived from the file's location
        locales: Locale preference list, most specific first
        ignored: (identity, action-key) pairs whose actions are hidden
        usage: identity -> selection count

    Raises:
        DesktopEntryError: when the file is not a usable application entry
        OSError: when the file cannot be read
    """
    ignored = ignored or set()
    usage = usage or {}
    parser = _read_groups(path)

    if not parser.has_section(DESKTOP_GROUP):
        raise DesktopEntryError(f"{path}: missing [{DESKTOP_GROUP}] group")
    entry = parser[DESKTOP_GROUP]

    entry_type = entry.get("Type", "Application").strip()
    if entry_type != "Application":
        raise DesktopEntryError(f"{path}: unsupported Type={entry_type}")

    name = _localized_string(entry, "Name", locales) or Config.NO_DISPLAY_SENTINEL
    description = _localized_string(entry, "Comment", locales)
    if description is None:
        description = _localized_string(entry, "GenericName", locales)

    keywords_raw = resolve_localized(collect_localized(entry, "Keywords"), locales)

    raw_command = entry.get("Exec")
    command = strip_field_codes(raw_command) if raw_command else None

    actions: Dict[str, ApplicationAction] = {}
    for key in split_list(entry.get("Actions")):
        if (identity, key) in ignored:
            continue
        group_name = ACTION_GROUP_PREFIX + key
        group = parser[group_name] if parser.has_section(group_name) else {}
        action_exec = group.get("Exec")
        # Actions without an invocation stay as inert entries
        actions[key] = ApplicationAction(
            key=key,
            name=_localized_string(group, "Name", locales) or Config.NO_DISPLAY_SENTINEL,
            icon=group.get("Icon") or None,
            command=strip_field_codes(action_exec) if action_exec else None,
        )

    working_directory = entry.get("Path")

    return ApplicationRecord(
        identity=identity,
        name=name,
        description=description,
        icon=entry.get("Icon") or None,
        working_directory=Path(working_directory) if working_directory else None,
        categories=tuple(split_list(entry.get("Categories"))),
        keywords=tuple(split_list(keywords_raw)),
        actions=actions,
        command=command or None,
        raw_command=raw_command,
        terminal=_is_true(entry.get("Terminal")),
        mime_types=frozenset(split_list(entry.get("MimeType"))),
        usage_count=int(usage.get(identity, 0)),
        file_path=path,
        terminal_args=TerminalArgs(
            exec=entry.get("X-TerminalArgExec"),
            app_id=entry.get("X-TerminalArgAppId"),
            title=entry.get("X-TerminalArgTitle"),
            dir=entry.get("X-TerminalArgDir"),
            hold=entry.get("X-TerminalArgHold"),
        ),
        display=not (_is_true(entry.get("NoDisplay")) or _is_true(entry.get("Hidden"))),
    )


# ============================================================================
# Discovery
# ============================================================================

def desktop_file_identity(directory: Path, path: Path) -> str:
    """
    Desktop-file ID: the path relative to its applications directory with
    separators turned into dashes and the suffix removed.
    """
    relative = path.relative_to(directory).as_posix()
    if relative.endswith(DESKTOP_SUFFIX):
        relative = relative[:-len(DESKTOP_SUFFIX)]
    return relative.replace("/", "-")


def iter_desktop_files(directory: Path) -> Iterator[Tuple[str, Path]]:
    """
    Yield (identity, path) for every description file below ``directory``,
    in a stable order. Unreadable directories yield nothing; a directory
    reached again through a symlink is not descended a second time.
    """
    from jogger.core.logger import get_logger
    logger = get_logger()

    def _on_error(error: OSError) -> None:
        logger.debug(f"[SCAN] Skipping unreadable directory {error.filename}: {error.strerror}")

    visited: Set[Tuple[int, int]] = set()
    for root, dirnames, filenames in os.walk(directory, onerror=_on_error, followlinks=True):
        try:
            st = os.stat(root)
        except OSError as e:
            _on_error(e)
            dirnames[:] = []
            continue
        if (st.st_dev, st.st_ino) in visited:
            logger.debug(f"[SCAN] Skipping already visited directory {root}")
            dirnames[:] = []
            continue
        visited.add((st.st_dev, st.st_ino))

        dirnames.sort()
        for filename in sorted(filenames):
            if filename.endswith(DESKTOP_SUFFIX):
                path = Path(root) / filename
                yield desktop_file_identity(directory, path), path


def load_ignore_list(path: Path) -> Set[Tuple[str, str]]:
    """
    Read the ignore-list: one ``identity/action-key`` per line.

    Lines without a slash are skipped. A missing file means nothing is ignored.
    """
    from jogger.core.logger import get_logger

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return set()
    except OSError as e:
        get_logger().warning(f"[SCAN] Could not read ignore list {path}: {e}")
        return set()

    ignored = set()
    for line in text.splitlines():
        identity, sep, action = line.strip().partition("/")
        if sep:
            ignored.add((identity, action))
    return ignored


def load_desktop_entries(
    search_dirs: Iterable[Path],
    locales: List[str],
    ignored: Optional[Set[Tuple[str, str]]] = None,
    usage: Optional[Mapping[str, int]] = None,
) -> List[ApplicationRecord]:
    """
    Discover and parse every application-description file.

    Directories are searched in precedence order; the first parsed file for
    an identity wins. Records that must not be displayed are dropped, then
    records repeating an (identity, command template) pair are collapsed.

    Args:
        search_dirs: applications directories, highest precedence first
        locales: Locale preference list
        ignored: (identity, action-key) pairs to hide
        usage: identity -> selection count

    Returns:
        The loaded records, in discovery order
    """
    from jogger.core.logger import get_logger
    logger = get_logger()

    start_time = time.perf_counter()
    by_identity: Dict[str, ApplicationRecord] = {}
    skipped = 0

    for directory in search_dirs:
        directory = Path(directory)
        logger.debug(f"[SCAN] Scanning {directory}")
        for identity, path in iter_desktop_files(directory):
            if identity in by_identity:
                continue
            try:
                by_identity[identity] = parse_desktop_file(path, identity, locales, ignored, usage)
            except (DesktopEntryError, OSError, UnicodeError) as e:
                skipped += 1
                logger.debug(f"[SCAN] Skipping {path}: {e}")

    records: List[ApplicationRecord] = []
    seen_commands: Set[Tuple[str, Optional[str]]] = set()
    for record in by_identity.values():
        if not record.display:
            continue
        key = (record.identity, record.raw_command)
        if key in seen_commands:
            continue
        seen_commands.add(key)
        records.append(record)

    latency_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info(f"[SCAN] Loaded {len(records)} applications ({skipped} skipped) in {latency_ms}ms")
    return records
