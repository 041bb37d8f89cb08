"""
Application database - the snapshot every query and resolution reads.

A snapshot bundles the Catalog, the MimeApps sources, the MIME hierarchy and
the resolver built over them. reload() builds a complete new snapshot and
swaps it in with a single assignment, so readers always see either the old
or the new snapshot in full. The usage store outlives reloads.
"""
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from jogger.applications.catalog import Catalog, SearchEntry
from jogger.applications.desktop_entry import ApplicationRecord, load_desktop_entries, load_ignore_list
from jogger.applications.launcher import launch
from jogger.applications.locale import get_locale_preferences
from jogger.applications.usage import UsageStore
from jogger.core.config import Config, application_dirs, mime_dirs, mimeapps_dirs
from jogger.mime.guess import guess_mime_type
from jogger.mime.hierarchy import MimeHierarchy
from jogger.mime.mimeapps import MimeAppsSource, load_sources
from jogger.mime.resolver import HandlerResolver


@dataclass(frozen=True)
class Snapshot:
    """Everything one load pass produced."""
    catalog: Catalog
    sources: Tuple[MimeAppsSource, ...]
    hierarchy: MimeHierarchy
    resolver: HandlerResolver


def build_catalog(
    usage: UsageStore,
    environ: Optional[Mapping[str, str]] = None,
    ignored_file: Optional[Path] = None,
) -> Catalog:
    """Load every application-description file into a new Catalog."""
    locales = get_locale_preferences(environ)
    ignored = load_ignore_list(ignored_file or Config.get_ignored_file())
    records = load_desktop_entries(application_dirs(environ), locales, ignored, usage.snapshot())
    return Catalog(records, usage)


def build_snapshot(
    usage: UsageStore,
    environ: Optional[Mapping[str, str]] = None,
    ignored_file: Optional[Path] = None,
) -> Snapshot:
    """Run one complete, synchronous load pass."""
    catalog = build_catalog(usage, environ, ignored_file)
    sources = tuple(load_sources(mimeapps_dirs(environ)))
    hierarchy = MimeHierarchy.from_directories(mime_dirs(environ))
    resolver = HandlerResolver(
        sources,
        hierarchy,
        catalog.get,
        dedupe_defaults=Config.DEDUPE_DEFAULT_HANDLERS,
    )
    return Snapshot(catalog, sources, hierarchy, resolver)


class AppDatabase:
    """Holds the current snapshot and answers queries and resolutions."""

    def __init__(
        self,
        usage: Optional[UsageStore] = None,
        environ: Optional[Mapping[str, str]] = None,
        config_dir: Optional[Path] = None,
        snapshot: Optional[Snapshot] = None,
    ):
        """
        Args:
            usage: Usage store (default: loaded from the config directory)
            environ: Environment used for XDG and locale lookups
            config_dir: Directory of ignored.conf and usage.json
            snapshot: Prebuilt snapshot (skips the initial load)
        """
        self.environ = environ
        self.config_dir = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        self.usage = usage if usage is not None else UsageStore.load(self.config_dir / Config.USAGE_FILE_NAME)
        self._swap_lock = threading.Lock()
        self._snapshot = snapshot if snapshot is not None else self._build()

    def _build(self) -> Snapshot:
        from jogger.core.logger import get_logger

        start_time = time.perf_counter()
        snapshot = build_snapshot(self.usage, self.environ, self.config_dir / Config.IGNORED_FILE_NAME)
        latency_ms = int((time.perf_counter() - start_time) * 1000)
        get_logger().info(
            f"[DB] Snapshot ready: {len(snapshot.catalog)} applications, "
            f"{len(snapshot.sources)} association sources ({latency_ms}ms)"
        )
        return snapshot

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def catalog(self) -> Catalog:
        return self._snapshot.catalog

    def reload(self) -> Snapshot:
        """Build a fresh snapshot and swap it in."""
        snapshot = self._build()
        with self._swap_lock:
            # Selections made on the old catalog while building
            snapshot.catalog.sync_usage()
            self._snapshot = snapshot
        return snapshot

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query(self, text: str, should_cancel=None) -> List[SearchEntry]:
        return self._snapshot.catalog.query(text, should_cancel)

    def record_selection(self, identity: str) -> int:
        return self._snapshot.catalog.record_selection(identity)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_handlers(self, mime_type: str) -> List[ApplicationRecord]:
        return self._snapshot.resolver.resolve(mime_type)

    def resolve_default_handler(self, mime_type: str) -> Optional[ApplicationRecord]:
        return self._snapshot.resolver.resolve_default(mime_type)

    def handlers_for_paths(self, paths: Iterable[Union[str, Path]]) -> List[ApplicationRecord]:
        """Handlers able to open every one of ``paths`` (via their common MIME ancestor)."""
        snapshot = self._snapshot
        mime_type = snapshot.hierarchy.common_ancestor_multiple(guess_mime_type(p) for p in paths)
        if mime_type is None:
            return []
        return snapshot.resolver.resolve(mime_type)

    def terminal_emulator(self) -> Optional[ApplicationRecord]:
        """
        Default terminal handler, else the first application (by identity)
        in the TerminalEmulator category.
        """
        from jogger.core.logger import get_logger

        snapshot = self._snapshot
        emulator = snapshot.resolver.resolve_default(Config.TERMINAL_SCHEME)
        if emulator is not None:
            return emulator

        get_logger().debug(f"[DB] No default for {Config.TERMINAL_SCHEME}; falling back to the TerminalEmulator category")
        for record in sorted(snapshot.catalog, key=lambda r: r.identity):
            if record.is_terminal_emulator:
                return record
        return None

    def launch(self, identity: str, action: Optional[str] = None) -> bool:
        """Launch an application (or one of its actions) by identity."""
        from jogger.core.logger import get_logger

        record = self._snapshot.catalog.get(identity)
        if record is None:
            get_logger().warning(f"[LAUNCH] Unknown application {identity}")
            return False
        emulator = self.terminal_emulator() if record.terminal else None
        return launch(record, action, emulator)


# ============================================================================
# Module-level singleton
# ============================================================================
_database_instance: Optional[AppDatabase] = None
_database_lock = threading.Lock()


def get_database() -> AppDatabase:
    """Get the shared AppDatabase, loading it on first use."""
    global _database_instance
    with _database_lock:
        if _database_instance is None:
            _database_instance = AppDatabase()
        return _database_instance


def set_database(database: Optional[AppDatabase]) -> None:
    """Replace (or clear) the shared AppDatabase."""
    global _database_instance
    with _database_lock:
        _database_instance = database


def load_catalog(environ: Optional[Mapping[str, str]] = None, config_dir: Optional[Path] = None) -> Catalog:
    """Build a standalone Catalog from the installed description files."""
    config_dir = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
    usage = UsageStore.load(config_dir / Config.USAGE_FILE_NAME)
    return build_catalog(usage, environ, config_dir / Config.IGNORED_FILE_NAME)


def resolve_handlers(mime_type: str) -> List[ApplicationRecord]:
    """Ordered handlers for ``mime_type`` from the shared database."""
    return get_database().resolve_handlers(mime_type)


def resolve_default_handler(mime_type: str) -> Optional[ApplicationRecord]:
    """First of resolve_handlers(), or None."""
    return get_database().resolve_default_handler(mime_type)
