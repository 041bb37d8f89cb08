"""
Catalog - immutable snapshot of the loaded applications that answers queries.

A catalog is built once per load pass and never patched: a reload builds a
new one. Queries only read it. The single mutation allowed is
record_selection(), which bumps a record's usage count.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from jogger.applications.desktop_entry import ApplicationAction, ApplicationRecord
from jogger.applications.fuzzy import (
    FieldMatch,
    FormattedText,
    MatchClass,
    score_action,
    score_match,
)
from jogger.applications.usage import UsageStore
from jogger.core.config import Config


# Tie-break ranks: record entries use PRIMARY_RANK_BASE + field class (4-7),
# action entries use their best field class alone (0-3)
PRIMARY_RANK_BASE = 4

ACTION_ICON = "emblem-added"


@dataclass(frozen=True)
class SearchEntry:
    """One ranked query result, ready to render."""
    name: FormattedText
    identity: str
    icon: str
    kind: str = "all"
    score: int = 0
    rank: int = 0
    description: Optional[FormattedText] = None
    tag: Optional[FormattedText] = None
    small_icon: Optional[str] = None
    action: Optional[str] = None


def _entry_for_record(record: ApplicationRecord) -> SearchEntry:
    return SearchEntry(
        name=FormattedText.plain(record.name),
        identity=record.identity,
        icon=record.icon_name,
        description=FormattedText.plain(record.description) if record.description else None,
    )


def _entry_for_match(record: ApplicationRecord, match: FieldMatch) -> SearchEntry:
    name = FormattedText.plain(record.name)
    description = FormattedText.plain(record.description) if record.description else None
    tag = None

    if match.match_class == MatchClass.NAME:
        name = FormattedText.from_indices(record.name, match.indices)
    elif match.match_class == MatchClass.DESCRIPTION:
        description = FormattedText.from_indices(record.description, match.indices)
    elif match.match_class == MatchClass.KEYWORD:
        tag = FormattedText.from_indices_with_prefix(record.keywords[match.field_index], "#", match.indices)
    else:
        tag = FormattedText.from_indices_with_prefix(record.categories[match.field_index], "@", match.indices)

    return SearchEntry(
        name=name,
        identity=record.identity,
        icon=record.icon_name,
        kind=match.match_class.name.lower(),
        score=match.score,
        rank=PRIMARY_RANK_BASE + int(match.match_class),
        description=description,
        tag=tag,
    )


def _entry_for_action(record: ApplicationRecord, action: ApplicationAction, query: str) -> Optional[SearchEntry]:
    match = score_action(record, action, query)
    if match is None:
        return None
    return SearchEntry(
        name=FormattedText.from_indices(action.name, match.action_indices),
        identity=record.identity,
        icon=record.icon_name,
        kind="action",
        score=match.score,
        rank=int(match.match_class),
        description=FormattedText.from_indices(record.name, match.name_indices),
        small_icon=action.icon or ACTION_ICON,
        action=action.key,
    )


class Catalog:
    """Immutable set of ApplicationRecords keyed by identity."""

    def __init__(
        self,
        records: Iterable[ApplicationRecord],
        usage: Optional[UsageStore] = None,
        max_results: Optional[int] = None,
    ):
        """
        Args:
            records: Loaded records; the first record of an identity wins
            usage: Store that persists selections (None keeps them in memory)
            max_results: Cap for non-empty queries (default Config.MAX_RESULTS)
        """
        by_identity: Dict[str, ApplicationRecord] = {}
        for record in records:
            by_identity.setdefault(record.identity, record)

        self._by_identity = by_identity
        self._records: Tuple[ApplicationRecord, ...] = tuple(by_identity.values())
        # Scoring walks records in identity order so equal scores rank stably
        self._scan_order: Tuple[ApplicationRecord, ...] = tuple(
            sorted(self._records, key=lambda r: r.identity)
        )
        self.usage = usage
        self.max_results = Config.MAX_RESULTS if max_results is None else max_results
        self._selection_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ApplicationRecord]:
        return iter(self._records)

    def __contains__(self, identity: str) -> bool:
        return identity in self._by_identity

    @property
    def records(self) -> Tuple[ApplicationRecord, ...]:
        return self._records

    def get(self, identity: str) -> Optional[ApplicationRecord]:
        """Identity -> record lookup (None when unknown)."""
        return self._by_identity.get(identity)

    def query(self, text: str, should_cancel: Optional[Callable[[], bool]] = None) -> List[SearchEntry]:
        """
        Rank the catalog against ``text``.

        An empty query lists every record by usage count (descending) then
        name. Otherwise each record contributes its best field match plus any
        matching sub-actions; the flattened list is ordered by score, then by
        field class, and capped at ``max_results``.

        Args:
            text: Query string
            should_cancel: Polled between records; when it returns True the
                query is abandoned and an empty list is returned

        Returns:
            Ranked SearchEntry list
        """
        from jogger.core.logger import get_logger

        if not text:
            ordered = sorted(self._records, key=lambda r: (-self.usage_count(r.identity), r.name))
            return [_entry_for_record(record) for record in ordered]

        start_time = time.perf_counter()
        candidates: List[SearchEntry] = []
        for record in self._scan_order:
            if should_cancel is not None and should_cancel():
                return []
            for action in record.actions.values():
                entry = _entry_for_action(record, action, text)
                if entry is not None:
                    candidates.append(entry)
            match = score_match(record, text)
            if match is not None:
                candidates.append(_entry_for_match(record, match))

        candidates.sort(key=lambda e: (-e.score, -e.rank))
        results = candidates[:self.max_results]

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        get_logger().debug(f"[QUERY] '{text}' -> {len(candidates)} candidates in {latency_ms}ms")
        return results

    def record_selection(self, identity: str) -> int:
        """
        Count one selection of ``identity`` and persist it.

        Returns:
            The new usage count, or 0 when the identity is unknown
        """
        record = self._by_identity.get(identity)
        if record is None:
            return 0
        with self._selection_lock:
            if self.usage is not None:
                count = self.usage.increment(identity)
            else:
                count = record.usage_count + 1
            record.usage_count = max(record.usage_count, count)
            return record.usage_count

    def usage_count(self, identity: str) -> int:
        """Selections of ``identity``; the attached store wins when it is ahead."""
        record = self._by_identity.get(identity)
        count = record.usage_count if record is not None else 0
        if self.usage is not None:
            count = max(count, self.usage.get(identity))
        return count

    def sync_usage(self) -> None:
        """Raise every record's usage_count to the store's count."""
        if self.usage is None:
            return
        with self._selection_lock:
            for record in self._records:
                record.usage_count = max(record.usage_count, self.usage.get(record.identity))
