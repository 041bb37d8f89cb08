"""
Fuzzy scoring of a query against an application record.

The primitive is a smart-case subsequence matcher: every query character must
appear in the text in order. Alignments are scored so that contiguous runs,
word starts and early positions win; the best alignment's score and matched
positions are returned.

On top of it, score_match() picks one field match per record (class first,
then score) and score_action() rates a record's sub-actions.
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, List, Optional, Sequence, Tuple

from rich.text import Text

from jogger.applications.desktop_entry import ApplicationAction, ApplicationRecord


SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1
BONUS_BOUNDARY = 8
BONUS_CAMEL = 7
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR_MULTIPLIER = 2
PENALTY_LEADING = 1
MAX_LEADING_PENALTY = 10

# Weight of the action name and the record name in an action's score
ACTION_NAME_WEIGHT = 4
RECORD_NAME_WEIGHT = 4

_NONWORD, _LOWER, _UPPER, _DIGIT, _LETTER = range(5)

Span = Tuple[int, int]


def _char_class(ch: str) -> int:
    if ch.isdigit():
        return _DIGIT
    if ch.isupper():
        return _UPPER
    if ch.islower():
        return _LOWER
    if ch.isalnum():
        return _LETTER
    return _NONWORD


def _position_bonus(prev_class: int, cls: int) -> int:
    if cls == _NONWORD:
        return 0
    if prev_class == _NONWORD:
        return BONUS_BOUNDARY
    if prev_class == _LOWER and cls == _UPPER:
        return BONUS_CAMEL
    if prev_class != _DIGIT and cls == _DIGIT:
        return BONUS_CAMEL
    return 0


def is_case_sensitive(query: str) -> bool:
    """Smart-case: only a query with an uppercase character is case sensitive."""
    return any(ch.isupper() for ch in query)


def fuzzy_indices(text: str, query: str) -> Optional[Tuple[int, List[int]]]:
    """
    Match ``query`` as a subsequence of ``text``.

    Args:
        text: Field value to search in
        query: Query string

    Returns:
        (score, matched character positions), or None when there is no match.
        A higher score is a better match.
    """
    m, n = len(query), len(text)
    if m == 0:
        return 0, []
    if m > n:
        return None

    if is_case_sensitive(query):
        t_chars = list(text)
        q_chars = list(query)
    else:
        t_chars = [ch.lower() for ch in text]
        q_chars = [ch.lower() for ch in query]

    # Cheap rejection before the DP
    pos = 0
    for ch in q_chars:
        while pos < n and t_chars[pos] != ch:
            pos += 1
        if pos == n:
            return None
        pos += 1

    bonus = []
    prev_class = _NONWORD
    for ch in text:
        cls = _char_class(ch)
        bonus.append(_position_bonus(prev_class, cls))
        prev_class = cls

    # prev[j]: best score with the previous query char matched at j
    prev: List[Optional[int]] = [None] * n
    for j in range(n):
        if t_chars[j] == q_chars[0]:
            prev[j] = (
                SCORE_MATCH
                + bonus[j] * BONUS_FIRST_CHAR_MULTIPLIER
                - min(j, MAX_LEADING_PENALTY) * PENALTY_LEADING
            )

    back: List[List[int]] = [[]]
    for i in range(1, m):
        cur: List[Optional[int]] = [None] * n
        origin = [-1] * n
        gap_best: Optional[int] = None
        gap_from = -1
        for j in range(i, n):
            if j >= 2:
                if gap_best is not None:
                    gap_best += SCORE_GAP_EXTENSION
                candidate = prev[j - 2]
                if candidate is not None and (gap_best is None or candidate + SCORE_GAP_START > gap_best):
                    gap_best = candidate + SCORE_GAP_START
                    gap_from = j - 2

            if t_chars[j] != q_chars[i]:
                continue

            best: Optional[int] = None
            best_from = -1
            if prev[j - 1] is not None:
                best = prev[j - 1] + SCORE_MATCH + max(bonus[j], BONUS_CONSECUTIVE)
                best_from = j - 1
            if gap_best is not None:
                score = gap_best + SCORE_MATCH + bonus[j]
                if best is None or score > best:
                    best = score
                    best_from = gap_from
            cur[j] = best
            origin[j] = best_from
        prev = cur
        back.append(origin)

    end = -1
    for j in range(n):
        if prev[j] is not None and (end < 0 or prev[j] > prev[end]):
            end = j
    if end < 0:
        return None

    indices = [end]
    for i in range(m - 1, 0, -1):
        indices.append(back[i][indices[-1]])
    indices.reverse()
    return prev[end], indices


def index_ranges(indices: Iterable[int]) -> List[Span]:
    """Collapse sorted positions into half-open ranges: [1,2,3,7] -> [(1,4),(7,8)]."""
    spans: List[Span] = []
    for i in indices:
        if spans and spans[-1][1] == i:
            spans[-1] = (spans[-1][0], i + 1)
        else:
            spans.append((i, i + 1))
    return spans


@dataclass(frozen=True)
class FormattedText:
    """Display text plus the ranges to highlight. The value itself is untouched."""
    text: str
    spans: Tuple[Span, ...] = ()

    @classmethod
    def plain(cls, text: str) -> "FormattedText":
        return cls(text)

    @classmethod
    def from_indices(cls, text: str, indices: Iterable[int]) -> "FormattedText":
        return cls(text, tuple(index_ranges(indices)))

    @classmethod
    def from_indices_with_prefix(cls, text: str, prefix: str, indices: Iterable[int]) -> "FormattedText":
        """Prefix the text (``#keyword``, ``@category``) and shift the spans."""
        offset = len(prefix)
        return cls(prefix + text, tuple((s + offset, e + offset) for s, e in index_ranges(indices)))

    def highlighted(self) -> List[str]:
        return [self.text[s:e] for s, e in self.spans]

    def to_rich(self, style: str = "bold cyan") -> Text:
        text = Text(self.text)
        for start, end in self.spans:
            text.stylize(style, start, end)
        return text

    def __str__(self) -> str:
        return self.text


# ============================================================================
# Record scoring
# ============================================================================

class MatchClass(IntEnum):
    """Field a match came from; higher wins when one record matches twice."""
    CATEGORY = 0
    KEYWORD = 1
    DESCRIPTION = 2
    NAME = 3


_HALVED_CLASSES = (MatchClass.KEYWORD, MatchClass.CATEGORY)


@dataclass(frozen=True)
class FieldMatch:
    """
    Best match of a query in one record.

    ``raw_score`` is the primitive's score; ``score`` is what ranking uses,
    halved for keyword and category matches. ``field_index`` says which
    keyword or category matched.
    """
    match_class: MatchClass
    raw_score: int
    indices: Tuple[int, ...]
    field_index: int = 0

    @property
    def score(self) -> int:
        if self.match_class in _HALVED_CLASSES:
            return self.raw_score // 2
        return self.raw_score

    @property
    def spans(self) -> List[Span]:
        return index_ranges(self.indices)


def _field_matches(record: ApplicationRecord, query: str) -> Iterable[FieldMatch]:
    found = fuzzy_indices(record.name, query)
    if found:
        yield FieldMatch(MatchClass.NAME, found[0], tuple(found[1]))

    if record.description:
        found = fuzzy_indices(record.description, query)
        if found:
            yield FieldMatch(MatchClass.DESCRIPTION, found[0], tuple(found[1]))

    for match_class, values in ((MatchClass.KEYWORD, record.keywords), (MatchClass.CATEGORY, record.categories)):
        best: Optional[FieldMatch] = None
        for i, value in enumerate(values):
            found = fuzzy_indices(value, query)
            if found and (best is None or found[0] > best.raw_score):
                best = FieldMatch(match_class, found[0], tuple(found[1]), i)
        if best is not None:
            yield best


def score_match(record: ApplicationRecord, query: str) -> Optional[FieldMatch]:
    """
    Pick the single match that represents ``record`` for ``query``.

    At most one match per field class is considered, and they are compared by
    (class, score): a weak name match beats a strong description match.
    """
    best: Optional[FieldMatch] = None
    for match in _field_matches(record, query):
        if best is None or (match.match_class, match.score) > (best.match_class, best.score):
            best = match
    return best


@dataclass(frozen=True)
class ActionMatch:
    """
    Combined score of one sub-action and the spans to highlight.

    ``match_class`` is the field with the best single score: NAME for the
    action name, DESCRIPTION for the record name, then KEYWORD and CATEGORY.
    """
    action: ApplicationAction
    score: int
    match_class: MatchClass = MatchClass.NAME
    action_indices: Tuple[int, ...] = ()
    name_indices: Tuple[int, ...] = ()


def _score_of(text: str, query: str) -> Tuple[int, Tuple[int, ...]]:
    found = fuzzy_indices(text, query)
    if not found:
        return 0, ()
    return found[0], tuple(found[1])


def _field_scores(values: Sequence[str], query: str) -> List[int]:
    return [_score_of(value, query)[0] for value in values]


def score_action(record: ApplicationRecord, action: ApplicationAction, query: str) -> Optional[ActionMatch]:
    """
    Score one sub-action:
    4 x action-name score + 4 x record-name score + category scores + keyword scores.

    Returns:
        ActionMatch when the combined score is positive, else None
    """
    if not query:
        return None

    action_score, action_indices = _score_of(action.name, query)
    name_score, name_indices = _score_of(record.name, query)
    keyword_scores = _field_scores(record.keywords, query)
    category_scores = _field_scores(record.categories, query)
    score = (
        ACTION_NAME_WEIGHT * action_score
        + RECORD_NAME_WEIGHT * name_score
        + sum(category_scores)
        + sum(keyword_scores)
    )
    if score <= 0:
        return None

    # Best single field decides the tie-break class; equal scores favour the higher class
    best_score, match_class = action_score, MatchClass.NAME
    for field_score, field_class in (
        (name_score, MatchClass.DESCRIPTION),
        (max(keyword_scores, default=0), MatchClass.KEYWORD),
        (max(category_scores, default=0), MatchClass.CATEGORY),
    ):
        if field_score > best_score:
            best_score, match_class = field_score, field_class

    return ActionMatch(action, score, match_class, action_indices, name_indices)
