"""
Catalog matching strategies.

Scores a free-text line item against a catalog snapshot. The reference
strategy blends token overlap with a character-level similarity ratio
(difflib.SequenceMatcher). It is deterministic and holds no mutable
state after construction, so one instance can serve concurrent workers.
"""

import re
import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher

from catmatch.config import get_logger
from catmatch.core.entities.catalog import CatalogEntry
from catmatch.core.entities.match import ScoredEntry
from catmatch.core.interfaces.matching import CatalogSnapshot, IMatchStrategy

logger = get_logger(__name__)

# Score weights, summing to 1.0
COVERAGE_WEIGHT = 0.45
DICE_WEIGHT = 0.35
RATIO_WEIGHT = 0.20

DEFAULT_TOP_K = 5
DEFAULT_MIN_SCORE = 20.0

STOPWORDS = frozenset(
    {
        # Portuguese catalog descriptions
        "a", "o", "as", "os", "de", "da", "do", "das", "dos", "e", "em",
        "para", "com", "sem", "por", "tipo",
        # English
        "the", "of", "and", "for", "with", "without",
    }
)

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def normalize_text(text: str) -> str:
    """Fold case and accents, replace punctuation with spaces, collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return _NON_ALNUM.sub(" ", stripped.casefold()).strip()


def tokenize(text: str) -> frozenset[str]:
    """Significant tokens of a normalized text."""
    return frozenset(
        t
        for t in normalize_text(text).split()
        if t not in STOPWORDS and (len(t) > 1 or t.isdigit())
    )


def fuzzy_ratio(a: str, b: str) -> float:
    """Normalized Levenshtein-like similarity ratio using SequenceMatcher."""
    return SequenceMatcher(None, a, b).ratio()


@dataclass(frozen=True)
class _IndexedEntry:
    entry: CatalogEntry
    normalized_name: str
    name_tokens: frozenset[str]
    all_tokens: frozenset[str]


class TokenOverlapStrategy(IMatchStrategy):
    """
    Keyword-overlap scorer.

    score = 100 * (0.45 * coverage + 0.35 * dice + 0.20 * ratio) where
    coverage is the share of query tokens found in the entry (name or
    keywords), dice is the Dice coefficient between query and name tokens
    and ratio is the SequenceMatcher ratio of the normalized strings.
    An exact normalized name scores 100. Entries sharing no token with the
    query, or scoring under `min_score`, are dropped.
    """

    def __init__(
        self,
        snapshot: CatalogSnapshot,
        top_k: int = DEFAULT_TOP_K,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> None:
        self._top_k = top_k
        self._min_score = min_score
        self._entries: tuple[_IndexedEntry, ...] = tuple(
            self._index(entry) for entry in snapshot.entries
        )

    @property
    def name(self) -> str:
        return "token_overlap"

    @staticmethod
    def _index(entry: CatalogEntry) -> _IndexedEntry:
        name_tokens = tokenize(entry.name)
        keyword_tokens: frozenset[str] = frozenset()
        for keyword in entry.keywords:
            keyword_tokens |= tokenize(keyword)
        return _IndexedEntry(
            entry=entry,
            normalized_name=normalize_text(entry.name),
            name_tokens=name_tokens,
            all_tokens=name_tokens | keyword_tokens,
        )

    def match(self, text: str) -> list[ScoredEntry]:
        normalized_query = normalize_text(text)
        query_tokens = tokenize(text)
        if not normalized_query or not query_tokens:
            return []

        results: list[ScoredEntry] = []
        for indexed in self._entries:
            score = self._score(normalized_query, query_tokens, indexed)
            if score is None or score < self._min_score:
                continue
            results.append(
                ScoredEntry(
                    catalog_entry_id=indexed.entry.id,
                    name=indexed.entry.name,
                    score=score,
                )
            )

        results.sort(key=lambda r: (-r.score, r.name, r.catalog_entry_id))
        return results[: self._top_k]

    @staticmethod
    def _score(
        normalized_query: str,
        query_tokens: frozenset[str],
        indexed: _IndexedEntry,
    ) -> float | None:
        if normalized_query == indexed.normalized_name:
            return 100.0

        shared = query_tokens & indexed.all_tokens
        if not shared:
            return None

        coverage = len(shared) / len(query_tokens)
        name_shared = query_tokens & indexed.name_tokens
        name_size = len(indexed.name_tokens) or 1
        dice = 2 * len(name_shared) / (len(query_tokens) + name_size)
        ratio = fuzzy_ratio(normalized_query, indexed.normalized_name)

        score = 100 * (COVERAGE_WEIGHT * coverage + DICE_WEIGHT * dice + RATIO_WEIGHT * ratio)
        # Only an exact name may claim a perfect score
        return round(min(score, 99.99), 2)


def create_match_strategy(
    snapshot: CatalogSnapshot,
    top_k: int = DEFAULT_TOP_K,
    min_score: float = DEFAULT_MIN_SCORE,
) -> IMatchStrategy:
    """Build the default strategy for a snapshot."""
    logger.debug("match_strategy_built", strategy="token_overlap", entries=len(snapshot))
    return TokenOverlapStrategy(snapshot, top_k=top_k, min_score=min_score)
