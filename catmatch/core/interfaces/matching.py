"""
Abstract interface for match scoring strategies.

The orchestrator only depends on IMatchStrategy, so the reference
token-overlap scorer can be replaced by a similarity model without
touching any caller.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from catmatch.core.entities.catalog import CatalogEntry
from catmatch.core.entities.match import ScoredEntry


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of the active catalog taken at the start of a run."""

    entries: tuple[CatalogEntry, ...]

    @classmethod
    def from_entries(cls, entries: list[CatalogEntry]) -> "CatalogSnapshot":
        return cls(entries=tuple(e for e in entries if e.active))

    def __len__(self) -> int:
        return len(self.entries)


class IMatchStrategy(ABC):
    """
    Scores free text against a catalog snapshot.

    Implementations must be deterministic for a fixed snapshot, must not
    touch persisted state, and must be safe to call from several workers.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier name."""

    @abstractmethod
    def match(self, text: str) -> list[ScoredEntry]:
        """
        Rank catalog entries for `text`.

        Returns:
            ScoredEntry list sorted by score descending (0-100), possibly empty.
        """


MatchStrategyFactory = Callable[[CatalogSnapshot], IMatchStrategy]
