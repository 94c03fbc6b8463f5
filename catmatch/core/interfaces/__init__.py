"""Core interfaces (ports) for dependency injection."""

from catmatch.core.interfaces.matching import (
    CatalogSnapshot,
    IMatchStrategy,
    MatchStrategyFactory,
)
from catmatch.core.interfaces.storage import (
    IAuditLogStore,
    ICatalogStore,
    IFileStore,
    IMatchStore,
    IUploadStore,
)

__all__ = [
    # Storage interfaces
    "ICatalogStore",
    "IUploadStore",
    "IMatchStore",
    "IAuditLogStore",
    "IFileStore",
    # Matching interfaces
    "IMatchStrategy",
    "MatchStrategyFactory",
    "CatalogSnapshot",
]
