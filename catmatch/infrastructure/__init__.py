"""Infrastructure layer implementations."""

from catmatch.infrastructure import storage

__all__ = ["storage"]
