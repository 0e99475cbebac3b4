"""Domain entities for internal representation.

These are frozen dataclasses used by the service and the repositories.
Artifacts inside them are validated pydantic models from the dto package;
the entities themselves carry no serialization logic.
"""

from .cache_entry import CacheEntryEntity, utcnow
from .cache_match import CacheMatchEntity

__all__ = ["CacheEntryEntity", "CacheMatchEntity", "utcnow"]
