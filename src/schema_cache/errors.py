"""Exceptions raised by the schema cache."""


class SchemaCacheError(Exception):
    """Base class for all cache-layer errors."""


class EmbeddingUnavailableError(SchemaCacheError):
    """The embedding provider is unconfigured, unreachable, or timed out.

    The cache service recovers from this locally with an exact prompt match,
    so callers of the service never see it.
    """


class StoreUnavailableError(SchemaCacheError):
    """The artifact store could not be read or written.

    Callers should treat this as a cache miss and proceed to generation.
    """


class ArtifactValidationError(SchemaCacheError, ValueError):
    """A store request was rejected before anything was persisted."""
