"""Data Transfer Objects for the cache's public contracts.

These Pydantic models define what callers hand to the cache (artifacts)
and what they get back (stats and status reports).

Internal storage records use the dataclasses from the entities package.
"""

from .artifact import (
    ARTIFACT_ADAPTER,
    Artifact,
    ArtifactMetadata,
    ColumnDefinition,
    DatabaseSchema,
    EnumDefinition,
    FunctionDefinition,
    IndexDefinition,
    PolicyDefinition,
    RelationshipDefinition,
    SchemaArtifact,
    TableDefinition,
    TemplateArtifact,
    TriggerDefinition,
    dump_artifact,
    load_artifact,
    parse_artifact,
)
from .stats import CacheStats, EmbeddingStatus, PromptUsage

__all__ = [
    "ARTIFACT_ADAPTER",
    "Artifact",
    "ArtifactMetadata",
    "ColumnDefinition",
    "DatabaseSchema",
    "EnumDefinition",
    "FunctionDefinition",
    "IndexDefinition",
    "PolicyDefinition",
    "RelationshipDefinition",
    "SchemaArtifact",
    "TableDefinition",
    "TemplateArtifact",
    "TriggerDefinition",
    "dump_artifact",
    "load_artifact",
    "parse_artifact",
    "CacheStats",
    "EmbeddingStatus",
    "PromptUsage",
]
