"""Read-only report models returned by the cache service."""

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Aggregate statistics over every stored entry."""

    total_cached: int = Field(0, description="Number of stored entries", ge=0)
    total_hits: int = Field(0, description="Sum of hit counts", ge=0)
    total_tokens_saved: int = Field(
        0,
        description="Sum of tokens_used * hit_count over entries",
        ge=0,
    )
    avg_similarity: float = Field(0.0, description="Mean similarity recorded at hit time")
    hit_rate: float = Field(
        0.0,
        description="Hits over hits plus generations (one generation per entry)",
        ge=0.0,
        le=1.0,
    )
    cost_saved: float = Field(0.0, description="Cost of the saved tokens in USD", ge=0.0)


class EmbeddingStatus(BaseModel):
    """Embedding configuration as seen by the cache."""

    configured: bool = Field(..., description="Whether an embedding provider is configured")
    model: str = Field(..., description="Active embedding model identifier")
    fallback: bool = Field(
        ...,
        description="Whether lookups are limited to exact prompt matches",
    )


class PromptUsage(BaseModel):
    """Usage summary for one cached prompt."""

    prompt: str
    hit_count: int = Field(..., ge=0)
    tokens_used: int = Field(..., ge=0)
    tokens_saved: int = Field(..., ge=0)
