"""Cost and usage accounting over cache entries.

Everything here is read-only: functions take a snapshot of entries and
derive numbers from it, never touching the store.
"""

from collections.abc import Iterable

from schema_cache.dto import CacheStats, PromptUsage
from schema_cache.entities import CacheEntryEntity

# Blended input/output price of the generation model, USD per 1K tokens
COST_PER_1K_TOKENS = 0.045


def calculate_cost_savings(tokens: int, cost_per_1k_tokens: float = COST_PER_1K_TOKENS) -> float:
    """Cost of ``tokens`` generation tokens, i.e. what a hit saves.

    Args:
        tokens: Number of tokens not spent
        cost_per_1k_tokens: Price per thousand tokens

    Returns:
        Cost in USD; 0.0 for zero tokens

    Raises:
        ValueError: If tokens is negative
    """
    if tokens < 0:
        raise ValueError(f"tokens must be non-negative, got {tokens}")
    if tokens == 0:
        return 0.0
    return tokens / 1000 * cost_per_1k_tokens


def summarize(
    entries: Iterable[CacheEntryEntity],
    cost_per_1k_tokens: float = COST_PER_1K_TOKENS,
) -> CacheStats:
    """Aggregate statistics over a snapshot of entries.

    Each hit avoided one regeneration of its entry, so tokens saved is
    ``tokens_used * hit_count`` summed over entries. The average similarity
    is the mean of every score recorded at hit time.
    """
    total_cached = 0
    total_hits = 0
    total_tokens_saved = 0
    similarity_sum = 0.0

    for entry in entries:
        total_cached += 1
        total_hits += entry.hit_count
        total_tokens_saved += entry.tokens_used * entry.hit_count
        similarity_sum += entry.similarity_total

    if total_cached == 0:
        return CacheStats()

    # One generation per entry, one avoided generation per hit
    lookups = total_hits + total_cached

    return CacheStats(
        total_cached=total_cached,
        total_hits=total_hits,
        total_tokens_saved=total_tokens_saved,
        avg_similarity=similarity_sum / total_hits if total_hits else 0.0,
        hit_rate=total_hits / lookups,
        cost_saved=calculate_cost_savings(total_tokens_saved, cost_per_1k_tokens),
    )


def most_used(entries: Iterable[CacheEntryEntity], limit: int = 10) -> list[PromptUsage]:
    """Most frequently hit prompts, busiest first."""
    ranked = sorted(entries, key=lambda e: (e.hit_count, e.created_at), reverse=True)
    return [
        PromptUsage(
            prompt=e.prompt,
            hit_count=e.hit_count,
            tokens_used=e.tokens_used,
            tokens_saved=e.tokens_used * e.hit_count,
        )
        for e in ranked[:limit]
    ]
