#!/usr/bin/env python3
"""
Demo script for the schema cache.

Runs the cache in front of a fake schema generator, then tunes the
similarity threshold. Uses the in-memory backend, so no Redis is needed;
embeddings come from EMBEDDING_PROVIDER (set OPENAI_API_KEY, run Ollama,
or use EMBEDDING_PROVIDER=local). Without embeddings the cache falls back
to exact prompt matching, which the demo shows too.
"""

import asyncio
import logging
from dataclasses import replace

from schema_cache import (
    CacheEvaluator,
    QueryPair,
    SchemaArtifact,
    SchemaCacheService,
    configure_logging,
    get_settings,
)

logger = logging.getLogger("schema_cache.demo")


def print_section(title: str) -> None:
    """Print a section header."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print("=" * 70)


async def generate_schema(prompt: str) -> tuple[SchemaArtifact, int]:
    """Stand-in for the LLM call: a one-table schema named after the prompt."""
    await asyncio.sleep(0.2)
    table = prompt.split()[-1].lower().strip(".,") or "items"
    artifact = SchemaArtifact.model_validate(
        {
            "database_schema": {
                "tables": [
                    {
                        "name": table,
                        "columns": [
                            {"name": "id", "type": "uuid", "primary": True},
                            {"name": "created_at", "type": "timestamp", "required": True},
                        ],
                    }
                ]
            },
            "sql": f"CREATE TABLE {table} (id uuid PRIMARY KEY, created_at timestamptz NOT NULL);",
            "metadata": {"description": prompt},
        }
    )
    return artifact, 2400


async def get_or_generate(cache: SchemaCacheService, prompt: str) -> None:
    entry = await cache.find_similar(prompt)
    if entry is not None:
        print(f"  ✓ HIT   {prompt!r}")
        print(f"          served from {entry.prompt!r} (hits: {entry.hit_count})")
        return

    artifact, tokens = await generate_schema(prompt)
    await cache.store(prompt, artifact, tokens)
    print(f"  ✗ MISS  {prompt!r} -> generated and stored ({tokens} tokens)")


async def demo_basic_cache(cache: SchemaCacheService) -> None:
    """Demonstrate the lookup-generate-store loop."""
    print_section("Cache in front of schema generation")

    status = cache.get_embedding_status()
    print(f"\n  Embedding model: {status.model}")
    print(f"  Exact-match fallback: {'yes' if status.fallback else 'no'}\n")

    prompts = [
        "A blog platform with posts, comments and tags",
        "Blog platform with posts, comments and tags",
        "An online store with products, orders and customers",
        "A blog platform with posts, comments and tags",
        "Clinic appointment booking for doctors and patients",
        "An online shop with products, orders and customers",
    ]
    for prompt in prompts:
        await get_or_generate(cache, prompt)


def demo_stats(cache: SchemaCacheService) -> None:
    """Show what the cache saved."""
    print_section("Statistics")

    stats = cache.get_stats()
    print(f"\n  Entries:        {stats.total_cached}")
    print(f"  Hits:           {stats.total_hits}")
    print(f"  Hit rate:       {stats.hit_rate:.1%}")
    print(f"  Tokens saved:   {stats.total_tokens_saved}")
    print(f"  Cost saved:     ${stats.cost_saved:.4f}")
    print(f"  Avg similarity: {stats.avg_similarity:.3f}")

    print("\n  Most used prompts:")
    for usage in cache.get_most_used_prompts(limit=3):
        print(f"    {usage.hit_count:>3}  {usage.prompt}")


async def demo_threshold_tuning(cache: SchemaCacheService) -> None:
    """Demonstrate threshold tuning."""
    print_section("Threshold Tuning")

    test_queries = [
        # Should match (same schema)
        QueryPair("Blog with posts and comments", "A blogging app with posts and comments", True),
        QueryPair("Online store for shoes", "E-commerce shop selling shoes", True),
        QueryPair("Todo list with projects", "Task manager with projects and todos", True),
        # Should not match (different schema)
        QueryPair("Blog with posts and comments", "Hotel room reservations", False),
        QueryPair("Online store for shoes", "Payroll for employees", False),
    ]

    evaluator = CacheEvaluator(cache)
    await evaluator.sweep_thresholds(test_queries, low=0.70, high=0.98, steps=8)
    evaluator.print_summary()


async def main() -> None:
    """Run all demos."""
    configure_logging()
    print("\n🚀 Schema Cache Demo")

    settings = replace(get_settings(), cache_backend="memory")
    cache = SchemaCacheService.create(settings=settings)

    try:
        await demo_basic_cache(cache)
        demo_stats(cache)

        if cache.get_embedding_status().configured:
            cache.clear()
            await demo_threshold_tuning(cache)
        else:
            print("\nSkipping threshold tuning: no embedding provider configured.")

        print("\n✅ Demo completed successfully!")
    except Exception:
        logger.exception("Demo failed")
    finally:
        await cache.close()


if __name__ == "__main__":
    asyncio.run(main())
