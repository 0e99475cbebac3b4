"""
Threshold tuning for the schema cache.

Replays labelled prompt pairs against a cache at several similarity
thresholds and scores each threshold as a binary classifier: a hit that
served the paired prompt's entry is a true positive, any other hit is a
false positive.
"""

import logging
import time
from dataclasses import dataclass, field

import numpy as np

from schema_cache.dto import DatabaseSchema, SchemaArtifact
from schema_cache.services import SchemaCacheService

logger = logging.getLogger(__name__)

METRICS = ("f1_score", "precision", "recall", "hit_rate")


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass
class ThresholdResult:
    """Confusion matrix and latency for one threshold."""

    threshold: float
    true_positives: int = 0
    false_positives: int = 0
    true_negatives: int = 0
    false_negatives: int = 0
    lookup_ms: list[float] = field(default_factory=list)

    def record(self, hit: bool, correct: bool, expected: bool, elapsed_ms: float) -> None:
        """Count one lookup.

        Args:
            hit: Whether the cache returned an entry
            correct: Whether that entry belongs to the paired cached prompt
            expected: Whether the pair was labelled as matching
            elapsed_ms: Lookup latency
        """
        self.lookup_ms.append(elapsed_ms)
        if hit:
            if expected and correct:
                self.true_positives += 1
            else:
                self.false_positives += 1
        elif expected:
            self.false_negatives += 1
        else:
            self.true_negatives += 1

    @property
    def lookups(self) -> int:
        return len(self.lookup_ms)

    @property
    def hits(self) -> int:
        return self.true_positives + self.false_positives

    @property
    def hit_rate(self) -> float:
        return _ratio(self.hits, self.lookups)

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.hits)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1_score(self) -> float:
        p, r = self.precision, self.recall
        return 2 * p * r / (p + r) if p + r else 0.0

    @property
    def avg_lookup_ms(self) -> float:
        return float(np.mean(self.lookup_ms)) if self.lookup_ms else 0.0

    def as_row(self) -> dict[str, float]:
        row = {"threshold": self.threshold, "lookups": self.lookups, "hits": self.hits}
        row.update({metric: getattr(self, metric) for metric in METRICS})
        row["avg_lookup_ms"] = self.avg_lookup_ms
        return row


@dataclass
class QueryPair:
    """A lookup prompt, the prompt already cached, and whether they should match."""

    query: str
    cached_query: str
    should_match: bool


def placeholder_artifact(prompt: str) -> SchemaArtifact:
    """Minimal valid artifact standing in for a generated schema."""
    return SchemaArtifact(
        database_schema=DatabaseSchema(tables=()),
        sql=f"-- generated for: {prompt}",
    )


class CacheEvaluator:
    """Replays labelled prompt pairs against a SchemaCacheService.

    The cache is cleared between thresholds, so hand it a dedicated
    instance (the in-memory backend is a good fit), never a production cache.
    """

    def __init__(self, cache: SchemaCacheService) -> None:
        self.cache = cache
        self.results: list[ThresholdResult] = []

    async def _seed(self, pairs: list[QueryPair]) -> None:
        for prompt in dict.fromkeys(pair.cached_query for pair in pairs):
            await self.cache.store(prompt, placeholder_artifact(prompt), tokens_used=0)

    async def evaluate_threshold(
        self,
        threshold: float,
        pairs: list[QueryPair],
    ) -> ThresholdResult:
        """Seed the cached prompts, then look up every query at ``threshold``."""
        result = ThresholdResult(threshold=float(threshold))
        await self._seed(pairs)

        for pair in pairs:
            started = time.perf_counter()
            entry = await self.cache.find_similar(pair.query, threshold=threshold)
            elapsed_ms = (time.perf_counter() - started) * 1000

            result.record(
                hit=entry is not None,
                correct=entry is not None and entry.prompt == pair.cached_query,
                expected=pair.should_match,
                elapsed_ms=elapsed_ms,
            )

        self.results.append(result)
        return result

    async def sweep_thresholds(
        self,
        pairs: list[QueryPair],
        low: float = 0.70,
        high: float = 0.99,
        steps: int = 10,
    ) -> list[ThresholdResult]:
        """Evaluate ``steps`` evenly spaced thresholds from ``low`` to ``high``.

        Every threshold starts from an empty cache.
        """
        self.results = []
        self.cache.clear()

        for threshold in np.linspace(low, high, steps):
            result = await self.evaluate_threshold(float(threshold), pairs)
            logger.info(
                "Threshold %.3f: hit rate %.1f%%, precision %.1f%%, recall %.1f%%",
                threshold,
                result.hit_rate * 100,
                result.precision * 100,
                result.recall * 100,
            )
            self.cache.clear()

        return self.results

    def best_threshold(self, metric: str = "f1_score") -> ThresholdResult:
        """Result with the highest ``metric``; ties go to the stricter threshold."""
        if metric not in METRICS:
            raise ValueError(f"Unknown metric {metric!r}, expected one of {list(METRICS)}")
        if not self.results:
            raise ValueError("Nothing evaluated yet; call sweep_thresholds first")
        return max(self.results, key=lambda r: (getattr(r, metric), r.threshold))

    def format_summary(self) -> str:
        if not self.results:
            return "Nothing evaluated yet."

        header = "".join(f"{name:<12}" for name in ("threshold", *METRICS))
        lines = [header, "-" * len(header)]
        for result in self.results:
            cells = [f"{result.threshold:<12.3f}"]
            cells += [f"{getattr(result, metric):<12.1%}" for metric in METRICS]
            lines.append("".join(cells))

        lines.append("")
        for metric in METRICS:
            best = self.best_threshold(metric)
            lines.append(f"best {metric}: {best.threshold:.3f} ({getattr(best, metric):.1%})")
        return "\n".join(lines)

    def print_summary(self) -> None:
        print(self.format_summary())
