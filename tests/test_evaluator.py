"""
Tests for threshold evaluation.
"""

import pytest

from schema_cache.evaluator import CacheEvaluator, QueryPair, ThresholdResult


@pytest.fixture
def pairs() -> list[QueryPair]:
    return [
        QueryPair(
            "A blog with posts comments and tags please",
            "A blog with posts comments and tags",
            should_match=True,
        ),
        QueryPair(
            "Online store with products orders and customers today",
            "Online store with products orders and customers",
            should_match=True,
        ),
        QueryPair(
            "Hospital patient appointment scheduling",
            "Football league fixtures results",
            should_match=False,
        ),
    ]


class TestThresholdResult:
    def test_metrics(self):
        result = ThresholdResult(threshold=0.9)
        outcomes = (
            [(True, True, True)] * 5  # served the right schema
            + [(True, False, False)]  # served a schema it should not have
            + [(False, False, False)] * 2
            + [(False, False, True)] * 2
        )
        for hit, correct, expected in outcomes:
            result.record(hit, correct, expected, elapsed_ms=2.0)

        assert result.lookups == 10
        assert result.hit_rate == pytest.approx(0.6)
        assert result.precision == pytest.approx(5 / 6)
        assert result.recall == pytest.approx(5 / 7)
        assert result.f1_score == pytest.approx(2 * (5 / 6) * (5 / 7) / ((5 / 6) + (5 / 7)))
        assert result.avg_lookup_ms == pytest.approx(2.0)
        assert result.as_row()["threshold"] == 0.9

    def test_hit_on_wrong_entry_is_a_false_positive(self):
        result = ThresholdResult(threshold=0.5)

        result.record(hit=True, correct=False, expected=True, elapsed_ms=1.0)

        assert result.false_positives == 1
        assert result.true_positives == 0

    def test_empty_result(self):
        result = ThresholdResult(threshold=0.5)

        assert result.hit_rate == 0.0
        assert result.precision == 0.0
        assert result.recall == 0.0
        assert result.f1_score == 0.0
        assert result.avg_lookup_ms == 0.0


class TestCacheEvaluator:
    @pytest.mark.asyncio
    async def test_evaluate_threshold(self, cache, pairs):
        evaluator = CacheEvaluator(cache)

        result = await evaluator.evaluate_threshold(0.85, pairs)

        assert result.lookups == 3
        assert result.true_positives == 2
        assert result.true_negatives == 1
        assert result.false_positives == 0
        assert result.precision == 1.0
        assert result.recall == 1.0

    @pytest.mark.asyncio
    async def test_sweep_clears_between_runs(self, cache, pairs):
        evaluator = CacheEvaluator(cache)

        results = await evaluator.sweep_thresholds(pairs, 0.5, 0.95, steps=4)

        assert [round(r.threshold, 2) for r in results] == [0.5, 0.65, 0.8, 0.95]
        assert cache.repository.count() == 0
        # Recall can only drop as the threshold rises
        recalls = [r.recall for r in results]
        assert recalls == sorted(recalls, reverse=True)

    @pytest.mark.asyncio
    async def test_best_threshold(self, cache, pairs):
        evaluator = CacheEvaluator(cache)
        await evaluator.sweep_thresholds(pairs, 0.5, 0.95, steps=4)

        best = evaluator.best_threshold("f1_score")

        assert best.f1_score == max(r.f1_score for r in evaluator.results)
        # Ties resolve to the strictest threshold
        assert best.threshold == max(
            r.threshold for r in evaluator.results if r.f1_score == best.f1_score
        )

    def test_best_threshold_requires_results(self, cache):
        with pytest.raises(ValueError, match="sweep_thresholds"):
            CacheEvaluator(cache).best_threshold()

    def test_unknown_metric(self, cache):
        evaluator = CacheEvaluator(cache)
        evaluator.results = [ThresholdResult(threshold=0.9)]

        with pytest.raises(ValueError, match="Unknown metric"):
            evaluator.best_threshold("accuracy")

    @pytest.mark.asyncio
    async def test_summary(self, cache, pairs):
        evaluator = CacheEvaluator(cache)
        assert evaluator.format_summary() == "Nothing evaluated yet."

        await evaluator.evaluate_threshold(0.85, pairs)

        summary = evaluator.format_summary()
        assert "0.850" in summary
        assert "best f1_score" in summary
