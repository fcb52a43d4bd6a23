"""
Tests for key effectiveness analysis and strategy comparison.
"""

import pytest

from wardrobe_cache.evaluator import SampleRequest, StrategyEvaluator, analyze_key_effectiveness
from wardrobe_cache.models import PerformanceMetrics


class TestAnalyzeKeyEffectiveness:
    def test_low_hit_rate_and_specific_keys(self):
        report = analyze_key_effectiveness(["a", "b", "c"], {"a": 0.1, "b": 0.2, "c": 0.0})

        assert report.average_hit_rate == 0.1
        assert report.key_distribution == 1.0
        assert len(report.recommendations) == 2
        assert "performance" in report.recommendations[0]

    def test_generic_keys(self):
        report = analyze_key_effectiveness(["a", "a", "a", "b"], {"a": 0.9, "b": 0.7})

        assert report.average_hit_rate == 0.8
        assert report.key_distribution == 0.5
        assert report.recommendations == []

        report = analyze_key_effectiveness(["a", "a", "a", "a", "b"], {"a": 0.9})
        assert report.key_distribution == 0.4
        assert "too generic" in report.recommendations[0]

    def test_empty_input(self):
        report = analyze_key_effectiveness([], {})
        assert report.to_dict()["key_distribution"] == 0.0


class TestStrategyEvaluator:
    @pytest.fixture
    def samples(self, sample_items):
        recolored = [dict(item, color="Red") for item in sample_items]
        return [
            SampleRequest("u1", "outfit-generation", sample_items, {"occasion": "work"}),
            SampleRequest("u1", "outfit-generation", recolored, {"occasion": "work"}),
            SampleRequest("u1", "outfit-generation", sample_items, {"occasion": "Work"}),
        ]

    def test_compare(self, composer, samples):
        evaluator = StrategyEvaluator(composer)
        results = {r.strategy: r for r in evaluator.compare(samples)}

        assert list(results) == ["performance", "balanced", "precision"]
        assert results["performance"].unique_keys == 1
        assert results["balanced"].unique_keys == 2
        assert results["precision"].unique_keys == 2
        assert evaluator.find_best().strategy == "performance"
        assert "performance" in evaluator.summary()

    def test_find_best_requires_results(self):
        with pytest.raises(ValueError):
            StrategyEvaluator().find_best()


class TestPerformanceMetrics:
    def test_counters(self):
        metrics = PerformanceMetrics()
        metrics.record_hit(2.0)
        metrics.record_miss(4.0, invalidated=True)
        metrics.record_store(True)
        metrics.record_store(False, duplicate=True)
        metrics.record_generation(100.0, success=False)

        data = metrics.to_dict()
        assert data["lookups"] == 2
        assert data["hit_rate"] == 0.5
        assert data["invalidations"] == 1
        assert data["avg_lookup_time_ms"] == 3.0
        assert data["stores"] == 1
        assert data["duplicate_stores"] == 1
        assert data["generation_failures"] == 1
