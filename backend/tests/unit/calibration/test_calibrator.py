"""Unit tests for weight calibration

Tests cover:
- Applying weights that separate correct from incorrect matches
- Refusing weights that do not improve accuracy
- Insufficient-data reports
- Reason-aware penalties
- Weight bounds and normalization
- Single-flight runs
- Calibrated weights reaching a store-backed registry
"""

import pytest

import sys
from pathlib import Path
backend_src = Path(__file__).parent.parent.parent.parent / "src"
sys.path.insert(0, str(backend_src))

from domain.calibration.calibrator import (
    MAX_DRIFT,
    MIN_WEIGHT,
    Calibrator,
    compute_reason_penalties,
    compute_signal_stats,
    evaluate_accuracy,
    fit_to_bounds,
    propose_weights,
)
from domain.calibration.models import ReviewedMatch
from domain.matching.confidence import WeightRegistry
from domain.matching.models import DEFAULT_WEIGHTS, SIGNAL_NAMES, ConfidenceSignals
from fixtures.fakes import FakeCorpus, FakeWeightStore


def reviewed(is_correct, name, reason=None, **overrides) -> ReviewedMatch:
    values = dict(
        name=name, number=1.0, denominator=1.0, expansion=0.5, variant=0.85, normalization=0.75
    )
    values.update(overrides)
    return ReviewedMatch(
        is_correct=is_correct,
        signals=ConfidenceSignals(**values),
        incorrect_reason=reason,
    )


def corpus(correct=20, incorrect=5, incorrect_name=0.37, reason=None):
    """Correct matches with strong names, incorrect ones with weak names"""
    samples = [reviewed(True, 0.95) for _ in range(correct)]
    samples += [reviewed(False, incorrect_name, reason) for _ in range(incorrect)]
    return samples


def assert_valid_weights(weights):
    assert round(sum(weights.values()), 3) == 1.0
    for name, value in weights.items():
        default = getattr(DEFAULT_WEIGHTS, name)
        assert value >= MIN_WEIGHT
        assert abs(value - default) <= MAX_DRIFT + 1e-9


class TestCalibratorRun:

    def test_applies_improving_weights(self, weight_store):
        registry = WeightRegistry()
        calibrator = Calibrator(FakeCorpus(corpus()), weight_store, registry)

        report = calibrator.run()

        assert report.applied
        assert report.accuracy_before == 80.0
        assert report.accuracy_after == 100.0
        assert report.new_version == 1
        assert report.new_weights == {
            "name": 0.340, "number": 0.142, "denominator": 0.236,
            "expansion": 0.094, "variant": 0.094, "normalization": 0.094,
        }
        assert registry.current().version == 1
        assert registry.current() is weight_store.get_active()
        assert weight_store.metadata[0]["sample_size"] == 25
        assert weight_store.metadata[0]["incorrect_count"] == 5

    def test_name_weight_increases(self, weight_store):
        report = Calibrator(FakeCorpus(corpus()), weight_store, WeightRegistry()).run()
        assert report.new_weights["name"] > DEFAULT_WEIGHTS.name
        assert report.per_signal_stats["name"].separation == pytest.approx(0.58)

    def test_rejects_weights_without_improvement(self, weight_store):
        registry = WeightRegistry()
        report = Calibrator(FakeCorpus(corpus(incorrect_name=0.40)), weight_store, registry).run()

        assert not report.applied
        assert "would not improve" in report.reason
        assert report.accuracy_before == report.accuracy_after == 80.0
        assert weight_store.versions == []
        assert registry.current() is DEFAULT_WEIGHTS

    def test_second_run_is_not_applied(self, weight_store):
        registry = WeightRegistry()
        calibrator = Calibrator(FakeCorpus(corpus()), weight_store, registry)
        calibrator.run()

        report = calibrator.run()

        assert not report.applied
        assert report.old_weights == weight_store.get_active().as_dict()
        assert len(weight_store.versions) == 1

    def test_insufficient_samples(self, weight_store):
        report = Calibrator(
            FakeCorpus(corpus(correct=15, incorrect=4)), weight_store, WeightRegistry()
        ).run()
        assert not report.applied
        assert report.reason.startswith("Insufficient data: 19")
        assert report.new_weights == report.old_weights == DEFAULT_WEIGHTS.as_dict()

    def test_insufficient_negative_examples(self, weight_store):
        report = Calibrator(
            FakeCorpus(corpus(correct=30, incorrect=2)), weight_store, WeightRegistry()
        ).run()
        assert not report.applied
        assert report.reason.startswith("Insufficient negative examples: 2")
        assert weight_store.versions == []

    def test_concurrent_run_is_skipped(self, weight_store):
        inner_reports = []

        class ReentrantCorpus(FakeCorpus):
            def fetch_reviewed(self):
                inner_reports.append(calibrator.run())
                return super().fetch_reviewed()

        calibrator = Calibrator(ReentrantCorpus(corpus()), weight_store, WeightRegistry())
        outer = calibrator.run()

        assert outer.applied
        assert inner_reports[0].reason == "Calibration already in progress"
        assert not inner_reports[0].applied

    def test_store_errors_release_the_run(self, weight_store):
        class BrokenCorpus(FakeCorpus):
            def fetch_reviewed(self):
                raise ConnectionError("database down")

        calibrator = Calibrator(BrokenCorpus([]), weight_store, WeightRegistry())
        with pytest.raises(ConnectionError):
            calibrator.run()
        with pytest.raises(ConnectionError):
            calibrator.run()

    @pytest.mark.parametrize("correct,incorrect", [(15, 4), (30, 2)])
    def test_insufficient_report_uses_stored_baseline(self, weight_store, correct, incorrect):
        Calibrator(FakeCorpus(corpus()), weight_store, WeightRegistry()).run()
        stored = weight_store.get_active().as_dict()

        # Fresh registry still on defaults, as in a newly started worker
        report = Calibrator(
            FakeCorpus(corpus(correct=correct, incorrect=incorrect)), weight_store, WeightRegistry()
        ).run()

        assert not report.applied
        assert stored != DEFAULT_WEIGHTS.as_dict()
        assert report.old_weights == report.new_weights == stored


class TestCalibratedWeightsReachMatcher:

    def test_store_backed_registry_picks_up_new_version_after_ttl(self, weight_store, clock):
        matcher_weights = WeightRegistry(store=weight_store, ttl_seconds=300, clock=clock)
        assert matcher_weights.current().version == 0

        report = Calibrator(FakeCorpus(corpus()), weight_store, WeightRegistry()).run()
        assert report.applied

        clock.advance(299)
        assert matcher_weights.current().version == 0
        clock.advance(2)
        assert matcher_weights.current().version == 1
        assert matcher_weights.current().as_dict() == report.new_weights

    def test_store_failure_keeps_previous_weights(self, clock):
        class FlakyWeightStore(FakeWeightStore):
            fail_with = None

            def get_active(self):
                if self.fail_with is not None:
                    raise self.fail_with
                return super().get_active()

        store = FlakyWeightStore()
        matcher_weights = WeightRegistry(store=store, ttl_seconds=300, clock=clock)
        Calibrator(FakeCorpus(corpus()), store, WeightRegistry()).run()
        assert matcher_weights.current().version == 1

        store.fail_with = ConnectionError("database down")
        clock.advance(301)
        with pytest.raises(ConnectionError):
            matcher_weights.current()

        store.fail_with = None
        assert matcher_weights.current().version == 1


class TestReasonPenalties:

    def test_penalizes_implicated_signals(self):
        samples = corpus(reason="wrong_set")
        penalties, stats = compute_reason_penalties(samples)

        assert penalties["expansion"] == pytest.approx(-0.03)
        assert penalties["denominator"] == pytest.approx(-0.06)
        assert penalties["name"] == 0.0
        assert stats["wrong_set"].applied
        assert stats["wrong_set"].count == 5

    def test_rare_reason_not_applied(self):
        samples = corpus(incorrect=2, reason="wrong_item")
        penalties, stats = compute_reason_penalties(samples)
        assert all(value == 0.0 for value in penalties.values())
        assert not stats["wrong_item"].applied

    def test_untargeted_reason(self):
        penalties, stats = compute_reason_penalties(corpus(reason="wrong_condition"))
        assert stats["wrong_condition"].targeted_signals == ()
        assert not stats["wrong_condition"].applied
        assert all(value == 0.0 for value in penalties.values())


class TestWeightProposal:

    def test_fit_to_bounds_clamps_and_normalizes(self):
        weights = fit_to_bounds({
            "name": 0.9, "number": 0.02, "denominator": 0.02,
            "expansion": 0.02, "variant": 0.02, "normalization": 0.02,
        })
        assert weights["name"] == 0.4
        assert_valid_weights(weights)

    def test_fit_to_bounds_keeps_valid_weights(self):
        assert fit_to_bounds(DEFAULT_WEIGHTS.as_dict()) == DEFAULT_WEIGHTS.as_dict()

    @pytest.mark.parametrize("incorrect_name,reason", [
        (0.10, None),
        (0.37, "wrong_item"),
        (0.60, "wrong_set"),
        (0.95, "wrong_variant"),
    ])
    def test_proposals_stay_in_bounds(self, incorrect_name, reason):
        samples = corpus(incorrect_name=incorrect_name, reason=reason)
        penalties, _ = compute_reason_penalties(samples)
        weights = propose_weights(compute_signal_stats(samples), DEFAULT_WEIGHTS, penalties)
        assert set(weights) == set(SIGNAL_NAMES)
        assert_valid_weights(weights)

    def test_evaluate_accuracy(self):
        assert evaluate_accuracy(corpus(), DEFAULT_WEIGHTS) == 80.0
        assert evaluate_accuracy([], DEFAULT_WEIGHTS) == 0.0
