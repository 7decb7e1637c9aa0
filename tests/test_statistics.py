"""
Tests for the decay-weighted statistics engine and the record evaluator.
"""
import numpy as np
import pytest

from spinopt.evaluator import Evaluator
from spinopt.history import STATUS_FAIL, STATUS_PENDING, STATUS_SUCCESS, HistoryRecord
from spinopt.statistics import StatisticsEngine, decay_weights


def evaluated(evaluator, record_id, num1, winning_number):
    record = HistoryRecord(id=record_id, num1=num1, num2=0)
    return evaluator.evaluate_record(record, winning_number)


class TestDecayWeights:
    """Test suite for geometric recency weights."""

    def test_most_recent_weighs_one(self):
        np.testing.assert_allclose(decay_weights(3, 0.5), [0.25, 0.5, 1.0])

    def test_empty(self):
        assert len(decay_weights(0, 0.9)) == 0


class TestEvaluator:
    """Test suite for per-record outcome evaluation."""

    def test_hit_and_miss(self, echo_types, bare_wheel):
        evaluator = Evaluator(echo_types, bare_wheel)
        hit = evaluated(evaluator, 1, 12, 12)
        assert hit.hit_types == ["echo"]
        assert hit.type_success_status == {"echo": True}
        assert hit.status == STATUS_SUCCESS
        assert hit.pocket_distance == 0

        miss = evaluated(evaluator, 2, 12, 13)
        assert miss.hit_types == []
        assert miss.type_success_status == {"echo": False}
        assert miss.status == STATUS_FAIL
        assert miss.pocket_distance is None

    def test_out_of_range_base_is_a_miss(self, bare_wheel):
        from spinopt.prediction_types import PredictionType
        evaluator = Evaluator([PredictionType("big", "Big", lambda a, b: a + 40)], bare_wheel)
        record = evaluated(evaluator, 1, 0, 0)
        assert record.type_success_status == {"big": False}
        assert record.status == STATUS_FAIL

    def test_recommended_group_distance(self, echo_types, bare_wheel):
        evaluator = Evaluator(echo_types, bare_wheel)
        record = HistoryRecord(id=1, num1=4, num2=0, recommended_group_id="echo")
        evaluator.evaluate_record(record, 4)
        assert record.recommended_group_pocket_distance == 0

    def test_requires_prediction_types(self, bare_wheel):
        with pytest.raises(ValueError):
            Evaluator([], bare_wheel)


class TestStatisticsEngine:
    """Test suite for trend, board-state and neighbour aggregates."""

    @pytest.fixture
    def engine(self, echo_types, bare_wheel):
        return StatisticsEngine(echo_types, bare_wheel)

    @pytest.fixture
    def replayed(self, echo_types, bare_wheel):
        evaluator = Evaluator(echo_types, bare_wheel)
        # hit, hit, miss, hit, hit
        outcomes = [(1, 3, 3), (2, 9, 9), (3, 9, 20), (4, 14, 14), (5, 31, 31)]
        return [evaluated(evaluator, i, num1, win) for i, num1, win in outcomes]

    def test_trend_streaks(self, engine, replayed):
        stats = engine.calculate_trend_stats(replayed, 0.5)
        assert stats.current_streaks["echo"] == 2
        assert stats.averages["echo"] == pytest.approx(2.0)
        assert stats.last_success_state == ["echo"]

    def test_trend_weighted_totals(self, engine, replayed):
        stats = engine.calculate_trend_stats(replayed, 0.5)
        # weights oldest first: 1/16, 1/8, 1/4, 1/2, 1
        assert stats.weighted_attempts["echo"] == pytest.approx(1.9375)
        assert stats.weighted_successes["echo"] == pytest.approx(1.9375 - 0.25)

    def test_trend_sorts_by_id(self, engine, replayed):
        shuffled = [replayed[i] for i in (4, 0, 3, 1, 2)]
        assert engine.calculate_trend_stats(shuffled, 0.5) == engine.calculate_trend_stats(replayed, 0.5)

    def test_trend_skips_pending(self, engine, replayed):
        pending = HistoryRecord(id=6, num1=1, num2=0)
        assert pending.status == STATUS_PENDING
        stats = engine.calculate_trend_stats(replayed + [pending], 0.5)
        assert stats.current_streaks["echo"] == 2

    def test_board_hit_rate(self, engine, replayed):
        stats = engine.get_board_state_stats(replayed, 0.5)
        assert stats["echo"].total == pytest.approx(1.9375)
        assert stats["echo"].success == pytest.approx(1.6875)
        assert stats["echo"].hit_rate == pytest.approx(1.6875 / 1.9375 * 100)

    def test_board_empty_history(self, engine):
        stats = engine.get_board_state_stats([], 0.9)
        assert stats["echo"].total == 0
        assert stats["echo"].hit_rate == 0

    def test_neighbour_scores(self, engine, replayed):
        scores = engine.run_neighbour_analysis(replayed, 0.5)
        assert set(scores) == set(range(37))
        assert scores[31] == pytest.approx(1.0)
        assert scores[14] == pytest.approx(0.5)
        assert scores[9] == pytest.approx(0.125)
        assert scores[20] == 0
        assert scores[3] == pytest.approx(0.0625)

    def test_only_prefix_is_used(self, engine, replayed):
        """Statistics for a prefix ignore anything after it."""
        prefix_stats = engine.get_board_state_stats(replayed[:2], 0.5)
        assert prefix_stats["echo"].hit_rate == pytest.approx(100.0)
