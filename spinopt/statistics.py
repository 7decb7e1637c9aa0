"""
Decay-weighted statistics over a replayed prefix of history.

Every aggregate here is computed only from the records handed in, which
during replay are the records *before* the spin being scored. A record at
position i of n contributes weight decay_factor ** (n - 1 - i): the most
recent record weighs 1 and older records shrink geometrically.
"""
from dataclasses import dataclass, field
from typing import Dict, List

import numpy as np
from loguru import logger

from spinopt.config import MAX_POCKET, MIN_POCKET
from spinopt.history import STATUS_PENDING, STATUS_SUCCESS, HistoryRecord, sort_history
from spinopt.prediction_types import PredictionType
from spinopt.wheel import WheelTopology, is_valid_pocket


def decay_weights(n: int, decay_factor: float) -> np.ndarray:
    """Weights for n records, oldest first."""
    if n <= 0:
        return np.empty(0, dtype=float)
    exponents = np.arange(n - 1, -1, -1, dtype=float)
    return np.power(float(decay_factor), exponents)


@dataclass
class TrendStats:
    averages: Dict[str, float] = field(default_factory=dict)
    current_streaks: Dict[str, int] = field(default_factory=dict)
    weighted_successes: Dict[str, float] = field(default_factory=dict)
    weighted_attempts: Dict[str, float] = field(default_factory=dict)
    last_success_state: List[str] = field(default_factory=list)


@dataclass
class BoardStat:
    success: float = 0.0
    total: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Weighted hit rate as a percentage."""
        return self.success / self.total * 100 if self.total > 0 else 0.0


class StatisticsEngine:
    """Trend, board-state and neighbour-popularity aggregates for the scoring oracle."""

    def __init__(self, prediction_types: List[PredictionType], wheel: WheelTopology,
                 dynamic_terminals: bool = True):
        self.prediction_types = list(prediction_types)
        self._types_by_id = {t.id: t for t in self.prediction_types}
        self.wheel = wheel
        self.dynamic_terminals = dynamic_terminals

    def calculate_trend_stats(self, history: List[HistoryRecord], decay_factor: float) -> TrendStats:
        """
        Per prediction type: the running success streak, the mean length of
        all streaks seen, and decay-weighted successes over attempts.
        Pending records are skipped but still age the records before them.
        """
        ordered = sort_history(history)
        weights = decay_weights(len(ordered), decay_factor)
        type_ids = [t.id for t in self.prediction_types]

        finished_streaks = {type_id: [] for type_id in type_ids}
        stats = TrendStats(
            current_streaks={type_id: 0 for type_id in type_ids},
            weighted_successes={type_id: 0.0 for type_id in type_ids},
            weighted_attempts={type_id: 0.0 for type_id in type_ids},
        )

        for record, weight in zip(ordered, weights):
            if record.status == STATUS_PENDING:
                continue
            for type_id in type_ids:
                if type_id in record.type_success_status:
                    stats.weighted_attempts[type_id] += weight
                if record.type_success_status.get(type_id):
                    stats.current_streaks[type_id] += 1
                    stats.weighted_successes[type_id] += weight
                else:
                    if stats.current_streaks[type_id] > 0:
                        finished_streaks[type_id].append(stats.current_streaks[type_id])
                    stats.current_streaks[type_id] = 0
            if record.status == STATUS_SUCCESS:
                stats.last_success_state = list(record.hit_types)

        for type_id in type_ids:
            streaks = list(finished_streaks[type_id])
            if stats.current_streaks[type_id] > 0:
                streaks.append(stats.current_streaks[type_id])
            stats.averages[type_id] = float(np.mean(streaks)) if streaks else 0.0
        return stats

    def get_board_state_stats(self, history: List[HistoryRecord], decay_factor: float) -> Dict[str, BoardStat]:
        """Decay-weighted success and attempt totals per prediction type."""
        stats = {t.id: BoardStat() for t in self.prediction_types}
        weights = decay_weights(len(history), decay_factor)
        for record, weight in zip(history, weights):
            for type_id, stat in stats.items():
                if type_id in record.type_success_status:
                    stat.total += weight
            if record.status == STATUS_SUCCESS:
                for type_id in record.hit_types:
                    if type_id in stats:
                        stats[type_id].success += weight
        return stats

    def run_neighbour_analysis(self, history: List[HistoryRecord], decay_factor: float) -> Dict[int, float]:
        """Decay-weighted count of winning hit zones covering each pocket."""
        scores = {pocket: 0.0 for pocket in range(MIN_POCKET, MAX_POCKET + 1)}
        weights = decay_weights(len(history), decay_factor)
        for record, weight in zip(history, weights):
            if record.status != STATUS_SUCCESS:
                continue
            for type_id in record.hit_types:
                prediction_type = self._types_by_id.get(type_id)
                if prediction_type is None:
                    continue
                base_number = prediction_type.calculate_base(record.num1, record.num2)
                if not is_valid_pocket(base_number):
                    continue
                zone = self.wheel.hit_zone_for(base_number, record.winning_number, self.dynamic_terminals)
                for pocket in zone:
                    if pocket in scores:
                        scores[pocket] += weight
        logger.trace(f"Neighbour analysis over {len(history)} records complete.")
        return scores
