import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from spinopt.adaptive_feedback import AdaptiveInfluences
from spinopt.config import (
    FACTOR_HIT_RATE,
    FACTOR_HOT_ZONE,
    FACTOR_PROXIMITY,
    FACTOR_STREAK,
    HIT_RATE_BASELINE,
    HIT_RATE_WEIGHT,
    HOT_ZONE_POINTS_CAP,
    HOT_ZONE_WEIGHT,
    NO_FACTOR,
    PROXIMITY_MAX_DISTANCE,
    PROXIMITY_POINTS_PER_POCKET,
    STREAK_POINTS_CAP,
    STREAK_POINTS_PER_HIT,
    STRONG_PLAY_THRESHOLD,
)
from spinopt.prediction_types import PredictionType
from spinopt.statistics import BoardStat, TrendStats
from spinopt.wheel import WheelTopology, is_valid_pocket

SIGNAL_NONE = "Wait for Signal"
SIGNAL_PLAY = "Play"
SIGNAL_STRONG_PLAY = "Strong Play"
SIGNAL_WAIT = "Wait"


@dataclass(frozen=True)
class StrategyToggles:
    use_trend_confirmation: bool = True
    use_weighted_zone: bool = True
    use_proximity_boost: bool = True
    use_dynamic_terminal_neighbour_count: bool = True


@dataclass
class CandidateDetails:
    hit_rate: float = 0.0
    avg_trend: float = 0.0
    current_streak: int = 0
    predictive_distance: float = math.inf
    final_score: float = 0.0
    primary_driving_factor: str = NO_FACTOR
    individual_scores: Dict[str, float] = field(default_factory=dict)


@dataclass
class Candidate:
    type: PredictionType
    score: float
    details: CandidateDetails
    hit_zone: List[int] = field(default_factory=list)


@dataclass
class Recommendation:
    best_candidate: Optional[Candidate]
    signal: str
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def is_actionable(self) -> bool:
        return self.best_candidate is not None and self.signal in (SIGNAL_PLAY, SIGNAL_STRONG_PLAY)


class ScoringOracle:
    """
    Scores every prediction type for the next pair of inputs and picks the best.

    Raw factor points per type:
    - Hit Rate: weighted hit rate above a 40% baseline, half-weighted
    - Streak: current success streak, capped
    - Proximity to Last Spin: closeness of the hit zone to the last winner (within 5 pockets)
    - Hot Zone Weighting: neighbour popularity of the hit zone, capped

    Each raw factor is multiplied by its adaptive influence; the factor with
    the largest influenced contribution is the candidate's primary driving
    factor.
    """

    def __init__(self, prediction_types: List[PredictionType], wheel: WheelTopology):
        if not prediction_types:
            raise ValueError("At least one prediction type is required")
        self.prediction_types = list(prediction_types)
        self.wheel = wheel

    def score_candidate(self, prediction_type: PredictionType, trend_stats: TrendStats,
                        board_stats: Dict[str, BoardStat], neighbour_scores: Dict[int, float],
                        num1: int, num2: int, influences: AdaptiveInfluences,
                        last_winning_number: Optional[int],
                        toggles: StrategyToggles) -> Optional[Candidate]:
        base_number = prediction_type.calculate_base(num1, num2)
        if not is_valid_pocket(base_number):
            return None

        board = board_stats.get(prediction_type.id)
        details = CandidateDetails(
            hit_rate=board.hit_rate if board else 0.0,
            avg_trend=trend_stats.averages.get(prediction_type.id, 0.0),
            current_streak=trend_stats.current_streaks.get(prediction_type.id, 0),
        )
        hit_zone = self.wheel.hit_zone_for(
            base_number, last_winning_number, toggles.use_dynamic_terminal_neighbour_count
        )

        scores = details.individual_scores
        scores[FACTOR_HIT_RATE] = max(0.0, details.hit_rate - HIT_RATE_BASELINE) * HIT_RATE_WEIGHT
        scores[FACTOR_STREAK] = min(STREAK_POINTS_CAP, details.current_streak * STREAK_POINTS_PER_HIT)

        if toggles.use_proximity_boost and last_winning_number is not None:
            details.predictive_distance = self.wheel.min_distance(hit_zone, last_winning_number)
            if details.predictive_distance <= PROXIMITY_MAX_DISTANCE:
                scores[FACTOR_PROXIMITY] = (
                    (PROXIMITY_MAX_DISTANCE - details.predictive_distance) * PROXIMITY_POINTS_PER_POCKET
                )

        if toggles.use_weighted_zone:
            zone_popularity = sum(neighbour_scores.get(pocket, 0.0) for pocket in hit_zone)
            scores[FACTOR_HOT_ZONE] = min(HOT_ZONE_POINTS_CAP, zone_popularity * HOT_ZONE_WEIGHT)

        final_score = 0.0
        highest_influenced = 0.0
        primary_factor = NO_FACTOR
        for factor, raw_points in scores.items():
            influenced = raw_points * influences[factor]
            final_score += influenced
            if influenced > highest_influenced:
                highest_influenced = influenced
                primary_factor = factor

        details.final_score = float(final_score)
        details.primary_driving_factor = primary_factor
        return Candidate(type=prediction_type, score=details.final_score, details=details, hit_zone=hit_zone)

    def get_recommendation(self, trend_stats: TrendStats, board_stats: Dict[str, BoardStat],
                           neighbour_scores: Dict[int, float], num1: int, num2: int,
                           influences: AdaptiveInfluences, last_winning_number: Optional[int],
                           toggles: StrategyToggles = StrategyToggles()) -> Recommendation:
        """
        Returns the best candidate for the pair (num1, num2), or none when no
        type scores above zero.

        With trend confirmation on, a positive signal is turned into "Wait"
        when the best type was absent from the most recent successful spin.
        The best candidate is still reported in that case.
        """
        candidates = []
        for prediction_type in self.prediction_types:
            candidate = self.score_candidate(
                prediction_type, trend_stats, board_stats, neighbour_scores,
                num1, num2, influences, last_winning_number, toggles,
            )
            if candidate is not None and not math.isnan(candidate.score):
                candidates.append(candidate)

        if not candidates:
            return Recommendation(best_candidate=None, signal=SIGNAL_NONE)

        candidates.sort(key=lambda c: c.score, reverse=True)
        best = candidates[0]
        if best.score <= 0:
            return Recommendation(best_candidate=None, signal=SIGNAL_NONE, candidates=candidates)

        signal = SIGNAL_STRONG_PLAY if best.score > STRONG_PLAY_THRESHOLD else SIGNAL_PLAY
        if (toggles.use_trend_confirmation and trend_stats.last_success_state
                and best.type.id not in trend_stats.last_success_state):
            signal = SIGNAL_WAIT

        logger.trace(
            f"Recommendation: {signal} {best.type.label} score={best.score:.2f} "
            f"({best.details.primary_driving_factor})"
        )
        return Recommendation(best_candidate=best, signal=signal, candidates=candidates)
