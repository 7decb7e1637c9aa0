from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from spinopt.adaptive_feedback import AdaptiveInfluences, AdaptiveLearningRates
from spinopt.config import NO_FACTOR, PERFECT_RECORD_MULTIPLIER
from spinopt.evaluator import Evaluator
from spinopt.history import HistoryRecord, sort_history
from spinopt.prediction_types import PredictionType
from spinopt.run_context import CancellationToken
from spinopt.scoring import Recommendation, ScoringOracle, StrategyToggles
from spinopt.statistics import StatisticsEngine
from spinopt.wheel import WheelTopology

# Fitness always replays with every scoring feature on; trend confirmation
# only changes the displayed signal, never the win/loss tally.
FITNESS_TOGGLES = StrategyToggles(
    use_trend_confirmation=True,
    use_weighted_zone=True,
    use_proximity_boost=True,
    use_dynamic_terminal_neighbour_count=True,
)


@dataclass(frozen=True)
class StrategyConfig:
    learning_rate_success: float
    learning_rate_failure: float
    max_weight: float
    min_weight: float
    decay_factor: float
    pattern_min_attempts: float
    pattern_success_threshold: float
    trigger_min_attempts: float
    trigger_success_threshold: float

    @classmethod
    def from_individual(cls, genes: Dict[str, float]) -> "StrategyConfig":
        return cls(
            learning_rate_success=genes["learningRate_success"],
            learning_rate_failure=genes["learningRate_failure"],
            max_weight=genes["maxWeight"],
            min_weight=genes["minWeight"],
            decay_factor=genes["decayFactor"],
            pattern_min_attempts=genes["patternMinAttempts"],
            pattern_success_threshold=genes["patternSuccessThreshold"],
            trigger_min_attempts=genes["triggerMinAttempts"],
            trigger_success_threshold=genes["triggerSuccessThreshold"],
        )


@dataclass
class SimulationResult:
    wins: int = 0
    losses: int = 0
    fitness: float = 0.0
    cancelled: bool = False
    records: List[HistoryRecord] = field(default_factory=list)
    influences: Dict[str, float] = field(default_factory=dict)
    influence_trace: List[Dict[str, float]] = field(default_factory=list)
    confirmed_wins: List[int] = field(default_factory=list)

    @property
    def last_winning_number(self) -> Optional[int]:
        return self.confirmed_wins[-1] if self.confirmed_wins else None


def win_loss_fitness(wins: int, losses: int) -> float:
    """
    Win/loss ratio. A record with no losses scores wins * 10, and a strategy
    that never recommended anything scores 0.
    """
    if losses == 0:
        return float(wins * PERFECT_RECORD_MULTIPLIER) if wins > 0 else 0.0
    return wins / losses


class FitnessSimulator:
    """
    Replays history chronologically through the scoring oracle for one
    parameter set and tallies wins and losses of its recommendations.
    """

    def __init__(self, prediction_types: List[PredictionType], wheel: WheelTopology,
                 toggles: StrategyToggles = FITNESS_TOGGLES,
                 seed_influences: Optional[Dict[str, float]] = None):
        self.prediction_types = list(prediction_types)
        self.wheel = wheel
        self.toggles = toggles
        self.seed_influences = seed_influences
        self.evaluator = Evaluator(self.prediction_types, wheel)
        self.statistics = StatisticsEngine(
            self.prediction_types, wheel, toggles.use_dynamic_terminal_neighbour_count
        )
        self.oracle = ScoringOracle(self.prediction_types, wheel)
        logger.info(f"FitnessSimulator initialized for {len(self.prediction_types)} prediction types.")

    def _recommend(self, replayed: List[HistoryRecord], num1: int, num2: int,
                   strategy: StrategyConfig, influences: AdaptiveInfluences,
                   last_winning_number: Optional[int], toggles: StrategyToggles) -> Recommendation:
        trend_stats = self.statistics.calculate_trend_stats(replayed, strategy.decay_factor)
        board_stats = self.statistics.get_board_state_stats(replayed, strategy.decay_factor)
        neighbour_scores = self.statistics.run_neighbour_analysis(replayed, strategy.decay_factor)
        return self.oracle.get_recommendation(
            trend_stats, board_stats, neighbour_scores, num1, num2,
            influences, last_winning_number, toggles,
        )

    def run_simulation(self, genes: Dict[str, float], history: List[HistoryRecord],
                       token: Optional[CancellationToken] = None,
                       trace_influences: bool = False) -> SimulationResult:
        """
        Runs the replay for one individual.

        :param genes: The individual's parameter values.
        :param history: Run-wide history; sorted internally, never mutated.
        :param token: Checked before every record; a stop returns fitness 0.
        :param trace_influences: Keep a snapshot of the influences after every step.
        :return: SimulationResult with the win/loss tally and fitness.
        """
        strategy = StrategyConfig.from_individual(genes)
        rates = AdaptiveLearningRates.from_individual(genes)
        influences = AdaptiveInfluences(self.seed_influences)
        result = SimulationResult()

        for raw_record in sort_history(history):
            if token is not None and token.cancelled:
                result.cancelled = True
                result.fitness = 0.0
                return result
            if not raw_record.is_resolved:
                continue

            recommendation = self._recommend(
                result.records, raw_record.num1, raw_record.num2, strategy,
                influences, result.last_winning_number, self.toggles,
            )
            best = recommendation.best_candidate

            record = raw_record.copy()
            record.recommended_group_id = best.type.id if best else None
            self.evaluator.evaluate_record(
                record, raw_record.winning_number, self.toggles.use_dynamic_terminal_neighbour_count
            )

            if best is not None:
                was_success = record.recommended_group_id in record.hit_types
                if was_success:
                    result.wins += 1
                else:
                    result.losses += 1
                primary_factor = best.details.primary_driving_factor
                if primary_factor and primary_factor != NO_FACTOR:
                    influences.record_outcome(primary_factor, was_success, rates)

            if trace_influences:
                result.influence_trace.append(influences.as_dict())

            result.records.append(record)
            result.confirmed_wins.append(record.winning_number)

        result.influences = influences.as_dict()
        result.fitness = win_loss_fitness(result.wins, result.losses)
        return result

    def calculate_fitness(self, genes: Dict[str, float], history: List[HistoryRecord],
                          token: Optional[CancellationToken] = None) -> float:
        return self.run_simulation(genes, history, token).fitness

    def recommend_next(self, genes: Dict[str, float], history: List[HistoryRecord],
                       num1: int, num2: int,
                       toggles: Optional[StrategyToggles] = None) -> Recommendation:
        """
        Live recommendation for the next pair of inputs: replays the whole
        history to build statistics and adaptive influences, then scores the
        new pair with the display toggles (trend confirmation included).
        """
        replay = self.run_simulation(genes, history)
        strategy = StrategyConfig.from_individual(genes)
        influences = AdaptiveInfluences(replay.influences)
        return self._recommend(
            replay.records, num1, num2, strategy, influences,
            replay.last_winning_number, toggles or self.toggles,
        )
