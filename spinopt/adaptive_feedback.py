"""
Adaptive feedback for the scoring factors.

Each scoring factor carries an influence multiplier. After every replayed
spin that produced a recommendation, the influence of the factor that drove
the recommendation moves up on a win and down on a loss, always clamped to
[min_influence, max_influence].

Key Components:
- AdaptiveLearningRates: step sizes and bounds decoded from an individual
- AdaptiveInfluences: factor -> multiplier map with default-on-miss lookup
"""
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from loguru import logger

from spinopt.config import DEFAULT_INFLUENCE, NO_FACTOR, SEED_INFLUENCES


@dataclass(frozen=True)
class AdaptiveLearningRates:
    success: float
    failure: float
    min_influence: float
    max_influence: float

    @classmethod
    def from_individual(cls, genes: Dict[str, float]) -> "AdaptiveLearningRates":
        return cls(
            success=genes["adaptiveSuccessRate"],
            failure=genes["adaptiveFailureRate"],
            min_influence=genes["minAdaptiveInfluence"],
            max_influence=genes["maxAdaptiveInfluence"],
        )


class AdaptiveInfluences:
    """
    Mapping from factor name to influence multiplier.

    Unknown factor names are inserted at 1.0 the first time they are
    looked up, so the map grows as new factors show up during replay.
    """

    def __init__(self, seed: Optional[Dict[str, float]] = None):
        self._seed = dict(SEED_INFLUENCES if seed is None else seed)
        self._influences = dict(self._seed)

    def __getitem__(self, factor: str) -> float:
        if factor not in self._influences:
            self._influences[factor] = DEFAULT_INFLUENCE
        return self._influences[factor]

    def __contains__(self, factor: str) -> bool:
        return factor in self._influences

    def __iter__(self) -> Iterator[str]:
        return iter(self._influences)

    def __len__(self) -> int:
        return len(self._influences)

    def items(self) -> Iterator[Tuple[str, float]]:
        return iter(self._influences.items())

    def reset(self):
        """Back to the seed values."""
        self._influences = dict(self._seed)

    def as_dict(self) -> Dict[str, float]:
        return dict(self._influences)

    def record_outcome(self, factor: str, was_success: bool, rates: AdaptiveLearningRates) -> float:
        """
        Moves `factor` toward max_influence by the success rate on a win, or
        toward min_influence by the failure rate on a loss.

        Returns the new influence.
        """
        if not factor or factor == NO_FACTOR:
            return DEFAULT_INFLUENCE
        current = self[factor]
        if was_success:
            updated = min(rates.max_influence, current + rates.success)
        else:
            updated = max(rates.min_influence, current - rates.failure)
        self._influences[factor] = updated
        logger.trace(f"Influence '{factor}': {current:.3f} -> {updated:.3f} ({'win' if was_success else 'loss'})")
        return updated
