import random
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from spinopt.history import HistoryRecord, sort_history
from spinopt.prediction_types import PredictionType
from spinopt.wheel import WheelTopology


class CancellationToken:
    """Stop flag shared between the controller and the evolution worker."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class RunContext:
    """
    Everything one optimization run owns: a chronological snapshot of the
    history, the static wheel data, the random source and the stop token.
    """
    history: Tuple[HistoryRecord, ...]
    prediction_types: List[PredictionType]
    wheel: WheelTopology
    rng: random.Random = field(default_factory=random.Random)
    token: CancellationToken = field(default_factory=CancellationToken)
    generation: int = 0

    @classmethod
    def create(cls, history: List[HistoryRecord], prediction_types: List[PredictionType],
               wheel_order: Optional[List[int]] = None,
               terminal_mapping: Optional[Dict[int, List[int]]] = None,
               rng: Optional[random.Random] = None,
               token: Optional[CancellationToken] = None) -> "RunContext":
        if not prediction_types:
            raise ValueError("At least one prediction type is required")
        return cls(
            history=tuple(record.copy() for record in sort_history(history)),
            prediction_types=list(prediction_types),
            wheel=WheelTopology(wheel_order, terminal_mapping),
            rng=rng if rng is not None else random.Random(),
            token=token if token is not None else CancellationToken(),
        )
