"""
Prediction types map a pair of raw inputs to a base pocket.

The optimizer treats `calculate_base` as an opaque pure function: any
result outside 0-36 means the type has no base for that pair and is left
out of scoring for that step. The catalogue below is the default set used
by the command line; callers may supply their own list.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List

from spinopt.config import MAX_POCKET, MIN_POCKET


@dataclass(frozen=True)
class PredictionType:
    id: str
    label: str
    calculate_base: Callable[[int, int], int]


def _diff(num1: int, num2: int) -> int:
    return abs(num1 - num2)


def _sum(num1: int, num2: int) -> int:
    return num1 + num2


DEFAULT_PREDICTION_TYPES: List[PredictionType] = [
    PredictionType("diff", "Difference", _diff),
    PredictionType("diff_plus_one", "Difference +1", lambda a, b: _diff(a, b) + 1),
    PredictionType("diff_minus_one", "Difference -1", lambda a, b: _diff(a, b) - 1),
    PredictionType("sum", "Sum", _sum),
    PredictionType("sum_plus_one", "Sum +1", lambda a, b: _sum(a, b) + 1),
    PredictionType("sum_minus_one", "Sum -1", lambda a, b: _sum(a, b) - 1),
]


def build_terminal_mapping() -> Dict[int, List[int]]:
    """
    Default terminal mapping: every pocket maps to the other pockets that
    share its last digit (7 -> [17, 27], 0 -> [10, 20, 30]).
    """
    pockets = range(MIN_POCKET, MAX_POCKET + 1)
    return {
        base: [n for n in pockets if n % 10 == base % 10 and n != base]
        for base in pockets
    }
