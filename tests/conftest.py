"""
Shared fixtures for the SPINOPT test suite.

The hand-built scenarios use a single prediction type whose base is simply
num1 and an empty terminal mapping, so every hit zone is the base pocket
alone and each record's outcome is known in advance.
"""
import random

import pytest

from spinopt.config import DEFAULT_PARAMETERS
from spinopt.history import HistoryRecord
from spinopt.prediction_types import DEFAULT_PREDICTION_TYPES, PredictionType, build_terminal_mapping
from spinopt.wheel import WheelTopology

ECHO_TYPE = PredictionType("echo", "Echo num1", lambda num1, num2: num1)


@pytest.fixture
def echo_types():
    return [ECHO_TYPE]


@pytest.fixture
def bare_wheel():
    """European wheel without terminal pockets."""
    return WheelTopology()


@pytest.fixture
def default_wheel():
    return WheelTopology(terminal_mapping=build_terminal_mapping())


@pytest.fixture
def steady_genes():
    """Slow decay and gentle penalties so a few losses never silence the oracle."""
    genes = dict(DEFAULT_PARAMETERS)
    genes.update({
        "decayFactor": 0.99,
        "adaptiveSuccessRate": 0.1,
        "adaptiveFailureRate": 0.01,
        "minAdaptiveInfluence": 0.5,
        "maxAdaptiveInfluence": 2.0,
    })
    return genes


@pytest.fixture
def perfect_history():
    """Four hits: the first has no signal yet, the next three are wins."""
    return [
        HistoryRecord(id=1, num1=5, num2=0, winning_number=5),
        HistoryRecord(id=2, num1=17, num2=0, winning_number=17),
        HistoryRecord(id=3, num1=22, num2=0, winning_number=22),
        HistoryRecord(id=4, num1=8, num2=0, winning_number=8),
    ]


@pytest.fixture
def mixed_history():
    """No signal, two wins, then three losses; plus one unresolved spin."""
    return [
        HistoryRecord(id=1, num1=5, num2=0, winning_number=5),
        HistoryRecord(id=2, num1=17, num2=0, winning_number=17),
        HistoryRecord(id=3, num1=22, num2=0, winning_number=22),
        HistoryRecord(id=4, num1=8, num2=0, winning_number=30),
        HistoryRecord(id=5, num1=11, num2=0, winning_number=2),
        HistoryRecord(id=6, num1=32, num2=0, winning_number=14),
        HistoryRecord(id=7, num1=3, num2=0, winning_number=None),
    ]


def make_random_history(count: int, seed: int = 7, unresolved_every: int = 9):
    rng = random.Random(seed)
    history = []
    for i in range(1, count + 1):
        num1, num2 = rng.randint(0, 36), rng.randint(0, 36)
        winning_number = None if i % unresolved_every == 0 else rng.randint(0, 36)
        history.append(HistoryRecord(id=i, num1=num1, num2=num2, winning_number=winning_number))
    return history


@pytest.fixture
def random_history():
    return make_random_history(40)


@pytest.fixture
def default_types():
    return list(DEFAULT_PREDICTION_TYPES)
