"""
Configuration file for SPINOPT.

This file contains the fixed parameters of the genetic search and the
shape of the strategy parameter space. Runtime settings (paths, seed,
recommendation toggles) live in config/config.ini and are read through
load_config().
"""
import configparser
import os
from typing import Dict, List, Tuple

# --- Genetic Algorithm ---
POPULATION_SIZE: int = 50
MUTATION_RATE: float = 0.15
CROSSOVER_RATE: float = 0.7
ELITE_COUNT: int = 4
MAX_GENERATIONS: int = 100
TOURNAMENT_SIZE: int = 5

# --- Parameter Space (the "genes") ---
# name -> (min, max, step)
PARAMETER_SPACE: Dict[str, Tuple[float, float, float]] = {
    "learningRate_success": (0.01, 1.0, 0.01),
    "learningRate_failure": (0.01, 0.5, 0.01),
    "maxWeight": (1.0, 10.0, 0.1),
    "minWeight": (0.0, 1.0, 0.01),
    "decayFactor": (0.7, 0.99, 0.01),
    "patternMinAttempts": (1, 20, 1),
    "patternSuccessThreshold": (50, 100, 1),
    "triggerMinAttempts": (1, 20, 1),
    "triggerSuccessThreshold": (50, 100, 1),
    "adaptiveSuccessRate": (0.01, 0.5, 0.01),
    "adaptiveFailureRate": (0.01, 0.5, 0.01),
    "minAdaptiveInfluence": (0.0, 1.0, 0.01),
    "maxAdaptiveInfluence": (1.0, 5.0, 0.1),
}
GENE_DECIMALS: int = 4

# Parameter set used for live recommendations when no optimized set is given
DEFAULT_PARAMETERS: Dict[str, float] = {
    "learningRate_success": 0.1,
    "learningRate_failure": 0.05,
    "maxWeight": 5.0,
    "minWeight": 0.1,
    "decayFactor": 0.9,
    "patternMinAttempts": 5,
    "patternSuccessThreshold": 70,
    "triggerMinAttempts": 5,
    "triggerSuccessThreshold": 70,
    "adaptiveSuccessRate": 0.1,
    "adaptiveFailureRate": 0.05,
    "minAdaptiveInfluence": 0.5,
    "maxAdaptiveInfluence": 2.0,
}

# --- Wheel ---
# European single-zero wheel, clockwise from 0
WHEEL_ORDER: List[int] = [
    0, 32, 15, 19, 4, 21, 2, 25, 17, 34, 6, 27, 13, 36,
    11, 30, 8, 23, 10, 5, 24, 16, 33, 1, 20, 14, 31, 9,
    22, 18, 29, 7, 28, 12, 35, 3, 26,
]
WHEEL_SIZE: int = 37
MIN_POCKET: int = 0
MAX_POCKET: int = 36

# --- Scoring ---
FACTOR_HIT_RATE: str = "Hit Rate"
FACTOR_STREAK: str = "Streak"
FACTOR_PROXIMITY: str = "Proximity to Last Spin"
FACTOR_HOT_ZONE: str = "Hot Zone Weighting"
FACTOR_AI_CONFIDENCE: str = "High AI Confidence"
FACTOR_TRENDS: str = "Statistical Trends"
NO_FACTOR: str = "N/A"

SEED_INFLUENCES: Dict[str, float] = {
    FACTOR_HIT_RATE: 1.0,
    FACTOR_STREAK: 1.0,
    FACTOR_PROXIMITY: 1.0,
    FACTOR_HOT_ZONE: 1.0,
    FACTOR_AI_CONFIDENCE: 1.0,
    FACTOR_TRENDS: 1.0,
}
DEFAULT_INFLUENCE: float = 1.0

HIT_RATE_BASELINE: float = 40.0
HIT_RATE_WEIGHT: float = 0.5
STREAK_POINTS_PER_HIT: float = 5.0
STREAK_POINTS_CAP: float = 15.0
PROXIMITY_MAX_DISTANCE: int = 5
PROXIMITY_POINTS_PER_POCKET: float = 2.0
HOT_ZONE_WEIGHT: float = 0.5
HOT_ZONE_POINTS_CAP: float = 10.0
STRONG_PLAY_THRESHOLD: float = 50.0

# Perfect records (no losses) are scored wins * this multiplier
PERFECT_RECORD_MULTIPLIER: int = 10

# --- Runtime configuration file ---
CONFIG_FILE_PATH: str = os.path.join("config", "config.ini")

DEFAULT_RUNTIME_CONFIG: Dict[str, Dict[str, str]] = {
    "paths": {
        "log_file": "logs/spinopt.log",
        "history_file": "data/history.csv",
        "wheel_data_file": "",
        "output_dir": "outputs",
    },
    "optimizer": {
        "seed": "",
    },
    "recommendation": {
        "use_trend_confirmation": "True",
        "use_weighted_zone": "True",
        "use_proximity_boost": "True",
        "use_dynamic_terminal_neighbour_count": "True",
    },
    "logging": {
        "level": "INFO",
    },
}


def load_config(config_path: str = CONFIG_FILE_PATH) -> configparser.ConfigParser:
    """
    Loads runtime configuration from an INI file on top of the defaults.

    A missing file is not an error: the defaults are returned so the CLI can
    run from any working directory.
    """
    config = configparser.ConfigParser()
    config.read_dict(DEFAULT_RUNTIME_CONFIG)
    if os.path.exists(config_path):
        config.read(config_path)
    return config
