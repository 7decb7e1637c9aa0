import json
import os
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger

from spinopt.config import WHEEL_ORDER
from spinopt.evolutionary_engine import PARAMETER_SPECS
from spinopt.history import HistoryRecord
from spinopt.prediction_types import build_terminal_mapping

HISTORY_COLUMNS = ["id", "num1", "num2", "difference", "winningNumber"]
REQUIRED_HISTORY_COLUMNS = ["id", "num1", "num2"]


class HistoryLoader:
    """
    Loads recorded spins from a CSV or JSON file into HistoryRecords.

    Expected columns: id, num1, num2, difference, winningNumber.
    A blank winning number marks an unresolved spin.
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        logger.info(f"HistoryLoader initialized for file: {file_path}")

    def _read_frame(self) -> pd.DataFrame:
        if not os.path.exists(self.file_path):
            logger.error(f"History file not found at {self.file_path}")
            raise FileNotFoundError(f"History file not found: {self.file_path}")
        try:
            if self.file_path.lower().endswith(".json"):
                return pd.read_json(self.file_path, orient="records")
            return pd.read_csv(self.file_path)
        except (ValueError, pd.errors.ParserError) as e:
            logger.error(f"Error parsing history file {self.file_path}: {e}")
            raise ValueError(f"Could not parse history file {self.file_path}: {e}") from e

    def load_history_frame(self) -> pd.DataFrame:
        df = self._read_frame()
        df.rename(columns={"winning_number": "winningNumber"}, inplace=True)

        missing = [col for col in REQUIRED_HISTORY_COLUMNS if col not in df.columns]
        if missing:
            logger.error(f"History file is missing columns: {missing}")
            raise ValueError(f"History file {self.file_path} is missing columns: {missing}")

        if "winningNumber" not in df.columns:
            df["winningNumber"] = pd.NA
        if "difference" not in df.columns:
            df["difference"] = (df["num1"] - df["num2"]).abs()

        df = df.dropna(subset=REQUIRED_HISTORY_COLUMNS)
        df = df[HISTORY_COLUMNS].sort_values(by="id", kind="stable").reset_index(drop=True)
        logger.info(
            f"Loaded {len(df)} history rows ({int(df['winningNumber'].notna().sum())} resolved) "
            f"from {self.file_path}"
        )
        return df

    def load_history(self) -> List[HistoryRecord]:
        df = self.load_history_frame()
        return records_from_frame(df)


def records_from_frame(df: pd.DataFrame) -> List[HistoryRecord]:
    records = []
    for row in df.itertuples(index=False):
        winning_number = None if pd.isna(row.winningNumber) else int(row.winningNumber)
        difference = None if pd.isna(row.difference) else int(row.difference)
        records.append(HistoryRecord(
            id=int(row.id),
            num1=int(row.num1),
            num2=int(row.num2),
            difference=difference,
            winning_number=winning_number,
        ))
    return records


def load_history(file_path: str) -> List[HistoryRecord]:
    return HistoryLoader(file_path).load_history()


def load_wheel_data(file_path: Optional[str] = None) -> Tuple[List[int], Dict[int, List[int]]]:
    """
    Loads the wheel order and terminal mapping from JSON:
    {"wheel": [...], "terminal_mapping": {"7": [17, 27], ...}}.

    Without a file, or for keys the file leaves out, the European wheel and
    the last-digit terminal mapping are used.
    """
    if not file_path:
        return list(WHEEL_ORDER), build_terminal_mapping()
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Wheel data file not found at {file_path}")
        raise
    except json.JSONDecodeError as e:
        logger.error(f"Error parsing wheel data file {file_path}: {e}")
        raise ValueError(f"Invalid wheel data JSON in {file_path}: {e}") from e

    wheel = [int(n) for n in data.get("wheel", WHEEL_ORDER)]
    raw_mapping = data.get("terminal_mapping", data.get("terminalMapping"))
    if raw_mapping is None:
        mapping = build_terminal_mapping()
    else:
        mapping = {int(k): [int(n) for n in v] for k, v in raw_mapping.items()}
    logger.info(f"Wheel data loaded from {file_path}")
    return wheel, mapping


def validate_params(params: Dict[str, Any]) -> Dict[str, float]:
    """Checks that every gene is present and on its grid."""
    genes = {}
    for spec in PARAMETER_SPECS:
        if spec.name not in params:
            raise ValueError(f"Missing parameter: {spec.name}")
        value = float(params[spec.name])
        if not spec.contains(value):
            raise ValueError(
                f"Parameter {spec.name}={value} is not on its grid "
                f"[{spec.min}, {spec.max}] step {spec.step}"
            )
        genes[spec.name] = value
    return genes


def load_params(file_path: str) -> Dict[str, float]:
    """Loads a parameter set as written by `optimize --output`."""
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        logger.error(f"Parameter file {file_path} does not hold a JSON object")
        raise ValueError(f"Parameter file {file_path} must contain a JSON object, got {type(data).__name__}")
    params = data.get("bestIndividual", data)
    if not isinstance(params, dict):
        raise ValueError(f"'bestIndividual' in {file_path} must be a JSON object")
    return validate_params(params)
