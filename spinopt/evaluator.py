import math
from typing import List, Optional

from loguru import logger

from spinopt.history import STATUS_FAIL, STATUS_SUCCESS, HistoryRecord
from spinopt.prediction_types import PredictionType
from spinopt.wheel import WheelTopology, is_valid_pocket


class Evaluator:
    """
    Evaluator for replayed spins.

    Given a spin and its winning number, determines for every prediction
    type whether the type's hit zone covered the winning number:

    1. Per-type outcome (`type_success_status`, `hit_types`)
    2. Record status (`success` if any type hit, else `fail`)
    3. Pocket distance of the closest hitting zone to the winning number

    The outcome does not depend on which type was recommended.
    """

    def __init__(self, prediction_types: List[PredictionType], wheel: WheelTopology):
        if not prediction_types:
            raise ValueError("At least one prediction type is required")
        self.prediction_types = list(prediction_types)
        self.wheel = wheel
        logger.debug(f"Evaluator initialized for {len(self.prediction_types)} prediction types.")

    def evaluate_record(self, record: HistoryRecord, winning_number: Optional[int],
                        dynamic: bool = True) -> HistoryRecord:
        """
        Fills the outcome fields of `record` in place and returns it.

        :param record: The (replay-owned) record to evaluate.
        :param winning_number: The number that actually won.
        :param dynamic: Collapse terminal neighbour spread on a direct match.
        """
        record.winning_number = winning_number
        record.hit_types = []
        record.type_success_status = {}
        min_pocket_distance = math.inf

        for prediction_type in self.prediction_types:
            base_number = prediction_type.calculate_base(record.num1, record.num2)
            if not is_valid_pocket(base_number):
                record.type_success_status[prediction_type.id] = False
                continue

            hit_zone = self.wheel.hit_zone_for(base_number, winning_number, dynamic)
            if winning_number in hit_zone:
                record.hit_types.append(prediction_type.id)
                record.type_success_status[prediction_type.id] = True
                distance = self.wheel.min_distance(hit_zone, winning_number)
                min_pocket_distance = min(min_pocket_distance, distance)
            else:
                record.type_success_status[prediction_type.id] = False

        record.status = STATUS_SUCCESS if record.hit_types else STATUS_FAIL
        record.pocket_distance = None if min_pocket_distance == math.inf else min_pocket_distance

        if record.recommended_group_id and record.recommended_group_id in record.hit_types:
            record.recommended_group_pocket_distance = record.pocket_distance
        else:
            record.recommended_group_pocket_distance = None
        return record
