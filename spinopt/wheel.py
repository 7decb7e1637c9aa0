import math
from typing import Dict, Iterable, List, Optional

from loguru import logger

from spinopt.config import MAX_POCKET, MIN_POCKET, WHEEL_ORDER, WHEEL_SIZE


def is_valid_pocket(number) -> bool:
    """True when number is one of the 37 pockets (0-36)."""
    return number is not None and MIN_POCKET <= number <= MAX_POCKET


class WheelTopology:
    """
    Static wheel geometry used by the scoring oracle and the replay.

    Provides:
    - neighbours of a pocket in physical (circular) order
    - circular pocket distance between two numbers
    - the hit zone of a base pocket and its terminal pockets
    """

    def __init__(self, wheel_order: Optional[List[int]] = None,
                 terminal_mapping: Optional[Dict[int, List[int]]] = None):
        wheel_order = list(wheel_order if wheel_order is not None else WHEEL_ORDER)
        if len(wheel_order) != WHEEL_SIZE or len(set(wheel_order)) != WHEEL_SIZE:
            raise ValueError(
                f"Wheel must contain {WHEEL_SIZE} unique pockets, got {len(wheel_order)} "
                f"({len(set(wheel_order))} unique)"
            )
        if not all(is_valid_pocket(n) for n in wheel_order):
            raise ValueError("Wheel contains numbers outside 0-36")

        self.wheel_order = wheel_order
        self.terminal_mapping = {int(k): list(v) for k, v in (terminal_mapping or {}).items()}
        self._index = {number: i for i, number in enumerate(wheel_order)}
        logger.debug(f"WheelTopology initialized with {len(self.terminal_mapping)} terminal entries.")

    def terminals_for(self, base_number: int) -> List[int]:
        return list(self.terminal_mapping.get(base_number, []))

    def get_neighbours(self, number: int, count: int) -> List[int]:
        """
        Returns the pockets within `count` steps of `number` on either side.
        The pocket itself is not included. Unknown numbers have no neighbours.
        """
        index = self._index.get(number)
        if index is None:
            return []
        neighbours = {}
        for i in range(1, count + 1):
            neighbours[self.wheel_order[(index - i) % WHEEL_SIZE]] = None
            neighbours[self.wheel_order[(index + i) % WHEEL_SIZE]] = None
        return list(neighbours)

    def pocket_distance(self, num1: int, num2: int) -> float:
        """Shortest circular distance in pockets; infinity if either number is off the wheel."""
        index1 = self._index.get(num1)
        index2 = self._index.get(num2)
        if index1 is None or index2 is None:
            return math.inf
        direct = abs(index1 - index2)
        return min(direct, WHEEL_SIZE - direct)

    def min_distance(self, zone: Iterable[int], target: int) -> float:
        return min((self.pocket_distance(n, target) for n in zone), default=math.inf)

    def hit_zone(self, base_number: int, terminals: Optional[List[int]] = None,
                 winning_number: Optional[int] = None, dynamic: bool = True) -> List[int]:
        """
        Computes the covered pockets for a base number.

        The base always counts. Base neighbour spread is 3 with one terminal,
        1 with two or more, 0 with none. Terminal neighbour spread is 3 with
        one or two terminals, 1 with more. In dynamic mode a known winning
        number that equals the base or a terminal collapses the terminal
        spread to 0.
        """
        if not is_valid_pocket(base_number):
            return []
        terminals = terminals or []
        num_terminals = len(terminals)
        zone = {base_number: None}

        if num_terminals == 1:
            base_neighbour_count = 3
        elif num_terminals >= 2:
            base_neighbour_count = 1
        else:
            base_neighbour_count = 0
        for n in self.get_neighbours(base_number, base_neighbour_count):
            zone[n] = None

        if num_terminals in (1, 2):
            terminal_neighbour_count = 3
        elif num_terminals > 2:
            terminal_neighbour_count = 1
        else:
            terminal_neighbour_count = 0
        if dynamic and winning_number is not None:
            if base_number == winning_number or winning_number in terminals:
                terminal_neighbour_count = 0

        for terminal in terminals:
            zone[terminal] = None
            for n in self.get_neighbours(terminal, terminal_neighbour_count):
                zone[n] = None
        return list(zone)

    def hit_zone_for(self, base_number: int, winning_number: Optional[int] = None,
                     dynamic: bool = True) -> List[int]:
        """Hit zone using this wheel's own terminal mapping."""
        return self.hit_zone(base_number, self.terminals_for(base_number), winning_number, dynamic)
