"""
Tests for wheel geometry and hit-zone resolution.
"""
import math

import pytest

from spinopt.config import WHEEL_ORDER
from spinopt.prediction_types import build_terminal_mapping
from spinopt.wheel import WheelTopology, is_valid_pocket


class TestWheelTopology:
    """Test suite for neighbours and pocket distance."""

    def test_neighbours_wrap_around_zero(self, bare_wheel):
        """Test that neighbours of 0 wrap to the end of the wheel."""
        assert bare_wheel.get_neighbours(0, 1) == [26, 32]
        assert set(bare_wheel.get_neighbours(0, 2)) == {3, 26, 32, 15}

    def test_neighbours_of_unknown_number(self, bare_wheel):
        assert bare_wheel.get_neighbours(99, 3) == []
        assert bare_wheel.get_neighbours(5, 0) == []

    def test_pocket_distance(self, bare_wheel):
        """Test circular distance in both directions."""
        assert bare_wheel.pocket_distance(0, 0) == 0
        assert bare_wheel.pocket_distance(0, 26) == 1
        assert bare_wheel.pocket_distance(26, 0) == 1
        assert bare_wheel.pocket_distance(0, 10) == 18
        assert bare_wheel.pocket_distance(0, 5) == 18

    def test_pocket_distance_off_wheel(self, bare_wheel):
        assert bare_wheel.pocket_distance(0, 40) == math.inf
        assert bare_wheel.pocket_distance(-1, 3) == math.inf

    def test_rejects_malformed_wheel(self):
        with pytest.raises(ValueError):
            WheelTopology(WHEEL_ORDER[:-1])
        with pytest.raises(ValueError):
            WheelTopology(WHEEL_ORDER[:-1] + [0])

    def test_is_valid_pocket(self):
        assert is_valid_pocket(0)
        assert is_valid_pocket(36)
        assert not is_valid_pocket(37)
        assert not is_valid_pocket(-1)
        assert not is_valid_pocket(None)


class TestHitZone:
    """Test suite for the neighbour spread rules of the hit zone."""

    def test_no_terminals_is_base_only(self, bare_wheel):
        assert bare_wheel.hit_zone(17, []) == [17]

    def test_out_of_range_base_is_empty(self, bare_wheel):
        assert bare_wheel.hit_zone(37, [1]) == []
        assert bare_wheel.hit_zone(-1, []) == []

    def test_single_terminal_spreads_three(self, bare_wheel):
        """One terminal: 3 neighbours around the base and 3 around the terminal."""
        zone = set(bare_wheel.hit_zone(0, [10]))
        expected = {0, 10}
        expected.update(bare_wheel.get_neighbours(0, 3))
        expected.update(bare_wheel.get_neighbours(10, 3))
        assert zone == expected
        assert len(zone) == 14

    def test_two_terminals(self, bare_wheel):
        """Two terminals: 1 neighbour around the base, 3 around each terminal."""
        zone = set(bare_wheel.hit_zone(7, [17, 27]))
        expected = {7, 17, 27}
        expected.update(bare_wheel.get_neighbours(7, 1))
        expected.update(bare_wheel.get_neighbours(17, 3))
        expected.update(bare_wheel.get_neighbours(27, 3))
        assert zone == expected

    def test_three_terminals(self, bare_wheel):
        """More than two terminals: 1 neighbour everywhere."""
        zone = set(bare_wheel.hit_zone(0, [10, 20, 30]))
        expected = {0, 10, 20, 30}
        for n in (0, 10, 20, 30):
            expected.update(bare_wheel.get_neighbours(n, 1))
        assert zone == expected

    def test_dynamic_collapses_terminal_spread_on_direct_match(self, bare_wheel):
        """A winning number equal to a terminal leaves the terminals bare."""
        zone = set(bare_wheel.hit_zone(7, [17, 27], winning_number=17, dynamic=True))
        expected = {7, 17, 27}
        expected.update(bare_wheel.get_neighbours(7, 1))
        assert zone == expected

    def test_dynamic_without_direct_match_keeps_spread(self, bare_wheel):
        static_zone = set(bare_wheel.hit_zone(7, [17, 27], winning_number=None))
        dynamic_zone = set(bare_wheel.hit_zone(7, [17, 27], winning_number=0, dynamic=True))
        assert dynamic_zone == static_zone

    def test_non_dynamic_ignores_winning_number(self, bare_wheel):
        zone = set(bare_wheel.hit_zone(7, [17, 27], winning_number=7, dynamic=False))
        assert zone == set(bare_wheel.hit_zone(7, [17, 27]))

    def test_hit_zone_has_no_duplicates(self, default_wheel):
        for base in range(37):
            zone = default_wheel.hit_zone_for(base)
            assert len(zone) == len(set(zone))
            assert zone[0] == base


class TestTerminalMapping:
    """Test suite for the default last-digit terminal mapping."""

    def test_last_digit_groups(self):
        mapping = build_terminal_mapping()
        assert mapping[7] == [17, 27]
        assert mapping[0] == [10, 20, 30]
        assert mapping[36] == [6, 16, 26]
        assert len(mapping) == 37
