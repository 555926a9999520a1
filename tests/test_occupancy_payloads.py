"""Unit tests for the derived occupancy payloads."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from app.services.memory_storage import MemStorage
from app.services.occupancy import (
    capacity_snapshot, initial_data, occupancy_percent, occupancy_summary,
)
from app.services.seed import seed_zones


class TestOccupancyPercent:
    @pytest.mark.parametrize("current, capacity, expected", [
        (45, 50, 90),
        (32, 100, 32),
        (54, 80, 68),
        (1, 3, 33),
        (0, 100, 0),
        (12, 0, 0),
        (1, 40, 3),        # 2.5
        (1, 200, 1),       # 0.5
        (5, 200, 3),       # 2.5
        (1, 400, 0),       # 0.25
        (3, 8, 38),        # 37.5
    ])
    def test_rounding(self, current, capacity, expected):
        assert occupancy_percent(current, capacity) == expected

    def test_halves_round_up_in_zone_summary(self):
        storage = MemStorage(total_capacity=400)
        seed_zones(storage)
        storage.update_zone_occupancy(4, 1)
        zone_d = occupancy_summary(storage).zones[3]
        assert (zone_d.current, zone_d.capacity, zone_d.percentage) == (1, 40, 3)

    def test_over_capacity_is_not_capped(self):
        assert occupancy_percent(60, 50) == 120


class TestSummaries:
    def setup_method(self):
        self.storage = MemStorage(total_capacity=400)
        seed_zones(self.storage)

    def test_zone_percentages_follow_counts(self):
        self.storage.update_zone_occupancy(2, 45)
        summary = occupancy_summary(self.storage)
        zone_b = next(z for z in summary.zones if z.id == 2)
        assert (zone_b.current, zone_b.capacity, zone_b.percentage) == (45, 50, 90)

    def test_wire_form_is_camel_case(self):
        wire = capacity_snapshot(self.storage).to_wire()
        assert wire["totalCapacity"] == 400
        assert set(wire["zones"][0]) == {"id", "name", "current", "capacity", "percentage"}

    def test_override_current_and_total(self):
        summary = occupancy_summary(self.storage, current=120, total=300)
        assert (summary.current, summary.total, summary.percentage) == (120, 300, 40)

    def test_initial_data_shape(self):
        wire = initial_data(self.storage).to_wire()
        assert set(wire) == {"occupancy", "announcements", "seatPosts"}
        assert wire["occupancy"]["current"] == 0
        assert len(wire["occupancy"]["zones"]) == 4
