"""Tests for lane membership assignment, statistics and suggestions."""

import pytest

from flowlane_mcp.membership import (
    assign_lanes,
    lane_at_position,
    lane_statistics,
    suggest_lane,
)
from flowlane_mcp.models import Element
from flowlane_mcp.swimlanes import SwimLaneManager


class TestLaneAtPosition:

    def test_half_open_ranges(self, make_lanes):
        lanes = make_lanes([100, 200])
        assert lane_at_position(lanes, 0).id == "lane0"
        assert lane_at_position(lanes, 99.9).id == "lane0"
        assert lane_at_position(lanes, 100).id == "lane1"
        assert lane_at_position(lanes, 299.9).id == "lane1"

    def test_outside_every_lane(self, make_lanes):
        lanes = make_lanes([100, 200])
        assert lane_at_position(lanes, 300) is None
        assert lane_at_position(lanes, -1) is None


class TestAssignLanes:

    def test_assigns_by_vertical_centre(self, default_manager):
        elements = [
            Element(id="a", x=0, y=100),                   # centre 140 -> customer
            Element(id="b", x=0, y=120),                   # centre 160 -> sales
            Element(id="c", type="document", x=0, y=700),  # centre 760 -> management
        ]
        assert assign_lanes(elements, default_manager) == 3
        assert [e.lane_id for e in elements] == ["customer", "sales", "management"]

    def test_centre_beyond_last_lane_gets_no_lane(self, default_manager):
        element = Element(id="low", x=0, y=1070, lane_id="stale")
        assert assign_lanes([element], default_manager) == 0
        assert element.lane_id is None

    def test_hidden_lanes_clear_assignments(self, default_manager):
        element = Element(id="a", x=0, y=100)
        assign_lanes([element], default_manager)
        assert element.lane_id == "customer"

        default_manager.toggle_visibility()
        assign_lanes([element], default_manager)
        assert element.lane_id is None

    def test_rerun_after_geometry_change(self, default_manager):
        element = Element(id="a", x=0, y=120)
        assign_lanes([element], default_manager)
        assert element.lane_id == "sales"

        default_manager.resize_boundary(0, 40)  # customer now ends at 190
        assign_lanes([element], default_manager)
        assert element.lane_id == "customer"

    def test_idempotent(self, default_manager):
        elements = [Element(id=str(i), x=0, y=i * 90) for i in range(12)]
        assign_lanes(elements, default_manager)
        first = [e.lane_id for e in elements]
        assign_lanes(elements, default_manager)
        assert [e.lane_id for e in elements] == first


class TestLaneStatistics:

    def test_counts_and_members_in_lane_order(self, default_manager):
        elements = [
            Element(id="a", x=0, y=10),
            Element(id="b", x=200, y=30),
            Element(id="c", x=0, y=800),
        ]
        assign_lanes(elements, default_manager)
        stats = lane_statistics(elements, default_manager)

        assert list(stats) == [lane.id for lane in default_manager.lanes]
        assert stats["customer"] == {"name": "Customer", "element_count": 2, "elements": ["a", "b"]}
        assert stats["management"]["element_count"] == 1
        assert stats["sales"]["element_count"] == 0

    def test_empty_when_unassigned(self, default_manager):
        stats = lane_statistics([Element(id="a")], default_manager)
        assert all(entry["element_count"] == 0 for entry in stats.values())


class TestSuggestLane:

    @pytest.mark.parametrize("text, lane", [
        ("Send invoice", "finance"),
        ("Customer calls hotline", "customer"),
        ("Update system data", "it"),
        ("Assembly of parts", "production"),
        ("New customer quote approval", "sales"),
        ("Something unrelated", "customer"),
    ])
    def test_keyword_suggestions(self, text, lane):
        assert suggest_lane(text) == lane
