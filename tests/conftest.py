"""Shared fixtures for the Flowlane-MCP test suite."""

import pytest

from flowlane_mcp.models import CandidatePosition, Element, SwimLane
from flowlane_mcp.swimlanes import SwimLaneManager


@pytest.fixture
def make_lanes():
    """Factory for lanes named ``lane0``, ``lane1``, ... with given heights."""
    def _make(heights, prefix="lane"):
        return [
            SwimLane(id=f"{prefix}{i}", name=f"Lane {i}", height=h)
            for i, h in enumerate(heights)
        ]
    return _make


@pytest.fixture
def default_manager():
    """Visible manager seeded with the six default lanes."""
    manager = SwimLaneManager(visible=True)
    manager.initialize()
    return manager


@pytest.fixture
def two_rectangles():
    """Two plain rectangles and two candidates stacked at (100, 100)."""
    elements = {
        "e1": Element(id="e1", text="Check order"),
        "e2": Element(id="e2", text="Ship order"),
    }
    candidates = [
        CandidatePosition(element_id="e1", x=100, y=100),
        CandidatePosition(element_id="e2", x=100, y=100),
    ]
    return elements, candidates
