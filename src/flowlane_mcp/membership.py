"""Lane membership assignment and lane statistics.

An element belongs to the lane that contains its vertical centre.  Lanes
are walked top to bottom accumulating heights, and the first lane whose
half-open range ``[top, top + height)`` contains the centre wins.  A
centre past the last lane (or above the first) gets no lane.

``assign_lanes`` is the only writer of ``Element.lane_id``.  It is
idempotent, so callers simply rerun it after every geometry change or
element move.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .models import Element, SwimLane
from .swimlanes import SwimLaneManager

logger = logging.getLogger(__name__)


def lane_at_position(lanes: list[SwimLane], y: float) -> Optional[SwimLane]:
    """Return the lane whose vertical range contains ``y``, if any."""
    current_y = 0.0
    for lane in lanes:
        if current_y <= y < current_y + lane.height:
            return lane
        current_y += lane.height
    return None


def assign_lanes(elements: Iterable[Element], manager: SwimLaneManager) -> int:
    """Write ``lane_id`` on every element from its vertical centre.

    When lanes are hidden all assignments are cleared.  Returns the number
    of elements that ended up in a lane.
    """
    assigned = 0
    for element in elements:
        if not manager.visible:
            element.lane_id = None
            continue

        lane = lane_at_position(manager.lanes, element.center_y)
        element.lane_id = lane.id if lane else None
        if lane:
            assigned += 1
        else:
            logger.debug("Element %s (centre y=%.1f) is outside every lane",
                         element.id, element.center_y)
    return assigned


def lane_statistics(elements: Iterable[Element], manager: SwimLaneManager) -> dict[str, dict]:
    """Per-lane member counts and ids, keyed by lane id, in lane order.

    Reads the ``lane_id`` left by the last ``assign_lanes`` run.
    """
    members: dict[str, list[str]] = {lane.id: [] for lane in manager.lanes}
    for element in elements:
        if element.lane_id in members:
            members[element.lane_id].append(element.id)

    return {
        lane.id: {
            "name": lane.name,
            "element_count": len(members[lane.id]),
            "elements": members[lane.id],
        }
        for lane in manager.lanes
    }


# ---------------------------------------------------------------------------
# Keyword-based lane suggestion
# ---------------------------------------------------------------------------

# (keywords, lane id); the longest matching keyword wins
LANE_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("invoice", "payment", "cost center", "budget", "billing"), "finance"),
    (("customer calls", "customer contact", "inquiry", "consultation"), "customer"),
    (("quote", "offer", "sales", "acquisition", "new customer"), "sales"),
    (("manufacturing", "production", "assembly", "fabrication"), "production"),
    (("system", "software", "data", "server"), "it"),
    (("decision", "approval", "strategy", "review"), "management"),
]

FALLBACK_LANE = "customer"


def suggest_lane(text: str) -> str:
    """Suggest a default lane id for an element from its text."""
    lowered = text.lower()
    best_lane = FALLBACK_LANE
    longest = 0
    for keywords, lane_id in LANE_KEYWORDS:
        for keyword in keywords:
            if keyword in lowered and len(keyword) > longest:
                best_lane = lane_id
                longest = len(keyword)
    return best_lane
