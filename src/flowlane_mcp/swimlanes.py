"""
Swim lane geometry manager for Flowlane-MCP.

Lanes partition the canvas into horizontal bands, stacked top to bottom in
list order.  The manager keeps their heights tiling the canvas under two
kinds of change:

  1. Auto-fit: after any structural edit (add, remove, load), the last
     lane absorbs whatever height is left.  If the lanes overflow the
     canvas they are scaled down proportionally, each floored at 80px,
     and the last lane takes the rounding remainder.
  2. Interactive resize: dragging the divider between two lanes moves
     height from one to the other, each floored at 120px.  Dragging the
     second-to-last divider re-anchors the last lane to the canvas bottom.

Drag handling is expressed as a ``DividerDragSession``: baseline heights
are captured once when the gesture starts and every move supplies an
absolute delta from that baseline, so repeated pointer events never
accumulate drift.

Height constants:
  - Auto-fit floor:    80px
  - Resize floor:      120px
  - Manual maximum:    300px (``set_lane_height`` / ``optimize_heights``)
  - New lane height:   150px
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import Callable, Iterable, Optional

from .models import (
    CANVAS_HEIGHT,
    Element,
    LaneBounds,
    LaneSnapshot,
    SwimLane,
    default_lanes,
)

logger = logging.getLogger(__name__)


# --- Height constants ---

AUTO_FIT_MIN_HEIGHT = 80
RESIZE_MIN_HEIGHT = 120
MAX_LANE_HEIGHT = 300
NEW_LANE_HEIGHT = 150

# Space kept clear between a lane edge and the elements placed inside it
LANE_INSET = 20

# Per-element height used when recommending lane heights
OPTIMIZE_ELEMENT_HEIGHT = 80
OPTIMIZE_LANE_PADDING = 40
OPTIMIZE_TOLERANCE = 20

NEW_LANE_NAME = "New Lane"
NEW_LANE_COLOR = "#95a5a6"


# ---------------------------------------------------------------------------
# Pure height arithmetic
# ---------------------------------------------------------------------------

def auto_fit_heights(
    heights: list[float],
    canvas_height: float = CANVAS_HEIGHT,
) -> list[float]:
    """Rebalance lane heights so they tile ``canvas_height``.

    Steps:
    1. Floor every lane at 80 and stretch (or shrink) the last lane to
       fill the remaining canvas height, never below 80.
    2. If the lanes still overflow, scale every lane by
       ``canvas_height / total`` (rounding down, floored at 80).  The
       total is the larger of the supplied and the stretched sums, so an
       oversized last lane counts toward the scale factor.
    3. Recompute the last lane from the others so rounding error lands
       there and nowhere else.
    """
    if not heights:
        return []

    supplied = [max(AUTO_FIT_MIN_HEIGHT, h) for h in heights]
    fitted = list(supplied)
    fitted[-1] = max(AUTO_FIT_MIN_HEIGHT, canvas_height - sum(fitted[:-1]))

    total = sum(fitted)
    if total > canvas_height:
        scale = canvas_height / max(total, sum(supplied))
        fitted = [max(AUTO_FIT_MIN_HEIGHT, math.floor(h * scale)) for h in supplied]
        fitted[-1] = max(AUTO_FIT_MIN_HEIGHT, canvas_height - sum(fitted[:-1]))

    return fitted


def resize_boundary_heights(
    heights: list[float],
    divider_index: int,
    delta_y: float,
    canvas_height: float = CANVAS_HEIGHT,
) -> list[float]:
    """Move the divider below lane ``divider_index`` by ``delta_y``.

    Divider ``i`` sits between lane ``i`` and lane ``i + 1``.  Both lanes
    are floored at 120.  For the second-to-last divider the last lane is
    recomputed to reach the canvas bottom; if that would leave it under
    120, it is held at 120 and the difference comes out of lane ``i``.

    Raises:
        ValueError: If ``divider_index`` does not name an existing divider.
    """
    if not 0 <= divider_index < len(heights) - 1:
        raise ValueError(
            f"Invalid divider index {divider_index} for {len(heights)} lanes"
        )

    top = max(RESIZE_MIN_HEIGHT, heights[divider_index] + delta_y)
    bottom = max(RESIZE_MIN_HEIGHT, heights[divider_index + 1] - delta_y)

    if divider_index == len(heights) - 2:
        above = sum(heights[:divider_index])
        bottom = canvas_height - above - top
        if bottom < RESIZE_MIN_HEIGHT:
            bottom = RESIZE_MIN_HEIGHT
            top = max(RESIZE_MIN_HEIGHT, canvas_height - bottom - above)

    resized = list(heights)
    resized[divider_index] = top
    resized[divider_index + 1] = bottom
    return resized


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class SwimLaneManager:
    """Owns the ordered lane list and the visibility flag.

    One instance per open diagram; pass it by reference to the resolver,
    the membership assigner and the renderer.  All methods are synchronous
    and leave the lanes tiling the canvas unless a floor clamp prevents it.
    """

    def __init__(
        self,
        lanes: Optional[Iterable[SwimLane]] = None,
        visible: bool = False,
        canvas_height: float = CANVAS_HEIGHT,
    ):
        self.lanes: list[SwimLane] = [lane.model_copy() for lane in lanes or []]
        self.visible = visible
        self.canvas_height = canvas_height

    @classmethod
    def from_snapshot(
        cls,
        snapshot: LaneSnapshot,
        canvas_height: float = CANVAS_HEIGHT,
    ) -> "SwimLaneManager":
        manager = cls(canvas_height=canvas_height)
        manager.load_snapshot(snapshot)
        return manager

    # --- Accessors ---

    @property
    def heights(self) -> list[float]:
        return [lane.height for lane in self.lanes]

    @property
    def total_height(self) -> float:
        return sum(self.heights)

    def get_lane(self, lane_id: Optional[str]) -> Optional[SwimLane]:
        for lane in self.lanes:
            if lane.id == lane_id:
                return lane
        return None

    def index_of(self, lane_id: str) -> int:
        for index, lane in enumerate(self.lanes):
            if lane.id == lane_id:
                return index
        return -1

    def lane_top(self, index: int) -> float:
        """Canvas y of the top edge of the lane at ``index``."""
        return sum(lane.height for lane in self.lanes[:index])

    # --- Lifecycle ---

    def initialize(self) -> None:
        """Seed the six default lanes if there are none, then auto-fit."""
        if not self.lanes:
            self.lanes = default_lanes()
            logger.info("Seeded %d default swim lanes", len(self.lanes))
        self.auto_fit()

    def snapshot(self) -> LaneSnapshot:
        """Deep copy of the persisted lane state."""
        return LaneSnapshot(
            visible=self.visible,
            lanes=[lane.model_copy() for lane in self.lanes],
        )

    def load_snapshot(self, snapshot: LaneSnapshot) -> None:
        """Restore lanes and visibility; an empty snapshot gets the defaults."""
        self.lanes = [lane.model_copy() for lane in snapshot.lanes] or default_lanes()
        self.visible = snapshot.visible
        self.auto_fit()

    def toggle_visibility(self) -> bool:
        self.visible = not self.visible
        return self.visible

    # --- Rebalancing ---

    def _apply_heights(self, heights: list[float]) -> None:
        for lane, height in zip(self.lanes, heights):
            lane.height = height

    def auto_fit(self) -> None:
        """Rebalance heights so the lanes tile the canvas (see ``auto_fit_heights``)."""
        self._apply_heights(auto_fit_heights(self.heights, self.canvas_height))

    def resize_boundary(self, divider_index: int, delta_y: float) -> None:
        """Move a divider by ``delta_y`` relative to the current heights.

        Interactive drags should go through ``begin_divider_drag`` instead,
        which measures every move from the heights at gesture start.
        """
        self._apply_heights(
            resize_boundary_heights(self.heights, divider_index, delta_y, self.canvas_height)
        )

    def begin_divider_drag(
        self,
        divider_index: int,
        on_commit: Optional[Callable[[LaneSnapshot], None]] = None,
    ) -> "DividerDragSession":
        return DividerDragSession(self, divider_index, on_commit=on_commit)

    def set_lane_height(self, lane_id: str, height: float) -> bool:
        """Set one lane's height, clamped to [120, 300], then auto-fit.

        Returns False if the lane does not exist.
        """
        lane = self.get_lane(lane_id)
        if lane is None:
            return False
        lane.height = max(RESIZE_MIN_HEIGHT, min(MAX_LANE_HEIGHT, height))
        self.auto_fit()
        return True

    def optimize_heights(self, elements: Iterable[Element]) -> bool:
        """Size each lane to its member count.

        The recommendation is ``count * 80 + 40`` clamped to [120, 300].
        Lanes already within 20px of their recommendation are left alone.
        Returns True if any height changed.
        """
        counts: dict[str, int] = {}
        for element in elements:
            if element.lane_id:
                counts[element.lane_id] = counts.get(element.lane_id, 0) + 1

        changed = False
        for lane in self.lanes:
            recommended = max(
                RESIZE_MIN_HEIGHT,
                min(
                    MAX_LANE_HEIGHT,
                    counts.get(lane.id, 0) * OPTIMIZE_ELEMENT_HEIGHT + OPTIMIZE_LANE_PADDING,
                ),
            )
            if abs(lane.height - recommended) > OPTIMIZE_TOLERANCE:
                lane.height = recommended
                changed = True

        if changed:
            self.auto_fit()
        return changed

    # --- Structural edits ---

    def add_lane(
        self,
        name: Optional[str] = None,
        color: Optional[str] = None,
        position: int = -1,
    ) -> SwimLane:
        """Insert a new lane at ``position`` (-1 appends) and auto-fit."""
        lane = SwimLane(
            id=f"lane-{uuid.uuid4().hex[:8]}",
            name=name or NEW_LANE_NAME,
            color=color or NEW_LANE_COLOR,
            height=NEW_LANE_HEIGHT,
        )
        if position == -1:
            self.lanes.append(lane)
        else:
            self.lanes.insert(position, lane)
        self.auto_fit()
        logger.info("Added swim lane %s (%s)", lane.id, lane.name)
        return lane

    def remove_lane(self, lane_id: str) -> bool:
        """Remove a lane and auto-fit.

        The last remaining lane cannot be removed; the call returns False
        and nothing changes.  Unknown ids also return False.
        """
        index = self.index_of(lane_id)
        if index == -1 or len(self.lanes) <= 1:
            logger.warning("Refused to remove swim lane %s", lane_id)
            return False
        del self.lanes[index]
        self.auto_fit()
        logger.info("Removed swim lane %s", lane_id)
        return True

    def rename_lane(self, old_name: str, new_name: str) -> bool:
        """Rename the first lane whose name matches ``old_name`` ignoring case."""
        for lane in self.lanes:
            if lane.name.lower() == old_name.lower():
                lane.name = new_name
                return True
        return False

    def ensure_lane(self, lane_id: str, name: str, color: str = "#17a2b8") -> SwimLane:
        """Return the lane matching ``lane_id`` or ``name``, creating it if needed."""
        for lane in self.lanes:
            if lane.id == lane_id or lane.name.lower() == name.lower():
                return lane

        lane = SwimLane(id=lane_id, name=name, color=color, height=NEW_LANE_HEIGHT)
        self.lanes.append(lane)
        self.auto_fit()
        logger.info("Created swim lane %s on demand", lane_id)
        return lane

    # --- Geometry queries ---

    def full_canvas_bounds(self) -> LaneBounds:
        return LaneBounds(min_y=0.0, max_y=float(self.canvas_height))

    def bounds_of(self, lane_id: Optional[str]) -> LaneBounds:
        """Vertical placement bounds for a lane, inset by 20px on both edges.

        Falls back to the full canvas when lanes are hidden or the id is
        unknown, so callers never have to handle a missing lane.
        """
        if not self.visible or lane_id is None:
            return self.full_canvas_bounds()

        index = self.index_of(lane_id)
        if index == -1:
            return self.full_canvas_bounds()

        min_y = self.lane_top(index) + LANE_INSET
        return LaneBounds(
            min_y=min_y,
            max_y=min_y + self.lanes[index].height - 2 * LANE_INSET,
        )

    def lane_center_y(self, lane_id: str, offset: float = 0.0) -> float:
        """Centre of a lane plus ``offset``, kept 20px inside the lane edges.

        Returns ``offset`` unchanged if the lane does not exist.
        """
        index = self.index_of(lane_id)
        if index == -1:
            return offset

        top = self.lane_top(index)
        height = self.lanes[index].height
        target = top + height / 2 + offset
        return max(top + LANE_INSET, min(top + height - LANE_INSET, target))


class DividerDragSession:
    """One interactive divider drag, from pointer-down to pointer-up.

    Baseline heights are captured at construction.  ``move`` takes the
    absolute pointer delta since the drag began and recomputes from the
    baseline every time.  ``finish`` commits, returns the snapshot to
    persist, and hands it to ``on_commit`` if one was given.
    """

    def __init__(
        self,
        manager: SwimLaneManager,
        divider_index: int,
        on_commit: Optional[Callable[[LaneSnapshot], None]] = None,
    ):
        if not 0 <= divider_index < len(manager.lanes) - 1:
            raise ValueError(
                f"Invalid divider index {divider_index} for {len(manager.lanes)} lanes"
            )
        self.manager = manager
        self.divider_index = divider_index
        self.baseline: list[float] = manager.heights
        self.on_commit = on_commit
        self.active = True

    def move(self, delta_y: float) -> list[float]:
        if not self.active:
            raise RuntimeError("Divider drag already finished")
        heights = resize_boundary_heights(
            self.baseline, self.divider_index, delta_y, self.manager.canvas_height
        )
        self.manager._apply_heights(heights)
        return heights

    def finish(self) -> LaneSnapshot:
        if not self.active:
            raise RuntimeError("Divider drag already finished")
        self.active = False
        snapshot = self.manager.snapshot()
        logger.debug("Committed divider %d drag: %s", self.divider_index, self.manager.heights)
        if self.on_commit:
            self.on_commit(snapshot)
        return snapshot
