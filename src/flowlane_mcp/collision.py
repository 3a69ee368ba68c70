"""
Collision resolution for Flowlane-MCP.

Turns a batch of proposed element positions into a collision-free
placement.  The algorithm is greedy and order-dependent: candidates are
placed one at a time in priority order, and every accepted placement is
final for the rest of the pass.

For each candidate:

  1. Measure the element from its type (unknown types → 120 x 80).
  2. Pad the box by 20px on every side.  If it overlaps nothing placed so
     far, accept the candidate as proposed.
  3. Otherwise probe outward on rings of radius 30, 60, ... 1470
     (49 attempts).  Each ring tests 8 angles, 0° to 315° in 45° steps.
     Vertical displacement is damped to 30% of the radius so elements
     slide sideways within their lane rather than out of it; x is clamped
     to the canvas and y to the candidate's lane bounds before testing.
  4. If a whole ring fails, try two purely horizontal shifts of
     ``attempt * 60`` (right first, then left) at the original y.
  5. If every attempt fails, keep the original coordinates and flag the
     entry as unresolved.  The element is still emitted but does not
     occupy space, so later candidates are not pushed around by it.

Candidates whose element is missing from the directory are skipped
silently.  A fresh ``OccupancyIndex`` is built for every pass, so two
passes never share state.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from .membership import assign_lanes, lane_at_position
from .models import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CandidatePosition,
    CorrectedPosition,
    Element,
    LaneBounds,
    LayoutDocument,
    element_dimensions,
)
from .occupancy import OccupancyIndex, OccupiedRect
from .priority import prioritize_candidates
from .swimlanes import SwimLaneManager

logger = logging.getLogger(__name__)


# --- Search constants ---

COLLISION_PADDING = 20

# Attempts run from 1 to MAX_ATTEMPTS - 1
MAX_ATTEMPTS = 50

RADIUS_STEP = 30
ANGLE_STEP_DEGREES = 45
VERTICAL_DAMPING = 0.3
HORIZONTAL_STEP = 60


@dataclass
class ResolutionResult:
    """Outcome of one resolution pass."""
    positions: list[CorrectedPosition] = field(default_factory=list)
    unresolved: int = 0

    @property
    def resolved(self) -> int:
        return len(self.positions) - self.unresolved

    def to_list(self) -> list[dict[str, Any]]:
        """Plain dicts for the rendering and persistence layers."""
        return [position.model_dump() for position in self.positions]

    def by_element(self) -> dict[str, CorrectedPosition]:
        return {position.element_id: position for position in self.positions}


CandidateInput = Union[CandidatePosition, Mapping[str, Any]]
ElementsInput = Union[Mapping[str, Element], Iterable[Element]]


def _as_directory(elements: ElementsInput) -> Mapping[str, Element]:
    if isinstance(elements, Mapping):
        return elements
    return {element.id: element for element in elements}


def _as_candidate(candidate: CandidateInput) -> CandidatePosition:
    if isinstance(candidate, CandidatePosition):
        return candidate
    return CandidatePosition.model_validate(candidate)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class CollisionResolver:
    """Greedy, order-dependent placement of candidate positions.

    ``lanes`` supplies vertical bounds for candidates that carry a lane
    hint; without a manager (or with lanes hidden) every candidate is
    bounded by the full canvas.
    """

    def __init__(
        self,
        lanes: Optional[SwimLaneManager] = None,
        canvas_width: float = CANVAS_WIDTH,
        canvas_height: float = CANVAS_HEIGHT,
        padding: float = COLLISION_PADDING,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.lanes = lanes
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.padding = padding
        self.max_attempts = max_attempts

    def resolve(
        self,
        candidates: Iterable[CandidateInput],
        elements: ElementsInput,
    ) -> ResolutionResult:
        """Run one pass over ``candidates`` against the element directory."""
        directory = _as_directory(elements)
        ordered = prioritize_candidates([_as_candidate(c) for c in candidates], directory)

        index = OccupancyIndex()
        result = ResolutionResult()

        for candidate in ordered:
            element = directory.get(candidate.element_id)
            if element is None:
                logger.debug("Skipping candidate for unknown element %s", candidate.element_id)
                continue

            width, height = element_dimensions(element.type)
            found = self.find_free_position(candidate, width, height, index)

            if found is None:
                x, y = candidate.x, candidate.y
                result.unresolved += 1
                logger.debug("No free position for %s; keeping (%.1f, %.1f)",
                             candidate.element_id, x, y)
            else:
                x, y = found
                index.mark_occupied(
                    candidate.element_id,
                    OccupiedRect.around(x, y, width, height, self.padding),
                )

            result.positions.append(
                self._corrected(candidate, x, y, height, resolved=found is not None)
            )

        logger.info(
            "Resolved %d positions (%d unresolved)",
            len(result.positions), result.unresolved,
        )
        return result

    def find_free_position(
        self,
        candidate: CandidatePosition,
        width: float,
        height: float,
        index: OccupancyIndex,
    ) -> Optional[tuple[float, float]]:
        """Nearest free top-left corner for ``candidate``, or None.

        Probes are generated in a fixed order, so the same inputs always
        produce the same answer.
        """
        if self._is_free(candidate.x, candidate.y, width, height, index):
            return candidate.x, candidate.y

        bounds = self._bounds(candidate.lane_id)

        for attempt in range(1, self.max_attempts):
            radius = attempt * RADIUS_STEP

            for angle in range(0, 360, ANGLE_STEP_DEGREES):
                radians = math.radians(angle)
                test_x = self._clamp_x(candidate.x + math.cos(radians) * radius, width)
                test_y = max(
                    bounds.min_y,
                    min(
                        bounds.max_y - height,
                        candidate.y + math.sin(radians) * radius * VERTICAL_DAMPING,
                    ),
                )
                if self._is_free(test_x, test_y, width, height, index):
                    logger.debug("Placed %s after %d attempts", candidate.element_id, attempt)
                    return test_x, test_y

            shift = attempt * HORIZONTAL_STEP
            for direction in (1, -1):
                test_x = self._clamp_x(candidate.x + shift * direction, width)
                if self._is_free(test_x, candidate.y, width, height, index):
                    return test_x, candidate.y

        return None

    # --- Helpers ---

    def _is_free(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        index: OccupancyIndex,
    ) -> bool:
        return index.is_free(OccupiedRect.around(x, y, width, height, self.padding))

    def _clamp_x(self, x: float, width: float) -> float:
        return max(0.0, min(self.canvas_width - width, x))

    def _bounds(self, lane_id: Optional[str]) -> LaneBounds:
        if self.lanes is None:
            return LaneBounds(min_y=0.0, max_y=float(self.canvas_height))
        return self.lanes.bounds_of(lane_id)

    def _corrected(
        self,
        candidate: CandidatePosition,
        x: float,
        y: float,
        height: float,
        resolved: bool,
    ) -> CorrectedPosition:
        data = candidate.model_dump()
        data.update(x=x, y=y, resolved=resolved)

        if self.lanes is not None and self.lanes.visible:
            lane = lane_at_position(self.lanes.lanes, y + height / 2)
            if lane is not None:
                data["lane_id"] = lane.id

        return CorrectedPosition(**data)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

# Section names an analysis payload may use for its position proposals
ANALYSIS_SECTION_KEYS = ("layout_optimization", "layout_optimierung")


def apply_collision_safe_optimization(
    analysis: dict[str, Any],
    elements: ElementsInput,
    lanes: Optional[SwimLaneManager] = None,
) -> dict[str, Any]:
    """Make an AI layout analysis collision-free in place.

    Expects the proposals under
    ``analysis["layout_optimization"]["optimized_positions"]``
    (``layout_optimierung`` is read too).  The list is replaced by the
    corrected positions and the section is stamped with
    ``collision_checked``, ``collision_fixes`` and
    ``unresolved_positions``.  An analysis without proposals is returned
    untouched.
    """
    section: dict[str, Any] = {}
    for key in ANALYSIS_SECTION_KEYS:
        if analysis.get(key):
            section = analysis[key]
            break
    proposals = section.get("optimized_positions")
    if not proposals:
        return analysis

    result = CollisionResolver(lanes=lanes).resolve(proposals, elements)

    section["optimized_positions"] = result.to_list()
    section["collision_checked"] = True
    section["collision_fixes"] = len(result.positions)
    section["unresolved_positions"] = result.unresolved
    return analysis


def resolve_document(
    document: LayoutDocument,
) -> tuple[LayoutDocument, ResolutionResult, SwimLaneManager]:
    """Resolve a layout recipe end to end.

    Builds a lane manager from the document's snapshot, resolves the
    candidates, moves the elements to their corrected positions, and
    reassigns lane membership.  The input document is not modified; a
    resolved copy is returned alongside the pass result and the manager.
    """
    resolved = document.model_copy(deep=True)

    manager = SwimLaneManager.from_snapshot(resolved.swim_lanes, canvas_height=resolved.height)
    directory = resolved.element_directory()

    result = CollisionResolver(
        lanes=manager,
        canvas_width=resolved.width,
        canvas_height=resolved.height,
    ).resolve(resolved.candidates, directory)

    for position in result.positions:
        element = directory[position.element_id]
        element.x = position.x
        element.y = position.y

    assign_lanes(resolved.elements, manager)
    resolved.swim_lanes = manager.snapshot()
    return resolved, result, manager
