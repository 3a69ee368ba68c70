"""
Data models for Flowlane-MCP: the layout ontology.

A layout pass works on three kinds of data:

    Element            - a flowchart shape owned by the project store
    CandidatePosition  - a proposed, unvalidated coordinate for an element
    SwimLane           - a horizontal band of the canvas

Elements carry a ``type`` from the shape system below.  The type only
matters to the layout core through its bounding box; any unknown type is
accepted and measured as a rectangle:

    rectangle     - 120 x 80   (process step, the default)
    ellipse       - 120 x 80   (start / end)
    diamond       - 100 x 100  (decision)
    parallelogram - 140 x 80   (input / output)
    cylinder      - 120 x 90   (data store)
    document      - 100 x 120  (document)

Lanes are stored as an ordered list; the index is the top-to-bottom visual
order and each lane's vertical extent is derived from the heights of the
lanes above it (see ``LaneBounds``).  The persisted form of the lane list
is a ``LaneSnapshot``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Canvas constants
# ---------------------------------------------------------------------------

CANVAS_WIDTH = 1920
CANVAS_HEIGHT = 1080

DEFAULT_ELEMENT_TYPE = "rectangle"

# (width, height) per element type
ELEMENT_DIMENSIONS: dict[str, tuple[float, float]] = {
    "rectangle":     (120.0, 80.0),
    "ellipse":       (120.0, 80.0),
    "diamond":       (100.0, 100.0),
    "parallelogram": (140.0, 80.0),
    "cylinder":      (120.0, 90.0),
    "document":      (100.0, 120.0),
}


def element_dimensions(element_type: Optional[str]) -> tuple[float, float]:
    """Return ``(width, height)`` for an element type.

    Unknown or missing types get the rectangle size; this is never an error.
    """
    return ELEMENT_DIMENSIONS.get(element_type or DEFAULT_ELEMENT_TYPE,
                                  ELEMENT_DIMENSIONS[DEFAULT_ELEMENT_TYPE])


# ---------------------------------------------------------------------------
# Elements
# ---------------------------------------------------------------------------

class Element(BaseModel):
    """A flowchart element as seen by the layout core.

    Only the fields the core reads are modelled: the shape ``type`` (for
    dimensions), the ``text`` (for priority heuristics) and the current
    top-left position.

    Lane Membership
    ---------------
    ``lane_id`` is derived data.  It is written exclusively by
    ``membership.assign_lanes`` and should never be set by hand; any value
    read from a recipe is overwritten on the next assignment run.
    """
    id: str
    type: str = DEFAULT_ELEMENT_TYPE
    text: str = ""
    x: float = 0.0
    y: float = 0.0
    lane_id: Optional[str] = None

    @property
    def width(self) -> float:
        return element_dimensions(self.type)[0]

    @property
    def height(self) -> float:
        return element_dimensions(self.type)[1]

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    def is_start(self) -> bool:
        """True if the element's text mentions "start" in any casing."""
        return "start" in self.text.lower()


# ---------------------------------------------------------------------------
# Candidate and corrected positions
# ---------------------------------------------------------------------------

class CandidatePosition(BaseModel):
    """A proposed position for one element.

    Candidates come from an external layout step (an optimizer, an AI
    suggestion, auto-arrange) and may overlap each other freely.  Any
    extra keys on the incoming payload (``reason``, scores and so on)
    are kept and travel through to the corrected output.  The lane hint
    is also accepted under the key ``swimlane``.
    """
    model_config = ConfigDict(extra="allow")

    element_id: str
    x: float
    y: float
    lane_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("lane_id", "swimlane"),
    )


class CorrectedPosition(CandidatePosition):
    """A candidate after collision resolution.

    ``resolved`` is False when the search budget ran out and the original
    candidate coordinates were kept unchanged.
    """
    resolved: bool = True


# ---------------------------------------------------------------------------
# Swim lanes
# ---------------------------------------------------------------------------

class SwimLane(BaseModel):
    """A horizontal band of the canvas.

    ``color`` is presentation-only; the layout core never reads it.
    ``height`` is in canvas pixels.
    """
    id: str
    name: str
    color: str = "#95a5a6"
    height: float = 150.0


class LaneSnapshot(BaseModel):
    """Serialisable lane state, persisted between sessions."""
    visible: bool = False
    lanes: list[SwimLane] = Field(default_factory=list)


@dataclass(frozen=True)
class LaneBounds:
    """Vertical range a candidate's top edge may be clamped into.

    Derived on demand from the lane sequence; never stored.
    """
    min_y: float
    max_y: float


DEFAULT_SWIM_LANES: list[SwimLane] = [
    SwimLane(id="customer",   name="Customer",   color="#003b6f", height=150),
    SwimLane(id="sales",      name="Sales",      color="#ad2929", height=150),
    SwimLane(id="production", name="Production", color="#003b6f", height=150),
    SwimLane(id="finance",    name="Finance",    color="#ad2929", height=150),
    SwimLane(id="it",         name="IT",         color="#1abc9c", height=150),
    SwimLane(id="management", name="Management", color="#003b6f", height=150),
]


def default_lanes() -> list[SwimLane]:
    """Return fresh copies of the six default lanes."""
    return [lane.model_copy() for lane in DEFAULT_SWIM_LANES]


# ---------------------------------------------------------------------------
# Layout document (the YAML recipe root)
# ---------------------------------------------------------------------------

class LayoutDocument(BaseModel):
    """A complete layout recipe: elements, lanes and proposed positions.

    This is what the parser produces and what the MCP tools exchange.  The
    ``width``/``height`` describe the canvas the lanes tile.
    """
    title: str = "Untitled Layout"
    theme: str = "dark"
    width: int = CANVAS_WIDTH
    height: int = CANVAS_HEIGHT
    swim_lanes: LaneSnapshot = Field(default_factory=LaneSnapshot)
    elements: list[Element] = Field(default_factory=list)
    candidates: list[CandidatePosition] = Field(default_factory=list)

    def element_directory(self) -> dict[str, Element]:
        """Map element id to element for O(1) lookup."""
        return {element.id: element for element in self.elements}
