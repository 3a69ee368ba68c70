"""YAML recipe parser for Flowlane-MCP.

A recipe bundles everything one resolution pass needs:

    title: Order Handling
    theme: dark
    swim_lanes:
      visible: true
      lanes:
        - {id: customer, name: Customer, color: "#003b6f", height: 150}
        - {id: sales, name: Sales, color: "#ad2929", height: 150}
    elements:
      - id: e1
        type: ellipse
        text: Start order
        x: 100
        y: 40
    candidates:
      - element_id: e1
        x: 120
        y: 60
        lane_id: customer
        reason: aligned with intake

``swim_lanes`` may be omitted entirely; the six default lanes are then
used (hidden).  ``positions`` is accepted as an alias for ``candidates``.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from .models import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CandidatePosition,
    Element,
    LaneSnapshot,
    LayoutDocument,
    SwimLane,
)


def parse_yaml(yaml_str: str) -> LayoutDocument:
    """Parse a YAML string into a LayoutDocument.

    Raises:
        ValueError: If the recipe is empty or any block has the wrong shape.
    """
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty YAML input")
    if not isinstance(data, dict):
        raise ValueError("Layout recipe must be a mapping")

    document = LayoutDocument(
        title=data.get("title") or "Untitled Layout",
        theme=data.get("theme") or "dark",
        width=_as_int(data.get("width"), CANVAS_WIDTH, "width"),
        height=_as_int(data.get("height"), CANVAS_HEIGHT, "height"),
        swim_lanes=_parse_swim_lanes(data.get("swim_lanes")),
    )

    for element_data in _as_list(data.get("elements"), "elements"):
        document.elements.append(_parse_element(_as_mapping(element_data, "element")))

    candidates = data.get("candidates")
    if candidates is None:
        candidates = data.get("positions")
    for candidate_data in _as_list(candidates, "candidates"):
        document.candidates.append(
            CandidatePosition.model_validate(_as_mapping(candidate_data, "candidate"))
        )

    return document


def parse_file(path: str) -> LayoutDocument:
    """Parse a YAML file into a LayoutDocument."""
    content = Path(path).read_text()
    return parse_yaml(content)


# --- Shape checks ---

def _as_list(value, what: str) -> list:
    """A missing or null block is an empty list; anything else must be a list."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{what}' must be a list, got {type(value).__name__}")
    return value


def _as_mapping(value, what: str) -> dict:
    if not isinstance(value, dict):
        raise ValueError(f"Each {what} must be a mapping, got {value!r}")
    return value


def _as_int(value, default: int, what: str) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"'{what}' must be a number, got {value!r}") from None


def _parse_swim_lanes(data) -> LaneSnapshot:
    """Parse the ``swim_lanes`` block; a bare list is treated as visible lanes."""
    if not data:
        return LaneSnapshot()
    if isinstance(data, list):
        return LaneSnapshot(visible=True, lanes=_parse_lanes(data))
    data = _as_mapping(data, "swim_lanes block")
    return LaneSnapshot(
        visible=bool(data.get("visible", False)),
        lanes=_parse_lanes(_as_list(data.get("lanes"), "lanes")),
    )


def _parse_lanes(data: list) -> list[SwimLane]:
    return [SwimLane.model_validate(_as_mapping(lane, "lane")) for lane in data]


def _parse_element(data: dict) -> Element:
    """Parse a single element.  ``lane_id`` is derived and never read here."""
    if "id" not in data:
        raise ValueError(f"Element is missing an 'id': {data!r}")
    return Element(
        id=str(data["id"]),
        type=data.get("type") or "rectangle",
        text=data.get("text") or "",
        x=float(data.get("x") or 0),
        y=float(data.get("y") or 0),
    )


def snapshot_to_yaml(snapshot: LaneSnapshot) -> str:
    """Serialize a lane snapshot on its own (for persistence)."""
    return yaml.dump(snapshot.model_dump(), default_flow_style=False, sort_keys=False)


def document_to_yaml(document: LayoutDocument) -> str:
    """Serialize a LayoutDocument back to YAML."""
    data = {
        "title": document.title,
        "theme": document.theme,
        "swim_lanes": document.swim_lanes.model_dump(),
        "elements": [],
        "candidates": [],
    }
    if document.width != CANVAS_WIDTH:
        data["width"] = document.width
    if document.height != CANVAS_HEIGHT:
        data["height"] = document.height

    for element in document.elements:
        element_data = {
            "id": element.id,
            "type": element.type,
            "x": element.x,
            "y": element.y,
        }
        if element.text:
            element_data["text"] = element.text
        if element.lane_id:
            element_data["lane_id"] = element.lane_id
        data["elements"].append(element_data)

    for candidate in document.candidates:
        data["candidates"].append(
            {k: v for k, v in candidate.model_dump().items() if v is not None}
        )

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
