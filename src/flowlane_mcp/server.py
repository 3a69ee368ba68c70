"""Flowlane-MCP server: MCP tools for collision-free swim lane layouts."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from .collision import resolve_document
from .membership import assign_lanes, lane_statistics
from .models import LaneSnapshot
from .parser import document_to_yaml, parse_yaml, snapshot_to_yaml
from .renderer import LayoutRenderer
from .swimlanes import SwimLaneManager

logger = logging.getLogger(__name__)


# --- Constants ---
OUTPUT_DIR = Path(os.environ.get("FLOWLANE_OUTPUT_DIR", Path.home() / ".flowlane" / "output"))

server = Server("flowlane-mcp")


def _ensure_output_dir():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


def _text(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def _lanes_payload(manager: SwimLaneManager) -> list[dict]:
    return [lane.model_dump() for lane in manager.lanes]


_LANE_SNAPSHOT_SCHEMA = {
    "type": "object",
    "description": "Lane snapshot: {visible: bool, lanes: [{id, name, color, height}]}.",
    "properties": {
        "visible": {"type": "boolean"},
        "lanes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "color": {"type": "string"},
                    "height": {"type": "number"},
                },
                "required": ["id", "name"],
            },
        },
    },
}


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="resolve_layout",
            description=(
                "Resolve proposed element positions into a collision-free layout. "
                "Takes a YAML recipe with swim_lanes, elements and candidates; "
                "returns the corrected positions, the unresolved count, and "
                "per-lane statistics. Optionally renders a PNG preview."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "yaml_recipe": {
                        "type": "string",
                        "description": (
                            "YAML layout recipe. Example:\n"
                            "title: Order Handling\n"
                            "swim_lanes:\n"
                            "  visible: true\n"
                            "  lanes:\n"
                            "    - {id: customer, name: Customer, height: 540}\n"
                            "    - {id: sales, name: Sales, height: 540}\n"
                            "elements:\n"
                            "  - {id: e1, type: ellipse, text: Start order}\n"
                            "candidates:\n"
                            "  - {element_id: e1, x: 100, y: 100, lane_id: customer}\n"
                            "\n"
                            "Element types: rectangle, ellipse, diamond, parallelogram, "
                            "cylinder, document"
                        ),
                    },
                    "render": {
                        "type": "boolean",
                        "description": "Also render a PNG preview and save the resolved YAML. Default: false.",
                        "default": False,
                    },
                    "scale": {
                        "type": "number",
                        "description": "Render scale factor (default 1.0)",
                        "default": 1.0,
                    },
                },
                "required": ["yaml_recipe"],
            },
        ),
        Tool(
            name="fit_swim_lanes",
            description=(
                "Rebalance lane heights so they tile the canvas height. "
                "Seeds the six default lanes when none are given."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "swim_lanes": _LANE_SNAPSHOT_SCHEMA,
                    "canvas_height": {"type": "number", "default": 1080},
                },
            },
        ),
        Tool(
            name="resize_swim_lane",
            description=(
                "Move the divider below lane `divider_index` by `delta_y` pixels. "
                "Lanes never shrink below 120px; moving the second-to-last divider "
                "keeps the last lane anchored to the canvas bottom."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "swim_lanes": _LANE_SNAPSHOT_SCHEMA,
                    "divider_index": {"type": "integer"},
                    "delta_y": {"type": "number"},
                    "canvas_height": {"type": "number", "default": 1080},
                },
                "required": ["swim_lanes", "divider_index", "delta_y"],
            },
        ),
        Tool(
            name="lane_statistics",
            description="Assign elements of a YAML recipe to lanes and report per-lane counts.",
            inputSchema={
                "type": "object",
                "properties": {
                    "yaml_recipe": {"type": "string"},
                },
                "required": ["yaml_recipe"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name == "resolve_layout":
        return await _resolve_layout(arguments)
    elif name == "fit_swim_lanes":
        return await _fit_swim_lanes(arguments)
    elif name == "resize_swim_lane":
        return await _resize_swim_lane(arguments)
    elif name == "lane_statistics":
        return await _lane_statistics(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


async def _resolve_layout(args: dict) -> list[TextContent]:
    """Resolve a YAML recipe and optionally render it."""
    try:
        document = parse_yaml(args["yaml_recipe"])
    except (ValueError, TypeError, ValidationError, KeyError) as e:
        return [TextContent(type="text", text=f"Failed to parse YAML recipe: {e}")]

    resolved, result, manager = resolve_document(document)

    payload = {
        "status": "success",
        "title": resolved.title,
        "positions": result.to_list(),
        "unresolved": result.unresolved,
        "lanes": _lanes_payload(manager),
        "lane_statistics": lane_statistics(resolved.elements, manager),
    }

    if args.get("render", False):
        _ensure_output_dir()
        filename = resolved.title.lower().replace(" ", "-")[:30] + "-" + str(uuid.uuid4())[:4]
        png_path = str(OUTPUT_DIR / f"{filename}.png")
        yaml_path = str(OUTPUT_DIR / f"{filename}.yaml")
        try:
            LayoutRenderer(scale=args.get("scale", 1.0)).render(
                resolved, manager=manager, result=result, output_path=png_path,
            )
        except (ValueError, OSError) as e:
            return [TextContent(type="text", text=f"Rendering failed: {e}")]
        Path(yaml_path).write_text(document_to_yaml(resolved))
        payload["png_path"] = png_path
        payload["yaml_path"] = yaml_path

    return _text(payload)


def _manager_from_args(args: dict) -> SwimLaneManager:
    snapshot = LaneSnapshot.model_validate(args.get("swim_lanes") or {})
    return SwimLaneManager(
        lanes=snapshot.lanes,
        visible=snapshot.visible,
        canvas_height=args.get("canvas_height", 1080),
    )


async def _fit_swim_lanes(args: dict) -> list[TextContent]:
    try:
        manager = _manager_from_args(args)
    except ValidationError as e:
        return [TextContent(type="text", text=f"Invalid swim lanes: {e}")]

    manager.initialize()
    return _text({
        "status": "success",
        "lanes": _lanes_payload(manager),
        "total_height": manager.total_height,
        "snapshot_yaml": snapshot_to_yaml(manager.snapshot()),
    })


async def _resize_swim_lane(args: dict) -> list[TextContent]:
    try:
        manager = _manager_from_args(args)
        manager.resize_boundary(int(args["divider_index"]), float(args["delta_y"]))
    except (ValueError, TypeError, KeyError, ValidationError) as e:
        return [TextContent(type="text", text=f"Resize failed: {e}")]

    return _text({
        "status": "success",
        "lanes": _lanes_payload(manager),
        "total_height": manager.total_height,
    })


async def _lane_statistics(args: dict) -> list[TextContent]:
    try:
        document = parse_yaml(args["yaml_recipe"])
    except (ValueError, TypeError, ValidationError, KeyError) as e:
        return [TextContent(type="text", text=f"Failed to parse YAML recipe: {e}")]

    manager = SwimLaneManager.from_snapshot(document.swim_lanes, canvas_height=document.height)
    assign_lanes(document.elements, manager)
    return _text({
        "status": "success",
        "visible": manager.visible,
        "lane_statistics": lane_statistics(document.elements, manager),
    })


def main():
    """Entry point for the MCP server."""
    import asyncio
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
