"""Tests for the MCP tool handlers."""

import json
from pathlib import Path

import pytest

from flowlane_mcp import server
from flowlane_mcp.server import (
    _fit_swim_lanes,
    _lane_statistics,
    _resize_swim_lane,
    _resolve_layout,
    call_tool,
)


RECIPE = """
title: Two Lanes
swim_lanes:
  visible: true
  lanes:
    - {id: front, name: Front, height: 540}
    - {id: back, name: Back, height: 540}
elements:
  - {id: a, type: ellipse, text: Start}
  - {id: b, text: Pack}
candidates:
  - {element_id: a, x: 300, y: 600, lane_id: back}
  - {element_id: b, x: 300, y: 600, lane_id: back, reason: next step}
"""


def _payload(content):
    assert len(content) == 1
    return json.loads(content[0].text)


# =============================================================================
# resolve_layout
# =============================================================================


class TestResolveLayout:

    @pytest.mark.asyncio
    async def test_resolves_positions(self):
        payload = _payload(await _resolve_layout({"yaml_recipe": RECIPE}))

        assert payload["status"] == "success"
        assert payload["unresolved"] == 0
        positions = {p["element_id"]: p for p in payload["positions"]}
        assert (positions["a"]["x"], positions["a"]["y"]) == (300, 600)
        assert (positions["b"]["x"], positions["b"]["y"]) == (480, 600)
        assert positions["b"]["reason"] == "next step"
        assert payload["lane_statistics"]["back"]["element_count"] == 2
        assert [lane["height"] for lane in payload["lanes"]] == [540, 540]
        assert "png_path" not in payload

    @pytest.mark.asyncio
    async def test_render_writes_files(self, tmp_path, monkeypatch):
        monkeypatch.setattr(server, "OUTPUT_DIR", tmp_path)
        payload = _payload(await _resolve_layout(
            {"yaml_recipe": RECIPE, "render": True, "scale": 0.5}
        ))

        png_path = Path(payload["png_path"])
        yaml_path = Path(payload["yaml_path"])
        assert png_path.parent == tmp_path
        assert png_path.read_bytes()[:4] == b"\x89PNG"
        assert "x: 480" in yaml_path.read_text()

    @pytest.mark.asyncio
    async def test_bad_yaml(self):
        content = await _resolve_layout({"yaml_recipe": "- not a mapping"})
        assert content[0].text.startswith("Failed to parse YAML recipe")

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        content = await call_tool("explode", {})
        assert content[0].text == "Unknown tool: explode"


# =============================================================================
# Lane tools
# =============================================================================


class TestLaneTools:

    @pytest.mark.asyncio
    async def test_fit_seeds_defaults(self):
        payload = _payload(await _fit_swim_lanes({}))
        assert payload["total_height"] == 1080
        assert [lane["id"] for lane in payload["lanes"]] == [
            "customer", "sales", "production", "finance", "it", "management",
        ]
        assert payload["lanes"][-1]["height"] == 330
        assert "visible:" in payload["snapshot_yaml"]

    @pytest.mark.asyncio
    async def test_fit_custom_canvas(self):
        payload = _payload(await _fit_swim_lanes({
            "swim_lanes": {"lanes": [{"id": "a", "name": "A", "height": 100}]},
            "canvas_height": 600,
        }))
        assert payload["lanes"][0]["height"] == 600

    @pytest.mark.asyncio
    async def test_resize_second_to_last_divider(self):
        lanes = [{"id": f"l{i}", "name": f"L{i}", "height": 150} for i in range(5)]
        lanes.append({"id": "l5", "name": "L5", "height": 330})
        payload = _payload(await _resize_swim_lane({
            "swim_lanes": {"visible": True, "lanes": lanes},
            "divider_index": 4,
            "delta_y": 40,
        }))
        assert [lane["height"] for lane in payload["lanes"]] == [150, 150, 150, 150, 190, 290]
        assert payload["total_height"] == 1080

    @pytest.mark.asyncio
    async def test_resize_bad_divider(self):
        lanes = [{"id": "a", "name": "A", "height": 540}, {"id": "b", "name": "B", "height": 540}]
        content = await _resize_swim_lane({
            "swim_lanes": {"lanes": lanes},
            "divider_index": 3,
            "delta_y": 10,
        })
        assert content[0].text.startswith("Resize failed")

    @pytest.mark.asyncio
    async def test_lane_statistics(self):
        recipe = """
swim_lanes:
  visible: true
  lanes:
    - {id: front, name: Front, height: 540}
    - {id: back, name: Back, height: 540}
elements:
  - {id: a, x: 0, y: 100}
  - {id: b, x: 0, y: 700}
  - {id: c, x: 300, y: 800}
"""
        payload = _payload(await _lane_statistics({"yaml_recipe": recipe}))
        assert payload["visible"] is True
        assert payload["lane_statistics"]["front"]["elements"] == ["a"]
        assert payload["lane_statistics"]["back"]["elements"] == ["b", "c"]


# =============================================================================
# Malformed recipes
# =============================================================================


MALFORMED_RECIPES = [
    "title: T\nswim_lanes: nope\n",
    "swim_lanes:\n  lanes:\n    - oops\n",
    "elements:\n  - just-a-string\n",
    "elements: 5\n",
    "elements:\n  - {type: diamond}\n",
    "candidates:\n  - 42\n",
    "width: wide\n",
]


class TestMalformedRecipes:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipe", MALFORMED_RECIPES)
    async def test_resolve_layout_returns_error_text(self, recipe):
        content = await _resolve_layout({"yaml_recipe": recipe})
        assert content[0].text.startswith("Failed to parse YAML recipe")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipe", MALFORMED_RECIPES)
    async def test_lane_statistics_returns_error_text(self, recipe):
        content = await _lane_statistics({"yaml_recipe": recipe})
        assert content[0].text.startswith("Failed to parse YAML recipe")

    @pytest.mark.asyncio
    async def test_null_blocks_are_empty(self):
        payload = _payload(await _resolve_layout(
            {"yaml_recipe": "title: T\nelements:\ncandidates:\n"}
        ))
        assert payload["status"] == "success"
        assert payload["positions"] == []
        assert payload["unresolved"] == 0

    @pytest.mark.asyncio
    async def test_resize_missing_arguments(self):
        content = await _resize_swim_lane({"swim_lanes": {"lanes": []}})
        assert content[0].text.startswith("Resize failed")
