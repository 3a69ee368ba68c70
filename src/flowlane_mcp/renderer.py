"""Layout renderer using Pillow, a thin presentation adapter.

The layout core never draws anything.  This module reads its outputs (the
lane manager, the element directory and an optional resolution result)
and paints a PNG preview: lane bands with their names and member counts,
the dividers between them, and every element as its flowchart shape.
Placements that exhausted the search budget get a warning outline.
"""

from __future__ import annotations

import math
import textwrap
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .collision import ResolutionResult
from .membership import lane_statistics
from .models import Element, LayoutDocument
from .swimlanes import SwimLaneManager
from .themes import get_theme, ThemePalette


# --- Fonts and colors ---

FONT_CANDIDATES = {
    False: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ),
    True: (
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ),
}


def _load_font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """First installed TrueType face of the requested weight.

    Bold falls back to the regular faces, then to Pillow's built-in font.
    """
    candidates = FONT_CANDIDATES[True] + FONT_CANDIDATES[False] if bold else FONT_CANDIDATES[False]
    path = next((p for p in candidates if Path(p).exists()), None)
    if path is None:
        return ImageFont.load_default()
    return ImageFont.truetype(path, max(1, size))


def _hex_to_rgb(color: str) -> tuple[int, int, int]:
    """``#rgb`` / ``#rrggbb`` / ``#rrggbbaa`` to an RGB triple (alpha dropped)."""
    return ImageColor.getrgb(color)[:3]


def _hex_to_rgba(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    return (*_hex_to_rgb(color), alpha)


def _wrap_text(text: str, font: ImageFont.FreeTypeFont, max_width: int) -> list[str]:
    """Word-wrap text to fit within max_width pixels."""
    lines = []
    current = ""
    for word in text.split():
        test = f"{current} {word}".strip()
        bbox = font.getbbox(test)
        if bbox[2] - bbox[0] <= max_width:
            current = test
            continue
        if current:
            lines.append(current)
        if font.getbbox(word)[2] - font.getbbox(word)[0] > max_width:
            lines.extend(textwrap.wrap(word, width=max(1, max_width // 8)))
            current = ""
        else:
            current = word
    if current:
        lines.append(current)
    return lines


# --- Shape outlines (in canvas units, before scaling) ---

PARALLELOGRAM_SKEW = 20
CYLINDER_CAP = 14
DOCUMENT_WAVE = 8


def _shape_polygon(element_type: str, x: float, y: float, w: float, h: float) -> list[tuple[float, float]]:
    """Polygon outline for the polygonal element types."""
    if element_type == "diamond":
        return [(x + w / 2, y), (x + w, y + h / 2), (x + w / 2, y + h), (x, y + h / 2)]
    if element_type == "parallelogram":
        s = PARALLELOGRAM_SKEW
        return [(x + s, y), (x + w, y), (x + w - s, y + h), (x, y + h)]
    if element_type == "document":
        points = [(x, y), (x + w, y)]
        steps = 12
        for i in range(steps + 1):
            px = x + w - w * i / steps
            py = y + h - DOCUMENT_WAVE + math.sin(2 * math.pi * i / steps) * DOCUMENT_WAVE
            points.append((px, py))
        return points
    return [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]


# --- Main renderer ---

class LayoutRenderer:
    """Renders a resolved layout to a PNG image."""

    TITLE_HEIGHT = 48
    LANE_HEADER_PADDING = 12
    ELEMENT_TEXT_PADDING = 10
    BORDER_WIDTH = 2
    UNRESOLVED_BORDER_WIDTH = 4

    def __init__(self, scale: float = 1.0):
        self.scale = scale
        self.font_body = _load_font(int(13 * scale))
        self.font_lane = _load_font(int(15 * scale), bold=True)
        self.font_title = _load_font(int(24 * scale), bold=True)
        self.font_small = _load_font(int(12 * scale))
        self.theme: ThemePalette = get_theme("dark")

    def render(
        self,
        document: LayoutDocument,
        manager: Optional[SwimLaneManager] = None,
        result: Optional[ResolutionResult] = None,
        output_path: Optional[str] = None,
    ) -> bytes:
        """Render the document to PNG bytes.  Optionally save to file.

        Args:
            document: Layout whose elements are drawn at their current x/y.
            manager: Lane geometry; defaults to one built from the document.
            result: Resolution pass whose unresolved entries get highlighted.
            output_path: Optional path to save the PNG.
        """
        self.theme = get_theme(document.theme)
        if manager is None:
            manager = SwimLaneManager.from_snapshot(document.swim_lanes, canvas_height=document.height)

        s = self.scale
        img_width = int(document.width * s)
        img_height = int((document.height + self.TITLE_HEIGHT) * s)
        img = Image.new("RGBA", (img_width, img_height), _hex_to_rgba(self.theme.background))
        draw = ImageDraw.Draw(img, "RGBA")

        self._draw_title(draw, document.title, img_width)

        oy = self.TITLE_HEIGHT
        if manager.visible:
            self._draw_lanes(draw, manager, document.elements, oy, img_width)

        unresolved = set()
        if result is not None:
            unresolved = {p.element_id for p in result.positions if not p.resolved}

        for element in document.elements:
            self._draw_element(draw, element, oy, element.id in unresolved)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _draw_title(self, draw: ImageDraw.ImageDraw, title: str, img_width: int):
        """Draw the document title centered in the title strip."""
        bbox = self.font_title.getbbox(title)
        tw = bbox[2] - bbox[0]
        draw.text(((img_width - tw) / 2, 10 * self.scale), title,
                  fill=self.theme.title_color, font=self.font_title)

    def _draw_lanes(
        self,
        draw: ImageDraw.ImageDraw,
        manager: SwimLaneManager,
        elements: list[Element],
        oy: float,
        img_width: int,
    ):
        """Draw lane bands, headers with member counts, and dividers."""
        s = self.scale
        stats = lane_statistics(elements, manager)
        current_y = 0.0

        for index, lane in enumerate(manager.lanes):
            top = (current_y + oy) * s
            bottom = (current_y + lane.height + oy) * s
            draw.rectangle(
                [0, top, img_width, bottom],
                fill=_hex_to_rgba(lane.color, self.theme.lane_fill_alpha),
            )

            pad = self.LANE_HEADER_PADDING * s
            draw.text((pad, top + pad), lane.name,
                      fill=self.theme.lane_header_text, font=self.font_lane)
            count = stats[lane.id]["element_count"]
            draw.text((pad, top + pad + 20 * s), f"{count} elements",
                      fill=self.theme.lane_badge_text, font=self.font_small)

            if index < len(manager.lanes) - 1:
                draw.line([(0, bottom), (img_width, bottom)],
                          fill=self.theme.lane_divider, width=max(1, int(2 * s)))

            current_y += lane.height

    def _draw_element(
        self,
        draw: ImageDraw.ImageDraw,
        element: Element,
        oy: float,
        unresolved: bool,
    ):
        """Draw one element as its flowchart shape with wrapped text."""
        s = self.scale
        x = element.x * s
        y = (element.y + oy) * s
        w = element.width * s
        h = element.height * s

        outline = self.theme.unresolved_outline if unresolved else self.theme.element_border
        width = int((self.UNRESOLVED_BORDER_WIDTH if unresolved else self.BORDER_WIDTH) * s)
        fill = self.theme.element_fill

        if element.type == "ellipse":
            draw.ellipse([x, y, x + w, y + h], fill=fill, outline=outline, width=width)
        elif element.type == "cylinder":
            cap = CYLINDER_CAP * s
            draw.rectangle([x, y + cap / 2, x + w, y + h - cap / 2], fill=fill)
            draw.ellipse([x, y + h - cap, x + w, y + h], fill=fill, outline=outline, width=width)
            draw.line([(x, y + cap / 2), (x, y + h - cap / 2)], fill=outline, width=width)
            draw.line([(x + w, y + cap / 2), (x + w, y + h - cap / 2)], fill=outline, width=width)
            draw.ellipse([x, y, x + w, y + cap], fill=fill, outline=outline, width=width)
        elif element.type in ("diamond", "parallelogram", "document"):
            points = [
                (px * s, (py + oy) * s)
                for px, py in _shape_polygon(element.type, element.x, element.y,
                                             element.width, element.height)
            ]
            draw.polygon(points, fill=fill, outline=outline, width=width)
        else:
            draw.rounded_rectangle([x, y, x + w, y + h], radius=int(8 * s),
                                   fill=fill, outline=outline, width=width)

        if element.text:
            self._draw_centered_text(draw, element.text, x, y, w, h)

    def _draw_centered_text(self, draw: ImageDraw.ImageDraw, text: str,
                            x: float, y: float, w: float, h: float):
        pad = self.ELEMENT_TEXT_PADDING * self.scale
        lines = _wrap_text(text, self.font_body, int(w - 2 * pad))
        line_height = 16 * self.scale
        max_lines = max(1, int((h - pad) / line_height))
        if len(lines) > max_lines:
            lines = lines[:max_lines]
            lines[-1] = lines[-1][:12] + "..."

        start_y = y + (h - len(lines) * line_height) / 2
        for i, line in enumerate(lines):
            bbox = self.font_body.getbbox(line)
            tw = bbox[2] - bbox[0]
            draw.text((x + (w - tw) / 2, start_y + i * line_height), line,
                      fill=self.theme.element_text, font=self.font_body)
