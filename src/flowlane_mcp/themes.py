"""
Theme definitions for Flowlane-MCP.

Provides dark and light color palettes for the presentation adapter.
Each theme defines colors for:
- Canvas background and title
- Lane bands, headers and dividers
- Element shapes and their text
- The marker drawn around unresolved placements
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class ThemePalette:
    """Color palette for a theme."""

    # Canvas
    background: str
    title_color: str

    # Lanes (band fill uses the lane's own color at this alpha)
    lane_fill_alpha: int
    lane_header_text: str
    lane_divider: str
    lane_badge_text: str

    # Elements
    element_fill: str
    element_border: str
    element_text: str

    # Placement that exhausted its search budget
    unresolved_outline: str


# Catppuccin Mocha (dark theme) - default
DARK_THEME = ThemePalette(
    background="#11111b",
    title_color="#cdd6f4",
    lane_fill_alpha=40,
    lane_header_text="#cdd6f4",
    lane_divider="#45475a",
    lane_badge_text="#a6adc8",
    element_fill="#1e1e2e",
    element_border="#89b4fa",
    element_text="#cdd6f4",
    unresolved_outline="#f38ba8",
)


# Light theme - clean white background with darker accents
LIGHT_THEME = ThemePalette(
    background="#ffffff",
    title_color="#1e1e2e",
    lane_fill_alpha=28,
    lane_header_text="#1e1e2e",
    lane_divider="#9ca0b0",
    lane_badge_text="#5c5f77",
    element_fill="#eff1f5",
    element_border="#1e66f5",
    element_text="#1e1e2e",
    unresolved_outline="#d20f39",
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Args:
        name: Theme name ("dark" or "light")

    Returns:
        ThemePalette for the requested theme

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
