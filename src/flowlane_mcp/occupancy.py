"""Spatial occupancy index for a single resolution pass.

The index is a flat map of padded rectangles keyed by element id.  A pass
creates a fresh index, marks each accepted placement, and throws the index
away afterwards. There is no removal operation.

Overlap uses open intervals: two rectangles that only share an edge are
considered free of each other.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OccupiedRect:
    """An axis-aligned rectangle, already expanded by the collision padding."""
    left: float
    right: float
    top: float
    bottom: float

    @classmethod
    def around(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        padding: float,
    ) -> "OccupiedRect":
        """Build the padded rectangle for an element at ``(x, y)``."""
        return cls(
            left=x - padding,
            right=x + width + padding,
            top=y - padding,
            bottom=y + height + padding,
        )

    def overlaps(self, other: "OccupiedRect") -> bool:
        return not (
            self.right <= other.left
            or other.right <= self.left
            or self.bottom <= other.top
            or other.bottom <= self.top
        )


class OccupancyIndex:
    """Padded rectangles placed so far in the current pass."""

    def __init__(self):
        self._rects: dict[str, OccupiedRect] = {}

    def __len__(self) -> int:
        return len(self._rects)

    def __contains__(self, element_id: str) -> bool:
        return element_id in self._rects

    def mark_occupied(self, element_id: str, rect: OccupiedRect) -> None:
        """Record ``rect`` for ``element_id``, replacing any earlier entry."""
        self._rects[element_id] = rect

    def is_free(self, rect: OccupiedRect) -> bool:
        """True iff ``rect`` intersects no recorded rectangle."""
        return not any(rect.overlaps(occupied) for occupied in self._rects.values())

    def items(self):
        return self._rects.items()
