"""Placement order for a batch of candidate positions.

Whoever is placed first keeps its spot, so the order decides every
conflict.  Start elements (text contains "start", any casing) go first,
then everything else from left to right.  ``sorted`` is stable, so ties
keep their input order.
"""

from __future__ import annotations

from typing import Mapping

from .models import CandidatePosition, Element


def is_start_candidate(candidate: CandidatePosition, elements: Mapping[str, Element]) -> bool:
    element = elements.get(candidate.element_id)
    return element is not None and element.is_start()


def prioritize_candidates(
    candidates: list[CandidatePosition],
    elements: Mapping[str, Element],
) -> list[CandidatePosition]:
    """Return ``candidates`` in placement order without mutating the input.

    Start candidates keep their relative input order among themselves;
    they are not sorted by x.
    """
    starts = [c for c in candidates if is_start_candidate(c, elements)]
    rest = [c for c in candidates if not is_start_candidate(c, elements)]
    return starts + sorted(rest, key=lambda c: c.x)
