"""Tests for candidate placement order."""

from flowlane_mcp.models import CandidatePosition, Element
from flowlane_mcp.priority import prioritize_candidates


def _elements():
    return {
        "a": Element(id="a", text="Start here", x=0),
        "b": Element(id="b", text="Review"),
        "c": Element(id="c", text="Restart process"),
        "d": Element(id="d", text="Archive"),
        "e": Element(id="e", text="START"),
    }


class TestPrioritizeCandidates:

    def test_start_elements_first_then_by_x(self):
        candidates = [
            CandidatePosition(element_id="b", x=300, y=0),
            CandidatePosition(element_id="a", x=900, y=0),
            CandidatePosition(element_id="d", x=100, y=0),
            CandidatePosition(element_id="c", x=50, y=0),
        ]
        ordered = prioritize_candidates(candidates, _elements())
        assert [c.element_id for c in ordered] == ["a", "c", "d", "b"]

    def test_start_match_is_case_insensitive_and_stable(self):
        candidates = [
            CandidatePosition(element_id="e", x=800, y=0),
            CandidatePosition(element_id="a", x=10, y=0),
        ]
        ordered = prioritize_candidates(candidates, _elements())
        # Start candidates keep input order; they are not sorted by x
        assert [c.element_id for c in ordered] == ["e", "a"]

    def test_ties_keep_input_order(self):
        candidates = [
            CandidatePosition(element_id="d", x=100, y=0),
            CandidatePosition(element_id="b", x=100, y=50),
        ]
        ordered = prioritize_candidates(candidates, _elements())
        assert [c.element_id for c in ordered] == ["d", "b"]

    def test_unknown_elements_sort_by_x(self):
        candidates = [
            CandidatePosition(element_id="ghost", x=500, y=0),
            CandidatePosition(element_id="b", x=200, y=0),
        ]
        ordered = prioritize_candidates(candidates, _elements())
        assert [c.element_id for c in ordered] == ["b", "ghost"]

    def test_input_not_mutated(self):
        candidates = [
            CandidatePosition(element_id="b", x=300, y=0),
            CandidatePosition(element_id="a", x=900, y=0),
        ]
        prioritize_candidates(candidates, _elements())
        assert [c.element_id for c in candidates] == ["b", "a"]
