"""
Unit tests for break constraint extraction.

Geometry trees are built with the `node` fixture; offsets are surface pixels.
"""

import pytest

from slicepdf.analysis import BreakPolicy, analyze_breaks, freeze_table
from slicepdf.core.models import (
    AvoidRange,
    BreakConstraint,
    BreakKind,
    ConstraintSet,
    TableSegment,
)


def ranges_of(analysis):
    return ConstraintSet(analysis.constraints).avoid_ranges


@pytest.fixture
def tall_table(node):
    """Table at 700 with a 100px header and five 200px body rows."""
    head = node("thead", 700, 800, node("tr", 700, 800))
    rows = [node("tr", top, top + 200) for top in range(800, 1800, 200)]
    body = node("tbody", 800, 1800, *rows)
    return node("table", 700, 1800, head, body)


class TestForcedBreaks:
    """Tests for explicit and selector-driven forced breaks."""

    def test_when_break_before_page_then_force_before_at_top(self, node):
        # Arrange
        root = node("body", 0, 2500,
                    node("section", 0, 1500),
                    node("section", 1500, 2500, style={"break-before": "page"}))

        # Act
        analysis = analyze_breaks(root, 2500, 1000)

        # Assert
        assert analysis.constraints == (BreakConstraint(1500, BreakKind.FORCE_BEFORE),)
        assert analysis.forced_offsets == (1500,)

    def test_when_legacy_break_after_then_force_after_at_bottom(self, node):
        root = node("body", 0, 2000, node("div", 0, 1200, style={"page-break-after": "always"}))

        analysis = analyze_breaks(root, 2000, 1000)

        assert analysis.constraints == (BreakConstraint(1200, BreakKind.FORCE_AFTER),)

    def test_when_forced_break_at_content_edge_then_dropped(self, node):
        root = node("body", 0, 2000,
                    node("section", 0, 1000, style={"break-before": "page"}),
                    node("section", 1000, 2000, style={"break-after": "page"}))

        analysis = analyze_breaks(root, 2000, 1000)

        assert analysis.constraints == ()

    def test_when_explicit_breaks_disabled_then_styles_ignored(self, node):
        # Arrange
        root = node("body", 0, 2500,
                    node("section", 1500, 2500, style={"break-before": "page"}),
                    node("div", 100, 300, style={"break-inside": "avoid"}))
        policy = BreakPolicy(respect_explicit_breaks=False)

        # Act
        analysis = analyze_breaks(root, 2500, 1000, policy)

        # Assert
        assert analysis.constraints == ()

    def test_when_selector_forces_break_then_applied(self, node):
        # Arrange
        root = node("body", 0, 3000,
                    node("div", 0, 1200, classes=("chapter",)),
                    node("div", 1200, 3000, classes=("chapter",)))
        policy = BreakPolicy(break_before_selectors=(".chapter",),
                             break_after_selectors=("div.chapter",))

        # Act
        analysis = analyze_breaks(root, 3000, 1000, policy)

        # Assert
        assert analysis.forced_offsets == (1200, 1200)
        kinds = {c.kind for c in analysis.constraints}
        assert kinds == {BreakKind.FORCE_AFTER, BreakKind.FORCE_BEFORE}


class TestAvoidRanges:
    """Tests for break-inside avoidance."""

    def test_when_style_avoid_then_range_over_node(self, node):
        root = node("body", 0, 2000, node("div", 100, 400, style={"break-inside": "avoid"}))

        analysis = analyze_breaks(root, 2000, 1000)

        assert analysis.constraints == (
            BreakConstraint(100, BreakKind.AVOID_INSIDE_START),
            BreakConstraint(400, BreakKind.AVOID_INSIDE_END),
        )

    def test_when_default_selector_matches_then_range_over_node(self, node):
        root = node("body", 0, 2000, node("figure", 900, 1200))

        analysis = analyze_breaks(root, 2000, 1000)

        assert ranges_of(analysis) == (AvoidRange(900, 1200),)

    def test_when_selector_match_taller_than_page_then_hint_dropped(self, node):
        root = node("body", 0, 3000, node("pre", 200, 1500))

        analysis = analyze_breaks(root, 3000, 1000)

        assert analysis.constraints == ()

    def test_when_explicit_avoid_taller_than_page_then_kept(self, node):
        root = node("body", 0, 3000, node("div", 200, 1500, style={"break-inside": "avoid-page"}))

        analysis = analyze_breaks(root, 3000, 1000)

        assert ranges_of(analysis) == (AvoidRange(200, 1500),)

    def test_when_ranges_overlap_then_emitted_as_union(self, node):
        root = node("body", 0, 2000, node("figure", 100, 400), node("figure", 300, 600))

        analysis = analyze_breaks(root, 2000, 1000)

        assert ranges_of(analysis) == (AvoidRange(100, 600),)
        assert len(analysis.constraints) == 2

    def test_when_node_extends_past_content_then_clamped(self, node):
        root = node("body", 0, 2000, node("figure", 1800, 2300))

        analysis = analyze_breaks(root, 2000, 1000)

        assert ranges_of(analysis) == (AvoidRange(1800, 2000),)


class TestOrphanHeadings:
    """Tests for keeping headings with following content."""

    def test_when_heading_followed_by_paragraph_then_kept_together(self, node):
        # Arrange
        root = node("body", 0, 1000, node("h2", 100, 150), node("p", 150, 400))

        # Act
        analysis = analyze_breaks(root, 1000, 1000)

        # Assert
        assert analysis.constraints == (
            BreakConstraint(100, BreakKind.ORPHAN_HEADING),
            BreakConstraint(400, BreakKind.AVOID_INSIDE_END),
        )

    def test_when_following_sibling_is_long_then_range_capped_at_one_page(self, node):
        root = node("body", 0, 4000, node("h2", 100, 150), node("section", 150, 3000))

        analysis = analyze_breaks(root, 4000, 1000)

        assert ranges_of(analysis) == (AvoidRange(100, 1100, from_heading=True),)

    def test_when_heading_is_last_child_then_no_range(self, node):
        root = node("body", 0, 1000, node("p", 0, 100), node("h3", 900, 950))

        analysis = analyze_breaks(root, 1000, 1000)

        assert analysis.constraints == ()

    def test_when_orphan_rule_disabled_then_no_range(self, node):
        root = node("body", 0, 1000, node("h2", 100, 150), node("p", 150, 400))

        analysis = analyze_breaks(root, 1000, 1000, BreakPolicy(avoid_orphan_headings=False))

        assert analysis.constraints == ()

    def test_when_next_sibling_is_empty_then_skipped(self, node):
        root = node("body", 0, 1000,
                    node("h2", 100, 150),
                    node("div", 150, 150),
                    node("p", 150, 300))

        analysis = analyze_breaks(root, 1000, 1000)

        assert ranges_of(analysis) == (AvoidRange(100, 300, from_heading=True),)


class TestMalformedGeometry:
    """Tests for tolerance of broken geometry."""

    def test_when_node_malformed_then_subtree_skipped(self, node):
        root = node("body", 0, 2000,
                    node("div", -10, 500, node("figure", 100, 300)),
                    node("div", 900, 800, style={"break-before": "page"}))

        analysis = analyze_breaks(root, 2000, 1000)

        assert analysis.constraints == ()

    def test_when_node_has_zero_height_then_children_still_visited(self, node):
        root = node("body", 0, 2000, node("div", 500, 500, node("figure", 600, 700)))

        analysis = analyze_breaks(root, 2000, 1000)

        assert ranges_of(analysis) == (AvoidRange(600, 700),)

    def test_when_usable_height_not_positive_then_raises(self, node):
        with pytest.raises(ValueError):
            analyze_breaks(node("body", 0, 100), 100, 0)


class TestTables:
    """Tests for oversized table detection."""

    def test_when_table_taller_than_page_then_segment_candidate(self, node, tall_table):
        # Arrange
        root = node("body", 0, 1800, tall_table)

        # Act
        analysis = analyze_breaks(root, 1800, 1000)

        # Assert
        assert analysis.table_candidates == (
            TableSegment(700, 100, (800, 1000, 1200, 1400, 1600, 1800)),
        )
        assert analysis.constraints == ()

    def test_when_segmented_table_styled_avoid_then_no_avoid_range(self, node, tall_table):
        # Arrange
        styled = node("table", 700, 1800, *tall_table.children, style={"break-inside": "avoid"})
        root = node("body", 0, 1800, styled)

        # Act
        analysis = analyze_breaks(root, 1800, 1000)

        # Assert
        assert len(analysis.table_candidates) == 1
        assert ranges_of(analysis) == ()

    def test_when_table_fits_on_page_then_plain_avoid_range(self, node, tall_table):
        root = node("body", 0, 1800, tall_table)

        analysis = analyze_breaks(root, 1800, 1500)

        assert analysis.table_candidates == ()
        assert ranges_of(analysis) == (AvoidRange(700, 1800),)

    def test_when_table_has_no_rows_then_not_frozen(self, node):
        assert freeze_table(node("table", 0, 500, node("caption", 0, 50))) is None

    def test_when_table_has_no_thead_then_zero_header(self, node):
        table = node("table", 0, 600, node("tr", 0, 300), node("tr", 300, 600))

        segment = freeze_table(table)

        assert segment == TableSegment(0, 0, (0, 300, 600))
