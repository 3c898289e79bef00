"""
Unit tests for surface, geometry, table and batch models.
"""

import pytest
from PIL import Image

from slicepdf.core.models import (
    BatchItem,
    BreakStyle,
    ContentNode,
    HeaderBlock,
    ItemSpan,
    PageSlice,
    RenderedSurface,
    SurfaceBand,
    TableSegment,
)


class TestRenderedSurface:
    """Tests for RenderedSurface construction."""

    def test_when_rgba_image_then_converted_to_rgb(self):
        surface = RenderedSurface.from_image(Image.new("RGBA", (50, 80)))
        assert surface.image.mode == "RGB"
        assert (surface.width_px, surface.height_px) == (50, 80)

    def test_when_size_mismatch_then_raises(self):
        with pytest.raises(ValueError):
            RenderedSurface(width_px=50, height_px=81, image=Image.new("RGB", (50, 80)))

    def test_when_band_inverted_then_raises(self):
        with pytest.raises(ValueError):
            SurfaceBand(300, 100)


class TestBreakStyle:
    """Tests for computed style parsing."""

    def test_when_legacy_property_then_mapped(self):
        style = BreakStyle.from_dict({"page-break-before": "always", "page-break-inside": "avoid"})
        assert style.forces_before
        assert style.avoids_inside
        assert not style.forces_after

    def test_when_both_spellings_then_modern_wins(self):
        style = BreakStyle.from_dict({"break-after": "page", "page-break-after": "avoid"})
        assert style.after == "page"

    def test_when_auto_then_nothing_forced(self):
        style = BreakStyle.from_dict({"break-before": "auto"})
        assert not style.forces_before


class TestContentNode:
    """Tests for geometry tree helpers."""

    def test_when_from_dict_with_height_then_bottom_derived(self):
        # Act
        node = ContentNode.from_dict({
            "tag": "DIV",
            "top": 100,
            "height": 50,
            "classes": "Keep Card",
            "children": [{"tag": "p", "top": 100, "bottom": 120}],
        })

        # Assert
        assert node.tag == "div"
        assert node.bottom == 150
        assert node.classes == ("keep", "card")
        assert len(node.children) == 1

    @pytest.mark.parametrize("selector,expected", [
        ("div", True),
        (".keep", True),
        ("div.keep", True),
        ("p.keep", False),
        (".other", False),
        ("", False),
    ])
    def test_when_matching_selector_then_tag_and_class_checked(self, selector, expected):
        node = ContentNode(tag="div", top=0, bottom=10, classes=("keep",))
        assert node.matches(selector) is expected

    def test_when_scaled_then_all_descendants_scaled(self, node):
        # Arrange
        tree = node("body", 0, 1000, node("section", 200, 600, node("h2", 200, 240)))

        # Act
        scaled = tree.scaled(0.5)

        # Assert
        offsets = [(n.top, n.bottom) for n in scaled.iter_all()]
        assert offsets == [(0, 500), (100, 300), (100, 120)]

    def test_when_inverted_or_negative_then_malformed(self, node):
        assert node("div", -5, 10).is_malformed
        assert node("div", 50, 10).is_malformed
        assert not node("div", 10, 10).is_malformed

    def test_heading_detection(self, node):
        assert node("h3", 0, 10).is_heading
        assert not node("header", 0, 10).is_heading


class TestTableSegment:
    """Tests for table geometry validation and transforms."""

    def test_when_single_edge_then_raises(self):
        with pytest.raises(ValueError):
            TableSegment(0, 0, (100,))

    def test_when_edges_not_ascending_then_raises(self):
        with pytest.raises(ValueError):
            TableSegment(0, 0, (100, 300, 200))

    def test_when_first_row_inside_header_then_raises(self):
        with pytest.raises(ValueError):
            TableSegment(700, 100, (750, 900))

    def test_when_transformed_then_scaled_and_shifted(self):
        # Arrange
        table = TableSegment(700, 100, (800, 1000, 1200))

        # Act
        moved = table.transformed(0.5, 1000)

        # Assert
        assert moved.table_offset_px == 1350
        assert moved.header_height_px == 50
        assert moved.row_boundaries == (1400, 1500, 1600)

    def test_row_accessors(self):
        table = TableSegment(700, 100, (800, 1000, 1300))
        assert table.row_count == 2
        assert table.row_height(1) == 300
        assert table.body_top_px == 800
        assert table.height_px == 600


class TestPageSlice:
    """Tests for slice helpers."""

    def test_when_header_repeated_then_height_excludes_it(self):
        s = PageSlice(index=1, start_px=1000, end_px=1800, repeated_header=HeaderBlock(700, 100))
        assert s.height_px == 800
        assert s.header_height_px == 100

    def test_when_empty_then_degenerate(self):
        assert PageSlice(index=0, start_px=500, end_px=500).is_degenerate


class TestBatchItem:
    """Tests for BatchItem derived state."""

    def test_when_page_count_not_positive_then_raises(self):
        with pytest.raises(ValueError):
            BatchItem(content=None, requested_page_count=0)

    def test_when_scale_set_twice_then_raises(self):
        item = BatchItem(content=None).with_scale(0.5)
        with pytest.raises(ValueError):
            item.with_scale(0.7)

    def test_when_pages_assigned_then_page_count_derived(self):
        # Arrange
        original = BatchItem(content=None, requested_page_count=2)

        # Act
        placed = original.with_pages(3, 4)

        # Assert
        assert placed.page_count == 2
        assert original.page_count == 0
        assert original.weight == 2
        assert BatchItem(content=None).weight == 1


class TestItemSpan:
    """Tests for content-to-source row mapping."""

    def test_when_scaled_span_then_rows_mapped_back(self, make_surface):
        span = ItemSpan(item_index=1, offset_px=1000, height_px=1000, scale=0.5,
                        surface=make_surface(2000))
        assert span.end_px == 2000
        assert span.to_source(1500) == 1000
        assert span.to_source(5000) == 2000
