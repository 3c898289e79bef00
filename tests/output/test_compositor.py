"""
Unit tests for slice cropping and page composition.

Surfaces are grey-level stripes every 100 rows (see conftest.striped_image),
so each composed pixel can be traced back to its source row.
"""

import pytest
from PIL import Image

from slicepdf.config import GeneratorConfig
from slicepdf.core.errors import GenerationCancelled
from slicepdf.core.models import HeaderBlock, ItemSpan, PageSlice, SurfaceBand
from slicepdf.diagnostics import DiagnosticsCollector
from slicepdf.output import (
    compose_page,
    compose_pages,
    crop_band,
    merge_degenerate_slices,
    render_span_rows,
    single_span,
)
from slicepdf.progress import CancellationToken, ProgressTracker


def shade(row: int) -> int:
    """Stripe value at a source row."""
    return (row // 100 * 37) % 200


@pytest.fixture
def geometry():
    # 400px across 190mm: usable height 583px, page 442x625px, 21px margins
    return GeneratorConfig().geometry(400)


@pytest.fixture
def surface(make_surface):
    return make_surface(2500)


class TestCropper:
    """Tests for crop_band() and render_span_rows()."""

    def test_when_band_inside_surface_then_cropped(self, surface):
        band = crop_band(surface, SurfaceBand(100, 300))
        assert band.size == (400, 200)
        assert band.getpixel((0, 0)) == shade(100)

    def test_when_band_past_surface_then_raises(self, surface):
        with pytest.raises(ValueError):
            crop_band(surface, SurfaceBand(2400, 2600))

    def test_when_span_scaled_down_then_rows_resampled(self, surface):
        # Arrange
        span = ItemSpan(item_index=0, offset_px=1000, height_px=1250, scale=0.5, surface=surface)

        # Act
        rows = render_span_rows(span, 1000, 1500, max_width_px=400)

        # Assert
        assert rows.size == (200, 500)
        assert rows.getpixel((100, 25)) == pytest.approx(shade(50), abs=2)

    def test_when_span_scaled_up_then_width_kept(self, surface):
        span = ItemSpan(item_index=0, offset_px=0, height_px=5000, scale=2.0, surface=surface)

        rows = render_span_rows(span, 0, 400, max_width_px=400)

        assert rows.size == (400, 400)

    def test_when_rows_outside_span_then_raises(self, surface):
        with pytest.raises(ValueError):
            render_span_rows(single_span(surface), 2400, 2600, max_width_px=400)


class TestMergeDegenerateSlices:
    """Tests for merge_degenerate_slices()."""

    def test_when_empty_slice_in_middle_then_merged_forward(self):
        # Arrange
        diagnostics = DiagnosticsCollector()
        slices = [PageSlice(0, 0, 500), PageSlice(1, 500, 500), PageSlice(2, 500, 900)]

        # Act
        merged = merge_degenerate_slices(slices, diagnostics)

        # Assert
        assert [(s.index, s.start_px, s.end_px) for s in merged] == [(0, 0, 500), (1, 500, 900)]
        assert len(diagnostics) == 1

    def test_when_trailing_slice_empty_then_previous_extended(self):
        merged = merge_degenerate_slices([PageSlice(0, 0, 500), PageSlice(1, 500, 500)])
        assert [(s.start_px, s.end_px) for s in merged] == [(0, 500)]

    def test_when_no_empty_slices_then_unchanged(self):
        slices = [PageSlice(0, 0, 500), PageSlice(1, 500, 900)]
        assert merge_degenerate_slices(slices) == slices


class TestComposePage:
    """Tests for compose_page()."""

    def test_when_slice_fits_then_rows_placed_inside_margins(self, surface, geometry):
        # Act
        page = compose_page(PageSlice(0, 0, 500), [single_span(surface)], geometry)

        # Assert
        left, top = geometry.content_left_px, geometry.content_top_px
        assert page.image.size == (geometry.page_width_px, geometry.page_height_px)
        assert page.image.getpixel((left + 200, top + 150)) == (shade(150),) * 3
        assert page.image.getpixel((5, 5)) == (255, 255, 255)
        assert not page.shrunk

    def test_when_header_repeated_then_pasted_above_content(self, surface, geometry):
        # Arrange
        page_slice = PageSlice(1, 1000, 1300, repeated_header=HeaderBlock(700, 100))

        # Act
        page = compose_page(page_slice, [single_span(surface)], geometry)

        # Assert
        left, top = geometry.content_left_px, geometry.content_top_px
        assert page.image.getpixel((left + 200, top + 50)) == (shade(700),) * 3
        assert page.image.getpixel((left + 200, top + 150)) == (shade(1000),) * 3

    def test_when_slice_overflows_then_shrunk_to_fit(self, surface, geometry):
        page = compose_page(PageSlice(0, 0, 1000), [single_span(surface)], geometry)

        assert page.shrunk
        assert page.image.size == (geometry.page_width_px, geometry.page_height_px)
        # The bottom margin stays blank
        bottom = geometry.content_top_px + geometry.usable_height_px
        assert page.image.getpixel((geometry.page_width_px // 2, bottom + 2)) == (255, 255, 255)

    def test_when_slice_crosses_items_then_both_spans_drawn(self, make_surface, geometry):
        # Arrange
        black = make_surface(300)
        black.image.paste(0, (0, 0, 400, 300))
        grey = make_surface(300)
        grey.image.paste(128, (0, 0, 400, 300))
        spans = [
            ItemSpan(item_index=0, offset_px=0, height_px=300, scale=1.0, surface=black),
            ItemSpan(item_index=1, offset_px=300, height_px=300, scale=1.0, surface=grey),
        ]

        # Act
        page = compose_page(PageSlice(0, 200, 500), spans, geometry)

        # Assert
        left, top = geometry.content_left_px, geometry.content_top_px
        assert page.image.getpixel((left + 200, top + 50)) == (0, 0, 0)
        assert page.image.getpixel((left + 200, top + 250)) == (128, 128, 128)

    def test_when_item_scaled_down_then_centred(self, surface, geometry):
        span = ItemSpan(item_index=0, offset_px=0, height_px=1250, scale=0.5, surface=surface)

        page = compose_page(PageSlice(0, 0, 500), [span], geometry)

        left, top = geometry.content_left_px, geometry.content_top_px
        assert page.image.getpixel((left + 20, top + 25)) == (255, 255, 255)
        assert page.image.getpixel((left + 200, top + 25))[0] < 50


class TestComposePages:
    """Tests for compose_pages()."""

    def test_when_composing_then_one_page_per_slice_with_progress(self, surface, geometry):
        # Arrange
        seen = []
        slices = [PageSlice(0, 0, 500), PageSlice(1, 500, 1000)]

        # Act
        pages = list(compose_pages(slices, [single_span(surface)], geometry,
                                   progress=ProgressTracker(seen.append)))

        # Assert
        assert [p.index for p in pages] == [0, 1]
        assert seen == [50.0, 100.0]

    def test_when_cancelled_then_raises_before_first_page(self, surface, geometry):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(GenerationCancelled):
            list(compose_pages([PageSlice(0, 0, 500)], [single_span(surface)], geometry, cancel=token))

    def test_when_degenerate_slice_then_raises(self, surface, geometry):
        with pytest.raises(ValueError):
            list(compose_pages([PageSlice(0, 500, 500)], [single_span(surface)], geometry))

    def test_when_no_spans_then_raises(self, geometry):
        with pytest.raises(ValueError):
            list(compose_pages([PageSlice(0, 0, 500)], [], geometry))


def test_page_background_is_white(surface, geometry):
    page = compose_page(PageSlice(0, 2400, 2500), [single_span(surface)], geometry)
    assert isinstance(page.image, Image.Image)
    assert page.image.getpixel((geometry.page_width_px - 3, geometry.page_height_px - 3)) == (255, 255, 255)
