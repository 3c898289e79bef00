"""
Unit tests for the capture stage: the image adapter and checked capture calls.
"""

import json
import threading

import pytest
from PIL import Image

from slicepdf.capture import (
    CaptureAdapter,
    CaptureResult,
    ImageCaptureAdapter,
    PrerenderedContent,
    capture,
    capture_many,
    load_geometry,
)
from slicepdf.core.errors import CaptureFailure, GenerationCancelled
from slicepdf.core.models import ContentNode, RenderedSurface
from slicepdf.progress import CancellationToken


class HeightAdapter(CaptureAdapter):
    """Renders an integer content value as a surface of that height."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def render(self, content, target_width_px):
        with self._lock:
            self.calls.append(content)
        surface = RenderedSurface.from_image(Image.new("RGB", (target_width_px, content), "white"))
        return CaptureResult(surface=surface, layout=ContentNode("body", 0, content))


class FailingAdapter(CaptureAdapter):
    def render(self, content, target_width_px):
        raise RuntimeError("renderer crashed")


class TestImageCaptureAdapter:
    """Tests for ImageCaptureAdapter."""

    def test_when_width_differs_then_image_and_geometry_scaled(self):
        # Arrange
        content = PrerenderedContent(
            image=Image.new("RGB", (200, 1000), "white"),
            geometry={"tag": "body", "top": 0, "bottom": 1000,
                      "children": [{"tag": "h1", "top": 100, "bottom": 150}]},
        )

        # Act
        result = ImageCaptureAdapter().render(content, 400)

        # Assert
        assert (result.surface.width_px, result.surface.height_px) == (400, 2000)
        heading = result.layout.children[0]
        assert (heading.top, heading.bottom) == (200, 300)

    def test_when_width_matches_then_pixels_untouched(self, make_surface):
        image = make_surface(500, width=300).image

        result = ImageCaptureAdapter().render(PrerenderedContent(image=image), 300)

        assert result.surface.image is image

    def test_when_no_geometry_then_single_root_node(self):
        result = ImageCaptureAdapter().render(Image.new("RGB", (100, 700)), 100)

        assert result.layout == ContentNode(tag="body", top=0, bottom=700)

    def test_when_paths_given_then_loaded_from_disk(self, tmp_path, sample_image):
        # Arrange
        geometry_path = tmp_path / "content.json"
        geometry_path.write_text(json.dumps({
            "root": {"tag": "body", "top": 0, "bottom": 2500,
                     "children": [{"tag": "section", "top": 1000, "bottom": 2500,
                                   "style": {"break-before": "page"}}]},
        }))

        # Act
        result = ImageCaptureAdapter().render(PrerenderedContent(sample_image, geometry_path), 400)

        # Assert
        assert result.height_px == 2500
        assert result.layout.children[0].style.forces_before

    def test_when_image_missing_then_capture_failure(self, tmp_path):
        with pytest.raises(CaptureFailure, match="not found"):
            ImageCaptureAdapter().render(PrerenderedContent(tmp_path / "missing.png"), 400)

    def test_when_image_unreadable_then_capture_failure(self, tmp_path):
        bogus = tmp_path / "bogus.png"
        bogus.write_bytes(b"not an image")

        with pytest.raises(CaptureFailure):
            ImageCaptureAdapter().render(bogus, 400)

    def test_when_geometry_invalid_json_then_capture_failure(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{ nope")

        with pytest.raises(CaptureFailure):
            load_geometry(bad)

    def test_when_geometry_root_not_object_then_capture_failure(self, tmp_path):
        bad = tmp_path / "list.json"
        bad.write_text("[1, 2, 3]")

        with pytest.raises(CaptureFailure):
            load_geometry(bad)

    def test_when_target_width_not_positive_then_capture_failure(self):
        with pytest.raises(CaptureFailure):
            ImageCaptureAdapter().render(Image.new("RGB", (10, 10)), 0)


class TestCapture:
    """Tests for capture() and capture_many()."""

    def test_when_adapter_raises_then_wrapped_in_capture_failure(self):
        with pytest.raises(CaptureFailure) as excinfo:
            capture(FailingAdapter(), "x", 100)

        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_when_adapter_returns_wrong_type_then_capture_failure(self):
        class Sloppy(CaptureAdapter):
            def render(self, content, target_width_px):
                return Image.new("RGB", (target_width_px, 10))

        with pytest.raises(CaptureFailure, match="expected CaptureResult"):
            capture(Sloppy(), "x", 100)

    def test_when_cancelled_then_adapter_not_called(self):
        # Arrange
        adapter = HeightAdapter()
        token = CancellationToken()
        token.cancel()

        # Act / Assert
        with pytest.raises(GenerationCancelled):
            capture(adapter, 100, 50, token)
        assert adapter.calls == []

    @pytest.mark.parametrize("workers", [1, 3])
    def test_when_capturing_many_then_results_in_input_order(self, workers):
        # Arrange
        adapter = HeightAdapter()
        heights = [300, 100, 500, 200]
        seen = []

        # Act
        results = capture_many(adapter, heights, 50, max_workers=workers, on_captured=seen.append)

        # Assert
        assert [r.height_px for r in results] == heights
        assert seen == [0, 1, 2, 3]
        assert sorted(adapter.calls) == sorted(heights)

    def test_when_one_item_fails_then_capture_failure_propagates(self):
        with pytest.raises(CaptureFailure):
            capture_many(FailingAdapter(), ["a", "b"], 50, max_workers=2)
