import pytest
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from PIL import Image

# Add src to sys.path so we can import slicepdf
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from slicepdf.core.models import BreakStyle, ContentNode, RenderedSurface  # noqa: E402
from slicepdf.output.sink import PageHandle, PdfSink  # noqa: E402


def striped_image(width: int, height: int, stripe: int = 100) -> Image.Image:
    """Grey-level stripes every `stripe` rows so crops are distinguishable."""
    img = Image.new("L", (width, height), color=255)
    for top in range(0, height, stripe):
        shade = (top // stripe * 37) % 200
        img.paste(shade, (0, top, width, min(top + stripe, height)))
    return img


class RecordingSink(PdfSink):
    """In-memory sink that records every call."""

    def __init__(self, fail_on_page: Optional[int] = None):
        self.pages: List[PageHandle] = []
        self.images: List[Dict[str, Any]] = []
        self.metadata: Dict[str, Any] = {}
        self.finished = False
        self.fail_on_page = fail_on_page

    def add_page(self, width_mm: float, height_mm: float) -> PageHandle:
        if self.fail_on_page is not None and len(self.pages) == self.fail_on_page:
            raise IOError("disk full")
        handle = PageHandle(len(self.pages), width_mm, height_mm)
        self.pages.append(handle)
        return handle

    def draw_image(self, handle, image_bytes, x_mm, y_mm, w_mm, h_mm) -> None:
        self.images.append({
            "page": handle.index,
            "bytes": image_bytes,
            "rect": (x_mm, y_mm, w_mm, h_mm),
        })

    def set_metadata(self, fields: Dict[str, Any]) -> None:
        self.metadata.update(fields)

    def finish(self) -> bytes:
        self.finished = True
        return b"%PDF-recorded " + str(len(self.pages)).encode()


# Common test fixtures
@pytest.fixture
def make_surface():
    """Factory for striped surfaces."""
    def _create(height: int, width: int = 400) -> RenderedSurface:
        return RenderedSurface.from_image(striped_image(width, height))
    return _create


@pytest.fixture
def node():
    """Factory for ContentNode trees from keyword arguments."""
    def _create(tag: str, top: float, bottom: float, *children, style=None, classes=()):
        return ContentNode(
            tag=tag,
            top=top,
            bottom=bottom,
            classes=tuple(classes),
            style=BreakStyle.from_dict(style),
            children=tuple(children),
        )
    return _create


@pytest.fixture
def recording_sink():
    """Sink factory returning one shared RecordingSink."""
    sink = RecordingSink()
    factory = lambda config: sink  # noqa: E731
    factory.sink = sink
    return factory


@pytest.fixture
def sample_image(tmp_path: Path):
    """Striped 400x2500 PNG on disk."""
    img_path = tmp_path / "content.png"
    striped_image(400, 2500).save(img_path)
    return img_path
