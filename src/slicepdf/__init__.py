"""Top-level package for slicepdf.

Paginates a long rendered raster into fixed-size PDF pages while honouring
forced breaks, avoid-break regions, orphan headings and table rows.

Provides subpackages:
- slicepdf.capture – rendering content to a surface with frozen geometry
- slicepdf.analysis – break constraints and table cut plans
- slicepdf.layout – the pagination engine
- slicepdf.batch – per-item page budgets in batch mode
- slicepdf.output – composition, decorations and PDF sinks
"""


def _get_version() -> str:
    """Get version from installed package metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("slicepdf")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

from .config import GeneratorConfig, PdfMetadata, WatermarkConfig  # noqa: E402
from .controller import (  # noqa: E402
    BatchGenerationResult,
    GenerationResult,
    ItemResult,
    generate,
    generate_batch,
    write_pdf,
)
from .capture import CaptureAdapter, ImageCaptureAdapter, PrerenderedContent  # noqa: E402
from .core.errors import (  # noqa: E402
    CaptureFailure,
    ConfigError,
    GenerationCancelled,
    SinkWriteFailure,
    SlicePdfError,
)
from .core.models import BatchItem  # noqa: E402
from .progress import CancellationToken  # noqa: E402

__all__: list[str] = [
    "__version__",
    "GeneratorConfig",
    "PdfMetadata",
    "WatermarkConfig",
    "BatchGenerationResult",
    "GenerationResult",
    "ItemResult",
    "generate",
    "generate_batch",
    "write_pdf",
    "CaptureAdapter",
    "ImageCaptureAdapter",
    "PrerenderedContent",
    "CaptureFailure",
    "ConfigError",
    "GenerationCancelled",
    "SinkWriteFailure",
    "SlicePdfError",
    "BatchItem",
    "CancellationToken",
]
