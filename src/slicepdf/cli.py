"""
Module: cli

Purpose:
    Command line entry point.

    slicepdf render IMAGE [--geometry JSON] -o OUT.pdf [options]
    slicepdf batch MANIFEST.json -o OUT.pdf [options]

    A batch manifest is a JSON object:
        {"config": {...}, "items": [{"image": "a.png", "geometry": "a.json",
         "pages": 2, "new_page": true, "title": "Part A"}, ...]}
    Relative paths are resolved against the manifest's directory.

Key Functions:
    - main(): Parse arguments and run a command
    - build_parser(): The argparse parser
    - load_manifest(): Batch items + config overrides from a manifest

Dependencies:
    - argparse (std)
    - slicepdf.controller: generate(), generate_batch(), write_pdf()

Used By:
    - console script "slicepdf"
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .capture import PrerenderedContent
from .config import PAPER_FORMATS, GeneratorConfig
from .controller import SINKS, GenerationResult, generate, generate_batch, write_pdf
from .core.errors import ConfigError, SlicePdfError
from .core.models import BatchItem

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slicepdf",
        description="Paginate a rendered raster into a PDF",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="More logging (-v info, -vv debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    render = sub.add_parser("render", help="Paginate one image")
    render.add_argument("image", type=Path, help="Rendered content image")
    render.add_argument("--geometry", type=Path, help="Geometry tree JSON")
    _add_common(render)

    batch = sub.add_parser("batch", help="Combine several images with page budgets")
    batch.add_argument("manifest", type=Path, help="Batch manifest JSON")
    _add_common(batch)

    return parser


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output PDF path")
    parser.add_argument("--config", type=Path, help="GeneratorConfig JSON file")
    parser.add_argument("--format", choices=sorted(PAPER_FORMATS), help="Paper format")
    parser.add_argument("--orientation", choices=("portrait", "landscape"))
    parser.add_argument("--margins", type=float, nargs=4, metavar=("TOP", "RIGHT", "BOTTOM", "LEFT"),
                        help="Margins in mm")
    parser.add_argument("--page-numbers", action="store_true", help="Draw 'n / total'")
    parser.add_argument("--title", help="Document title")
    parser.add_argument("--sink", choices=sorted(SINKS), default="reportlab", help="PDF writer")


def load_config(path: Optional[Path], overrides: Optional[Dict[str, Any]] = None) -> GeneratorConfig:
    """Read a config file (if any) and apply mapping overrides on top."""
    data: Dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
    if overrides:
        data.update(overrides)
    return GeneratorConfig.from_dict(data)


def load_manifest(path: Path) -> Tuple[List[BatchItem], Dict[str, Any]]:
    """
    Read a batch manifest.

    Returns:
        (batch items, config mapping from the manifest)

    Raises:
        ConfigError: If the manifest is unreadable or malformed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read manifest {path}: {e}") from e

    entries = data.get("items") if isinstance(data, dict) else None
    if not entries:
        raise ConfigError(f"Manifest has no items: {path}")

    base = path.parent
    items = []
    for n, entry in enumerate(entries, start=1):
        if "image" not in entry:
            raise ConfigError(f"Manifest item {n} has no image")
        geometry = entry.get("geometry")
        if isinstance(geometry, str):
            geometry = base / geometry
        pages = entry.get("pages", entry.get("requested_page_count", entry.get("pageCount")))
        new_page = entry.get("new_page", entry.get("newPage"))
        items.append(BatchItem(
            content=PrerenderedContent(image=base / entry["image"], geometry=geometry),
            requested_page_count=int(pages) if pages is not None else None,
            new_page=new_page,
            title=entry.get("title"),
        ))
    return items, dict(data.get("config") or {})


def _apply_flags(config: GeneratorConfig, args: argparse.Namespace) -> GeneratorConfig:
    changes: Dict[str, Any] = {}
    if args.format:
        changes["format"] = args.format
    if args.orientation:
        changes["orientation"] = args.orientation
    if args.margins:
        changes["margins"] = tuple(args.margins)
    if args.page_numbers:
        changes["show_page_numbers"] = True
    if args.title:
        changes["metadata"] = replace(config.metadata, title=args.title)
    return replace(config, **changes) if changes else config


def _report(result: GenerationResult, output: Path) -> None:
    print(f"Wrote {result.page_count} pages ({result.file_size_bytes} bytes) to {output}")
    for item in getattr(result, "items", ()):
        label = item.title or "item"
        print(f"  {label}: pages {item.start_page}-{item.end_page} (scale {item.scale_factor:.3f})")
    for message in result.warning_messages:
        print(f"  warning: {message}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI; returns a process exit code."""
    args = build_parser().parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "render":
            config = _apply_flags(load_config(args.config), args)
            content = PrerenderedContent(image=args.image, geometry=args.geometry)
            result = generate(content, config, sink=args.sink)
        else:
            items, overrides = load_manifest(args.manifest)
            config = _apply_flags(load_config(args.config, overrides), args)
            result = generate_batch(items, config, sink=args.sink)
        write_pdf(result, args.output)
    except (SlicePdfError, ValueError) as e:
        logger.debug("Generation failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    _report(result, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
