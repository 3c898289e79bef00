"""
Module: core.models.geometry

Purpose:
    Frozen content geometry captured alongside a RenderedSurface. The tree
    mirrors the rendered document: every node carries its tag, classes,
    computed break style and vertical bounds in surface pixels. Geometry is
    frozen into plain numbers straight after capture so analysis never
    queries a live layout tree.

Key Classes:
    - BreakStyle: Computed break-before/after/inside values
    - ContentNode: One element of the geometry tree

Key Functions:
    - ContentNode.from_dict(): Build a tree from JSON-style dicts
    - ContentNode.scaled(): Rescale all offsets (capture width changes)
    - ContentNode.iter_all(): Depth-first iteration

Dependencies:
    - dataclasses (std)

Used By:
    - slicepdf.capture: Attaches geometry to surfaces
    - slicepdf.analysis.break_analyzer: Traverses the tree
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional, Tuple

HEADING_TAG = re.compile(r"^h[1-6]$")


@dataclass(frozen=True, slots=True)
class BreakStyle:
    """
    Computed page-break style of a node.

    Values follow CSS: ``auto``, ``page``, ``always``, ``left``, ``right``
    for before/after, and ``auto``, ``avoid``, ``avoid-page`` for inside.
    Legacy ``page-break-*`` values map onto the same strings.
    """

    before: str = "auto"
    after: str = "auto"
    inside: str = "auto"

    FORCING = ("page", "always", "left", "right")
    AVOIDING = ("avoid", "avoid-page")

    @property
    def forces_before(self) -> bool:
        return self.before in self.FORCING

    @property
    def forces_after(self) -> bool:
        return self.after in self.FORCING

    @property
    def avoids_inside(self) -> bool:
        return self.inside in self.AVOIDING

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> BreakStyle:
        """
        Build from a style mapping.

        Accepts both ``break-before`` and ``page-break-before`` spellings
        (and snake_case variants); the modern property wins when both are set.
        """
        if not data:
            return cls()

        def pick(name: str) -> str:
            for key in (
                f"break-{name}",
                f"break_{name}",
                name,
                f"page-break-{name}",
                f"page_break_{name}",
            ):
                value = data.get(key)
                if value and value != "auto":
                    return str(value).strip().lower()
            return "auto"

        return cls(before=pick("before"), after=pick("after"), inside=pick("inside"))


@dataclass(frozen=True)
class ContentNode:
    """
    One element of the captured geometry tree (immutable).

    Coordinates are surface pixels, [top, bottom).

    Attributes:
        tag: Lower-case element name ("div", "h2", "table", "tr", ...)
        top: Y-coordinate of top edge
        bottom: Y-coordinate of bottom edge (exclusive)
        classes: CSS class names
        style: Computed break style
        children: Child nodes in document order

    Example:
        >>> node = ContentNode.from_dict({"tag": "h1", "top": 0, "bottom": 40})
        >>> node.height
        40
    """

    tag: str
    top: float
    bottom: float
    classes: Tuple[str, ...] = ()
    style: BreakStyle = field(default_factory=BreakStyle)
    children: Tuple[ContentNode, ...] = ()

    @property
    def height(self) -> float:
        """Height in pixels (may be zero or negative for malformed nodes)."""
        return self.bottom - self.top

    @property
    def is_heading(self) -> bool:
        return bool(HEADING_TAG.match(self.tag))

    @property
    def is_malformed(self) -> bool:
        """Negative top or inverted bounds."""
        return self.top < 0 or self.bottom < self.top

    def matches(self, selector: str) -> bool:
        """
        Match a simple selector: ``tag``, ``.class`` or ``tag.class``.

        Args:
            selector: Selector string

        Returns:
            True if this node matches
        """
        selector = selector.strip().lower()
        if not selector:
            return False
        tag, _, cls = selector.partition(".")
        if tag and tag != self.tag:
            return False
        if cls and cls not in self.classes:
            return False
        return True

    def iter_all(self) -> Iterator[ContentNode]:
        """Yield this node and all descendants depth-first."""
        yield self
        for child in self.children:
            yield from child.iter_all()

    def scaled(self, factor: float) -> ContentNode:
        """Return a copy with every offset multiplied by factor."""
        return replace(
            self,
            top=self.top * factor,
            bottom=self.bottom * factor,
            children=tuple(child.scaled(factor) for child in self.children),
        )

    @classmethod
    def from_dict(cls, data: dict) -> ContentNode:
        """
        Deserialize a node tree.

        Expected keys: ``tag``, ``top``, ``bottom`` (or ``height``),
        optional ``classes`` (list or space-separated string), ``style``
        and ``children``.

        Args:
            data: Node mapping

        Returns:
            ContentNode tree
        """
        top = float(data.get("top", 0))
        if "bottom" in data:
            bottom = float(data["bottom"])
        else:
            bottom = top + float(data.get("height", 0))

        classes = data.get("classes", ())
        if isinstance(classes, str):
            classes = classes.split()

        return cls(
            tag=str(data.get("tag", "div")).lower(),
            top=top,
            bottom=bottom,
            classes=tuple(c.lower() for c in classes),
            style=BreakStyle.from_dict(data.get("style")),
            children=tuple(cls.from_dict(c) for c in data.get("children", ())),
        )
