"""
Module: export.layout.models

Purpose:
    Data models for page layout.
    Immutable dataclasses describing requested sections, their
    captures, and the draw instructions a layout policy produces.

Key Classes:
    - SectionRequest: Caller-supplied section descriptor
    - CapturedSection: A request paired with its capture (or None)
    - ClipRect: Visible band for a shifted image
    - DrawInstruction: One image or text primitive on a page
    - LayoutPlan: Final layout output

Dependencies:
    - dataclasses (std)

Used By:
    - export.layout.planner: Creates LayoutPlans
    - export.controller: Replays LayoutPlans
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from climate_report.export.surfaces.capture import CaptureResult


@dataclass(frozen=True)
class SectionRequest:
    """
    A report section to capture.

    Attributes:
        surface_id: Id of the live surface
        title: Optional heading drawn above the section
        margin_top: Extra spacing before the section, in millimetres
    """

    surface_id: str
    title: Optional[str] = None
    margin_top: Optional[float] = None

    def __post_init__(self) -> None:
        if self.margin_top is not None and self.margin_top < 0:
            raise ValueError(f"margin_top must be non-negative: {self.margin_top}")

    @property
    def extra_top(self) -> float:
        """margin_top with None treated as zero."""
        return self.margin_top or 0.0


@dataclass(frozen=True)
class CapturedSection:
    """
    A section request with its capture.

    capture is None when the surface was missing or could not be
    rasterized.
    """

    request: SectionRequest
    capture: Optional[CaptureResult] = None

    @property
    def usable(self) -> bool:
        """True when there is a non-empty capture to draw."""
        return self.capture is not None and not self.capture.is_empty


@dataclass(frozen=True)
class ClipRect:
    """Rectangle in top-down millimetres."""

    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class DrawInstruction:
    """
    A single primitive on a page.

    Coordinates are top-down millimetres from the page's top-left
    corner. Image instructions set image; text instructions set text
    and font_size (points), with y on the text baseline.

    Attributes:
        page_index: Zero-based page number
        x: Left edge
        y: Top edge (image) or baseline (text)
        width: Drawn width (0 for text)
        height: Drawn height (0 for text)
        image: Captured bitmap to draw
        text: Text to draw
        font_size: Font size in points for text
        clip: Visible band for shifted images, if any
        surface_id: Section the instruction belongs to
    """

    page_index: int
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    image: Optional[CaptureResult] = None
    text: Optional[str] = None
    font_size: float = 0.0
    clip: Optional[ClipRect] = None
    surface_id: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.text is not None

    @property
    def bottom(self) -> float:
        """Bottom edge of the drawn box."""
        return self.y + self.height

    def visible_height(self) -> float:
        """
        Height of the image that falls inside the clip band.

        Without a clip the whole drawn height counts.
        """
        if self.clip is None:
            return self.height
        top = max(self.y, self.clip.y)
        bottom = min(self.bottom, self.clip.bottom)
        return max(0.0, bottom - top)


@dataclass(frozen=True)
class LayoutPlan:
    """
    Final layout output with diagnostics.

    Attributes:
        page_count: Number of pages, including pages with no content
        instructions: Draw instructions in emission order
        warnings: Warning messages
        section_page_map: Mapping of surface_id to page indices

    Example:
        >>> plan = LayoutPlan(page_count=2, instructions=(i1, i2))
        >>> [i.page_index for i in plan.ordered()]
        [0, 1]
    """

    page_count: int
    instructions: tuple[DrawInstruction, ...] = ()
    warnings: list[str] = field(default_factory=list)
    section_page_map: dict[str, list[int]] = field(default_factory=dict)

    def ordered(self) -> list[DrawInstruction]:
        """Instructions by ascending page, emission order within a page."""
        return sorted(self.instructions, key=lambda instr: instr.page_index)

    def for_page(self, page_index: int) -> list[DrawInstruction]:
        """Instructions on one page, in emission order."""
        return [i for i in self.instructions if i.page_index == page_index]

    @property
    def image_count(self) -> int:
        return sum(1 for i in self.instructions if i.image is not None)
