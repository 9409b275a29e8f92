"""
Module: export.layout.planner

Purpose:
    Turn captured sections into draw instructions for one of three
    layout policies.

Key Functions:
    - plan_paginated(): Fit to width, slice tall sections across pages
    - plan_composite(): Shrink all sections onto a single page
    - plan_two_page(): Two named sections, each best-fit on its own page

Algorithm (paginated):
    The output format has no sub-image crop, so every page redraws the
    whole image shifted upward by the height already shown on earlier
    pages. Page i of a section with top offset T and page band B draws
    at y = margin + T - i*B and shows image rows [i*B - T, (i+1)*B - T]
    (page 0 starts at row 0). The visible band is recorded as a clip.

Dependencies:
    - export.units: Pixel to millimetre conversion
    - export.layout.models: Instructions and plans

Used By:
    - export.controller: Entry points
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Sequence, Tuple

from climate_report.export.config import PageGeometry
from climate_report.export.surfaces.capture import CaptureResult
from climate_report.export.units import px_to_units

from .models import CapturedSection, ClipRect, DrawInstruction, LayoutPlan

logger = logging.getLogger(__name__)

# Paginated policy title
PAGINATED_TITLE_RESERVE_MM = 8.0
PAGINATED_TITLE_FONT_SIZE = 14

# Two-page policy title
TWO_PAGE_TITLE_BAND_MM = 10.0
TWO_PAGE_TITLE_FONT_SIZE = 16
TWO_PAGE_TITLE_INSET_MM = 2.0
TWO_PAGE_TITLE_BASELINE_MM = 6.0

# Digits kept when dividing heights, so exact multiples of the band do
# not round up to an extra empty page
_PAGE_COUNT_PRECISION = 9


def image_size_units(capture: CaptureResult) -> Tuple[float, float]:
    """Natural (width, height) of a capture in millimetres."""
    return px_to_units(capture.width_px), px_to_units(capture.height_px)


def fit_to_width(capture: CaptureResult, target_width: float) -> float:
    """Height of a capture scaled to target_width, aspect preserved."""
    img_w, img_h = image_size_units(capture)
    return img_h * (target_width / img_w)


def pages_needed(render_height: float, band: float, top_offset: float = 0.0) -> int:
    """
    Pages required to show render_height below top_offset on page 0.

    Example:
        >>> pages_needed(300.0, 100.0)
        3
    """
    return max(1, math.ceil(round((render_height + top_offset) / band, _PAGE_COUNT_PRECISION)))


def composite_shrink_factor(total_height: float, available_height: float) -> float:
    """Uniform shrink for the composite page; never above 1."""
    if total_height <= 0:
        return 1.0
    return min(1.0, available_height / total_height)


def fit_ratio(img_w: float, img_h: float, avail_w: float, avail_h: float) -> float:
    """Best-fit scale of an image into a box; may exceed 1."""
    return min(avail_w / img_w, avail_h / img_h)


def plan_paginated(
    sections: Sequence[CapturedSection],
    geometry: PageGeometry,
) -> LayoutPlan:
    """
    Lay out sections one after another, each starting on a fresh page.

    Each image is fitted to the available width. Sections taller than
    the page band continue on following pages via redraw-and-shift.
    Sections without a usable capture are skipped.

    Args:
        sections: Captured sections in request order
        geometry: Page geometry

    Returns:
        LayoutPlan with one image instruction per page and an optional
        title on each section's first page
    """
    instructions: List[DrawInstruction] = []
    warnings: List[str] = []
    section_page_map: Dict[str, List[int]] = {}

    margin = geometry.margin
    band = geometry.available_height
    render_width = geometry.available_width
    next_page = 0

    for section in sections:
        request = section.request
        if not section.usable:
            warnings.append(f"Skipped section {request.surface_id}: no capture")
            continue

        render_height = fit_to_width(section.capture, render_width)

        title_reserve = PAGINATED_TITLE_RESERVE_MM if request.title else 0.0
        top_offset = request.extra_top + title_reserve
        if top_offset >= band:
            warnings.append(
                f"margin_top of {request.surface_id} exceeds the page band; ignored"
            )
            top_offset = title_reserve

        count = pages_needed(render_height, band, top_offset)
        first_page = next_page

        for i in range(count):
            page_index = next_page
            next_page += 1

            if i == 0 and request.title:
                instructions.append(DrawInstruction(
                    page_index=page_index,
                    x=margin,
                    y=margin + top_offset - title_reserve,
                    text=request.title,
                    font_size=PAGINATED_TITLE_FONT_SIZE,
                    surface_id=request.surface_id,
                ))

            band_top = margin + (top_offset if i == 0 else 0.0)
            instructions.append(DrawInstruction(
                page_index=page_index,
                x=margin,
                y=margin + top_offset - i * band,
                width=render_width,
                height=render_height,
                image=section.capture,
                clip=ClipRect(margin, band_top, render_width, margin + band - band_top),
                surface_id=request.surface_id,
            ))

        section_page_map[request.surface_id] = list(range(first_page, next_page))
        logger.debug(
            f"Section {request.surface_id}: {render_height:.1f}mm over {count} page(s)"
        )

    page_count = max(next_page, 1)
    logger.info(f"Paginated {len(section_page_map)} section(s) onto {page_count} page(s)")

    return LayoutPlan(
        page_count=page_count,
        instructions=tuple(instructions),
        warnings=warnings,
        section_page_map=section_page_map,
    )


def plan_composite(
    sections: Sequence[CapturedSection],
    geometry: PageGeometry,
) -> LayoutPlan:
    """
    Stack every section onto a single page.

    Each image is fitted to the available width; the stack (including
    any margin_top gaps) is shrunk by one uniform factor when it
    exceeds the available height. Images keep their aspect ratio and
    are centred horizontally when shrunk. Missing sections contribute
    zero height.

    Args:
        sections: Captured sections in request order
        geometry: Page geometry

    Returns:
        Single-page LayoutPlan
    """
    warnings: List[str] = []
    render_width = geometry.available_width

    heights: List[float] = []
    gaps: List[float] = []
    for section in sections:
        if section.usable:
            heights.append(fit_to_width(section.capture, render_width))
            gaps.append(section.request.extra_top)
        else:
            warnings.append(f"Skipped section {section.request.surface_id}: no capture")
            heights.append(0.0)
            gaps.append(0.0)

    total_height = sum(heights) + sum(gaps)
    shrink = composite_shrink_factor(total_height, geometry.available_height)

    instructions: List[DrawInstruction] = []
    section_page_map: Dict[str, List[int]] = {}
    y = geometry.margin
    drawn_width = render_width * shrink
    x = geometry.margin + (render_width - drawn_width) / 2

    for section, height, gap in zip(sections, heights, gaps):
        if not section.usable:
            continue
        y += gap * shrink
        drawn_height = height * shrink
        instructions.append(DrawInstruction(
            page_index=0,
            x=x,
            y=y,
            width=drawn_width,
            height=drawn_height,
            image=section.capture,
            surface_id=section.request.surface_id,
        ))
        section_page_map[section.request.surface_id] = [0]
        y += drawn_height

    logger.info(
        f"Composited {len(instructions)} section(s) onto one page "
        f"(total {total_height:.1f}mm, shrink {shrink:.4f})"
    )

    return LayoutPlan(
        page_count=1,
        instructions=tuple(instructions),
        warnings=warnings,
        section_page_map=section_page_map,
    )


def plan_two_page(
    first: CapturedSection,
    second: CapturedSection,
    geometry: PageGeometry,
) -> LayoutPlan:
    """
    Place two sections on two pages, each best-fit and centred.

    A title band is reserved at the top of a page when its section
    has a title. A section without a usable capture yields a page
    with only its title. Both pages always exist.

    Args:
        first: Section for page 1
        second: Section for page 2
        geometry: Page geometry

    Returns:
        Two-page LayoutPlan
    """
    instructions: List[DrawInstruction] = []
    warnings: List[str] = []
    section_page_map: Dict[str, List[int]] = {}

    margin = geometry.margin
    avail_w = geometry.available_width

    for page_index, section in enumerate((first, second)):
        request = section.request
        title_space = TWO_PAGE_TITLE_BAND_MM if request.title else 0.0
        avail_h = geometry.available_height - title_space
        y = margin

        if request.title:
            instructions.append(DrawInstruction(
                page_index=page_index,
                x=margin + TWO_PAGE_TITLE_INSET_MM,
                y=y + TWO_PAGE_TITLE_BASELINE_MM,
                text=request.title,
                font_size=TWO_PAGE_TITLE_FONT_SIZE,
                surface_id=request.surface_id,
            ))
            y += title_space

        if not section.usable:
            warnings.append(f"Page {page_index + 1} has no image: {request.surface_id} not captured")
            continue

        img_w, img_h = image_size_units(section.capture)
        ratio = fit_ratio(img_w, img_h, avail_w, avail_h)
        width = img_w * ratio
        height = img_h * ratio

        instructions.append(DrawInstruction(
            page_index=page_index,
            x=margin + (avail_w - width) / 2,
            y=y + (avail_h - height) / 2,
            width=width,
            height=height,
            image=section.capture,
            surface_id=request.surface_id,
        ))
        section_page_map[request.surface_id] = [page_index]
        logger.debug(f"Page {page_index + 1}: {request.surface_id} fit ratio {ratio:.4f}")

    return LayoutPlan(
        page_count=2,
        instructions=tuple(instructions),
        warnings=warnings,
        section_page_map=section_page_map,
    )
