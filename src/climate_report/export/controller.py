"""
Module: export.controller

Purpose:
    Orchestrate report export.
    Capture → Plan → Replay → Finalize

Key Classes:
    - ReportComposer: Entry points for the three layout policies
    - ExportResult: Outcome of one export

Key Functions:
    - export_climate_report(): Default two-page dashboard report
    - export_report(): Paginated when sections are given, else default

Dependencies:
    - export.surfaces: Capture
    - export.layout: Planning
    - export.output: PDF writing

Used By:
    - scripts/export_scene.py
    - Dashboard download action
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import DEFAULT_FILE_NAME, RenderOptions
from .layout import (
    CapturedSection,
    LayoutPlan,
    SectionRequest,
    plan_composite,
    plan_paginated,
    plan_two_page,
)
from .output import DocumentWriter, ReportLabDocumentWriter
from .surfaces import (
    CaptureResult,
    RasterizationFailure,
    Renderer,
    SurfaceCapture,
    SurfaceNotFound,
    SurfaceTree,
)

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_ID = "report-analysis"
DEFAULT_CHARTS_ID = "report-charts"
DEFAULT_TITLES = {
    "analysis": "Analysis Summary",
    "charts": "Climatology & Distribution",
}

WriterFactory = Callable[[RenderOptions, Path], DocumentWriter]


def reportlab_writer(options: RenderOptions, output_dir: Path) -> DocumentWriter:
    """Default writer factory."""
    return ReportLabDocumentWriter(
        options.page_format,
        image_quality=options.image_quality,
        background_color=options.background_color,
        output_dir=output_dir,
    )


@dataclass(frozen=True)
class ExportResult:
    """
    Outcome of one export (immutable).

    Attributes:
        document_path: Path of the written document
        page_count: Number of pages in the document
        skipped: Surface ids whose capture was missing or failed
        warnings: Layout warnings
        section_page_map: Mapping of surface_id to page indices
    """

    document_path: Path
    page_count: int
    skipped: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    section_page_map: dict[str, list[int]] = field(default_factory=dict)


class ReportComposer:
    """
    Captures sections and composes them into a document.

    Captures run one at a time in request order: only one offscreen
    duplicate may be mounted in the shared tree, and at most one
    full-resolution raster is in flight. A section that cannot be
    captured is left out; only finalization errors abort an export.

    Example:
        >>> composer = ReportComposer(tree, PillowRenderer(), output_dir=Path("out"))
        >>> result = composer.export_paginated([SectionRequest("report-charts")])
        >>> result.page_count
        1
    """

    def __init__(
        self,
        tree: SurfaceTree,
        renderer: Renderer,
        *,
        writer_factory: WriterFactory = reportlab_writer,
        output_dir: Path = Path("."),
    ) -> None:
        self._capture = SurfaceCapture(tree, renderer)
        self._writer_factory = writer_factory
        self._output_dir = Path(output_dir)

    def export_paginated(
        self,
        sections: Sequence[SectionRequest],
        options: Optional[RenderOptions] = None,
    ) -> ExportResult:
        """
        Export sections one after another, slicing tall ones across pages.

        Raises:
            DocumentFinalizationFailure: If the document cannot be written
        """
        options = options or RenderOptions()
        captured = self._capture_all(sections, options)
        plan = plan_paginated(captured, options.geometry())
        return self._emit(plan, captured, options)

    def export_composite(
        self,
        sections: Sequence[SectionRequest],
        options: Optional[RenderOptions] = None,
    ) -> ExportResult:
        """
        Export all sections shrunk onto a single page.

        Raises:
            DocumentFinalizationFailure: If the document cannot be written
        """
        options = options or RenderOptions()
        captured = self._capture_all(sections, options)
        plan = plan_composite(captured, options.geometry())
        return self._emit(plan, captured, options)

    def export_two_page(
        self,
        first_surface_id: str,
        second_surface_id: str,
        options: Optional[RenderOptions] = None,
        title_keys: tuple[str, str] = ("analysis", "charts"),
    ) -> ExportResult:
        """
        Export two sections, each best-fit on its own page.

        Titles come from options.titles under title_keys.

        Raises:
            DocumentFinalizationFailure: If the document cannot be written
        """
        options = options or RenderOptions()
        requests = [
            SectionRequest(first_surface_id, title=options.title_for(title_keys[0])),
            SectionRequest(second_surface_id, title=options.title_for(title_keys[1])),
        ]
        first, second = self._capture_all(requests, options)
        plan = plan_two_page(first, second, options.geometry())
        return self._emit(plan, [first, second], options)

    def _capture_all(
        self,
        sections: Sequence[SectionRequest],
        options: RenderOptions,
    ) -> List[CapturedSection]:
        captured: List[CapturedSection] = []
        for request in sections:
            captured.append(CapturedSection(request, self._capture_one(request, options)))
        return captured

    def _capture_one(
        self,
        request: SectionRequest,
        options: RenderOptions,
    ) -> Optional[CaptureResult]:
        try:
            result = self._capture.capture(
                request.surface_id,
                scale=options.scale,
                background_color=options.background_color,
            )
        except SurfaceNotFound as e:
            logger.warning(f"Skipping section: {e}")
            return None
        except RasterizationFailure as e:
            logger.warning(f"Skipping section {request.surface_id}: {e}")
            return None

        if result.is_empty:
            logger.warning(f"Skipping section {request.surface_id}: empty capture")
            return None
        return result

    def _emit(
        self,
        plan: LayoutPlan,
        captured: Sequence[CapturedSection],
        options: RenderOptions,
    ) -> ExportResult:
        start_time = time.perf_counter()
        writer = self._writer_factory(options, self._output_dir)
        replay(plan, writer)
        document_path = writer.finalize(options.file_name)

        skipped = tuple(c.request.surface_id for c in captured if not c.usable)
        elapsed = time.perf_counter() - start_time
        logger.info(
            f"Exported {plan.page_count} page(s) to {document_path} in {elapsed:.2f}s"
            + (f" ({len(skipped)} section(s) skipped)" if skipped else "")
        )

        return ExportResult(
            document_path=document_path,
            page_count=plan.page_count,
            skipped=skipped,
            warnings=tuple(plan.warnings),
            section_page_map=plan.section_page_map,
        )


def replay(plan: LayoutPlan, writer: DocumentWriter) -> None:
    """
    Draw a plan onto a fresh writer.

    Pages are started as instructions reach them; trailing pages
    without instructions are still created so the writer ends with
    exactly plan.page_count pages.
    """
    current = 0
    for instruction in plan.ordered():
        while current < instruction.page_index:
            writer.new_page()
            current += 1

        if instruction.is_text:
            writer.draw_text(instruction.text, instruction.x, instruction.y, instruction.font_size)
        elif instruction.image is not None:
            writer.draw_image(
                instruction.image.image_bytes,
                instruction.x,
                instruction.y,
                instruction.width,
                instruction.height,
                clip=instruction.clip,
            )

    while current < plan.page_count - 1:
        writer.new_page()
        current += 1


def export_climate_report(
    composer: ReportComposer,
    file_name: str = DEFAULT_FILE_NAME,
) -> ExportResult:
    """Export the default two-page analysis/charts report."""
    options = RenderOptions(
        file_name=file_name,
        page_format="a4",
        scale=2.0,
        background_color="#ffffff",
        titles=dict(DEFAULT_TITLES),
    )
    return composer.export_two_page(DEFAULT_ANALYSIS_ID, DEFAULT_CHARTS_ID, options)


def export_report(
    composer: ReportComposer,
    sections: Optional[Sequence[SectionRequest]] = None,
    file_name: str = DEFAULT_FILE_NAME,
) -> ExportResult:
    """
    Export for the dashboard download action.

    Uses the paginated policy when sections are given, otherwise the
    default two-page report.
    """
    if sections:
        return composer.export_paginated(sections, RenderOptions(file_name=file_name))
    return export_climate_report(composer, file_name)
