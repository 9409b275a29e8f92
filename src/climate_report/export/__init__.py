"""
Module: export

Purpose:
    Report export pipeline for the climate dashboard. Captures live
    surfaces as bitmaps, lays them out on pages under one of three
    policies, and writes a PDF.

Key Functions:
    - export_climate_report(): Default two-page report
    - export_report(): Download action dispatch

Key Classes:
    - ReportComposer: export_paginated / export_composite / export_two_page
    - RenderOptions: Per-export configuration
    - SectionRequest: Section descriptor

Dependencies:
    - PIL: Bitmaps
    - reportlab: PDF generation

Used By:
    - scripts/export_scene.py
"""

from .config import RenderOptions, PageGeometry, load_render_options
from .surfaces import (
    SurfaceTree,
    SurfaceNode,
    SurfaceCapture,
    CaptureResult,
    Renderer,
    PillowRenderer,
    SurfaceNotFound,
    SynchronizationFailure,
    RasterizationFailure,
    load_scene,
)
from .layout import SectionRequest, DrawInstruction, LayoutPlan
from .output import DocumentWriter, ReportLabDocumentWriter, DocumentFinalizationFailure
from .controller import (
    ReportComposer,
    ExportResult,
    export_climate_report,
    export_report,
)

__all__ = [
    # Config
    "RenderOptions",
    "PageGeometry",
    "load_render_options",
    # Surfaces
    "SurfaceTree",
    "SurfaceNode",
    "SurfaceCapture",
    "CaptureResult",
    "Renderer",
    "PillowRenderer",
    "load_scene",
    # Layout
    "SectionRequest",
    "DrawInstruction",
    "LayoutPlan",
    # Output
    "DocumentWriter",
    "ReportLabDocumentWriter",
    # Controller
    "ReportComposer",
    "ExportResult",
    "export_climate_report",
    "export_report",
    # Errors
    "SurfaceNotFound",
    "SynchronizationFailure",
    "RasterizationFailure",
    "DocumentFinalizationFailure",
]
