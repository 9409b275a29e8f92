"""
Module: export.units

Purpose:
    Pixel to physical unit conversion for page layout.
    Captured surfaces are measured in CSS pixels at the 96 DPI
    reference density; pages are laid out in millimetres.

Key Functions:
    - px_to_units(): Convert pixels to millimetres
    - units_to_pt(): Convert millimetres to PDF points

Used By:
    - export.layout.planner: Image sizing
    - export.output.writer: PDF coordinate conversion
"""

from __future__ import annotations

# 96dpi reference density expressed in millimetres
REFERENCE_DPI = 96
MM_PER_INCH = 25.4
MM_PER_PX = MM_PER_INCH / REFERENCE_DPI

# PDF points are 1/72 inch
PT_PER_MM = 72.0 / MM_PER_INCH


def px_to_units(px: float) -> float:
    """
    Convert pixels to millimetres.

    The same factor applies to both axes, so aspect ratio is preserved.

    Args:
        px: Pixel value

    Returns:
        Value in millimetres

    Example:
        >>> round(px_to_units(96), 4)
        25.4
    """
    return px * MM_PER_PX


def units_to_pt(mm: float) -> float:
    """Convert millimetres to PDF points."""
    return mm * PT_PER_MM
