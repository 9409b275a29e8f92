"""
Module: export.config

Purpose:
    Configuration dataclasses for report export. Immutable settings
    with validation on construction, plus JSON loading.

Key Classes:
    - RenderOptions: Per-export options (file name, format, quality...)
    - PageGeometry: Page size and margin in millimetres

Key Functions:
    - load_render_options(): Read RenderOptions from a JSON file

Dependencies:
    - dataclasses (std)
    - json (std)

Used By:
    - export.controller: Entry points
    - export.layout.planner: Page geometry
    - export.output.writer: Page format
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Portrait page sizes in millimetres
PAGE_FORMATS: Dict[str, tuple[float, float]] = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
}

DEFAULT_FILE_NAME = "climate-report.pdf"
DEFAULT_PAGE_FORMAT = "a4"
DEFAULT_IMAGE_QUALITY = 0.92
DEFAULT_SCALE = 2.0
DEFAULT_BACKGROUND = "#ffffff"
DEFAULT_MARGIN_MM = 10.0


@dataclass(frozen=True)
class PageGeometry:
    """
    Page dimensions for layout (immutable).

    All values are in millimetres. The drawable area is the page
    minus the margin on every side.

    Attributes:
        width: Page width
        height: Page height
        margin: Margin applied to all four sides

    Example:
        >>> geometry = PageGeometry(width=210, height=297, margin=10)
        >>> geometry.available_height
        277
    """

    width: float
    height: float
    margin: float = DEFAULT_MARGIN_MM

    def __post_init__(self) -> None:
        """Validate geometry on construction."""
        if self.margin < 0:
            raise ValueError(f"margin must be non-negative: {self.margin}")
        if 2 * self.margin >= self.width:
            raise ValueError("Margins exceed page width")
        if 2 * self.margin >= self.height:
            raise ValueError("Margins exceed page height")

    @property
    def available_width(self) -> float:
        """Width available for content (excluding margins)."""
        return self.width - 2 * self.margin

    @property
    def available_height(self) -> float:
        """Height available for content (the page band)."""
        return self.height - 2 * self.margin

    @classmethod
    def for_format(cls, page_format: str, margin: float = DEFAULT_MARGIN_MM) -> "PageGeometry":
        """Build geometry for a named page format."""
        try:
            width, height = PAGE_FORMATS[page_format]
        except KeyError:
            raise ValueError(f"Unknown page format: {page_format!r}") from None
        return cls(width=width, height=height, margin=margin)


@dataclass(frozen=True)
class RenderOptions:
    """
    Options for a single export (immutable).

    Attributes:
        file_name: Name of the produced document
        page_format: "a4" or "letter" (portrait)
        image_quality: Image encoding quality in [0, 1]; 1.0 keeps lossless PNG
        scale: Oversampling factor for rasterization (>= 1)
        background_color: Fill colour behind captured surfaces
        titles: Named title slots, e.g. {"analysis": "Analysis Summary"}

    Example:
        >>> options = RenderOptions(file_name="report.pdf", page_format="letter")
        >>> options.geometry().width
        215.9
    """

    file_name: str = DEFAULT_FILE_NAME
    page_format: str = DEFAULT_PAGE_FORMAT
    image_quality: float = DEFAULT_IMAGE_QUALITY
    scale: float = DEFAULT_SCALE
    background_color: str = DEFAULT_BACKGROUND
    titles: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate options on construction."""
        if not self.file_name:
            raise ValueError("file_name must not be empty")
        if self.page_format not in PAGE_FORMATS:
            raise ValueError(
                f"page_format must be one of {sorted(PAGE_FORMATS)}: {self.page_format!r}"
            )
        if not 0.0 <= self.image_quality <= 1.0:
            raise ValueError(f"image_quality must be within [0, 1]: {self.image_quality}")
        if self.scale < 1:
            raise ValueError(f"scale must be >= 1: {self.scale}")

    def geometry(self, margin: float = DEFAULT_MARGIN_MM) -> PageGeometry:
        """Derive page geometry from the configured format."""
        return PageGeometry.for_format(self.page_format, margin=margin)

    def title_for(self, slot: str) -> Optional[str]:
        """Title configured for a named slot, or None."""
        return self.titles.get(slot) or None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RenderOptions":
        """
        Build options from a plain mapping (e.g. parsed JSON).

        Unknown keys are ignored with a warning; missing keys use defaults.
        The legacy key "background" is accepted for background_color.

        Raises:
            ValueError: If a value fails validation
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "background":
                key = "background_color"
            if key not in known:
                logger.warning(f"Ignoring unknown render option: {key}")
                continue
            kwargs[key] = value
        if "titles" in kwargs:
            kwargs["titles"] = dict(kwargs["titles"] or {})
        return cls(**kwargs)


def load_render_options(path: Path) -> RenderOptions:
    """
    Load RenderOptions from a JSON file.

    A missing file yields default options.

    Args:
        path: Path to a JSON object file

    Returns:
        Parsed RenderOptions

    Raises:
        ValueError: If the file is not a JSON object or values are invalid
    """
    if not path.exists():
        logger.info(f"No options file at {path}, using defaults")
        return RenderOptions()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Options file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Options file {path} must contain a JSON object")

    return RenderOptions.from_dict(data)
