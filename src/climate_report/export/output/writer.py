"""
Module: export.output.writer

Purpose:
    Document writing contract and its ReportLab implementation.
    Layout coordinates are top-down millimetres; the writer converts
    them to bottom-up PDF points.

Key Classes:
    - DocumentWriter: Abstract page/image/text interface
    - ReportLabDocumentWriter: PDF writer on a ReportLab canvas
    - DocumentFinalizationFailure: Serialization or delivery failed

Dependencies:
    - reportlab: PDF generation
    - PIL: Image re-encoding

Used By:
    - export.controller: Replays layout plans
"""

from __future__ import annotations

import hashlib
import io
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from climate_report.export.config import (
    DEFAULT_BACKGROUND,
    DEFAULT_IMAGE_QUALITY,
    PAGE_FORMATS,
)
from climate_report.export.layout.models import ClipRect
from climate_report.export.units import units_to_pt

logger = logging.getLogger(__name__)

TITLE_FONT = "Helvetica"
# Dark grey title text
TITLE_GRAY = 30 / 255


class DocumentFinalizationFailure(Exception):
    """Document could not be serialized or delivered."""
    pass


class DocumentWriter(ABC):
    """
    Stateful document of fixed-size pages.

    A new writer starts on page 1. All coordinates are millimetres
    from the top-left corner of the current page.
    """

    @property
    @abstractmethod
    def page_width(self) -> float:
        """Page width in millimetres."""

    @property
    @abstractmethod
    def page_height(self) -> float:
        """Page height in millimetres."""

    @abstractmethod
    def new_page(self) -> None:
        """Finish the current page and start the next one."""

    @abstractmethod
    def draw_image(
        self,
        image_bytes: bytes,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        clip: Optional[ClipRect] = None,
    ) -> None:
        """
        Draw an encoded image stretched to the given box.

        Writers that cannot clip ignore clip; the page edge then
        bounds what is visible.
        """

    @abstractmethod
    def draw_text(self, text: str, x: float, y: float, font_size: float) -> None:
        """Draw text with its baseline at y."""

    @abstractmethod
    def finalize(self, file_name: str) -> Path:
        """
        Serialize the document and deliver it under file_name.

        Raises:
            DocumentFinalizationFailure: If serialization or delivery fails
        """


class ReportLabDocumentWriter(DocumentWriter):
    """
    PDF writer backed by a ReportLab canvas.

    Images are re-encoded as JPEG at image_quality (alpha flattened
    onto background_color) unless image_quality is 1.0, in which case
    the PNG payload is embedded as is. Encoded images are cached for
    the writer's lifetime, so a section redrawn on several pages is
    encoded once.

    Example:
        >>> writer = ReportLabDocumentWriter("a4", output_dir=Path("out"))
        >>> writer.draw_text("Analysis Summary", 12, 16, 16)
        >>> writer.finalize("report.pdf")
        PosixPath('out/report.pdf')
    """

    def __init__(
        self,
        page_format: str = "a4",
        *,
        image_quality: float = DEFAULT_IMAGE_QUALITY,
        background_color: str = DEFAULT_BACKGROUND,
        output_dir: Path = Path("."),
    ) -> None:
        try:
            self._width_mm, self._height_mm = PAGE_FORMATS[page_format]
        except KeyError:
            raise ValueError(f"Unknown page format: {page_format!r}") from None

        self._image_quality = image_quality
        self._background_color = background_color
        self._output_dir = Path(output_dir)
        self._buffer = io.BytesIO()
        self._canvas = canvas.Canvas(
            self._buffer,
            pagesize=(units_to_pt(self._width_mm), units_to_pt(self._height_mm)),
        )
        self._readers: Dict[str, ImageReader] = {}
        self._page_count = 1
        self._finalized = False

    @property
    def page_width(self) -> float:
        return self._width_mm

    @property
    def page_height(self) -> float:
        return self._height_mm

    @property
    def page_count(self) -> int:
        """Pages started so far."""
        return self._page_count

    def new_page(self) -> None:
        self._canvas.showPage()
        self._page_count += 1

    def draw_image(
        self,
        image_bytes: bytes,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        clip: Optional[ClipRect] = None,
    ) -> None:
        reader = self._reader_for(image_bytes)
        c = self._canvas

        c.saveState()
        if clip is not None:
            path = c.beginPath()
            path.rect(
                units_to_pt(clip.x),
                self._to_pdf_y(clip.y, clip.height),
                units_to_pt(clip.width),
                units_to_pt(clip.height),
            )
            c.clipPath(path, stroke=0, fill=0)

        c.drawImage(
            reader,
            units_to_pt(x),
            self._to_pdf_y(y, height),
            width=units_to_pt(width),
            height=units_to_pt(height),
        )
        c.restoreState()

    def draw_text(self, text: str, x: float, y: float, font_size: float) -> None:
        c = self._canvas
        c.saveState()
        c.setFont(TITLE_FONT, font_size)
        c.setFillGray(TITLE_GRAY)
        c.drawString(units_to_pt(x), self._to_pdf_y(y, 0.0), text)
        c.restoreState()

    def finalize(self, file_name: str) -> Path:
        if self._finalized:
            raise DocumentFinalizationFailure("Document was already finalized")

        output_path = self._output_dir / file_name
        try:
            # Emit the current page even when blank
            self._canvas.showPage()
            self._canvas.save()
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(self._buffer.getvalue())
        except Exception as e:
            raise DocumentFinalizationFailure(f"Could not write {output_path}: {e}") from e
        finally:
            self._finalized = True
            self._readers.clear()

        logger.info(f"Wrote {self._page_count} page(s) to {output_path}")
        return output_path

    def _to_pdf_y(self, top_mm: float, height_mm: float) -> float:
        """Convert a top-down box top to the bottom-up PDF y of its bottom edge."""
        return units_to_pt(self._height_mm - top_mm - height_mm)

    def _reader_for(self, image_bytes: bytes) -> ImageReader:
        key = hashlib.sha1(image_bytes).hexdigest()
        reader = self._readers.get(key)
        if reader is None:
            reader = ImageReader(io.BytesIO(self._encode(image_bytes)))
            self._readers[key] = reader
        return reader

    def _encode(self, image_bytes: bytes) -> bytes:
        if self._image_quality >= 1.0:
            return image_bytes

        with Image.open(io.BytesIO(image_bytes)) as img:
            rgba = img.convert("RGBA")
            flat = Image.new("RGB", rgba.size, self._background_color)
            flat.paste(rgba, (0, 0), rgba)

        buf = io.BytesIO()
        flat.save(buf, format="JPEG", quality=max(1, round(self._image_quality * 100)))
        return buf.getvalue()
