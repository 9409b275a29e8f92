"""
Module: export.surfaces.capture

Purpose:
    Produce an isolated bitmap snapshot of a live surface.

Algorithm:
    1. Resolve the live surface (fail fast if absent)
    2. Clone it structurally, sized to its full natural extent and
       positioned off-screen
    3. Disable transitions/animations on every cloned node
    4. Mount the clone and copy canvas bitmaps from the original,
       pairing canvases by traversal order
    5. Rasterize the clone via the Renderer
    6. Detach the clone on every exit path

Key Classes:
    - CaptureResult: PNG bytes plus pixel dimensions
    - SurfaceCapture: Capture driver bound to a tree and renderer

Dependencies:
    - PIL: PNG encoding

Used By:
    - export.controller: Section capture
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image

from .renderer import RasterizationFailure, Renderer
from .tree import SurfaceNode, SurfaceTree, SynchronizationFailure

logger = logging.getLogger(__name__)

OFFSCREEN_LEFT = "-9999px"
OFFSCREEN_Z_INDEX = "99999"


@dataclass(frozen=True)
class CaptureResult:
    """
    Bitmap snapshot of one surface (immutable).

    Owned by a single export call; never cached.

    Attributes:
        image_bytes: PNG-encoded bitmap
        width_px: Bitmap width in pixels (oversampled)
        height_px: Bitmap height in pixels (oversampled)
    """

    image_bytes: bytes
    width_px: int
    height_px: int

    @property
    def is_empty(self) -> bool:
        """Zero-sized captures are treated as missing."""
        return self.width_px <= 0 or self.height_px <= 0

    def to_image(self) -> Image.Image:
        """Decode the PNG payload."""
        return Image.open(io.BytesIO(self.image_bytes))


class SurfaceCapture:
    """
    Captures live surfaces through offscreen duplicates.

    Example:
        >>> capture = SurfaceCapture(tree, PillowRenderer())
        >>> result = capture.capture("report-charts", scale=2)
        >>> result.width_px
        1600
    """

    def __init__(self, tree: SurfaceTree, renderer: Renderer) -> None:
        self._tree = tree
        self._renderer = renderer

    def capture(
        self,
        surface_id: str,
        scale: float = 2.0,
        background_color: str = "#ffffff",
    ) -> CaptureResult:
        """
        Capture a surface as PNG bytes.

        Args:
            surface_id: Id of the live surface
            scale: Oversampling factor
            background_color: Fill behind the surface

        Returns:
            CaptureResult with exact pixel dimensions

        Raises:
            SurfaceNotFound: If the id does not resolve
            RasterizationFailure: If the renderer fails or its output cannot be encoded
        """
        original = self._tree.get(surface_id)
        duplicate = prepare_duplicate(original)

        with self._tree.mounted(duplicate):
            copied = synchronize_bitmaps(original, duplicate)
            logger.debug(f"Synchronized {copied} canvas bitmap(s) for {surface_id}")

            try:
                raster = self._renderer.rasterize(
                    duplicate,
                    background_color=background_color,
                    scale=scale,
                    width=duplicate.width,
                    height=duplicate.height,
                )
            except RasterizationFailure:
                raise
            except Exception as e:
                raise RasterizationFailure(f"Could not rasterize {surface_id}: {e}") from e

        try:
            width_px, height_px = raster.size
            if width_px == 0 or height_px == 0:
                logger.info(f"Captured {surface_id}: empty raster")
                return CaptureResult(image_bytes=b"", width_px=width_px, height_px=height_px)

            buf = io.BytesIO()
            raster.save(buf, format="PNG")
        except (AttributeError, TypeError, ValueError, OSError) as e:
            raise RasterizationFailure(f"Could not encode raster of {surface_id}: {e}") from e

        logger.info(f"Captured {surface_id}: {width_px}x{height_px}px")
        return CaptureResult(image_bytes=buf.getvalue(), width_px=width_px, height_px=height_px)


def prepare_duplicate(original: SurfaceNode) -> SurfaceNode:
    """
    Clone a surface for offscreen capture.

    The clone is sized to the original's natural extent (overflow
    included), positioned off-screen, and has every transition and
    animation disabled.
    """
    duplicate = original.clone()
    width = original.natural_width
    height = original.natural_height

    duplicate.x = 0
    duplicate.y = 0
    duplicate.width = width
    duplicate.height = height
    duplicate.scroll_width = width
    duplicate.scroll_height = height
    duplicate.style.update({
        "position": "absolute",
        "left": OFFSCREEN_LEFT,
        "top": "0",
        "z-index": OFFSCREEN_Z_INDEX,
        "width": f"{width}px",
        "height": f"{height}px",
        "overflow": "visible",
    })

    for node in duplicate.walk():
        node.style["transition"] = "none"
        node.style["animation"] = "none"

    return duplicate


def synchronize_bitmaps(original: SurfaceNode, duplicate: SurfaceNode) -> int:
    """
    Copy canvas pixels from original into duplicate.

    Canvases are paired by traversal order; identities differ between
    the two trees. A failed copy leaves that canvas blank.

    Returns:
        Number of canvases copied
    """
    sources = original.canvases()
    targets = duplicate.canvases()
    copied = 0

    for index, (source, target) in enumerate(zip(sources, targets)):
        try:
            _copy_canvas(source, target)
            copied += 1
        except SynchronizationFailure as e:
            logger.warning(f"Canvas {index} left blank: {e}")

    return copied


def _copy_canvas(source: SurfaceNode, target: SurfaceNode) -> None:
    """Copy one canvas bitmap, resizing the target backing store to match."""
    pixels = source.read_pixels()
    target.canvas_size = source.canvas_size
    try:
        if target.canvas_size and pixels.size != target.canvas_size:
            pixels = pixels.resize(target.canvas_size, Image.Resampling.LANCZOS)
    except (ValueError, OSError) as e:
        raise SynchronizationFailure(f"Could not copy canvas bitmap: {e}") from e
    target.bitmap = pixels
