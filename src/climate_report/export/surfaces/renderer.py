"""
Module: export.surfaces.renderer

Purpose:
    Rasterization contract for detached surface subtrees, plus a
    Pillow-based reference renderer.

Key Classes:
    - Renderer: Abstract rasterization interface
    - PillowRenderer: Paints fills, external images and canvas bitmaps
    - RasterizationFailure: Renderer could not produce a bitmap

Dependencies:
    - PIL: Drawing and compositing

Used By:
    - export.surfaces.capture: Rasterizes mounted duplicates
    - scripts/export_scene.py
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from .tree import KIND_CANVAS, KIND_IMAGE, SurfaceNode

logger = logging.getLogger(__name__)


class RasterizationFailure(Exception):
    """Renderer could not produce a bitmap for a surface."""
    pass


class Renderer(ABC):
    """
    Abstract interface for turning a detached subtree into a bitmap.

    Implementations render the node at its natural pixel extent,
    oversampled by scale, over the given background.
    """

    @abstractmethod
    def rasterize(
        self,
        node: SurfaceNode,
        *,
        background_color: Optional[str],
        scale: float,
        width: int,
        height: int,
    ) -> Image.Image:
        """
        Rasterize a subtree.

        Args:
            node: Root of the detached subtree
            background_color: Fill behind content (None for transparent)
            scale: Oversampling factor
            width: Logical width to render, in CSS pixels
            height: Logical height to render, in CSS pixels

        Returns:
            Bitmap of size (width * scale, height * scale)

        Raises:
            RasterizationFailure: If the subtree cannot be rendered
        """


class PillowRenderer(Renderer):
    """
    Reference renderer built on Pillow.

    Paints each node's fill, then its external image or canvas bitmap
    stretched to the node box, then its children. The root node is
    drawn at the origin regardless of its own offset, so offscreen
    positioning does not affect the output.
    """

    def rasterize(
        self,
        node: SurfaceNode,
        *,
        background_color: Optional[str],
        scale: float,
        width: int,
        height: int,
    ) -> Image.Image:
        size = (round(width * scale), round(height * scale))
        fill = background_color if background_color else (0, 0, 0, 0)
        try:
            out = Image.new("RGBA", size, fill)
        except ValueError as e:
            raise RasterizationFailure(f"Invalid background colour {background_color!r}: {e}") from e

        self._paint(out, node, origin=(0.0, 0.0), box=(width, height), scale=scale)
        logger.debug(f"Rasterized node {node.uid} at {size[0]}x{size[1]}px (scale {scale})")
        return out

    def _paint(
        self,
        out: Image.Image,
        node: SurfaceNode,
        origin: Tuple[float, float],
        box: Tuple[int, int],
        scale: float,
    ) -> None:
        left = round(origin[0] * scale)
        top = round(origin[1] * scale)
        box_w = round(box[0] * scale)
        box_h = round(box[1] * scale)

        if box_w > 0 and box_h > 0:
            if node.fill:
                ImageDraw.Draw(out).rectangle(
                    (left, top, left + box_w - 1, top + box_h - 1), fill=node.fill
                )

            content = None
            if node.kind == KIND_IMAGE:
                content = node.image
            elif node.kind == KIND_CANVAS:
                content = node.bitmap
            if content is not None:
                layer = content.convert("RGBA").resize((box_w, box_h), Image.Resampling.LANCZOS)
                out.paste(layer, (left, top), layer)

        for child in node.children:
            self._paint(
                out,
                child,
                origin=(origin[0] + child.x, origin[1] + child.y),
                box=(child.width, child.height),
                scale=scale,
            )
