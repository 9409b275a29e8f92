"""
Module: export.surfaces.tree

Purpose:
    In-memory model of the live surface tree that report sections are
    captured from. A surface is a styled visual region; some nodes
    carry bitmap state (canvases) that a structural clone does not copy.

Key Classes:
    - SurfaceNode: One node in the tree
    - SurfaceTree: Root container with lookup and offscreen mounting
    - SurfaceNotFound: Requested surface id has no live node
    - SynchronizationFailure: Bitmap content could not be read

Dependencies:
    - PIL: Canvas bitmaps and external image content

Used By:
    - export.surfaces.capture: Duplicate, mount, synchronize
    - export.surfaces.renderer: Rasterization
    - export.surfaces.scene: Building trees from JSON
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from PIL import Image

logger = logging.getLogger(__name__)

KIND_BLOCK = "block"
KIND_IMAGE = "image"
KIND_CANVAS = "canvas"
NODE_KINDS = (KIND_BLOCK, KIND_IMAGE, KIND_CANVAS)

_uids = itertools.count(1)


class SurfaceNotFound(Exception):
    """No live surface resolves for the requested id."""
    pass


class SynchronizationFailure(Exception):
    """Bitmap content of a canvas node could not be read or copied."""
    pass


@dataclass(eq=False)
class SurfaceNode:
    """
    A node in the live surface tree.

    Positions are relative to the parent node, in CSS pixels.
    width/height are the visible box; scroll_width/scroll_height
    are the natural content extent including overflow.

    Attributes:
        surface_id: Public identifier (None for anonymous nodes and duplicates)
        kind: "block", "image" (external content) or "canvas" (bitmap-backed)
        x: Left offset within parent
        y: Top offset within parent
        width: Visible width
        height: Visible height
        scroll_width: Natural content width (defaults to width)
        scroll_height: Natural content height (defaults to height)
        fill: Background colour of the box, if any
        image: External image content for "image" nodes
        bitmap: Current pixel content for "canvas" nodes
        canvas_size: Backing store size of a canvas (defaults to box size)
        tainted: Canvas refuses pixel reads (e.g. cross-origin content)
        style: Inline style properties
        children: Child nodes in paint order
        uid: Unique node identity, never shared between nodes
    """

    surface_id: Optional[str] = None
    kind: str = KIND_BLOCK
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    scroll_width: Optional[int] = None
    scroll_height: Optional[int] = None
    fill: Optional[str] = None
    image: Optional[Image.Image] = None
    bitmap: Optional[Image.Image] = None
    canvas_size: Optional[Tuple[int, int]] = None
    tainted: bool = False
    style: Dict[str, str] = field(default_factory=dict)
    children: List["SurfaceNode"] = field(default_factory=list)
    uid: int = field(default_factory=lambda: next(_uids))
    parent: Optional["SurfaceNode"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.kind not in NODE_KINDS:
            raise ValueError(f"Unknown node kind: {self.kind!r}")
        if self.kind == KIND_CANVAS and self.canvas_size is None:
            self.canvas_size = (self.width, self.height)
        for child in self.children:
            child.parent = self

    @property
    def natural_width(self) -> int:
        """Full content width including horizontal overflow."""
        return max(self.width, self.scroll_width or 0)

    @property
    def natural_height(self) -> int:
        """Full content height including vertical overflow."""
        return max(self.height, self.scroll_height or 0)

    def append(self, child: "SurfaceNode") -> None:
        """Attach child as the last child of this node."""
        child.parent = self
        self.children.append(child)

    def remove(self, child: "SurfaceNode") -> None:
        """Detach a direct child (identity match)."""
        for i, existing in enumerate(self.children):
            if existing is child:
                del self.children[i]
                child.parent = None
                return
        raise ValueError(f"Node {child.uid} is not a child of {self.uid}")

    def walk(self) -> Iterator["SurfaceNode"]:
        """Yield this node and all descendants in document (pre-)order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def canvases(self) -> List["SurfaceNode"]:
        """Bitmap-backed nodes of this subtree, in traversal order."""
        return [node for node in self.walk() if node.kind == KIND_CANVAS]

    def read_pixels(self) -> Image.Image:
        """
        Return a copy of this canvas's current bitmap.

        A canvas that was never drawn yields a blank transparent bitmap.

        Raises:
            SynchronizationFailure: If the node is not a canvas or is tainted
        """
        if self.kind != KIND_CANVAS:
            raise SynchronizationFailure(f"Node {self.uid} is not a canvas")
        if self.tainted:
            raise SynchronizationFailure(
                f"Canvas {self.surface_id or self.uid} is tainted and cannot be read"
            )
        if self.bitmap is None:
            return Image.new("RGBA", self.canvas_size or (self.width, self.height), (0, 0, 0, 0))
        try:
            return self.bitmap.copy()
        except (ValueError, OSError) as e:
            raise SynchronizationFailure(
                f"Canvas {self.surface_id or self.uid} bitmap is unreadable: {e}"
            ) from e

    def clone(self) -> "SurfaceNode":
        """
        Structural deep copy of this subtree.

        The copy has fresh identities and no surface ids, so it can be
        mounted next to the original. Canvas bitmap state is not carried;
        external image content is.
        """
        duplicate = SurfaceNode(
            surface_id=None,
            kind=self.kind,
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            scroll_width=self.scroll_width,
            scroll_height=self.scroll_height,
            fill=self.fill,
            image=self.image,
            bitmap=None,
            canvas_size=self.canvas_size,
            style=dict(self.style),
        )
        for child in self.children:
            duplicate.append(child.clone())
        return duplicate


class SurfaceTree:
    """
    The shared live surface tree.

    At most one offscreen duplicate may be mounted at a time.

    Example:
        >>> tree = SurfaceTree()
        >>> tree.root.append(SurfaceNode("report-charts", width=800, height=600))
        >>> tree.get("report-charts").width
        800
    """

    def __init__(self, root: Optional[SurfaceNode] = None) -> None:
        self.root = root if root is not None else SurfaceNode()
        self._offscreen: Optional[SurfaceNode] = None

    @property
    def offscreen(self) -> Optional[SurfaceNode]:
        """Currently mounted offscreen duplicate, if any."""
        return self._offscreen

    def find(self, surface_id: str) -> Optional[SurfaceNode]:
        """Find the live node for a surface id, or None."""
        for node in self.root.walk():
            if node.surface_id == surface_id:
                return node
        return None

    def get(self, surface_id: str) -> SurfaceNode:
        """
        Get the live node for a surface id.

        Raises:
            SurfaceNotFound: If no node carries the id
        """
        node = self.find(surface_id)
        if node is None:
            raise SurfaceNotFound(f"No live surface for id: {surface_id}")
        return node

    def mount(self, node: SurfaceNode) -> None:
        """
        Mount a detached duplicate at the root.

        Raises:
            RuntimeError: If another duplicate is already mounted
        """
        if self._offscreen is not None:
            raise RuntimeError(
                f"Duplicate {self._offscreen.uid} is still mounted; "
                "only one offscreen duplicate is allowed"
            )
        self.root.append(node)
        self._offscreen = node
        logger.debug(f"Mounted offscreen duplicate {node.uid}")

    def detach(self, node: SurfaceNode) -> None:
        """Remove a mounted duplicate. Detaching an unmounted node is a no-op."""
        if node.parent is self.root:
            self.root.remove(node)
        if self._offscreen is node:
            self._offscreen = None
        logger.debug(f"Detached offscreen duplicate {node.uid}")

    @contextmanager
    def mounted(self, node: SurfaceNode) -> Iterator[SurfaceNode]:
        """Mount node for the duration of the block; always detaches."""
        self.mount(node)
        try:
            yield node
        finally:
            self.detach(node)
