"""
Module: export.surfaces

Purpose:
    Live surface model and offscreen capture for report export.

Key Classes:
    - SurfaceTree, SurfaceNode: Live surface tree
    - SurfaceCapture: Isolated bitmap snapshots
    - Renderer, PillowRenderer: Rasterization
    - CaptureResult: Captured PNG payload

Key Functions:
    - load_scene(): Build a tree from JSON

Dependencies:
    - PIL: Bitmaps and rasterization

Used By:
    - export.controller: Section capture
"""

from .tree import (
    SurfaceNode,
    SurfaceTree,
    SurfaceNotFound,
    SynchronizationFailure,
)
from .renderer import Renderer, PillowRenderer, RasterizationFailure
from .capture import CaptureResult, SurfaceCapture
from .scene import load_scene, SceneError

__all__ = [
    "SurfaceNode",
    "SurfaceTree",
    "SurfaceNotFound",
    "SynchronizationFailure",
    "Renderer",
    "PillowRenderer",
    "RasterizationFailure",
    "CaptureResult",
    "SurfaceCapture",
    "load_scene",
    "SceneError",
]
