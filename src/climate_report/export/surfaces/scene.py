"""
Module: export.surfaces.scene

Purpose:
    Build a SurfaceTree from a JSON scene description, so exports
    can be scripted without a live UI.

Scene format:
    {
        "surfaces": [
            {"id": "report-analysis", "width": 800, "height": 600,
             "scroll_height": 1400, "fill": "#f4f4f4",
             "children": [
                 {"kind": "image", "src": "map.png", "x": 0, "y": 0,
                  "width": 800, "height": 400},
                 {"kind": "canvas", "src": "chart.png", "x": 0, "y": 420,
                  "width": 800, "height": 300}
             ]}
        ]
    }

    "src" paths are resolved relative to the scene file. For canvas
    nodes the image becomes the current bitmap.

Key Functions:
    - load_scene(): Parse a scene file into a SurfaceTree

Used By:
    - scripts/export_scene.py
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from PIL import Image

from .tree import KIND_BLOCK, KIND_CANVAS, KIND_IMAGE, SurfaceNode, SurfaceTree

logger = logging.getLogger(__name__)


class SceneError(Exception):
    """Scene file is missing or malformed."""
    pass


def load_scene(path: Path) -> SurfaceTree:
    """
    Load a scene file into a SurfaceTree.

    Args:
        path: Path to the scene JSON

    Returns:
        SurfaceTree whose root holds the listed surfaces

    Raises:
        SceneError: If the file cannot be read or parsed
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SceneError(f"Could not read scene {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("surfaces"), list):
        raise SceneError(f"Scene {path} must contain a 'surfaces' list")

    tree = SurfaceTree()
    for entry in data["surfaces"]:
        tree.root.append(_build_node(entry, path.parent))

    logger.info(f"Loaded {len(data['surfaces'])} surfaces from {path}")
    return tree


def _build_node(entry: Dict[str, Any], base_dir: Path) -> SurfaceNode:
    if not isinstance(entry, dict):
        raise SceneError(f"Scene node must be an object: {entry!r}")

    kind = entry.get("kind", KIND_BLOCK)
    content = None
    if "src" in entry:
        if kind not in (KIND_IMAGE, KIND_CANVAS):
            raise SceneError(f"'src' is only valid for image/canvas nodes: {entry.get('id')}")
        src = base_dir / entry["src"]
        try:
            with Image.open(src) as img:
                content = img.convert("RGBA")
        except OSError as e:
            raise SceneError(f"Could not load image {src}: {e}") from e

    try:
        width = int(entry.get("width", content.width if content else 0))
        height = int(entry.get("height", content.height if content else 0))
        node = SurfaceNode(
            surface_id=entry.get("id"),
            kind=kind,
            x=int(entry.get("x", 0)),
            y=int(entry.get("y", 0)),
            width=width,
            height=height,
            scroll_width=entry.get("scroll_width"),
            scroll_height=entry.get("scroll_height"),
            fill=entry.get("fill"),
            image=content if kind == KIND_IMAGE else None,
            bitmap=content if kind == KIND_CANVAS else None,
            canvas_size=content.size if kind == KIND_CANVAS and content else None,
            tainted=bool(entry.get("tainted", False)),
            style=dict(entry.get("style", {})),
        )
    except (TypeError, ValueError) as e:
        raise SceneError(f"Invalid scene node {entry.get('id')!r}: {e}") from e

    for child in entry.get("children", []):
        node.append(_build_node(child, base_dir))
    return node
