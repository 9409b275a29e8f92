import io
import sys
from pathlib import Path

import pytest
from PIL import Image

# Add src to sys.path so we can import climate_report
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from climate_report.export.surfaces import CaptureResult, SurfaceNode, SurfaceTree


def png_bytes(width: int, height: int, color="white") -> bytes:
    """Encode a solid image as PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


# Common test fixtures
@pytest.fixture
def make_capture():
    """Factory for CaptureResults with a real PNG payload."""
    def _create(width_px: int, height_px: int, color="white") -> CaptureResult:
        payload = png_bytes(width_px, height_px, color) if width_px and height_px else b""
        return CaptureResult(image_bytes=payload, width_px=width_px, height_px=height_px)
    return _create


@pytest.fixture
def dashboard_tree():
    """
    Live tree with the two default report surfaces.

    report-analysis: 400x300 visible, 400x900 natural, one chart canvas
    report-charts: 600x400 with two canvases
    """
    chart_bitmap = Image.new("RGBA", (200, 100), (255, 0, 0, 255))
    analysis = SurfaceNode(
        "report-analysis",
        width=400,
        height=300,
        scroll_height=900,
        fill="#f0f0f0",
        style={"transition": "opacity 0.3s", "animation": "pulse 1s"},
        children=[
            SurfaceNode(x=10, y=10, width=380, height=40, fill="#336699"),
            SurfaceNode("analysis-chart", kind="canvas", x=0, y=100, width=200, height=100,
                        bitmap=chart_bitmap),
        ],
    )
    charts = SurfaceNode(
        "report-charts",
        width=600,
        height=400,
        children=[
            SurfaceNode("climatology", kind="canvas", x=0, y=0, width=300, height=200,
                        bitmap=Image.new("RGBA", (300, 200), (0, 0, 255, 255))),
            SurfaceNode("distribution", kind="canvas", x=300, y=0, width=300, height=200,
                        bitmap=Image.new("RGBA", (300, 200), (0, 255, 0, 255))),
        ],
    )
    root = SurfaceNode(children=[analysis, charts])
    return SurfaceTree(root)
