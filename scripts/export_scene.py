"""
Export a report from a JSON scene description.

Loads the scene into a surface tree, rasterizes it with the Pillow
renderer, and writes a PDF using the selected layout policy.

Usage:
    python scripts/export_scene.py scene.json --policy paginated \
        --section report-analysis --section report-charts
    python scripts/export_scene.py scene.json --policy two-page
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path if needed
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from climate_report.export import (
    DocumentFinalizationFailure,
    PillowRenderer,
    ReportComposer,
    SectionRequest,
    load_render_options,
    load_scene,
)
from climate_report.export.controller import DEFAULT_ANALYSIS_ID, DEFAULT_CHARTS_ID
from climate_report.export.surfaces import SceneError

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Export a climate report PDF from a scene file")
    parser.add_argument("scene", type=Path, help="Scene JSON file")
    parser.add_argument(
        "--policy",
        choices=("paginated", "composite", "two-page"),
        default="paginated",
        help="Layout policy (default: paginated)",
    )
    parser.add_argument(
        "--section",
        action="append",
        default=[],
        metavar="ID[=TITLE]",
        help="Surface to include; repeatable. Two-page uses the first two.",
    )
    parser.add_argument("--options", type=Path, help="RenderOptions JSON file")
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Output directory")
    args = parser.parse_args()

    try:
        tree = load_scene(args.scene)
        options = load_render_options(args.options) if args.options else None
    except (SceneError, ValueError) as e:
        logger.error(f"Cannot start export: {e}")
        return 1

    sections = []
    for spec in args.section:
        surface_id, _, title = spec.partition("=")
        sections.append(SectionRequest(surface_id, title=title or None))

    composer = ReportComposer(tree, PillowRenderer(), output_dir=args.output_dir)

    try:
        if args.policy == "two-page":
            ids = [s.surface_id for s in sections] or [DEFAULT_ANALYSIS_ID, DEFAULT_CHARTS_ID]
            if len(ids) < 2:
                logger.error("two-page policy needs two --section values")
                return 1
            result = composer.export_two_page(ids[0], ids[1], options)
        elif args.policy == "composite":
            result = composer.export_composite(sections, options)
        else:
            result = composer.export_paginated(sections, options)
    except DocumentFinalizationFailure as e:
        logger.error(f"Export failed: {e}")
        return 1

    print(f"Document: {result.document_path}")
    print(f"Pages: {result.page_count}")
    if result.skipped:
        print(f"Skipped: {', '.join(result.skipped)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
