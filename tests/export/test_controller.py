"""
Tests for export.controller

Test Coverage:
- export_paginated / export_composite / export_two_page end to end
- Missing surfaces and rasterization failures skip sections
- replay(): page order and trailing blank pages
- Finalization failures propagate
- export_climate_report / export_report dispatch
"""
from pathlib import Path

import pytest
from PIL import Image
from pypdf import PdfReader

from climate_report.export import (
    DocumentFinalizationFailure,
    PillowRenderer,
    RenderOptions,
    ReportComposer,
    SectionRequest,
    SurfaceNode,
    export_climate_report,
    export_report,
)
from climate_report.export.controller import replay
from climate_report.export.layout import DrawInstruction, LayoutPlan
from climate_report.export.output import DocumentWriter
from climate_report.export.surfaces import RasterizationFailure, Renderer


class RecordingWriter(DocumentWriter):
    """In-memory writer that records every call."""

    def __init__(self, fail_finalize=False):
        self.calls = []
        self.fail_finalize = fail_finalize

    @property
    def page_width(self):
        return 210.0

    @property
    def page_height(self):
        return 297.0

    def new_page(self):
        self.calls.append(("new_page",))

    def draw_image(self, image_bytes, x, y, width, height, *, clip=None):
        self.calls.append(("image", x, y, width, height))

    def draw_text(self, text, x, y, font_size):
        self.calls.append(("text", text))

    def finalize(self, file_name):
        if self.fail_finalize:
            raise DocumentFinalizationFailure("disk full")
        self.calls.append(("finalize", file_name))
        return Path(file_name)

    @property
    def page_count(self):
        return 1 + sum(1 for c in self.calls if c[0] == "new_page")


class SelectiveFailRenderer(Renderer):
    """Fails for subtrees wider than a threshold; paints the rest."""

    def __init__(self, max_width):
        self.max_width = max_width
        self.inner = PillowRenderer()

    def rasterize(self, node, *, background_color, scale, width, height):
        if width > self.max_width:
            raise RasterizationFailure("canvas too large")
        return self.inner.rasterize(
            node, background_color=background_color, scale=scale, width=width, height=height
        )


class FloatModeRenderer(Renderer):
    """Produces a raster that cannot be stored as PNG."""

    def rasterize(self, node, *, background_color, scale, width, height):
        return Image.new("F", (max(1, round(width * scale)), max(1, round(height * scale))))


@pytest.fixture
def composer(dashboard_tree, tmp_path):
    return ReportComposer(dashboard_tree, PillowRenderer(), output_dir=tmp_path)


@pytest.fixture
def recording(dashboard_tree):
    writers = []

    def factory(options, output_dir):
        writer = RecordingWriter()
        writers.append(writer)
        return writer

    return ReportComposer(dashboard_tree, PillowRenderer(), writer_factory=factory), writers


class TestExportPaginated:

    def test_writes_pdf_with_sections_in_order(self, composer, tmp_path):
        result = composer.export_paginated([
            SectionRequest("report-analysis", title="Analysis"),
            SectionRequest("report-charts"),
        ], RenderOptions(file_name="paged.pdf"))

        assert result.document_path == tmp_path / "paged.pdf"
        # Analysis is 427.5mm tall at page width: two pages
        assert result.page_count == 3
        assert result.section_page_map == {"report-analysis": [0, 1], "report-charts": [2]}
        assert len(PdfReader(result.document_path).pages) == 3

    def test_missing_surface_skipped_without_error(self, composer):
        result = composer.export_paginated([
            SectionRequest("report-missing"),
            SectionRequest("report-charts"),
        ])

        assert result.skipped == ("report-missing",)
        assert result.page_count == 1
        assert "report-missing" not in result.section_page_map

    def test_rasterization_failure_skips_only_that_section(self, dashboard_tree, tmp_path):
        composer = ReportComposer(dashboard_tree, SelectiveFailRenderer(max_width=500),
                                  output_dir=tmp_path)
        result = composer.export_paginated([
            SectionRequest("report-analysis"),
            SectionRequest("report-charts"),
        ])

        assert result.skipped == ("report-charts",)
        assert result.section_page_map == {"report-analysis": [0, 1]}
        assert dashboard_tree.offscreen is None

    def test_unreadable_canvas_does_not_abort_export(self, dashboard_tree, composer):
        dashboard_tree.get("analysis-chart").bitmap.close()

        result = composer.export_paginated([
            SectionRequest("report-analysis"),
            SectionRequest("report-charts"),
        ])

        assert result.skipped == ()
        assert result.section_page_map == {"report-analysis": [0, 1], "report-charts": [2]}
        assert len(PdfReader(result.document_path).pages) == 3

    def test_unencodable_raster_skips_section(self, dashboard_tree, tmp_path):
        composer = ReportComposer(dashboard_tree, FloatModeRenderer(), output_dir=tmp_path)

        result = composer.export_paginated([SectionRequest("report-charts")])

        assert result.skipped == ("report-charts",)
        assert result.page_count == 1
        assert result.document_path.exists()

    def test_tall_section_spans_pages(self, tmp_path):
        from climate_report.export.surfaces import SurfaceTree

        tree = SurfaceTree()
        # 100px wide, 450px tall -> 190 x 855mm on A4, 4 bands of 277mm
        tree.root.append(SurfaceNode("tall", width=100, height=200, scroll_height=450, fill="#cccccc"))
        composer = ReportComposer(tree, PillowRenderer(), output_dir=tmp_path)

        result = composer.export_paginated([SectionRequest("tall")])

        assert result.page_count == 4
        assert len(PdfReader(result.document_path).pages) == 4

    def test_no_resolvable_sections_gives_single_blank_page(self, composer):
        result = composer.export_paginated([SectionRequest("report-missing")])
        assert result.page_count == 1
        assert len(PdfReader(result.document_path).pages) == 1

    def test_replay_calls_in_page_order(self, recording):
        composer, writers = recording
        composer.export_paginated([
            SectionRequest("report-analysis", title="Analysis"),
            SectionRequest("report-charts"),
        ])

        kinds = [c[0] for c in writers[0].calls]
        assert kinds == ["text", "image", "new_page", "image", "new_page", "image", "finalize"]


class TestExportComposite:

    def test_single_page(self, composer):
        result = composer.export_composite([
            SectionRequest("report-analysis"),
            SectionRequest("report-missing"),
            SectionRequest("report-charts"),
        ])

        assert result.page_count == 1
        assert result.skipped == ("report-missing",)
        reader = PdfReader(result.document_path)
        assert len(reader.pages) == 1
        assert len(reader.pages[0].images) == 2

    def test_drawn_stack_fits_page(self, recording):
        composer, writers = recording
        composer.export_composite([
            SectionRequest("report-analysis"),
            SectionRequest("report-charts"),
        ])

        images = [c for c in writers[0].calls if c[0] == "image"]
        bottom = images[-1][2] + images[-1][4]
        assert bottom <= 297 - 10 + 1e-9
        assert images[1][2] == pytest.approx(images[0][2] + images[0][4])


class TestExportTwoPage:

    def test_two_pages_with_titles(self, composer):
        options = RenderOptions(
            file_name="two.pdf",
            titles={"analysis": "Analysis Summary", "charts": "Climatology & Distribution"},
        )
        result = composer.export_two_page("report-analysis", "report-charts", options)

        reader = PdfReader(result.document_path)
        assert len(reader.pages) == 2
        assert "Analysis Summary" in reader.pages[0].extract_text()
        assert "Climatology & Distribution" in reader.pages[1].extract_text()
        assert len(reader.pages[0].images) == 1
        assert len(reader.pages[1].images) == 1

    def test_first_missing_gives_title_only_page(self, composer):
        options = RenderOptions(titles={"analysis": "Analysis Summary"})
        result = composer.export_two_page("report-missing", "report-charts", options)

        assert result.page_count == 2
        assert result.skipped == ("report-missing",)
        reader = PdfReader(result.document_path)
        assert len(reader.pages) == 2
        assert "Analysis Summary" in reader.pages[0].extract_text()
        assert len(reader.pages[0].images) == 0
        assert len(reader.pages[1].images) == 1

    def test_both_missing_still_two_pages(self, recording):
        composer, writers = recording
        result = composer.export_two_page("nope-1", "nope-2")

        assert result.page_count == 2
        assert writers[0].page_count == 2

    def test_custom_title_keys(self, recording):
        composer, writers = recording
        options = RenderOptions(titles={"left": "Left", "right": "Right"})
        composer.export_two_page("report-analysis", "report-charts", options,
                                 title_keys=("left", "right"))

        titles = [c[1] for c in writers[0].calls if c[0] == "text"]
        assert titles == ["Left", "Right"]


class TestFinalization:

    def test_finalization_failure_propagates(self, dashboard_tree):
        composer = ReportComposer(
            dashboard_tree,
            PillowRenderer(),
            writer_factory=lambda options, output_dir: RecordingWriter(fail_finalize=True),
        )
        with pytest.raises(DocumentFinalizationFailure, match="disk full"):
            composer.export_paginated([SectionRequest("report-charts")])

    def test_fresh_writer_per_export(self, recording):
        composer, writers = recording
        composer.export_composite([SectionRequest("report-charts")])
        composer.export_composite([SectionRequest("report-charts")])
        assert len(writers) == 2
        assert writers[0] is not writers[1]


class TestReplay:

    def test_sorts_by_page_and_pads_trailing_pages(self):
        plan = LayoutPlan(
            page_count=4,
            instructions=(
                DrawInstruction(page_index=1, x=0, y=0, text="second"),
                DrawInstruction(page_index=0, x=0, y=0, text="first"),
                DrawInstruction(page_index=1, x=0, y=0, text="second-b"),
            ),
        )
        writer = RecordingWriter()

        replay(plan, writer)

        assert writer.calls == [
            ("text", "first"),
            ("new_page",),
            ("text", "second"),
            ("text", "second-b"),
            ("new_page",),
            ("new_page",),
        ]
        assert writer.page_count == 4


class TestDispatch:

    def test_default_report_is_two_page_with_titles(self, recording):
        composer, writers = recording
        result = export_climate_report(composer, "climate.pdf")

        assert result.page_count == 2
        titles = [c[1] for c in writers[0].calls if c[0] == "text"]
        assert titles == ["Analysis Summary", "Climatology & Distribution"]
        assert writers[0].calls[-1] == ("finalize", "climate.pdf")

    def test_sections_use_paginated_policy(self, recording):
        composer, writers = recording
        result = export_report(composer, [SectionRequest("report-charts")], file_name="s.pdf")

        assert result.page_count == 1
        assert result.section_page_map == {"report-charts": [0]}
        assert writers[0].calls[-1] == ("finalize", "s.pdf")

    def test_empty_sections_fall_back_to_default(self, recording):
        composer, writers = recording
        result = export_report(composer, [])
        assert result.page_count == 2
        assert writers[0].calls[-1] == ("finalize", "climate-report.pdf")

    def test_default_file_name_matches_render_options(self, recording):
        composer, writers = recording
        export_climate_report(composer)
        assert writers[0].calls[-1] == ("finalize", RenderOptions().file_name)
