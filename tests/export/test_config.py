"""
Tests for export.config

Test Coverage:
- PageGeometry validation and derived areas
- RenderOptions validation, defaults and JSON loading
"""
import json

import pytest

from climate_report.export.config import (
    PageGeometry,
    RenderOptions,
    load_render_options,
)


class TestPageGeometry:

    def test_available_area_excludes_margins(self):
        geometry = PageGeometry(width=210, height=297, margin=10)
        assert geometry.available_width == 190
        assert geometry.available_height == 277

    def test_margins_must_leave_drawable_width(self):
        with pytest.raises(ValueError, match="width"):
            PageGeometry(width=20, height=297, margin=10)

    def test_margins_must_leave_drawable_height(self):
        with pytest.raises(ValueError, match="height"):
            PageGeometry(width=210, height=20, margin=10)

    def test_letter_format(self):
        geometry = PageGeometry.for_format("letter")
        assert geometry.width == pytest.approx(215.9)
        assert geometry.height == pytest.approx(279.4)
        assert geometry.margin == 10

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError, match="Unknown page format"):
            PageGeometry.for_format("a3")


class TestRenderOptions:

    def test_defaults(self):
        options = RenderOptions()
        assert options.file_name == "climate-report.pdf"
        assert options.page_format == "a4"
        assert options.image_quality == pytest.approx(0.92)
        assert options.scale == 2.0
        assert options.background_color == "#ffffff"
        assert options.geometry().available_height == 277

    @pytest.mark.parametrize("quality", [-0.1, 1.5])
    def test_quality_out_of_range(self, quality):
        with pytest.raises(ValueError, match="image_quality"):
            RenderOptions(image_quality=quality)

    def test_scale_below_one_rejected(self):
        with pytest.raises(ValueError, match="scale"):
            RenderOptions(scale=0.5)

    def test_unknown_page_format_rejected(self):
        with pytest.raises(ValueError, match="page_format"):
            RenderOptions(page_format="tabloid")

    def test_empty_file_name_rejected(self):
        with pytest.raises(ValueError, match="file_name"):
            RenderOptions(file_name="")

    def test_title_for_missing_slot_is_none(self):
        options = RenderOptions(titles={"analysis": "Analysis Summary", "charts": ""})
        assert options.title_for("analysis") == "Analysis Summary"
        assert options.title_for("charts") is None
        assert options.title_for("other") is None

    def test_from_dict_accepts_legacy_background_key(self):
        options = RenderOptions.from_dict({"background": "#000000", "scale": 3})
        assert options.background_color == "#000000"
        assert options.scale == 3

    def test_from_dict_ignores_unknown_keys(self, caplog):
        options = RenderOptions.from_dict({"fileName": "x.pdf", "page_format": "letter"})
        assert options.file_name == "climate-report.pdf"
        assert options.page_format == "letter"
        assert "fileName" in caplog.text


class TestLoadRenderOptions:

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_render_options(tmp_path / "missing.json") == RenderOptions()

    def test_loads_json_object(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text(json.dumps({
            "file_name": "report.pdf",
            "titles": {"analysis": "Summary"},
        }))
        options = load_render_options(path)
        assert options.file_name == "report.pdf"
        assert options.title_for("analysis") == "Summary"

    def test_invalid_json_raises_value_error(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="not valid JSON"):
            load_render_options(path)

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            load_render_options(path)
