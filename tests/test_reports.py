"""Tests for report context and the HTML, Word and Excel renderers."""

from io import BytesIO

import pytest
from docx import Document
from openpyxl import load_workbook

from conftest import make_inspection
from core.exceptions import InvalidInputError, ReportGenerationError
from reports.excel_generator import generate_excel_report
from reports.html_report import render_html_report
from reports.report_service import ReportGenerationService, ReportGenerator, ReportOptions
from reports.report_utils import (
    VARIANT_POLICIES,
    build_report_context,
    create_summary_dataframe,
    decode_data_url,
)
from reports.word_generator import generate_filename, generate_word_report


def docx_text(doc):
    parts = [p.text for p in doc.paragraphs]
    for table in doc.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    return "\n".join(parts)


def summary_values(workbook):
    ws = workbook["Summary"]
    return {row[0]: row[1] for row in ws.iter_rows(min_row=3, max_col=2, values_only=True) if row[0]}


# ---------------------------------------------------------------------------
# Report context
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("variant, policy", sorted(VARIANT_POLICIES.items()))
def test_variant_policy(variant, policy, settings):
    context = build_report_context(make_inspection(10), variant, settings)
    assert context.policy.name == policy
    assert context.grade == ("AAA" if policy == "sixGrade" else "A+")


def test_unknown_variant(settings):
    with pytest.raises(InvalidInputError):
        build_report_context(make_inspection(1), "glossy", settings)


def test_context_recomputes_after_edit(settings):
    inspection = make_inspection(20)
    assert build_report_context(inspection, "professional", settings).grade == "AAA"
    inspection.areas[0].items[0].set_status("Fail")
    assert build_report_context(inspection, "professional", settings).grade == "A"


def test_display_stats_are_rounded(settings):
    context = build_report_context(make_inspection(2, 1, 0), "bilingual", settings)
    assert context.display_stats() == {
        "total": 3,
        "pass": 2,
        "fail": 1,
        "snags": 0,
        "passPercentage": 67,
        "failPercentage": 33,
        "snagsPercentage": 0,
    }
    # grading itself used the unrounded values
    assert context.result.pass_percentage == pytest.approx(66.6667, rel=1e-4)


def test_photo_limit_and_resolver(sample_inspection, settings, png_data_url):
    item = sample_inspection.areas[0].items[1]
    for ref in ["photo_a", "photo_b", "photo_c"]:
        item.add_photo(ref)
    context = build_report_context(
        sample_inspection, "bilingual", settings,
        photo_resolver=lambda ref: png_data_url if ref != "photo_b" else None,
    )
    row = context.areas[0]["items"][1]
    assert row.photos == [png_data_url, png_data_url]
    assert row.status_ar == "مرفوض"
    assert row.color == "#dc2626"


def test_summary_dataframe(sample_inspection, settings):
    df = create_summary_dataframe(build_report_context(sample_inspection, "bilingual", settings))
    values = dict(zip(df["Metric"], df["Value"]))
    assert values["Property Grade"] == "D"
    assert values["Pass"] == "3 (60%)"


def test_decode_data_url(png, png_data_url):
    assert decode_data_url(png_data_url) == png
    assert decode_data_url("photo_123") is None
    assert decode_data_url("data:image/png;base64,@@@") is None


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

def test_html_contains_recomputed_grade(settings):
    inspection = make_inspection(20)
    html = render_html_report(inspection, "bilingual", settings=settings)
    assert 'class="grade-badge">AAA<' in html

    inspection.areas[0].items[0].set_status("Fail")
    html = render_html_report(inspection, "bilingual", settings=settings)
    assert 'class="grade-badge">A<' in html


def test_html_five_plus_variant(settings):
    html = render_html_report(make_inspection(9, 1), "modern", settings=settings)
    assert 'class="grade-badge">A<' in html
    assert "A+" in html
    assert "AAA" not in html


def test_html_sections_and_escaping(sample_inspection, settings):
    sample_inspection.client_name = "<script>alert(1)</script>"
    html = render_html_report(sample_inspection, settings=settings)
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "Solution Property" in html
    assert "Kitchen" in html and "Master Bedroom" in html
    assert "#dc2626" in html
    assert "تقرير فحص العقار" in html
    assert "LIMITATIONS" in html


def test_html_languages(sample_inspection, settings):
    english = render_html_report(sample_inspection, language="en", settings=settings)
    assert "تقرير فحص العقار" not in english
    assert "Executive Summary" in english

    arabic = render_html_report(sample_inspection, language="ar", settings=settings)
    assert 'dir="rtl"' in arabic
    assert "Executive Summary" not in arabic

    with pytest.raises(InvalidInputError):
        render_html_report(sample_inspection, language="fr", settings=settings)


def test_html_photos(sample_inspection, settings, png_data_url):
    sample_inspection.areas[0].items[1].add_photo(png_data_url)
    assert png_data_url in render_html_report(sample_inspection, settings=settings)
    assert png_data_url not in render_html_report(sample_inspection, include_photos=False, settings=settings)


def test_html_summary_template_omits_findings(sample_inspection, settings):
    html = render_html_report(sample_inspection, include_findings=False, settings=settings)
    assert "Socket earthing" not in html
    assert "Inspection Findings" not in html
    assert 'class="grade-badge">D<' in html


def test_html_empty_inspection(settings):
    html = render_html_report(make_inspection(areas=1), settings=settings)
    assert 'class="grade-badge">D<' in html
    assert "No items recorded in this area." in html


# ---------------------------------------------------------------------------
# Word
# ---------------------------------------------------------------------------

def test_word_report(sample_inspection, settings, png_data_url):
    sample_inspection.areas[0].items[1].add_photo(png_data_url)
    doc = generate_word_report(sample_inspection, "professional", settings=settings)

    buffer = BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    reloaded = Document(buffer)
    text = docx_text(reloaded)

    assert "Current grade: D (Require maintenance)" in text
    assert "Socket earthing" in text
    assert "Fail / مرفوض" in text
    assert "LIMITATIONS" in text
    # status chart plus one photo
    assert len(reloaded.inline_shapes) == 2


def test_word_report_tracks_edits(settings):
    inspection = make_inspection(20)
    assert "Current grade: AAA" in docx_text(generate_word_report(inspection, settings=settings))
    inspection.areas[0].items[0].set_status("Fail")
    assert "Current grade: A (Good)" in docx_text(generate_word_report(inspection, settings=settings))


def test_word_report_without_photos_or_items(settings):
    inspection = make_inspection(areas=1)
    doc = generate_word_report(inspection, include_photos=False, settings=settings)
    assert "No items recorded in this area." in docx_text(doc)
    assert len(doc.inline_shapes) == 0


def test_word_report_strips_control_characters(sample_inspection, settings):
    item = sample_inspection.areas[0].items[1]
    item.comments = "No earth\x0b on socket 3"
    item.location = "Island\x01 bench"
    text = docx_text(generate_word_report(sample_inspection, settings=settings))
    assert "No earth on socket 3" in text
    assert "Island bench" in text


def test_generate_filename(sample_inspection):
    name = generate_filename("Word", sample_inspection)
    assert name.startswith("Villa_12_Al_Mouj_Muscat_Inspection_Report_Word_")


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

def test_excel_report(sample_inspection, settings):
    workbook = load_workbook(generate_excel_report(sample_inspection, "bilingual", settings=settings))
    assert workbook.sheetnames == ["Summary", "Findings", "Areas", "Metadata"]

    values = summary_values(workbook)
    assert values["Property Grade"] == "D"
    assert values["Total Items"] == "5"

    findings = list(workbook["Findings"].iter_rows(min_row=2, values_only=True))
    assert len(findings) == 5
    assert ("Kitchen", 2, "Electrical", "Socket earthing", "Fail") == findings[1][:5]

    areas = list(workbook["Areas"].iter_rows(min_row=2, values_only=True))
    assert [row[0] for row in areas] == ["Kitchen", "Master Bedroom"]


def test_excel_uses_variant_policy(settings):
    workbook = load_workbook(generate_excel_report(make_inspection(9, 1), "minimalist", settings=settings))
    assert summary_values(workbook)["Property Grade"] == "A"
    metadata = {row[0]: row[1] for row in workbook["Metadata"].iter_rows(values_only=True)}
    assert metadata["Grading Policy"] == "fivePlusGrade"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def test_service_generators(settings):
    service = ReportGenerationService(settings)
    assert service.get_available_generators() == ["html", "docx", "xlsx"]
    with pytest.raises(ReportGenerationError):
        service.generate_report(make_inspection(1), ReportOptions(format="pdf"))


@pytest.mark.parametrize("fmt, magic", [
    ("html", b"<!DOCTYPE html>"),
    ("docx", b"PK"),
    ("xlsx", b"PK"),
])
def test_service_formats(sample_inspection, settings, fmt, magic):
    data = ReportGenerationService(settings).generate_report(sample_inspection, ReportOptions(format=fmt))
    assert data.startswith(magic)


def test_service_summary_template(sample_inspection, settings):
    service = ReportGenerationService(settings)
    data = service.generate_report(sample_inspection, ReportOptions(format="xlsx", template="summary"))
    assert "Findings" not in load_workbook(BytesIO(data)).sheetnames

    html = service.generate_report(sample_inspection, ReportOptions(template="summary")).decode("utf-8")
    assert "Socket earthing" not in html


def test_service_register_custom_generator(sample_inspection, settings):
    class CsvGenerator(ReportGenerator):
        def generate(self, inspection, options):
            return ",".join(i.status.value for _, i in inspection.iter_items()).encode()

    service = ReportGenerationService(settings)
    service.register_generator("csv", CsvGenerator())
    assert service.generate_report(sample_inspection, ReportOptions(format="csv")) == b"Pass,Fail,Snags,Pass,Pass"


def test_service_uses_store_photos(sample_inspection, settings, json_store, png):
    photo_id = json_store.upload_photo(png, "socket.png")
    sample_inspection.areas[0].items[1].add_photo(photo_id)
    service = ReportGenerationService(settings, photo_resolver=json_store.resolve_photo)
    html = service.generate_report(sample_inspection).decode("utf-8")
    assert json_store.resolve_photo(photo_id) in html


@pytest.mark.parametrize("field, value", [
    ("template", "fancy"),
    ("language", "de"),
    ("variant", "glossy"),
    ("format", ""),
])
def test_report_options_validation(field, value):
    with pytest.raises(InvalidInputError):
        ReportOptions(**{field: value})
