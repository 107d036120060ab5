"""
Professional Word Report Generator for Property Inspections
===========================================================

Editable .docx version of the inspection report. Cover page, statistics,
grade classification, a status chart and per-area findings with photos.
"""

from docx import Document
from docx.shared import Inches, Pt, RGBColor, Cm
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.oxml import parse_xml
from datetime import datetime
from io import BytesIO
from typing import Optional
import logging
import re

import matplotlib
matplotlib.use('Agg')  # Non-GUI backend, reports render on servers
import matplotlib.pyplot as plt
from PIL import Image, UnidentifiedImageError

from core.exceptions import ReportGenerationError
from core.models import Inspection
from core.settings import Settings
from reports.report_utils import (
    DISCLAIMER_AR,
    DISCLAIMER_SECTIONS,
    PhotoResolver,
    ReportContext,
    ReportDataProcessor,
    build_report_context,
    decode_data_url,
)

logger = logging.getLogger(__name__)

STATUS_FILLS = {"Pass": "D1FAE5", "Fail": "FEE2E2", "Snags": "FFEDD5"}
PHOTO_MAX_PX = 1024

# Control characters python-docx refuses to write (tab, LF and CR are allowed)
XML_INVALID_CHARS = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f]')


def xml_text(value) -> str:
    """Free text as a string Word can store"""
    return XML_INVALID_CHARS.sub('', str(value))


def generate_word_report(inspection: Inspection, variant: str = "professional",
                         include_photos: bool = True, include_findings: bool = True,
                         settings: Optional[Settings] = None,
                         photo_resolver: Optional[PhotoResolver] = None):
    """
    Generate the Word report for an inspection

    Args:
        inspection: Inspection to report on; grade is recomputed from it
        variant: Report variant (decides the grading table)
        include_photos: Embed item photos under each finding
        include_findings: False leaves out the per-area findings
        settings: Application settings
        photo_resolver: Maps stored photo references to data URLs

    Returns:
        docx.Document
    """
    context = build_report_context(inspection, variant, settings, photo_resolver)

    try:
        doc = Document()
        setup_document_formatting(doc)
        add_cover_page(doc, context)
        add_executive_summary(doc, context)
        add_statistics_section(doc, context)
        add_grade_classification(doc, context)
        if include_findings:
            add_findings(doc, context, include_photos)
        add_disclaimer(doc)
        add_footer(doc, context)
    except (ValueError, OSError) as e:
        raise ReportGenerationError(f"Word report generation failed: {e}") from e

    logger.info(f"✅ Word report generated: {context.report_number} (grade {context.grade})")
    return doc


def word_report_bytes(doc) -> bytes:
    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def setup_document_formatting(doc):
    """Setup document formatting with Arial font and clean styling"""

    for section in doc.sections:
        section.top_margin = Cm(3.0)
        section.bottom_margin = Cm(2.5)
        section.left_margin = Cm(2.5)
        section.right_margin = Cm(2.5)

    styles = doc.styles
    existing = [s.name for s in styles]

    if 'CleanTitle' not in existing:
        title_style = styles.add_style('CleanTitle', 1)
        title_style.font.name = 'Arial'
        title_style.font.size = Pt(28)
        title_style.font.bold = True
        title_style.font.color.rgb = RGBColor(0x1E, 0x3A, 0x8A)
        title_style.paragraph_format.alignment = WD_ALIGN_PARAGRAPH.CENTER
        title_style.paragraph_format.space_after = Pt(12)

    if 'CleanSectionHeader' not in existing:
        section_style = styles.add_style('CleanSectionHeader', 1)
        section_style.font.name = 'Arial'
        section_style.font.size = Pt(18)
        section_style.font.bold = True
        section_style.font.color.rgb = RGBColor(0x1E, 0x3A, 0x8A)
        section_style.paragraph_format.space_before = Pt(20)
        section_style.paragraph_format.space_after = Pt(10)

    if 'CleanSubsectionHeader' not in existing:
        subsection_style = styles.add_style('CleanSubsectionHeader', 1)
        subsection_style.font.name = 'Arial'
        subsection_style.font.size = Pt(14)
        subsection_style.font.bold = True
        subsection_style.paragraph_format.space_before = Pt(14)
        subsection_style.paragraph_format.space_after = Pt(6)

    if 'CleanBody' not in existing:
        body_style = styles.add_style('CleanBody', 1)
        body_style.font.name = 'Arial'
        body_style.font.size = Pt(11)
        body_style.paragraph_format.line_spacing = 1.2
        body_style.paragraph_format.space_after = Pt(6)


def set_cell_background_color(cell, color_hex):
    """Set cell background color with hex color code"""
    shading_elm = parse_xml(
        f'<w:shd xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main" '
        f'w:fill="{color_hex.lstrip("#")}"/>'
    )
    cell._tc.get_or_add_tcPr().append(shading_elm)


def add_header_row(table, headers):
    for idx, header in enumerate(headers):
        cell = table.rows[0].cells[idx]
        cell.text = header
        cell.paragraphs[0].runs[0].font.bold = True
        cell.paragraphs[0].runs[0].font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)
        set_cell_background_color(cell, "1E3A8A")


def add_cover_page(doc, context: ReportContext):
    inspection = context.inspection
    company = context.settings.company

    company_para = doc.add_paragraph()
    company_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    company_run = company_para.add_run(company["name"].upper())
    company_run.font.size = Pt(16)
    company_run.font.bold = True

    doc.add_paragraph("PROPERTY INSPECTION REPORT", style='CleanTitle')
    arabic_para = doc.add_paragraph("تقرير فحص العقار", style='CleanTitle')
    arabic_para.runs[0].font.size = Pt(22)

    doc.add_paragraph()
    details = doc.add_table(rows=0, cols=2)
    details.style = 'Table Grid'
    details.alignment = WD_TABLE_ALIGNMENT.CENTER
    for label, value in [
        ("Client", inspection.client_name or "N/A"),
        ("Property Location", inspection.property_location or "N/A"),
        ("Property Type", inspection.property_type or "N/A"),
        ("Inspector", inspection.inspector_name or "N/A"),
        ("Inspection Date", ReportDataProcessor.format_long_date(inspection.inspection_date)),
        ("Report Number", context.report_number),
    ]:
        row = details.add_row().cells
        row[0].text = label
        row[0].paragraphs[0].runs[0].font.bold = True
        set_cell_background_color(row[0], "F3F4F6")
        row[1].text = xml_text(value)

    doc.add_paragraph()
    grade_para = doc.add_paragraph()
    grade_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    grade_label = grade_para.add_run("PROPERTY GRADE\n")
    grade_label.font.size = Pt(12)
    grade_run = grade_para.add_run(context.grade)
    grade_run.font.size = Pt(48)
    grade_run.font.bold = True
    grade_run.font.color.rgb = RGBColor.from_string(context.result.rule.color.lstrip('#').upper())
    grade_para.add_run(f"\n{context.result.rule.label_en} / {context.result.rule.label_ar}")

    generated = doc.add_paragraph(f"Generated on {context.generated_at.strftime('%d %B %Y %H:%M %Z')}")
    generated.alignment = WD_ALIGN_PARAGRAPH.CENTER
    doc.add_page_break()


def add_executive_summary(doc, context: ReportContext):
    inspection = context.inspection
    stats = context.display_stats()

    doc.add_paragraph("Executive Summary", style='CleanSectionHeader')
    doc.add_paragraph(xml_text(f"Dear {inspection.client_name or 'Valued Client'},"), style='CleanBody')
    doc.add_paragraph(xml_text(
        f"{context.settings.company['name']} is pleased to present this inspection report for the "
        f"property located at {inspection.property_location}. The inspection was carried out by "
        f"{inspection.inspector_name} on "
        f"{ReportDataProcessor.format_long_date(inspection.inspection_date)}."
    ), style='CleanBody')
    doc.add_paragraph(
        f"Of {stats['total']} inspection points, {stats['pass']} passed ({stats['passPercentage']}%), "
        f"{stats['fail']} failed ({stats['failPercentage']}%) and {stats['snags']} were recorded as "
        f"snags ({stats['snagsPercentage']}%). The property is graded {context.grade} "
        f"({context.result.rule.label_en}) under the {context.policy.name} classification.",
        style='CleanBody',
    )


def add_statistics_section(doc, context: ReportContext):
    stats = context.display_stats()
    doc.add_paragraph("Inspection Statistics", style='CleanSectionHeader')

    table = doc.add_table(rows=2, cols=4)
    table.style = 'Table Grid'
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    add_header_row(table, ["Total Items", "Pass", "Fail", "Snags"])
    values = [
        (str(stats['total']), "F3F4F6"),
        (f"{stats['pass']} ({stats['passPercentage']}%)", STATUS_FILLS["Pass"]),
        (f"{stats['fail']} ({stats['failPercentage']}%)", STATUS_FILLS["Fail"]),
        (f"{stats['snags']} ({stats['snagsPercentage']}%)", STATUS_FILLS["Snags"]),
    ]
    for idx, (text, fill) in enumerate(values):
        cell = table.rows[1].cells[idx]
        cell.text = text
        cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER
        set_cell_background_color(cell, fill)

    if context.summary.total > 0:
        create_status_chart(doc, context)

    area_df = context.area_dataframe()
    if not area_df.empty:
        doc.add_paragraph("Results by Area", style='CleanSubsectionHeader')
        area_table = doc.add_table(rows=1, cols=len(area_df.columns))
        area_table.style = 'Table Grid'
        add_header_row(area_table, list(area_df.columns))
        for row_idx, record in enumerate(area_df.itertuples(index=False)):
            cells = area_table.add_row().cells
            for col_idx, value in enumerate(record):
                cells[col_idx].text = xml_text(value)
                if row_idx % 2 == 1:
                    set_cell_background_color(cells[col_idx], "F7F9FC")


def create_status_chart(doc, context: ReportContext):
    """Pie chart of item statuses"""
    summary = context.summary
    labels, sizes, colors = [], [], []
    for label, count, color in [
        ("Pass", summary.passed, "#16a34a"),
        ("Fail", summary.failed, "#dc2626"),
        ("Snags", summary.snags, "#ea580c"),
    ]:
        if count:
            labels.append(label)
            sizes.append(count)
            colors.append(color)

    fig, ax = plt.subplots(figsize=(6, 5))
    ax.pie(sizes, labels=labels, colors=colors, autopct='%1.1f%%', startangle=90)
    ax.set_title(f"Inspection Results ({summary.total} items)", fontsize=14, fontweight='600')
    plt.tight_layout()
    try:
        add_chart_to_document(doc, fig)
    finally:
        plt.close(fig)


def add_chart_to_document(doc, fig):
    """Helper function to add charts to document"""
    chart_buffer = BytesIO()
    fig.savefig(chart_buffer, format='png', dpi=150, bbox_inches='tight',
                facecolor='white', edgecolor='none', pad_inches=0.2)
    chart_buffer.seek(0)

    chart_para = doc.add_paragraph()
    chart_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    chart_para.add_run().add_picture(chart_buffer, width=Inches(4.5))


def add_grade_classification(doc, context: ReportContext):
    doc.add_paragraph("Property Grade Classification", style='CleanSectionHeader')
    doc.add_paragraph("تصنيف درجة العقار", style='CleanSubsectionHeader')

    table = doc.add_table(rows=1, cols=4)
    table.style = 'Table Grid'
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    add_header_row(table, ["Grade", "Description", "الوصف", "Criteria"])

    for rule in context.policy.rules:
        cells = table.add_row().cells
        cells[0].text = rule.grade
        cells[1].text = rule.label_en
        cells[2].text = rule.label_ar
        cells[3].text = rule.criteria_text
        if rule.grade == context.grade:
            for cell in cells:
                set_cell_background_color(cell, "FBBF24")
                for run in cell.paragraphs[0].runs:
                    run.font.bold = True

    doc.add_paragraph(
        f"Current grade: {context.grade} ({context.result.rule.label_en})",
        style='CleanBody',
    )


def add_findings(doc, context: ReportContext, include_photos: bool = True):
    doc.add_page_break()
    doc.add_paragraph("Inspection Findings", style='CleanSectionHeader')

    for area_no, area in enumerate(context.areas, start=1):
        doc.add_paragraph(xml_text(f"{area_no}. {area['name']}"), style='CleanSubsectionHeader')
        if not area["items"]:
            doc.add_paragraph("No items recorded in this area.", style='CleanBody')
            continue

        table = doc.add_table(rows=1, cols=5)
        table.style = 'Table Grid'
        add_header_row(table, ["Category", "Point", "Status", "Location", "Comments"])
        for row in area["items"]:
            cells = table.add_row().cells
            cells[0].text = xml_text(row.category)
            cells[1].text = xml_text(row.point)
            cells[2].text = f"{row.status} / {row.status_ar}"
            cells[3].text = xml_text(row.location)
            cells[4].text = xml_text(row.comments)
            set_cell_background_color(cells[2], STATUS_FILLS[row.status])

        if include_photos:
            for row in area["items"]:
                add_item_photos(doc, row)


def add_item_photos(doc, row):
    """Embed an item's photos, skipping any that are not decodable images"""
    added = False
    for src in row.photos:
        data = decode_data_url(src)
        if data is None:
            continue
        picture = prepare_photo(data)
        if picture is None:
            continue
        if not added:
            caption = doc.add_paragraph(xml_text(f"Photos: {row.point}"), style='CleanBody')
            caption.runs[0].font.italic = True
            added = True
        photo_para = doc.add_paragraph()
        photo_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
        photo_para.add_run().add_picture(picture, width=Inches(3.0))


def prepare_photo(data: bytes) -> Optional[BytesIO]:
    """Normalise photo bytes to a bounded-size JPEG python-docx can embed"""
    try:
        with Image.open(BytesIO(data)) as img:
            img = img.convert("RGB")
            img.thumbnail((PHOTO_MAX_PX, PHOTO_MAX_PX))
            out = BytesIO()
            img.save(out, format="JPEG", quality=85)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"⚠️ Skipping unreadable photo: {e}")
        return None
    out.seek(0)
    return out


def add_disclaimer(doc):
    doc.add_paragraph("Important Disclaimer & Terms", style='CleanSectionHeader')
    for section in DISCLAIMER_SECTIONS:
        heading = doc.add_paragraph(section["title"], style='CleanBody')
        heading.runs[0].font.bold = True
        if section.get("content"):
            doc.add_paragraph(section["content"], style='CleanBody')
        for line in section.get("items", []):
            doc.add_paragraph(line, style='List Bullet')

    arabic = doc.add_paragraph(DISCLAIMER_AR, style='CleanBody')
    arabic.alignment = WD_ALIGN_PARAGRAPH.RIGHT


def add_footer(doc, context: ReportContext):
    company = context.settings.company
    footer_para = doc.sections[0].footer.paragraphs[0]
    footer_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    footer_run = footer_para.add_run(
        f"{company['name']} | {company['email']} | {company['website']} | Report {context.report_number}"
    )
    footer_run.font.size = Pt(8)


def generate_filename(report_type: str, inspection: Inspection) -> str:
    """Generate professional filename"""
    base = inspection.property_location or inspection.client_name or "Property"
    clean_name = "".join(c for c in base if c.isalnum() or c in (' ', '-', '_')).strip()
    clean_name = clean_name.replace(' ', '_') or "Property"

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{clean_name}_Inspection_Report_{report_type}_{timestamp}"
