"""
Professional Excel Report Generator
===================================

Workbook version of the inspection report with a Summary sheet, the full
list of findings and a per-area breakdown.
"""

import pandas as pd
from io import BytesIO
from typing import Optional
import xlsxwriter
import logging

from core.models import Inspection
from core.settings import Settings
from core.statistics import ensure_python_type
from reports.report_utils import (
    PhotoResolver,
    ReportContext,
    build_report_context,
    create_summary_dataframe,
)

logger = logging.getLogger(__name__)

FINDINGS_COLUMNS = ["Area", "Item ID", "Category", "Point", "Status", "Location", "Comments", "Photos"]


def generate_excel_report(inspection: Inspection, variant: str = "professional",
                          include_findings: bool = True,
                          settings: Optional[Settings] = None,
                          photo_resolver: Optional[PhotoResolver] = None) -> BytesIO:
    """
    Generate the Excel report for an inspection

    Args:
        inspection: Inspection to report on; grade is recomputed from it
        variant: Report variant (decides the grading table)
        include_findings: False leaves out the Findings sheet
        settings: Application settings
        photo_resolver: Passed through to the report context

    Returns:
        BytesIO: Excel file buffer
    """
    context = build_report_context(inspection, variant, settings, photo_resolver)
    logger.info(f"Generating Excel report {context.report_number}")

    excel_buffer = BytesIO()
    workbook = xlsxwriter.Workbook(excel_buffer, {
        'nan_inf_to_errors': True,
        'remove_timezone': True
    })
    formats = create_formats(workbook)

    write_summary_sheet(workbook, formats, context)
    if include_findings:
        write_findings_sheet(workbook, formats, findings_dataframe(context))
    write_areas_sheet(workbook, formats, context)
    write_metadata_sheet(workbook, formats, context)

    workbook.close()
    excel_buffer.seek(0)
    logger.info(f"✅ Excel report generated: {context.report_number} (grade {context.grade})")
    return excel_buffer


def create_formats(workbook) -> dict:
    """Cell formats shared by every sheet"""
    base = {'valign': 'vcenter', 'border': 1, 'font_size': 10}
    return {
        'title': workbook.add_format({
            'bold': True, 'font_size': 18, 'bg_color': '#1E3A8A', 'font_color': 'white',
            'align': 'center', 'valign': 'vcenter', 'border': 2,
        }),
        'header': workbook.add_format({
            'bold': True, 'align': 'center', 'valign': 'vcenter',
            'bg_color': '#1F4E78', 'font_color': 'white', 'border': 1,
        }),
        'label': workbook.add_format({
            'bold': True, 'font_size': 11, 'bg_color': '#F5F5F5', 'border': 1,
            'align': 'left', 'valign': 'vcenter',
        }),
        'data': workbook.add_format({'font_size': 11, 'border': 1, 'align': 'right', 'valign': 'vcenter'}),
        'cell': workbook.add_format(dict(base, align='left')),
        'alt_row': workbook.add_format(dict(base, align='left', bg_color='#F7F9FC')),
        'grade': workbook.add_format({
            'bold': True, 'font_size': 11, 'border': 1, 'align': 'center',
            'bg_color': '#FBBF24', 'font_color': 'black',
        }),
        'Pass': workbook.add_format(dict(base, bg_color='#C8E6C9', font_color='#2E7D32')),
        'Fail': workbook.add_format(dict(base, bg_color='#FFCDD2', font_color='#C62828')),
        'Snags': workbook.add_format(dict(base, bg_color='#FFF3C4', font_color='#E65100')),
    }


def findings_dataframe(context: ReportContext) -> pd.DataFrame:
    rows = []
    for area in context.areas:
        for row in area["items"]:
            rows.append([
                row.area, row.item_id, row.category, row.point, row.status,
                row.location, row.comments, len(row.photos),
            ])
    return pd.DataFrame(rows, columns=FINDINGS_COLUMNS)


def write_summary_sheet(workbook, formats, context: ReportContext):
    ws = workbook.add_worksheet("Summary")
    ws.set_column('A:A', 26)
    ws.set_column('B:B', 40)
    ws.set_column('C:D', 24)

    ws.merge_range('A1:D1', f"{context.settings.company['name']} - Property Inspection Report",
                   formats['title'])
    ws.set_row(0, 30)

    summary_df = create_summary_dataframe(context)
    for row_idx, (metric, value) in enumerate(summary_df.itertuples(index=False), start=2):
        ws.write(row_idx, 0, metric, formats['label'])
        ws.write(row_idx, 1, value, formats['grade'] if metric == "Property Grade" else formats['data'])

    start = len(summary_df) + 4
    ws.write(start, 0, f"Grade Classification ({context.policy.name})", formats['label'])
    for col, header in enumerate(["Grade", "Description", "الوصف", "Criteria"]):
        ws.write(start + 1, col, header, formats['header'])
    for offset, rule in enumerate(context.policy.rules, start=2):
        fmt = formats['grade'] if rule.grade == context.grade else formats['cell']
        ws.write(start + offset, 0, rule.grade, fmt)
        ws.write(start + offset, 1, rule.label_en, fmt)
        ws.write(start + offset, 2, rule.label_ar, fmt)
        ws.write(start + offset, 3, rule.criteria_text, fmt)


def write_findings_sheet(workbook, formats, findings_df: pd.DataFrame):
    ws = workbook.add_worksheet("Findings")
    widths = [20, 8, 20, 36, 10, 20, 40, 8]
    for col, (header, width) in enumerate(zip(FINDINGS_COLUMNS, widths)):
        ws.write(0, col, header, formats['header'])
        ws.set_column(col, col, width)

    status_col = FINDINGS_COLUMNS.index("Status")
    for row_idx, record in enumerate(findings_df.itertuples(index=False), start=1):
        row_fmt = formats['alt_row'] if row_idx % 2 == 0 else formats['cell']
        for col, value in enumerate(record):
            fmt = formats[value] if col == status_col else row_fmt
            ws.write(row_idx, col, ensure_python_type(value), fmt)

    if len(findings_df):
        ws.autofilter(0, 0, len(findings_df), len(FINDINGS_COLUMNS) - 1)
    ws.freeze_panes(1, 0)


def write_areas_sheet(workbook, formats, context: ReportContext):
    ws = workbook.add_worksheet("Areas")
    area_df = context.area_dataframe()
    for col, header in enumerate(area_df.columns):
        ws.write(0, col, header, formats['header'])
    ws.set_column(0, 0, 24)
    ws.set_column(1, len(area_df.columns) - 1, 10)

    for row_idx, record in enumerate(area_df.itertuples(index=False), start=1):
        fmt = formats['alt_row'] if row_idx % 2 == 0 else formats['cell']
        for col, value in enumerate(record):
            ws.write(row_idx, col, ensure_python_type(value), fmt)


def write_metadata_sheet(workbook, formats, context: ReportContext):
    ws = workbook.add_worksheet("Metadata")
    ws.set_column('A:A', 24)
    ws.set_column('B:B', 40)
    rows = [
        ("Report Number", context.report_number),
        ("Inspection ID", context.inspection.id or "draft"),
        ("Variant", context.variant),
        ("Grading Policy", context.policy.name),
        ("Generated", context.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')),
    ]
    for row_idx, (label, value) in enumerate(rows):
        ws.write(row_idx, 0, label, formats['label'])
        ws.write(row_idx, 1, value, formats['cell'])
