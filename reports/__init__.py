"""
Reports Module
==============
Report generation for property inspections.

Available Reports:
- HTML print report (html_report.py)
- Word report (word_generator.py)
- Excel workbook (excel_generator.py)

All of them recompute the grade through report_utils.build_report_context().
"""

from reports.report_utils import VARIANT_POLICIES, ReportContext, build_report_context
from reports.html_report import render_html_report
from reports.word_generator import generate_word_report
from reports.excel_generator import generate_excel_report
from reports.report_service import ReportGenerationService, ReportOptions

__all__ = [
    'VARIANT_POLICIES',
    'ReportContext',
    'build_report_context',
    'render_html_report',
    'generate_word_report',
    'generate_excel_report',
    'ReportGenerationService',
    'ReportOptions',
]

__version__ = '1.0.0'
