"""
Printable HTML Inspection Report
================================
Bilingual (English / Arabic) print document rendered with Jinja2.
The browser's print dialog or any HTML-to-PDF tool takes it from here.
"""

import logging
from typing import Optional

from jinja2 import BaseLoader, Environment, select_autoescape

from core.exceptions import InvalidInputError
from core.models import Inspection
from core.settings import Settings
from reports.report_utils import (
    DISCLAIMER_AR,
    DISCLAIMER_SECTIONS,
    LANGUAGES,
    PhotoResolver,
    ReportContext,
    ReportDataProcessor,
    build_report_context,
)

logger = logging.getLogger(__name__)


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="{{ 'ar' if language == 'ar' else 'en' }}" dir="{{ 'rtl' if language == 'ar' else 'ltr' }}">
<head>
<meta charset="utf-8">
<title>{{ company.name }} - Property Inspection Report {{ report_number }}</title>
<style>
    @page { size: A4; margin: 0.75in; }
    body { font-family: Arial, 'Segoe UI', Tahoma, sans-serif; color: #1f2937; font-size: 11pt; }
    h1, h2, h3 { color: #1e3a8a; }
    .ar { direction: rtl; text-align: right; font-family: Tahoma, Arial, sans-serif; }
    .header { border-bottom: 3px solid #1e3a8a; padding-bottom: 12px; margin-bottom: 20px; }
    .details td { padding: 4px 12px 4px 0; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 16px; }
    .stats td, .stats th, .grade-table td, .grade-table th, .findings td, .findings th {
        border: 1px solid #d1d5db; padding: 6px; text-align: center;
    }
    .grade-table th { background: #1e3a8a; color: white; }
    .grade-table td.current { background: #fbbf24; color: black; font-weight: bold; }
    .grade-badge {
        display: inline-block; font-size: 32pt; font-weight: bold; padding: 8px 24px;
        border: 4px solid {{ grade_color }}; color: {{ grade_color }}; border-radius: 12px;
    }
    .status { font-weight: bold; }
    .photos img { max-width: 45%; max-height: 220px; margin: 4px; border: 1px solid #e5e7eb; }
    .area { page-break-inside: avoid; }
    .disclaimer { font-size: 9pt; color: #4b5563; border-top: 1px solid #d1d5db; margin-top: 24px; }
    .footer { text-align: center; margin-top: 30px; padding: 15px; background: #ecf0f1; }
</style>
</head>
<body class="variant-{{ variant }}">
<div class="header">
    <h1>{{ company.name }}</h1>
    {% if show_en %}<h2>Property Inspection Report</h2>{% endif %}
    {% if show_ar %}<h2 class="ar">تقرير فحص العقار</h2>{% endif %}
    <p>Report Number: {{ report_number }} &middot; Generated: {{ generated_at }}</p>
</div>

<table class="details">
    <tr><td><strong>Client{% if show_ar %} / العميل{% endif %}:</strong></td><td>{{ inspection.client_name or 'N/A' }}</td></tr>
    <tr><td><strong>Property Location{% if show_ar %} / موقع العقار{% endif %}:</strong></td><td>{{ inspection.property_location }}</td></tr>
    <tr><td><strong>Property Type{% if show_ar %} / نوع العقار{% endif %}:</strong></td><td>{{ inspection.property_type }}</td></tr>
    <tr><td><strong>Inspector{% if show_ar %} / المفتش{% endif %}:</strong></td><td>{{ inspection.inspector_name }}</td></tr>
    <tr><td><strong>Inspection Date{% if show_ar %} / تاريخ الفحص{% endif %}:</strong></td><td>{{ inspection_date }}</td></tr>
</table>

{% if show_en %}
<h3>Executive Summary</h3>
<p>Dear {{ inspection.client_name or 'Valued Client' }},</p>
<p>{{ company.name }} is pleased to present this inspection report for the property located at
<strong>{{ inspection.property_location }}</strong>, examined by <strong>{{ inspection.inspector_name }}</strong>
on <strong>{{ inspection_date_long }}</strong>. Each inspection point has been categorised as
<strong>Pass</strong> (satisfactory condition), <strong>Fail</strong> (requires immediate attention)
or <strong>Snags</strong> (minor issues requiring attention).</p>
{% endif %}

<table class="stats">
    <tr>
        <th>Total Items{% if show_ar %}<br><span class="ar">إجمالي البنود</span>{% endif %}</th>
        <th>Pass{% if show_ar %}<br><span class="ar">مقبول</span>{% endif %}</th>
        <th>Fail{% if show_ar %}<br><span class="ar">مرفوض</span>{% endif %}</th>
        <th>Snags{% if show_ar %}<br><span class="ar">ملاحظات</span>{% endif %}</th>
    </tr>
    <tr>
        <td>{{ stats.total }}</td>
        <td style="color: {{ colors.Pass }}">{{ stats.pass }} ({{ stats.passPercentage }}%)</td>
        <td style="color: {{ colors.Fail }}">{{ stats.fail }} ({{ stats.failPercentage }}%)</td>
        <td style="color: {{ colors.Snags }}">{{ stats.snags }} ({{ stats.snagsPercentage }}%)</td>
    </tr>
</table>

<h3>Property Grade Classification{% if show_ar %} / <span class="ar">تصنيف درجة العقار</span>{% endif %}</h3>
<table class="grade-table">
    <tr>
        <th>Grade</th>
        {% if show_en %}<th>Description</th>{% endif %}
        {% if show_ar %}<th class="ar">الوصف</th>{% endif %}
        <th>Criteria</th>
    </tr>
    {% for rule in rules %}
    <tr>
        <td class="{{ 'current' if rule.grade == grade else '' }}">{{ rule.grade }}</td>
        {% if show_en %}<td class="{{ 'current' if rule.grade == grade else '' }}">{{ rule.label_en }}</td>{% endif %}
        {% if show_ar %}<td class="ar {{ 'current' if rule.grade == grade else '' }}">{{ rule.label_ar }}</td>{% endif %}
        <td>{{ rule.criteria_text }}</td>
    </tr>
    {% endfor %}
</table>
<div style="text-align: center;">
    <p>Current Grade{% if show_ar %} / الدرجة الحالية{% endif %}</p>
    <div class="grade-badge">{{ grade }}</div>
    <p><strong>{% if show_en %}{{ grade_rule.label_en }}{% endif %}{% if show_en and show_ar %} - {% endif %}{% if show_ar %}{{ grade_rule.label_ar }}{% endif %}</strong></p>
</div>

{% if include_findings %}
<h3>Inspection Findings{% if show_ar %} / <span class="ar">نتائج الفحص</span>{% endif %}</h3>
{% for area in areas %}
<div class="area">
    <h3>{{ loop.index }}. {{ area.name }}</h3>
    {% if area["items"] %}
    <table class="findings">
        <tr><th>#</th><th>Category</th><th>Point</th><th>Status</th><th>Location</th><th>Comments</th></tr>
        {% for item in area["items"] %}
        <tr>
            <td>{{ loop.index }}</td>
            <td>{{ item.category }}</td>
            <td>{{ item.point }}</td>
            <td class="status" style="color: {{ item.color }}">{{ item.status }}{% if show_ar %}<br><span class="ar">{{ item.status_ar }}</span>{% endif %}</td>
            <td>{{ item.location }}</td>
            <td>{{ item.comments }}</td>
        </tr>
        {% if include_photos and item.photos %}
        <tr><td colspan="6" class="photos">
            {% for src in item.photos %}<img src="{{ src }}" alt="{{ item.point }} photo {{ loop.index }}">{% endfor %}
        </td></tr>
        {% endif %}
        {% endfor %}
    </table>
    {% else %}
    <p><em>No items recorded in this area.</em></p>
    {% endif %}
</div>
{% endfor %}
{% endif %}

<div class="disclaimer">
    {% if show_en %}
    <h3>Important Disclaimer &amp; Terms</h3>
    {% for section in disclaimer %}
    <p><strong>{{ section.title }}</strong></p>
    {% if section.content %}<p>{{ section.content }}</p>{% endif %}
    {% if section["items"] %}<ul>{% for line in section["items"] %}<li>{{ line }}</li>{% endfor %}</ul>{% endif %}
    {% endfor %}
    {% endif %}
    {% if show_ar %}<p class="ar">{{ disclaimer_ar }}</p>{% endif %}
</div>

<div class="footer">
    <p><strong>Report Number:</strong> {{ report_number }}</p>
    <p><strong>Property Address:</strong> {{ inspection.property_location }}</p>
    <p>{{ company.name }} &middot; {{ company.address }} &middot; {{ company.email }} &middot; {{ company.website }}</p>
</div>
</body>
</html>
"""


class HtmlReportGenerator:
    """Renders a ReportContext into a standalone print document"""

    def __init__(self):
        self.env = Environment(
            loader=BaseLoader(),
            autoescape=select_autoescape(['html', 'xml'], default_for_string=True),
        )
        self.template = self.env.from_string(HTML_TEMPLATE)

    def render(self, context: ReportContext, language: str = "bilingual",
               include_photos: bool = True, include_findings: bool = True) -> str:
        if language not in LANGUAGES:
            raise InvalidInputError(f"Unknown report language {language!r}; expected one of {LANGUAGES}")

        inspection = context.inspection
        html = self.template.render(
            inspection=inspection,
            variant=context.variant,
            language=language,
            show_en=language in ("en", "bilingual"),
            show_ar=language in ("ar", "bilingual"),
            company=context.settings.company,
            report_number=context.report_number,
            generated_at=context.generated_at.strftime('%Y-%m-%d %H:%M %Z'),
            inspection_date=ReportDataProcessor.format_date(inspection.inspection_date),
            inspection_date_long=ReportDataProcessor.format_long_date(inspection.inspection_date),
            stats=context.display_stats(),
            colors={"Pass": "#16a34a", "Fail": "#dc2626", "Snags": "#ea580c"},
            rules=context.policy.rules,
            grade=context.grade,
            grade_rule=context.result.rule,
            grade_color=context.result.rule.color,
            areas=context.areas,
            include_photos=include_photos,
            include_findings=include_findings,
            disclaimer=DISCLAIMER_SECTIONS,
            disclaimer_ar=DISCLAIMER_AR,
        )
        logger.info(f"HTML report rendered: {context.report_number} ({len(html)} chars)")
        return html


def render_html_report(inspection: Inspection, variant: str = "bilingual",
                       include_photos: bool = True, language: str = "bilingual",
                       include_findings: bool = True,
                       settings: Optional[Settings] = None,
                       photo_resolver: Optional[PhotoResolver] = None) -> str:
    """
    Generate the printable HTML report for an inspection

    Args:
        inspection: Inspection to report on; grade is recomputed from it
        variant: Report variant (decides the grading table)
        include_photos: Embed item photos
        language: 'en', 'ar' or 'bilingual'
        include_findings: False renders the summary-only template
        settings: Application settings
        photo_resolver: Maps stored photo references to <img> sources

    Returns:
        str: Complete HTML document
    """
    context = build_report_context(inspection, variant, settings, photo_resolver)
    return HtmlReportGenerator().render(context, language, include_photos, include_findings)
