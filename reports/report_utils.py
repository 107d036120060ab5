"""
Report Utilities
================
Shared utilities for report generation across all report variants.

Every renderer gets its grade and statistics from build_report_context(),
which recomputes them from the live inspection at call time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional
import base64
import binascii
import logging

import pandas as pd

from core.exceptions import InvalidInputError
from core.grading import GradeResult, GradingPolicy, compute_inspection_grade, get_policy
from core.models import Inspection, InspectionStatus
from core.settings import Settings, load_settings
from core.statistics import display_percentage, summary_by_area

logger = logging.getLogger(__name__)

# Each report variant commits to one grading table
VARIANT_POLICIES = {
    "professional": "sixGrade",
    "bilingual": "sixGrade",
    "simple": "sixGrade",
    "enhanced": "sixGrade",
    "modern": "fivePlusGrade",
    "minimalist": "fivePlusGrade",
}

LANGUAGES = ("en", "ar", "bilingual")

STATUS_COLORS = {
    InspectionStatus.PASS: "#16a34a",
    InspectionStatus.FAIL: "#dc2626",
    InspectionStatus.SNAGS: "#ea580c",
}

STATUS_LABELS_AR = {
    InspectionStatus.PASS: "مقبول",
    InspectionStatus.FAIL: "مرفوض",
    InspectionStatus.SNAGS: "ملاحظات",
}

DISCLAIMER_SECTIONS = [
    {
        "title": "SCOPE OF INSPECTION",
        "content": "This inspection report is based on a visual examination of the accessible areas "
                   "of the property conducted on the date specified. The inspection does not include "
                   "destructive testing or the examination of concealed or inaccessible areas.",
    },
    {
        "title": "LIMITATIONS",
        "items": [
            "This inspection does not constitute a warranty or guarantee of the property's condition",
            "Hidden defects or issues not visible during the inspection may exist",
            "Seasonal conditions may affect certain systems or components",
            "Future performance of systems and components cannot be predicted",
        ],
    },
    {
        "title": "RECOMMENDATIONS",
        "items": [
            'Items marked as "Fail" require immediate professional attention',
            'Items marked as "Snags" should be addressed to maintain property condition',
            "Regular maintenance is recommended for all property systems",
            "Specialist evaluation may be required for certain systems",
        ],
    },
    {
        "title": "VALIDITY",
        "content": "This report reflects the condition of the property at the time of inspection and "
                   "is valid for 30 days from the inspection date. Property conditions may change over time.",
    },
]

DISCLAIMER_AR = (
    "يستند هذا التقرير إلى فحص بصري للأجزاء التي يمكن الوصول إليها من العقار في تاريخ الفحص المحدد، "
    "ولا يشمل الاختبارات الإتلافية أو فحص الأجزاء المخفية أو التي يتعذر الوصول إليها."
)

PhotoResolver = Callable[[str], Optional[str]]


def default_photo_resolver(photo_ref: str) -> Optional[str]:
    """Displayable references pass through; opaque store keys are skipped"""
    if photo_ref.startswith(("data:", "http://", "https://")):
        return photo_ref
    return None


def decode_data_url(data_url: str) -> Optional[bytes]:
    """Bytes of a base64 data URL, or None for anything else"""
    if not data_url or not data_url.startswith("data:") or ";base64," not in data_url:
        return None
    try:
        return base64.b64decode(data_url.split(";base64,", 1)[1], validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Skipping photo with malformed base64 payload")
        return None


def policy_for_variant(variant: str) -> GradingPolicy:
    try:
        return get_policy(VARIANT_POLICIES[variant])
    except KeyError:
        raise InvalidInputError(
            f"Unknown report variant {variant!r}; expected one of {sorted(VARIANT_POLICIES)}"
        )


@dataclass
class ReportItemRow:
    area: str
    item_id: int
    category: str
    point: str
    status: str
    status_ar: str
    color: str
    comments: str
    location: str
    photos: List[str] = field(default_factory=list)


@dataclass
class ReportContext:
    inspection: Inspection
    variant: str
    policy: GradingPolicy
    result: GradeResult
    generated_at: datetime
    report_number: str
    settings: Settings
    areas: List[Dict] = field(default_factory=list)

    @property
    def grade(self) -> str:
        return self.result.grade

    @property
    def summary(self):
        return self.result.summary

    def display_stats(self) -> Dict[str, int]:
        """Whole-number percentages for print templates"""
        summary = self.result.summary
        return {
            "total": summary.total,
            "pass": summary.passed,
            "fail": summary.failed,
            "snags": summary.snags,
            "passPercentage": display_percentage(summary.pass_percentage),
            "failPercentage": display_percentage(summary.fail_percentage),
            "snagsPercentage": display_percentage(summary.snags_percentage),
        }

    def area_dataframe(self) -> pd.DataFrame:
        return summary_by_area(self.inspection)


class ReportDataProcessor:
    """Shared data processing utilities"""

    @staticmethod
    def format_date(date_value, fmt: str = '%Y-%m-%d') -> str:
        """Format date consistently"""
        if date_value is None or date_value == "":
            return "N/A"

        if isinstance(date_value, str):
            try:
                return pd.to_datetime(date_value).strftime(fmt)
            except (ValueError, TypeError):
                return date_value

        return date_value.strftime(fmt) if hasattr(date_value, 'strftime') else str(date_value)

    @staticmethod
    def format_long_date(date_value) -> str:
        return ReportDataProcessor.format_date(date_value, '%B %d, %Y')


def make_report_number(inspection: Inspection, generated_at: datetime) -> str:
    suffix = (inspection.id or "DRAFT").replace("-", "")[-6:].upper()
    return f"SP-{generated_at.strftime('%Y%m%d')}-{suffix}"


def build_report_context(inspection: Inspection, variant: str = "bilingual",
                         settings: Optional[Settings] = None,
                         photo_resolver: Optional[PhotoResolver] = None,
                         max_photos_per_item: Optional[int] = None) -> ReportContext:
    """
    Recompute grade and statistics from the live inspection for one render.

    Args:
        inspection: Inspection as it is right now
        variant: Report variant; decides the grading table
        settings: Application settings (loaded from the environment if omitted)
        photo_resolver: Maps stored photo references to displayable sources
        max_photos_per_item: Override for settings.max_photos_per_item

    Returns:
        ReportContext ready for any renderer
    """
    settings = settings or load_settings()
    policy = policy_for_variant(variant)
    result = compute_inspection_grade(inspection, policy)
    resolver = photo_resolver or default_photo_resolver
    photo_limit = settings.max_photos_per_item if max_photos_per_item is None else max_photos_per_item

    generated_at = datetime.now(settings.tz)

    areas = []
    for area in inspection.areas:
        rows = []
        for item in area.items:
            photos = []
            for ref in item.photos:
                if len(photos) >= photo_limit:
                    break
                src = resolver(ref)
                if src:
                    photos.append(src)
            rows.append(ReportItemRow(
                area=area.name,
                item_id=item.id,
                category=item.category,
                point=item.point,
                status=item.status.value,
                status_ar=STATUS_LABELS_AR[item.status],
                color=STATUS_COLORS[item.status],
                comments=item.comments,
                location=item.location,
                photos=photos,
            ))
        areas.append({"id": area.id, "name": area.name, "items": rows})

    logger.info(
        f"Report context for {inspection.id or 'draft'}: grade {result.grade} "
        f"({variant}/{policy.name}, {result.summary.total} items)"
    )
    return ReportContext(
        inspection=inspection,
        variant=variant,
        policy=policy,
        result=result,
        generated_at=generated_at,
        report_number=make_report_number(inspection, generated_at),
        settings=settings,
        areas=areas,
    )


def create_summary_dataframe(context: ReportContext) -> pd.DataFrame:
    """
    Key/value summary table shared by the Excel and Word reports

    Returns:
        pd.DataFrame with Metric and Value columns
    """
    stats = context.display_stats()
    inspection = context.inspection
    rows = [
        ("Client", inspection.client_name or "N/A"),
        ("Property Location", inspection.property_location or "N/A"),
        ("Property Type", inspection.property_type or "N/A"),
        ("Inspector", inspection.inspector_name or "N/A"),
        ("Inspection Date", ReportDataProcessor.format_date(inspection.inspection_date)),
        ("Report Number", context.report_number),
        ("Total Items", f"{stats['total']:,}"),
        ("Pass", f"{stats['pass']:,} ({stats['passPercentage']}%)"),
        ("Fail", f"{stats['fail']:,} ({stats['failPercentage']}%)"),
        ("Snags", f"{stats['snags']:,} ({stats['snagsPercentage']}%)"),
        ("Property Grade", context.grade),
        ("Grade Description", context.result.rule.label_en),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])
