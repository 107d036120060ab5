"""
Inspection Summary Statistics
=============================
Tallies item statuses across all areas of an inspection and exposes
validated percentages for grading and report templates.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Tuple
import math
import logging

import numpy as np
import pandas as pd

from core.exceptions import InvalidInputError
from core.models import Inspection, InspectionArea, InspectionItem, InspectionStatus

logger = logging.getLogger(__name__)

AREA_SUMMARY_COLUMNS = ["Area", "Total", "Pass", "Fail", "Snags", "PassPct", "FailPct"]


class Percentage(float):
    """A float guaranteed to lie in [0, 100]"""

    def __new__(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Percentage must be numeric, got {value!r}")
        if math.isnan(number) or number < 0 or number > 100:
            raise InvalidInputError(f"Percentage out of range [0, 100]: {value!r}")
        return super().__new__(cls, number)

    @classmethod
    def of(cls, count: int, total: int) -> "Percentage":
        """count / total * 100, or 0 when total is 0"""
        _check_count(count, "count")
        _check_count(total, "total")
        if count > total:
            raise InvalidInputError(f"Count {count} exceeds total {total}")
        if total == 0:
            return cls(0)
        return cls(count * 100 / total)


def _check_count(value, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative, got {value}")


def display_percentage(value: float) -> int:
    """Round half-up to a whole number for print templates (display only)"""
    return int(Decimal(str(float(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class InspectionSummary:
    total: int
    passed: int
    failed: int
    snags: int

    def __post_init__(self):
        for name in ("total", "passed", "failed", "snags"):
            _check_count(getattr(self, name), name)
        if self.passed + self.failed + self.snags != self.total:
            raise InvalidInputError(
                f"Status counts ({self.passed}+{self.failed}+{self.snags}) "
                f"do not add up to total {self.total}"
            )

    @property
    def pass_percentage(self) -> Percentage:
        return Percentage.of(self.passed, self.total)

    @property
    def fail_percentage(self) -> Percentage:
        return Percentage.of(self.failed, self.total)

    @property
    def snags_percentage(self) -> Percentage:
        return Percentage.of(self.snags, self.total)

    def count_for(self, status) -> int:
        status = InspectionStatus.parse(status)
        return {
            InspectionStatus.PASS: self.passed,
            InspectionStatus.FAIL: self.failed,
            InspectionStatus.SNAGS: self.snags,
        }[status]

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": self.total,
            "pass": self.passed,
            "fail": self.failed,
            "snags": self.snags,
            "passPercentage": float(self.pass_percentage),
            "failPercentage": float(self.fail_percentage),
            "snagsPercentage": float(self.snags_percentage),
        }


def compute_summary(areas: Iterable[InspectionArea]) -> InspectionSummary:
    """
    Count items per status across every area.

    Args:
        areas: Areas of an inspection (or an Inspection, whose areas are used)

    Returns:
        InspectionSummary with total == passed + failed + snags
    """
    if isinstance(areas, Inspection):
        areas = areas.areas

    counts = {status: 0 for status in InspectionStatus}
    for area in areas:
        for item in area.items:
            counts[InspectionStatus.parse(item.status)] += 1

    return InspectionSummary(
        total=sum(counts.values()),
        passed=counts[InspectionStatus.PASS],
        failed=counts[InspectionStatus.FAIL],
        snags=counts[InspectionStatus.SNAGS],
    )


def items_by_status(inspection: Inspection, status) -> List[Tuple[InspectionArea, InspectionItem]]:
    status = InspectionStatus.parse(status)
    return [(area, item) for area, item in inspection.iter_items() if item.status == status]


def failed_items(inspection: Inspection) -> List[Tuple[InspectionArea, InspectionItem]]:
    return items_by_status(inspection, InspectionStatus.FAIL)


def summary_by_area(inspection: Inspection) -> pd.DataFrame:
    """One row per area with its counts and pass/fail percentages"""
    rows = []
    for area in inspection.areas:
        summary = compute_summary([area])
        rows.append({
            "Area": area.name,
            "Total": summary.total,
            "Pass": summary.passed,
            "Fail": summary.failed,
            "Snags": summary.snags,
            "PassPct": round(float(summary.pass_percentage), 1),
            "FailPct": round(float(summary.fail_percentage), 1),
        })

    if not rows:
        return pd.DataFrame(columns=AREA_SUMMARY_COLUMNS)
    return pd.DataFrame(rows, columns=AREA_SUMMARY_COLUMNS)


def ensure_python_type(value):
    """Convert numpy scalars coming out of pandas into plain Python values"""
    if isinstance(value, (np.integer, np.floating)):
        return value.item()
    if hasattr(value, 'item'):
        return value.item()
    return value
