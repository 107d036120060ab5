"""
Core Module
===========
Inspection records, summary statistics and grading.
"""

from core.exceptions import (
    InspectionError,
    InvalidInputError,
    InspectionNotFoundError,
    StorageError,
    ReportGenerationError,
)
from core.models import (
    InspectionStatus,
    InspectionItem,
    InspectionArea,
    Inspection,
    new_inspection,
)
from core.statistics import InspectionSummary, Percentage, compute_summary
from core.grading import (
    GradeRule,
    GradingPolicy,
    GradeResult,
    SIX_GRADE,
    FIVE_PLUS_GRADE,
    get_policy,
    classify_grade,
    compute_inspection_grade,
)

__all__ = [
    'InspectionError',
    'InvalidInputError',
    'InspectionNotFoundError',
    'StorageError',
    'ReportGenerationError',
    'InspectionStatus',
    'InspectionItem',
    'InspectionArea',
    'Inspection',
    'new_inspection',
    'InspectionSummary',
    'Percentage',
    'compute_summary',
    'GradeRule',
    'GradingPolicy',
    'GradeResult',
    'SIX_GRADE',
    'FIVE_PLUS_GRADE',
    'get_policy',
    'classify_grade',
    'compute_inspection_grade',
]
