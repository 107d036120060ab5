"""
Property Grade Classification
=============================
Maps pass/fail percentages to a letter grade through an ordered threshold
table. Rules are evaluated top to bottom and the first match wins; every
table ends with a fallback rule that always matches.

Two tables are in use by the report variants and both are kept:

- sixGrade:      AAA, AA, A, B, C, D   (pass floor and fail ceiling)
- fivePlusGrade: A+, A, B, C, D        (pass floor; A+ also needs 0% fail)
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union
import logging

from core.exceptions import InvalidInputError
from core.models import Inspection
from core.statistics import InspectionSummary, Percentage, compute_summary

logger = logging.getLogger(__name__)

# Rounding noise allowed when checking pass + fail <= 100
_SUM_TOLERANCE = 1e-9


@dataclass(frozen=True)
class GradeRule:
    grade: str
    min_pass: float
    max_fail: Optional[float] = None
    label_en: str = ""
    label_ar: str = ""
    color: str = "#6b7280"

    @property
    def is_fallback(self) -> bool:
        return self.min_pass <= 0 and self.max_fail is None

    def matches(self, pass_percentage: float, fail_percentage: float) -> bool:
        if pass_percentage < self.min_pass:
            return False
        if self.max_fail is not None and fail_percentage > self.max_fail:
            return False
        return True

    @property
    def criteria_text(self) -> str:
        """Human readable threshold, e.g. '95%+ Pass, 0% Fail'"""
        if self.is_fallback:
            return "Below all other thresholds"
        parts = [f"{self.min_pass:g}%+ Pass"]
        if self.max_fail is not None:
            if self.max_fail == 0:
                parts.append("0% Fail")
            else:
                parts.append(f"≤{self.max_fail:g}% Fail")
        return ", ".join(parts)


class GradingPolicy:
    """Named, ordered threshold table"""

    def __init__(self, name: str, rules: Sequence[GradeRule]):
        rules = tuple(rules)
        if not rules:
            raise InvalidInputError(f"Grading policy {name!r} has no rules")
        if not rules[-1].is_fallback:
            raise InvalidInputError(
                f"Grading policy {name!r} must end with a fallback rule "
                f"(min_pass=0, no fail limit)"
            )
        grades = [r.grade for r in rules]
        if len(set(grades)) != len(grades):
            raise InvalidInputError(f"Grading policy {name!r} repeats a grade: {grades}")
        self.name = name
        self.rules = rules

    def __repr__(self):
        return f"GradingPolicy({self.name!r}, grades={self.grades})"

    @property
    def grades(self) -> List[str]:
        """Grades from best to worst"""
        return [r.grade for r in self.rules]

    @property
    def lowest(self) -> GradeRule:
        return self.rules[-1]

    def rule_for(self, grade: str) -> GradeRule:
        for rule in self.rules:
            if rule.grade == grade:
                return rule
        raise InvalidInputError(f"Grade {grade!r} is not part of policy {self.name!r}")

    def rank(self, grade: str) -> int:
        """0 for the lowest grade, increasing towards the best"""
        return len(self.rules) - 1 - self.grades.index(self.rule_for(grade).grade)

    def classify(self, pass_percentage, fail_percentage) -> GradeRule:
        return classify_grade(pass_percentage, fail_percentage, self)


SIX_GRADE = GradingPolicy("sixGrade", [
    GradeRule("AAA", 95, 0, "Excellent", "ممتاز", "#10b981"),
    GradeRule("AA", 90, 2, "Very Good", "جيد جداً", "#22c55e"),
    GradeRule("A", 80, 5, "Good", "جيد", "#3b82f6"),
    GradeRule("B", 70, 10, "Meeting standards", "يلبي المعايير", "#6366f1"),
    GradeRule("C", 60, 15, "Acceptable", "مقبول", "#f59e0b"),
    GradeRule("D", 0, None, "Require maintenance", "تحتاج صيانة", "#ef4444"),
])

FIVE_PLUS_GRADE = GradingPolicy("fivePlusGrade", [
    GradeRule("A+", 95, 0, "Excellent", "ممتاز", "#10b981"),
    GradeRule("A", 85, None, "Very Good", "جيد جداً", "#22c55e"),
    GradeRule("B", 75, None, "Good", "جيد", "#3b82f6"),
    GradeRule("C", 65, None, "Fair", "مقبول", "#f59e0b"),
    GradeRule("D", 0, None, "Needs Improvement", "يحتاج تحسين", "#ef4444"),
])

POLICIES: Dict[str, GradingPolicy] = {
    SIX_GRADE.name: SIX_GRADE,
    FIVE_PLUS_GRADE.name: FIVE_PLUS_GRADE,
}


def get_policy(policy: Union[str, GradingPolicy]) -> GradingPolicy:
    """Resolve a preset name (or pass a policy straight through)"""
    if isinstance(policy, GradingPolicy):
        return policy
    try:
        return POLICIES[policy]
    except (KeyError, TypeError):
        raise InvalidInputError(
            f"Unknown grading policy {policy!r}; expected one of {sorted(POLICIES)}"
        )


def _validate_percentage(value, name: str) -> float:
    if isinstance(value, Percentage):
        return float(value)
    try:
        return float(Percentage(value))
    except InvalidInputError as e:
        raise InvalidInputError(f"{name}: {e}") from e


def classify_grade(pass_percentage, fail_percentage,
                   policy: Union[str, GradingPolicy] = SIX_GRADE) -> GradeRule:
    """
    Return the first rule of the policy matched by the given percentages.

    Raises:
        InvalidInputError: NaN, negative or >100 percentages, or pass + fail > 100
    """
    policy = get_policy(policy)
    pass_pct = _validate_percentage(pass_percentage, "passPercentage")
    fail_pct = _validate_percentage(fail_percentage, "failPercentage")
    if pass_pct + fail_pct > 100 + _SUM_TOLERANCE:
        raise InvalidInputError(
            f"passPercentage ({pass_pct}) + failPercentage ({fail_pct}) exceeds 100"
        )

    for rule in policy.rules:
        if rule.matches(pass_pct, fail_pct):
            return rule

    # Unreachable: constructor guarantees a fallback rule
    return policy.lowest


@dataclass(frozen=True)
class GradeResult:
    grade: str
    rule: GradeRule
    summary: InspectionSummary
    policy_name: str

    @property
    def pass_percentage(self) -> Percentage:
        return self.summary.pass_percentage

    @property
    def fail_percentage(self) -> Percentage:
        return self.summary.fail_percentage

    def to_dict(self) -> Dict[str, object]:
        data = self.summary.to_dict()
        data["grade"] = self.grade
        data["policy"] = self.policy_name
        return data


def grade_summary(summary: InspectionSummary,
                  policy: Union[str, GradingPolicy] = SIX_GRADE) -> GradeResult:
    policy = get_policy(policy)
    rule = classify_grade(summary.pass_percentage, summary.fail_percentage, policy)
    return GradeResult(grade=rule.grade, rule=rule, summary=summary, policy_name=policy.name)


def compute_inspection_grade(inspection: Inspection,
                             policy: Union[str, GradingPolicy] = SIX_GRADE) -> GradeResult:
    """
    Recompute statistics from the live inspection and classify them.

    An inspection with no items gets 0% pass / 0% fail and therefore the
    policy's lowest grade.
    """
    summary = compute_summary(inspection.areas)
    result = grade_summary(summary, policy)
    logger.debug(
        f"Graded inspection {inspection.id}: {result.grade} "
        f"({summary.passed}/{summary.total} pass, policy={result.policy_name})"
    )
    return result
