"""Tests for summary statistics."""

import math
import random

import numpy as np
import pytest

from conftest import make_inspection
from core.exceptions import InvalidInputError
from core.models import InspectionStatus
from core.statistics import (
    AREA_SUMMARY_COLUMNS,
    InspectionSummary,
    Percentage,
    compute_summary,
    display_percentage,
    failed_items,
    summary_by_area,
)


@pytest.mark.parametrize("value", [0, 0.0, 50, 99.99, 100])
def test_percentage_accepts_range(value):
    assert float(Percentage(value)) == float(value)


@pytest.mark.parametrize("value", [-0.1, 100.01, math.nan, "abc", None])
def test_percentage_rejects_out_of_range(value):
    with pytest.raises(InvalidInputError):
        Percentage(value)


def test_percentage_of():
    assert Percentage.of(19, 20) == 95.0
    assert Percentage.of(1, 20) == 5.0
    assert Percentage.of(0, 0) == 0
    assert Percentage.of(np.int64(3), np.int64(4)) == 75.0


@pytest.mark.parametrize("count, total", [(-1, 5), (6, 5), (True, 5), (1.5, 3)])
def test_percentage_of_rejects_bad_counts(count, total):
    with pytest.raises(InvalidInputError):
        Percentage.of(count, total)


@pytest.mark.parametrize("value, expected", [(0, 0), (33.333, 33), (66.5, 67), (12.5, 13), (100, 100)])
def test_display_percentage_rounds_half_up(value, expected):
    assert display_percentage(value) == expected


def test_summary_counts_must_add_up():
    with pytest.raises(InvalidInputError):
        InspectionSummary(total=5, passed=2, failed=1, snags=1)


def test_compute_summary(sample_inspection):
    summary = compute_summary(sample_inspection)
    assert (summary.total, summary.passed, summary.failed, summary.snags) == (5, 3, 1, 1)
    assert summary.passed + summary.failed + summary.snags == summary.total
    assert summary.pass_percentage == 60.0
    assert summary.count_for("snags") == 1


def test_compute_summary_accepts_area_list(sample_inspection):
    assert compute_summary(sample_inspection.areas) == compute_summary(sample_inspection)


@pytest.mark.parametrize("areas", [0, 1, 3])
def test_zero_items_gives_zero_percentages(areas):
    summary = compute_summary(make_inspection(areas=areas))
    assert summary.total == 0
    assert summary.pass_percentage == 0
    assert summary.fail_percentage == 0
    assert summary.snags_percentage == 0


def test_summary_to_dict(sample_inspection):
    assert compute_summary(sample_inspection).to_dict() == {
        "total": 5,
        "pass": 3,
        "fail": 1,
        "snags": 1,
        "passPercentage": 60.0,
        "failPercentage": 20.0,
        "snagsPercentage": 20.0,
    }


def test_summary_is_order_independent():
    inspection = make_inspection(passed=7, failed=2, snags=3, areas=3)
    expected = compute_summary(inspection)
    rng = random.Random(7)
    for _ in range(5):
        shuffled = inspection.copy()
        rng.shuffle(shuffled.areas)
        for area in shuffled.areas:
            rng.shuffle(area.items)
        assert compute_summary(shuffled) == expected


def test_failed_items(sample_inspection):
    pairs = failed_items(sample_inspection)
    assert [(a.name, i.point) for a, i in pairs] == [("Kitchen", "Socket earthing")]
    assert all(i.status is InspectionStatus.FAIL for _, i in pairs)


def test_summary_by_area(sample_inspection):
    df = summary_by_area(sample_inspection)
    assert list(df.columns) == AREA_SUMMARY_COLUMNS
    kitchen = df[df["Area"] == "Kitchen"].iloc[0]
    assert kitchen["Total"] == 3
    assert kitchen["PassPct"] == 33.3
    bedroom = df[df["Area"] == "Master Bedroom"].iloc[0]
    assert bedroom["PassPct"] == 100.0


def test_summary_by_area_empty():
    df = summary_by_area(make_inspection(areas=0))
    assert df.empty
    assert list(df.columns) == AREA_SUMMARY_COLUMNS
