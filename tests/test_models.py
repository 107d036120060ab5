"""Tests for the inspection aggregate."""

from datetime import date

import pytest

from core.exceptions import InvalidInputError
from core.models import (
    DEFAULT_AREA_NAME,
    Inspection,
    InspectionItem,
    InspectionStatus,
    new_inspection,
)


@pytest.mark.parametrize("raw, expected", [
    ("Pass", InspectionStatus.PASS),
    ("fail", InspectionStatus.FAIL),
    (" SNAGS ", InspectionStatus.SNAGS),
    (InspectionStatus.FAIL, InspectionStatus.FAIL),
])
def test_status_parse(raw, expected):
    assert InspectionStatus.parse(raw) is expected


@pytest.mark.parametrize("raw", ["Unknown", "", None, 1])
def test_status_parse_rejects_unknown(raw):
    with pytest.raises(InvalidInputError):
        InspectionStatus.parse(raw)


def test_item_rejects_unknown_status():
    with pytest.raises(InvalidInputError):
        InspectionItem(id=1, category="Roof", point="Tiles", status="Broken")


def test_new_inspection_has_default_area():
    inspection = new_inspection("Client", "Muscat", "Apartment", "Inspector", date(2024, 1, 2))
    assert [a.name for a in inspection.areas] == [DEFAULT_AREA_NAME]
    assert inspection.inspection_date == "2024-01-02"
    assert inspection.item_count == 0
    assert inspection.id is None


def test_area_and_item_ids_increment(sample_inspection):
    kitchen = sample_inspection.areas[0]
    assert [i.id for i in kitchen.items] == [1, 2, 3]
    kitchen.remove_item(2)
    assert kitchen.add_item("Roof", "Gutters").id == 4
    assert sample_inspection.add_area("Garage").id == 3


def test_find_item_and_set_status(sample_inspection):
    area, item = sample_inspection.find_item(2, area_id=1)
    assert area.name == "Kitchen"
    item.set_status("pass")
    assert item.status is InspectionStatus.PASS
    assert sample_inspection.find_item(99) is None
    assert sample_inspection.find_item(1, area_id=42) is None


def test_remove_area(sample_inspection):
    assert sample_inspection.remove_area(2) is True
    assert sample_inspection.remove_area(2) is False
    assert sample_inspection.item_count == 3


def test_photos_on_item():
    item = InspectionItem(id=1, category="Walls", point="Cracks")
    item.add_photo("photo_abc")
    assert item.photos == ["photo_abc"]
    with pytest.raises(InvalidInputError):
        item.add_photo("")
    assert item.remove_photo("photo_abc") is True
    assert item.remove_photo("photo_abc") is False


def test_to_dict_never_contains_grade(sample_inspection):
    data = sample_inspection.to_dict()
    assert "grade" not in data
    assert "propertyGrade" not in data
    assert data["clientName"] == "Ahmed Al Said"
    assert data["areas"][0]["items"][1]["status"] == "Fail"


def test_from_dict_drops_stored_grade(sample_inspection):
    data = sample_inspection.to_dict()
    data["grade"] = "AAA"
    restored = Inspection.from_dict(data)
    assert restored == sample_inspection
    assert "grade" not in restored.to_dict()


def test_from_dict_rejects_bad_status(sample_inspection):
    data = sample_inspection.to_dict()
    data["areas"][0]["items"][0]["status"] = "Maybe"
    with pytest.raises(InvalidInputError):
        Inspection.from_dict(data)


def test_copy_is_independent(sample_inspection):
    clone = sample_inspection.copy()
    clone.areas[0].items[0].set_status("Fail")
    assert sample_inspection.areas[0].items[0].status is InspectionStatus.PASS
