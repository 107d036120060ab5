"""
Inspection Data Model
=====================
Inspection aggregate: an Inspection owns ordered Areas, each Area owns ordered Items.

Grades and summary statistics are never stored on these objects; they are
derived from item statuses by core.statistics and core.grading.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import copy
import logging

from core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_AREA_NAME = "General"


class InspectionStatus(str, Enum):
    """Closed set of statuses an inspected point can take"""

    PASS = "Pass"
    FAIL = "Fail"
    SNAGS = "Snags"

    @classmethod
    def parse(cls, value) -> "InspectionStatus":
        """Parse a status string from stored data, rejecting anything unknown"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            cleaned = value.strip().lower()
            for status in cls:
                if status.value.lower() == cleaned:
                    return status
        raise InvalidInputError(f"Unknown inspection status: {value!r}")


def _next_id(existing_ids) -> int:
    ids = [i for i in existing_ids if isinstance(i, int)]
    return max(ids) + 1 if ids else 1


@dataclass
class InspectionItem:
    id: int
    category: str
    point: str
    status: InspectionStatus = InspectionStatus.PASS
    comments: str = ""
    location: str = ""
    photos: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.status = InspectionStatus.parse(self.status)

    def set_status(self, status) -> None:
        self.status = InspectionStatus.parse(status)

    def add_photo(self, photo_ref: str) -> None:
        if not photo_ref:
            raise InvalidInputError("Photo reference must be a non-empty string")
        self.photos.append(photo_ref)

    def remove_photo(self, photo_ref: str) -> bool:
        if photo_ref in self.photos:
            self.photos.remove(photo_ref)
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "point": self.point,
            "status": self.status.value,
            "comments": self.comments,
            "location": self.location,
            "photos": list(self.photos),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InspectionItem":
        return cls(
            id=data.get("id"),
            category=data.get("category") or "",
            point=data.get("point") or "",
            status=InspectionStatus.parse(data.get("status")),
            comments=data.get("comments") or "",
            location=data.get("location") or "",
            photos=list(data.get("photos") or []),
        )


@dataclass
class InspectionArea:
    id: int
    name: str
    items: List[InspectionItem] = field(default_factory=list)

    def add_item(self, category: str, point: str, status=InspectionStatus.PASS,
                 comments: str = "", location: str = "",
                 photos: Optional[List[str]] = None) -> InspectionItem:
        """Append a new item with the next free id in this area"""
        item = InspectionItem(
            id=_next_id(i.id for i in self.items),
            category=category,
            point=point,
            status=status,
            comments=comments,
            location=location,
            photos=list(photos or []),
        )
        self.items.append(item)
        return item

    def remove_item(self, item_id) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i.id != item_id]
        return len(self.items) != before

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InspectionArea":
        return cls(
            id=data.get("id"),
            name=data.get("name") or "",
            items=[InspectionItem.from_dict(i) for i in data.get("items") or []],
        )


@dataclass
class Inspection:
    """Aggregate root for one property inspection"""

    client_name: str
    property_location: str
    property_type: str
    inspector_name: str
    inspection_date: str
    areas: List[InspectionArea] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.inspection_date, (datetime, date)):
            self.inspection_date = self.inspection_date.strftime("%Y-%m-%d")

    def add_area(self, name: str) -> InspectionArea:
        area = InspectionArea(id=_next_id(a.id for a in self.areas), name=name)
        self.areas.append(area)
        return area

    def remove_area(self, area_id) -> bool:
        before = len(self.areas)
        self.areas = [a for a in self.areas if a.id != area_id]
        return len(self.areas) != before

    def find_item(self, item_id, area_id=None) -> Optional[Tuple[InspectionArea, InspectionItem]]:
        """Locate an item, optionally restricted to one area"""
        for area in self.areas:
            if area_id is not None and area.id != area_id:
                continue
            for item in area.items:
                if item.id == item_id:
                    return area, item
        return None

    def iter_items(self):
        """Yield (area, item) pairs in display order"""
        for area in self.areas:
            for item in area.items:
                yield area, item

    @property
    def item_count(self) -> int:
        return sum(len(area.items) for area in self.areas)

    def copy(self) -> "Inspection":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Serialise with the keys used by the hosted backend and the local store"""
        data = {
            "clientName": self.client_name,
            "propertyLocation": self.property_location,
            "propertyType": self.property_type,
            "inspectorName": self.inspector_name,
            "inspectionDate": self.inspection_date,
            "areas": [area.to_dict() for area in self.areas],
        }
        if self.id is not None:
            data["id"] = self.id
        if self.created_at is not None:
            data["created_at"] = self.created_at
        if self.updated_at is not None:
            data["updated_at"] = self.updated_at
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Inspection":
        # Legacy documents may carry a cached grade; it is dropped here
        if "grade" in data or "propertyGrade" in data:
            logger.info(f"Ignoring stored grade on inspection {data.get('id')}")
        return cls(
            id=data.get("id"),
            client_name=data.get("clientName") or "",
            property_location=data.get("propertyLocation") or "",
            property_type=data.get("propertyType") or "",
            inspector_name=data.get("inspectorName") or "",
            inspection_date=data.get("inspectionDate") or "",
            areas=[InspectionArea.from_dict(a) for a in data.get("areas") or []],
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


def new_inspection(client_name: str = "", property_location: str = "",
                   property_type: str = "", inspector_name: str = "",
                   inspection_date=None) -> Inspection:
    """Create an empty inspection with one default area, as an inspector starts a visit"""
    if inspection_date is None:
        inspection_date = datetime.now().strftime("%Y-%m-%d")
    inspection = Inspection(
        client_name=client_name,
        property_location=property_location,
        property_type=property_type,
        inspector_name=inspector_name,
        inspection_date=inspection_date,
    )
    inspection.add_area(DEFAULT_AREA_NAME)
    return inspection
