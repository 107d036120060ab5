"""Shared pytest fixtures."""

from io import BytesIO

import pytest
from PIL import Image

from core.models import Inspection, InspectionArea, InspectionItem, InspectionStatus
from core.settings import Settings
from database.connection_manager import ConnectionManager
from database.inspection_store import JsonInspectionStore, SqlInspectionStore
from database.photo_storage import PhotoStorageManager, to_data_url


def make_inspection(passed=0, failed=0, snags=0, areas=1, **fields):
    """Inspection whose items are spread round-robin over `areas` areas."""
    built = [InspectionArea(id=i + 1, name=f"Area {i + 1}") for i in range(areas)]
    statuses = (
        [InspectionStatus.PASS] * passed
        + [InspectionStatus.FAIL] * failed
        + [InspectionStatus.SNAGS] * snags
    )
    for n, status in enumerate(statuses):
        area = built[n % areas]
        area.items.append(InspectionItem(
            id=len(area.items) + 1,
            category="Electrical",
            point=f"Point {n + 1}",
            status=status,
        ))
    defaults = dict(
        client_name="Ahmed Al Said",
        property_location="Villa 12, Al Mouj, Muscat",
        property_type="Villa",
        inspector_name="Sara Khan",
        inspection_date="2024-03-15",
    )
    defaults.update(fields)
    return Inspection(areas=built, **defaults)


def png_bytes(color=(200, 30, 30), size=(8, 8)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def sample_inspection():
    inspection = make_inspection(passed=0, areas=0)
    kitchen = inspection.add_area("Kitchen")
    kitchen.add_item("Plumbing", "Sink drainage", "Pass")
    kitchen.add_item("Electrical", "Socket earthing", "Fail", comments="No earth on socket 3",
                     location="North wall")
    kitchen.add_item("Finishes", "Cabinet doors", "Snags", comments="Hinge loose")
    bedroom = inspection.add_area("Master Bedroom")
    bedroom.add_item("Windows", "Window seals", "Pass")
    bedroom.add_item("Doors", "Door lock", "Pass")
    return inspection


@pytest.fixture
def png():
    return png_bytes()


@pytest.fixture
def png_data_url(png):
    return to_data_url(png, "image/png")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sqlite_path=str(tmp_path / "inspections.db"),
        local_store_path=str(tmp_path / "local.json"),
        photo_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def conn_manager(tmp_path):
    return ConnectionManager(database_url=None, sqlite_path=str(tmp_path / "inspections.db"))


@pytest.fixture
def photo_storage(conn_manager, tmp_path):
    return PhotoStorageManager(conn_manager, base_path=str(tmp_path / "uploads"))


@pytest.fixture
def sql_store(conn_manager, photo_storage):
    store = SqlInspectionStore(conn_manager, photo_storage)
    store.initialize_schema()
    return store


@pytest.fixture
def json_store(tmp_path):
    return JsonInspectionStore(str(tmp_path / "local.json"), max_photo_bytes=64 * 1024)
