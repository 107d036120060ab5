"""
Inspection Storage
==================
Persistence backends for the Inspection aggregate.

- SqlInspectionStore:      hosted PostgreSQL backend (or SQLite locally) via ConnectionManager
- JsonInspectionStore:     flat JSON document on disk, used offline
- FallbackInspectionStore: tries the primary store and switches to the
                           fallback on the first StorageError. The switch is
                           explicit: `mode` changes and listeners are notified.

Grades are never persisted; only item statuses are.
"""

import json
import logging
import os
import sqlite3
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psycopg2
import pytz

from core.exceptions import InspectionNotFoundError, InvalidInputError, StorageError
from core.models import Inspection, InspectionArea, InspectionItem
from core.settings import load_settings
from database.connection_manager import get_connection_manager
from database.photo_storage import PhotoStorageManager, detect_image_type, to_data_url

logger = logging.getLogger(__name__)

MODE_PRIMARY = "primary"
MODE_FALLBACK = "fallback"


def _now_iso() -> str:
    return datetime.now(pytz.utc).isoformat()


class PersistenceBackend(ABC):
    """Interface shared by every inspection store"""

    name = "backend"

    @abstractmethod
    def health_check(self) -> None:
        """Raise StorageError if the backend cannot be used"""

    @abstractmethod
    def save_inspection(self, inspection: Inspection) -> Inspection:
        """Persist a new inspection and return it with id and timestamps set"""

    @abstractmethod
    def get_inspections(self) -> List[Inspection]:
        """All inspections, newest first"""

    @abstractmethod
    def get_inspection(self, inspection_id: str) -> Optional[Inspection]:
        pass

    @abstractmethod
    def update_inspection(self, inspection_id: str, inspection: Inspection) -> Inspection:
        """Replace the stored aggregate; raises InspectionNotFoundError for unknown ids"""

    @abstractmethod
    def delete_inspection(self, inspection_id: str) -> bool:
        """Delete the aggregate with its areas and items; False if it did not exist"""

    @abstractmethod
    def upload_photo(self, data: bytes, filename: str = "photo") -> str:
        """Store photo bytes and return the reference to keep on the item"""

    @abstractmethod
    def resolve_photo(self, photo_ref: str) -> Optional[str]:
        """Return something an <img> tag can display for a stored reference"""


# ============================================================================
# SQL STORE (PostgreSQL hosted backend / SQLite)
# ============================================================================

class SqlInspectionStore(PersistenceBackend):
    """Inspection store on the relational backend"""

    name = "sql"

    def __init__(self, conn_manager, photo_storage: Optional[PhotoStorageManager] = None):
        self.conn_manager = conn_manager
        self.db_type = conn_manager.db_type
        self.photo_storage = photo_storage

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def initialize_schema(self) -> None:
        """Create tables if they do not exist"""
        statements = [
            """
            CREATE TABLE IF NOT EXISTS inspections (
                id TEXT PRIMARY KEY,
                client_name TEXT,
                property_location TEXT NOT NULL,
                property_type TEXT NOT NULL,
                inspector_name TEXT NOT NULL,
                inspection_date TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS inspection_areas (
                id TEXT PRIMARY KEY,
                inspection_id TEXT NOT NULL REFERENCES inspections(id) ON DELETE CASCADE,
                area_no INTEGER NOT NULL,
                position INTEGER NOT NULL,
                name TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS inspection_items (
                id TEXT PRIMARY KEY,
                area_id TEXT NOT NULL REFERENCES inspection_areas(id) ON DELETE CASCADE,
                item_no INTEGER NOT NULL,
                position INTEGER NOT NULL,
                category TEXT NOT NULL,
                point TEXT NOT NULL,
                status TEXT NOT NULL CHECK (status IN ('Pass', 'Fail', 'Snags')),
                comments TEXT,
                location TEXT,
                photos TEXT
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_inspection_areas_inspection_id ON inspection_areas(inspection_id)",
            "CREATE INDEX IF NOT EXISTS idx_inspection_items_area_id ON inspection_items(area_id)",
        ]

        def work(cursor):
            for statement in statements:
                cursor.execute(statement)

        self._run_in_transaction(work)
        logger.info(f"✅ Inspection schema ready ({self.db_type})")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_in_transaction(self, work: Callable):
        conn = None
        cursor = None
        try:
            conn = self.conn_manager.get_connection()
            cursor = conn.cursor()
            result = work(cursor)
            conn.commit()
            return result
        except (sqlite3.Error, psycopg2.Error) as e:
            if conn is not None:
                conn.rollback()
            logger.error(f"❌ Database write failed: {e}")
            raise StorageError(f"Database write failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
            if conn is not None:
                conn.close()

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[Dict]:
        conn = None
        cursor = None
        try:
            conn = self.conn_manager.get_connection()
            cursor = self.conn_manager.dict_cursor(conn)
            cursor.execute(sql, params)
            return [dict(row) for row in cursor.fetchall()]
        except (sqlite3.Error, psycopg2.Error) as e:
            logger.error(f"❌ Database read failed: {e}")
            raise StorageError(f"Database read failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
            if conn is not None:
                conn.close()

    def _insert_areas(self, cursor, inspection_id: str, areas: List[InspectionArea]) -> None:
        ph = self.conn_manager.placeholder
        for area_pos, area in enumerate(areas):
            area_row_id = str(uuid.uuid4())
            cursor.execute(
                f"INSERT INTO inspection_areas (id, inspection_id, area_no, position, name) "
                f"VALUES ({ph}, {ph}, {ph}, {ph}, {ph})",
                (area_row_id, inspection_id, area.id, area_pos, area.name),
            )
            for item_pos, item in enumerate(area.items):
                cursor.execute(
                    f"INSERT INTO inspection_items "
                    f"(id, area_id, item_no, position, category, point, status, comments, location, photos) "
                    f"VALUES ({ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph})",
                    (
                        str(uuid.uuid4()), area_row_id, item.id, item_pos,
                        item.category, item.point, item.status.value,
                        item.comments, item.location, json.dumps(item.photos),
                    ),
                )

    def _load_areas(self, inspection_id: str) -> List[InspectionArea]:
        ph = self.conn_manager.placeholder
        area_rows = self._fetch_all(
            f"SELECT id, area_no, name FROM inspection_areas "
            f"WHERE inspection_id = {ph} ORDER BY position",
            (inspection_id,),
        )
        item_rows = self._fetch_all(
            f"SELECT i.area_id, i.item_no, i.category, i.point, i.status, "
            f"i.comments, i.location, i.photos "
            f"FROM inspection_items i JOIN inspection_areas a ON i.area_id = a.id "
            f"WHERE a.inspection_id = {ph} ORDER BY a.position, i.position",
            (inspection_id,),
        )

        items_by_area: Dict[str, List[InspectionItem]] = {}
        for row in item_rows:
            items_by_area.setdefault(row['area_id'], []).append(InspectionItem(
                id=row['item_no'],
                category=row['category'],
                point=row['point'],
                status=row['status'],
                comments=row['comments'] or "",
                location=row['location'] or "",
                photos=json.loads(row['photos']) if row['photos'] else [],
            ))

        return [
            InspectionArea(id=row['area_no'], name=row['name'], items=items_by_area.get(row['id'], []))
            for row in area_rows
        ]

    def _row_to_inspection(self, row: Dict) -> Inspection:
        return Inspection(
            id=row['id'],
            client_name=row['client_name'] or "",
            property_location=row['property_location'],
            property_type=row['property_type'],
            inspector_name=row['inspector_name'],
            inspection_date=str(row['inspection_date']),
            areas=self._load_areas(row['id']),
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    # ------------------------------------------------------------------
    # PersistenceBackend
    # ------------------------------------------------------------------

    def health_check(self) -> None:
        self._fetch_all("SELECT COUNT(*) AS total FROM inspections")

    def save_inspection(self, inspection: Inspection) -> Inspection:
        saved = inspection.copy()
        saved.id = str(uuid.uuid4())
        saved.created_at = saved.updated_at = _now_iso()
        ph = self.conn_manager.placeholder

        def work(cursor):
            cursor.execute(
                f"INSERT INTO inspections (id, client_name, property_location, property_type, "
                f"inspector_name, inspection_date, created_at, updated_at) "
                f"VALUES ({ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph}, {ph})",
                (
                    saved.id, saved.client_name, saved.property_location, saved.property_type,
                    saved.inspector_name, saved.inspection_date, saved.created_at, saved.updated_at,
                ),
            )
            self._insert_areas(cursor, saved.id, saved.areas)

        self._run_in_transaction(work)
        logger.info(f"✅ Inspection saved ({self.db_type}): {saved.id} with {saved.item_count} items")
        return saved

    def get_inspections(self) -> List[Inspection]:
        rows = self._fetch_all("SELECT * FROM inspections ORDER BY created_at DESC")
        inspections = [self._row_to_inspection(row) for row in rows]
        logger.info(f"☁️ Loaded {len(inspections)} inspections ({self.db_type})")
        return inspections

    def get_inspection(self, inspection_id: str) -> Optional[Inspection]:
        ph = self.conn_manager.placeholder
        rows = self._fetch_all(f"SELECT * FROM inspections WHERE id = {ph}", (inspection_id,))
        return self._row_to_inspection(rows[0]) if rows else None

    def update_inspection(self, inspection_id: str, inspection: Inspection) -> Inspection:
        existing = self.get_inspection(inspection_id)
        if existing is None:
            raise InspectionNotFoundError(inspection_id)

        updated = inspection.copy()
        updated.id = inspection_id
        updated.created_at = existing.created_at
        updated.updated_at = _now_iso()
        ph = self.conn_manager.placeholder

        def work(cursor):
            cursor.execute(
                f"UPDATE inspections SET client_name = {ph}, property_location = {ph}, "
                f"property_type = {ph}, inspector_name = {ph}, inspection_date = {ph}, "
                f"updated_at = {ph} WHERE id = {ph}",
                (
                    updated.client_name, updated.property_location, updated.property_type,
                    updated.inspector_name, updated.inspection_date, updated.updated_at,
                    inspection_id,
                ),
            )
            # Items go with their areas through ON DELETE CASCADE
            cursor.execute(f"DELETE FROM inspection_areas WHERE inspection_id = {ph}", (inspection_id,))
            self._insert_areas(cursor, inspection_id, updated.areas)

        self._run_in_transaction(work)
        logger.info(f"✅ Inspection updated ({self.db_type}): {inspection_id}")
        return updated

    def delete_inspection(self, inspection_id: str) -> bool:
        ph = self.conn_manager.placeholder

        def work(cursor):
            cursor.execute(f"DELETE FROM inspections WHERE id = {ph}", (inspection_id,))
            return cursor.rowcount

        deleted = self._run_in_transaction(work)
        if deleted:
            logger.info(f"🗑️ Inspection deleted ({self.db_type}): {inspection_id}")
        return bool(deleted)

    def upload_photo(self, data: bytes, filename: str = "photo") -> str:
        if self.photo_storage is None:
            raise StorageError("No photo storage configured for the SQL store")
        return self.photo_storage.save_photo(data, filename)

    def resolve_photo(self, photo_ref: str) -> Optional[str]:
        if photo_ref.startswith(("data:", "http://", "https://")):
            return photo_ref
        if self.photo_storage is None:
            return None
        return self.photo_storage.get_photo_data_url(photo_ref)


# ============================================================================
# JSON STORE (offline fallback)
# ============================================================================

class JsonInspectionStore(PersistenceBackend):
    """
    Flat JSON document holding every inspection and photo:

        {"inspections": [...], "photos": {"photo_<id>": "data:image/...;base64,..."}}
    """

    name = "local"

    def __init__(self, path: str, max_photo_bytes: int = 5 * 1024 * 1024):
        self.path = Path(path)
        self.max_photo_bytes = max_photo_bytes

    def _read(self) -> Dict:
        if not self.path.exists():
            return {"inspections": [], "photos": {}}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Local store {self.path} is unreadable: {e}") from e
        data.setdefault("inspections", [])
        data.setdefault("photos", {})
        return data

    def _write(self, data: Dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not write local store {self.path}: {e}") from e

    def health_check(self) -> None:
        self._read()

    def save_inspection(self, inspection: Inspection) -> Inspection:
        data = self._read()
        saved = inspection.copy()
        saved.id = f"inspection_{uuid.uuid4().hex[:12]}"
        saved.created_at = saved.updated_at = _now_iso()
        data["inspections"].append(saved.to_dict())
        self._write(data)
        logger.info(f"💾 LocalStorage: Inspection saved: {saved.id}")
        return saved

    def get_inspections(self) -> List[Inspection]:
        docs = self._read()["inspections"]
        inspections = [Inspection.from_dict(d) for d in docs]
        inspections.sort(key=lambda i: i.created_at or "", reverse=True)
        logger.info(f"📋 Loaded {len(inspections)} inspections from local storage")
        return inspections

    def get_inspection(self, inspection_id: str) -> Optional[Inspection]:
        for doc in self._read()["inspections"]:
            if doc.get("id") == inspection_id:
                return Inspection.from_dict(doc)
        return None

    def update_inspection(self, inspection_id: str, inspection: Inspection) -> Inspection:
        data = self._read()
        for index, doc in enumerate(data["inspections"]):
            if doc.get("id") == inspection_id:
                updated = inspection.copy()
                updated.id = inspection_id
                updated.created_at = doc.get("created_at")
                updated.updated_at = _now_iso()
                data["inspections"][index] = updated.to_dict()
                self._write(data)
                logger.info(f"💾 LocalStorage: Inspection updated: {inspection_id}")
                return updated
        raise InspectionNotFoundError(inspection_id)

    def delete_inspection(self, inspection_id: str) -> bool:
        data = self._read()
        remaining = [d for d in data["inspections"] if d.get("id") != inspection_id]
        if len(remaining) == len(data["inspections"]):
            logger.warning(f"LocalStorage: Inspection not found: {inspection_id}")
            return False
        data["inspections"] = remaining
        self._write(data)
        logger.info(f"🗑️ LocalStorage: Inspection deleted: {inspection_id}")
        return True

    def upload_photo(self, data: bytes, filename: str = "photo") -> str:
        if len(data) > self.max_photo_bytes:
            raise InvalidInputError(
                f"Photo {filename} too large for local storage "
                f"({len(data)} bytes, max {self.max_photo_bytes})"
            )
        content_type = detect_image_type(data)
        photo_id = f"photo_{uuid.uuid4().hex[:12]}"
        store = self._read()
        store["photos"][photo_id] = to_data_url(data, content_type)
        self._write(store)
        logger.info(f"💾 LocalStorage: Photo uploaded: {photo_id}")
        return photo_id

    def get_photo(self, photo_id: str) -> Optional[str]:
        return self._read()["photos"].get(photo_id)

    def resolve_photo(self, photo_ref: str) -> Optional[str]:
        if photo_ref.startswith(("data:", "http://", "https://")):
            return photo_ref
        return self.get_photo(photo_ref)

    def clear_all(self) -> None:
        self._write({"inspections": [], "photos": {}})
        logger.info("LocalStorage: All data cleared")

    def export_data(self) -> str:
        """Backup of the whole local store as a JSON string"""
        return json.dumps(self._read(), ensure_ascii=False, indent=2)

    def import_data(self, json_string: str) -> None:
        """Replace inspections and/or photos from a backup produced by export_data()"""
        try:
            incoming = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise InvalidInputError(f"Import data is not valid JSON: {e}") from e
        if not isinstance(incoming, dict):
            raise InvalidInputError("Import data must be a JSON object")

        for doc in incoming.get("inspections") or []:
            # Validates statuses before anything is written
            Inspection.from_dict(doc)

        data = self._read()
        if "inspections" in incoming:
            data["inspections"] = [
                {k: v for k, v in doc.items() if k not in ("grade", "propertyGrade")}
                for doc in incoming["inspections"]
            ]
        if "photos" in incoming:
            data["photos"] = incoming["photos"]
        self._write(data)
        logger.info(f"LocalStorage: Imported {len(data['inspections'])} inspections")


# ============================================================================
# FALLBACK COMPOSITION
# ============================================================================

class FallbackInspectionStore(PersistenceBackend):
    """
    Uses the primary store until it raises StorageError, then serves every
    call from the fallback store.

    The current backend is visible through `mode` and `active_backend`;
    listeners registered with on_fallback() receive the failure reason when
    the switch happens. retry_primary() switches back after a successful
    health check.
    """

    name = "fallback"

    def __init__(self, primary: PersistenceBackend, fallback: PersistenceBackend):
        self.primary = primary
        self.fallback = fallback
        self.mode = MODE_PRIMARY
        self.fallback_reason: Optional[str] = None
        self._tested = False
        self._listeners: List[Callable[[str], None]] = []

    @property
    def using_fallback(self) -> bool:
        return self.mode == MODE_FALLBACK

    @property
    def active_backend(self) -> PersistenceBackend:
        return self.fallback if self.using_fallback else self.primary

    def on_fallback(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def _switch_to_fallback(self, reason: str) -> None:
        if self.using_fallback:
            return
        self.mode = MODE_FALLBACK
        self.fallback_reason = reason
        logger.warning(
            f"⚠️ {self.primary.name} store failed, using {self.fallback.name} store as fallback: {reason}"
        )
        for listener in self._listeners:
            listener(reason)

    def _ensure_tested(self) -> None:
        if self._tested:
            return
        self._tested = True
        try:
            self.primary.health_check()
            logger.info(f"✅ {self.primary.name} store connected successfully")
        except StorageError as e:
            self._switch_to_fallback(str(e))

    def retry_primary(self) -> bool:
        """Check the primary store again and switch back to it if healthy"""
        try:
            self.primary.health_check()
        except StorageError as e:
            logger.warning(f"Primary store still unavailable: {e}")
            return False
        self.mode = MODE_PRIMARY
        self.fallback_reason = None
        self._tested = True
        logger.info(f"✅ Switched back to {self.primary.name} store")
        return True

    def _call(self, method: str, *args):
        self._ensure_tested()
        if not self.using_fallback:
            try:
                return getattr(self.primary, method)(*args)
            except StorageError as e:
                self._switch_to_fallback(str(e))
        return getattr(self.fallback, method)(*args)

    def health_check(self) -> None:
        self._ensure_tested()
        self.active_backend.health_check()

    def save_inspection(self, inspection: Inspection) -> Inspection:
        return self._call("save_inspection", inspection)

    def get_inspections(self) -> List[Inspection]:
        inspections = self._call("get_inspections")
        if not inspections and not self.using_fallback:
            # Inspections saved while offline are still worth showing
            local = self.fallback.get_inspections()
            if local:
                logger.info(f"Found {len(local)} inspections in the {self.fallback.name} store")
                return local
        return inspections

    def get_inspection(self, inspection_id: str) -> Optional[Inspection]:
        found = self._call("get_inspection", inspection_id)
        if found is None and not self.using_fallback:
            return self.fallback.get_inspection(inspection_id)
        return found

    def update_inspection(self, inspection_id: str, inspection: Inspection) -> Inspection:
        if not self.using_fallback and self.fallback.get_inspection(inspection_id) is not None:
            # Created while offline: it only exists in the fallback store
            return self.fallback.update_inspection(inspection_id, inspection)
        return self._call("update_inspection", inspection_id, inspection)

    def delete_inspection(self, inspection_id: str) -> bool:
        deleted = self._call("delete_inspection", inspection_id)
        if not deleted and not self.using_fallback:
            return self.fallback.delete_inspection(inspection_id)
        return deleted

    def upload_photo(self, data: bytes, filename: str = "photo") -> str:
        return self._call("upload_photo", data, filename)

    def resolve_photo(self, photo_ref: str) -> Optional[str]:
        resolved = self._call("resolve_photo", photo_ref)
        if resolved is None and not self.using_fallback:
            return self.fallback.resolve_photo(photo_ref)
        return resolved


def create_inspection_store(settings=None) -> FallbackInspectionStore:
    """Wire the configured SQL store with the local JSON fallback"""
    settings = settings or load_settings()
    conn_manager = get_connection_manager(settings)
    fallback = JsonInspectionStore(settings.local_store_path, settings.max_photo_bytes)

    try:
        photo_storage = PhotoStorageManager(conn_manager, settings.photo_dir, settings.max_photo_bytes)
        primary = SqlInspectionStore(conn_manager, photo_storage)
        primary.initialize_schema()
    except StorageError as e:
        logger.error(f"❌ Database initialization failed: {e}")
        store = FallbackInspectionStore(_UnavailableStore(str(e)), fallback)
        store._ensure_tested()
        return store

    return FallbackInspectionStore(primary, fallback)


class _UnavailableStore(PersistenceBackend):
    """Primary placeholder when the database could not even be initialised"""

    name = "sql"

    def __init__(self, reason: str):
        self.reason = reason

    def _fail(self, *args):
        raise StorageError(self.reason)

    health_check = save_inspection = get_inspections = get_inspection = _fail
    update_inspection = delete_inspection = upload_photo = resolve_photo = _fail
