"""
Photo Storage Manager for Property Inspections
==============================================
PostgreSQL & SQLite compatible photo storage with database tracking.

Photos are written to disk; the database only keeps metadata. The id
returned by save_photo() is the opaque reference stored in an item's
photo list.

Storage Structure:
uploads/photos/{YYYYMM}/{photo_id}.{ext}
"""

import base64
import logging
import sqlite3
import uuid
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import psycopg2
from PIL import Image, UnidentifiedImageError

from core.exceptions import InvalidInputError, StorageError

logger = logging.getLogger(__name__)

ALLOWED_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}
PIL_FORMAT_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}
MAX_PHOTO_BYTES = 10 * 1024 * 1024


def detect_image_type(data: bytes) -> str:
    """Return the MIME type of image bytes, rejecting anything that is not an allowed image"""
    try:
        with Image.open(BytesIO(data)) as img:
            img_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidInputError(f"Not a readable image: {e}") from e

    content_type = PIL_FORMAT_TYPES.get(img_format)
    if content_type is None:
        raise InvalidInputError(f"Unsupported image format: {img_format}")
    return content_type


def to_data_url(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


class PhotoStorageManager:
    """
    Manages inspection photos with database integration.

    Features:
    - Stores files on disk (not in database)
    - Tracks metadata in the inspection_photos table
    - Works with both PostgreSQL and SQLite
    """

    def __init__(self, conn_manager, base_path: str = "uploads",
                 max_bytes: int = MAX_PHOTO_BYTES):
        """
        Initialize photo storage manager.

        Args:
            conn_manager: Database connection manager
            base_path: Base directory for uploads (default: "uploads")
            max_bytes: Largest accepted photo
        """
        self.conn_manager = conn_manager
        self.db_type = conn_manager.db_type
        self.max_bytes = max_bytes
        self.base_path = Path(base_path)
        self.photos_path = self.base_path / "photos"
        self.photos_path.mkdir(parents=True, exist_ok=True)

        self._ensure_photo_table_exists()
        logger.info(f"✅ Photo storage initialized: {self.photos_path} ({self.db_type.upper()})")

    def _ensure_photo_table_exists(self):
        timestamp_default = "NOW()" if self.db_type == "postgresql" else "CURRENT_TIMESTAMP"
        self._execute_write([
            (f"""
                CREATE TABLE IF NOT EXISTS inspection_photos (
                    id TEXT PRIMARY KEY,
                    original_filename TEXT,
                    file_path TEXT NOT NULL,
                    file_type TEXT,
                    size_bytes INTEGER,
                    uploaded_at TIMESTAMP DEFAULT {timestamp_default}
                )
            """, None),
        ])

    def _execute_write(self, statements: List[Tuple[str, Optional[tuple]]]) -> int:
        conn = None
        cursor = None
        try:
            conn = self.conn_manager.get_connection()
            cursor = conn.cursor()
            affected = 0
            for sql, params in statements:
                if params:
                    cursor.execute(sql, params)
                else:
                    cursor.execute(sql)
                affected += max(cursor.rowcount, 0)
            conn.commit()
            return affected
        except (sqlite3.Error, psycopg2.Error) as e:
            if conn is not None:
                conn.rollback()
            raise StorageError(f"Photo table write failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
            if conn is not None:
                conn.close()

    def _fetch(self, sql: str, params: tuple = None) -> List[Dict]:
        conn = None
        cursor = None
        try:
            conn = self.conn_manager.get_connection()
            cursor = self.conn_manager.dict_cursor(conn)
            if params:
                cursor.execute(sql, params)
            else:
                cursor.execute(sql)
            return [dict(row) for row in cursor.fetchall()]
        except (sqlite3.Error, psycopg2.Error) as e:
            raise StorageError(f"Photo table read failed: {e}") from e
        finally:
            if cursor is not None:
                cursor.close()
            if conn is not None:
                conn.close()

    def save_photo(self, data: bytes, filename: str = "photo") -> str:
        """
        Save photo bytes to disk and record them in the database.

        Args:
            data: Raw image bytes
            filename: Original filename, kept for reference

        Returns:
            The photo id to store on an inspection item
        """
        if not data:
            raise InvalidInputError("Photo is empty")
        if len(data) > self.max_bytes:
            raise InvalidInputError(
                f"Photo {filename} is {len(data)} bytes; limit is {self.max_bytes}"
            )
        content_type = detect_image_type(data)

        photo_id = f"photo_{uuid.uuid4().hex}"
        month_dir = self.photos_path / datetime.now().strftime("%Y%m")
        month_dir.mkdir(parents=True, exist_ok=True)
        file_path = month_dir / f"{photo_id}{ALLOWED_TYPES[content_type]}"

        with open(file_path, "wb") as f:
            f.write(data)

        ph = self.conn_manager.placeholder
        try:
            self._execute_write([(
                f"""
                    INSERT INTO inspection_photos
                    (id, original_filename, file_path, file_type, size_bytes)
                    VALUES ({ph}, {ph}, {ph}, {ph}, {ph})
                """,
                (photo_id, filename, str(file_path), content_type, len(data)),
            )])
        except StorageError:
            file_path.unlink(missing_ok=True)
            raise

        logger.info(f"✅ Saved photo: {filename} → {file_path.name}")
        return photo_id

    def get_photo(self, photo_id: str) -> Optional[Dict]:
        ph = self.conn_manager.placeholder
        rows = self._fetch(
            f"SELECT id, original_filename, file_path, file_type, size_bytes, uploaded_at "
            f"FROM inspection_photos WHERE id = {ph}",
            (photo_id,),
        )
        return rows[0] if rows else None

    def get_photo_data_url(self, photo_id: str) -> Optional[str]:
        """Read a stored photo back as a data URL, or None if unknown or missing on disk"""
        record = self.get_photo(photo_id)
        if not record:
            return None
        path = Path(record['file_path'])
        if not path.exists():
            logger.warning(f"Photo {photo_id} is recorded but missing on disk: {path}")
            return None
        return to_data_url(path.read_bytes(), record['file_type'])

    def list_photo_ids(self) -> List[str]:
        return [row['id'] for row in self._fetch("SELECT id FROM inspection_photos")]

    def delete_photo(self, photo_id: str) -> bool:
        """
        Delete a photo from both disk and database.

        Returns:
            True if the photo existed
        """
        record = self.get_photo(photo_id)
        if not record:
            return False

        file_path = Path(record['file_path'])
        if file_path.exists():
            file_path.unlink()
            logger.info(f"🗑️ Deleted photo from disk: {file_path}")

        ph = self.conn_manager.placeholder
        self._execute_write([(f"DELETE FROM inspection_photos WHERE id = {ph}", (photo_id,))])
        return True

    def cleanup_orphaned_photos(self, referenced_ids: Iterable[str]) -> int:
        """
        Remove stored photos that no inspection item references any more.

        Args:
            referenced_ids: Every photo reference still held by an inspection

        Returns:
            Number of photos deleted
        """
        referenced = set(referenced_ids)
        removed = 0
        for photo_id in self.list_photo_ids():
            if photo_id not in referenced and self.delete_photo(photo_id):
                removed += 1
        logger.info(f"🧹 Photo cleanup complete: {removed} orphaned photo(s) removed")
        return removed

    def get_storage_stats(self) -> dict:
        rows = self._fetch("SELECT COUNT(*) AS total, SUM(size_bytes) AS size FROM inspection_photos")
        total_size = (rows[0]["size"] or 0) if rows else 0
        return {
            'total_photos': rows[0]['total'] if rows else 0,
            'total_size_bytes': total_size,
            'total_size_mb': round(total_size / (1024 * 1024), 2),
        }
