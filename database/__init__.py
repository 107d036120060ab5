"""
Database Module
===============
Connection handling, photo storage and inspection persistence.
"""

from database.connection_manager import ConnectionManager, get_connection_manager
from database.photo_storage import PhotoStorageManager
from database.inspection_store import (
    PersistenceBackend,
    SqlInspectionStore,
    JsonInspectionStore,
    FallbackInspectionStore,
    create_inspection_store,
)

__all__ = [
    'ConnectionManager',
    'get_connection_manager',
    'PhotoStorageManager',
    'PersistenceBackend',
    'SqlInspectionStore',
    'JsonInspectionStore',
    'FallbackInspectionStore',
    'create_inspection_store',
]
