"""Import record persistence."""

from listing_importer.records.models import ImportRecord, RecordStatus
from listing_importer.records.sql_store import SqlRecordStore
from listing_importer.records.store import InMemoryRecordStore, RecordStore

__all__ = [
    "ImportRecord",
    "InMemoryRecordStore",
    "RecordStatus",
    "RecordStore",
    "SqlRecordStore",
]
