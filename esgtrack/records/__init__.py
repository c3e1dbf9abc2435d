"""Versioned ESG records: storage, mutation, validation and export."""

from esgtrack.records.service import VersionedRecordService
from esgtrack.records.store import RecordStore

__all__ = ["RecordStore", "VersionedRecordService"]
