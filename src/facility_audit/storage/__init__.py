"""Record persistence: local cache, remote spreadsheet store and the facade over both."""

from facility_audit.storage.facade import (
    RecordNotFoundError,
    RecordStore,
    ReplicationOutcome,
)
from facility_audit.storage.local_cache import LocalCache
from facility_audit.storage.remote import RemoteRecordStore, RemoteStoreError

__all__ = [
    "LocalCache",
    "RecordNotFoundError",
    "RecordStore",
    "RemoteRecordStore",
    "RemoteStoreError",
    "ReplicationOutcome",
]
