"""Record store: the completed-record collection, its local cache and remote replica.

Writes commit to the local cache before anything touches the network. Records bound
for the remote store wait in a persisted outbox until a write succeeds.
Replication runs as a background task whose outcome is only logged and passed
to an optional listener; it never fails or delays the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from pydantic import ValidationError

from facility_audit.domain.models import AuditRecord
from facility_audit.storage.local_cache import LocalCache
from facility_audit.storage.remote import RemoteRecordStore, RemoteStoreError
from facility_audit.utils.time import utc_now

logger = logging.getLogger(__name__)

# Fields that may change once a record is completed.
UPDATABLE_FIELDS = frozenset({"ai_analysis"})


class RecordNotFoundError(KeyError):
    """No record with the requested id."""


@dataclass(frozen=True)
class ReplicationOutcome:
    record_id: str
    succeeded: bool
    error: str | None = None
    attempted_at: datetime = field(default_factory=utc_now)


ReplicationListener = Callable[[ReplicationOutcome], None]
RemoteFactory = Callable[[str], RemoteRecordStore]


def _dedupe(records: Iterable[AuditRecord]) -> list[AuditRecord]:
    by_id: dict[str, AuditRecord] = {}
    for record in records:
        by_id[record.id] = record
    return list(by_id.values())


class RecordStore:
    """Single owner of the completed-record collection.

    Readers get snapshots; all mutation goes through :meth:`save` and
    :meth:`update_field`.
    """

    def __init__(
        self,
        cache: LocalCache,
        *,
        endpoint: str | None = None,
        timeout_seconds: float = 5.0,
        max_retries: int = 1,
        remote_factory: RemoteFactory | None = None,
        listener: ReplicationListener | None = None,
    ) -> None:
        self._cache = cache
        self._configured_endpoint = (endpoint or "").strip() or None
        self._remote_factory = remote_factory or (
            lambda url: RemoteRecordStore(
                url, timeout_seconds=timeout_seconds, max_retries=max_retries
            )
        )
        self._listener = listener
        self._outbox: dict[str, AuditRecord] = {r.id: r for r in cache.read_outbox()}
        self._records: list[AuditRecord] = self._with_unsent(cache.read_records() or [])
        self._pending: set[asyncio.Task[None]] = set()
        self._in_flight: dict[str, asyncio.Task[None]] = {}

    # -- configuration -------------------------------------------------

    @property
    def endpoint(self) -> str | None:
        """Configured endpoint, else the one saved in the local endpoint slot."""
        return self._configured_endpoint or self._cache.read_endpoint()

    def set_endpoint(self, url: str | None) -> None:
        self._cache.write_endpoint(url)

    def _remote(self) -> RemoteRecordStore | None:
        endpoint = self.endpoint
        if not endpoint:
            return None
        return self._remote_factory(endpoint)

    # -- reads -----------------------------------------------------------

    def all_records(self) -> list[AuditRecord]:
        return list(self._records)

    def records(self, facility: str | None = None) -> list[AuditRecord]:
        """Completed records, newest first, optionally scoped to one facility."""
        selected = [
            record
            for record in self._records
            if record.is_completed and (facility is None or record.facility_name == facility)
        ]
        return sorted(selected, key=lambda record: record.timestamp, reverse=True)

    def get(self, record_id: str) -> AuditRecord | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    @property
    def pending_replication(self) -> list[AuditRecord]:
        """Records the remote store has not confirmed yet."""
        return list(self._outbox.values())

    async def load_all(self) -> list[AuditRecord]:
        """Refresh from the remote store, falling back to the local cache.

        A successful fetch replaces the cache; records still waiting in the
        outbox are kept on top of the fetched set and pushed again in the
        background, so the fallback never waits on queued writes.
        """
        remote = self._remote()
        if remote is None:
            return self._reload_from_cache()

        try:
            fetched = await remote.fetch_all()
        except RemoteStoreError as exc:
            logger.warning("Remote fetch failed, using local cache: %s", exc)
            return self._reload_from_cache()

        records = self._with_unsent(fetched)
        self._records = records
        try:
            self._cache.write_records(records)
        except OSError as exc:
            logger.error("Failed to refresh local cache: %s", exc)
        logger.info("Loaded %d records from %s", len(records), remote.endpoint)
        self._replay_outbox(remote)
        return list(records)

    def _reload_from_cache(self) -> list[AuditRecord]:
        self._records = self._with_unsent(self._cache.read_records() or [])
        return list(self._records)

    def _with_unsent(self, records: Iterable[AuditRecord]) -> list[AuditRecord]:
        """Deduplicated ``records`` with unconfirmed outbox records on top."""
        merged = _dedupe(records)
        for unsent in self._outbox.values():
            merged = [unsent] + [r for r in merged if r.id != unsent.id]
        return merged

    # -- writes ----------------------------------------------------------

    async def save(self, record: AuditRecord) -> None:
        """Commit ``record`` locally, then replicate it in the background."""
        if not record.is_completed:
            raise ValueError(f"Only completed records are stored (got {record.status.value})")
        self._commit_local(record)
        self._schedule_replication(record)

    async def update_field(self, record_id: str, fields: Mapping[str, Any]) -> AuditRecord:
        """Merge post-completion fields (the AI summary) into a stored record."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated after completion: {sorted(unknown)}")
        current = self.get(record_id)
        if current is None:
            raise RecordNotFoundError(record_id)

        try:
            updated = AuditRecord.model_validate({**current.model_dump(), **fields})
        except ValidationError as exc:
            raise ValueError(f"Invalid update for record {record_id}: {exc}") from exc

        self._commit_local(updated)
        self._schedule_replication(updated)
        return updated

    def _commit_local(self, record: AuditRecord) -> None:
        # The in-memory list only changes once the cache write has succeeded.
        records = list(self._records)
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                break
        else:
            records.insert(0, record)
        self._cache.write_records(records)
        self._records = records

    # -- replication -----------------------------------------------------

    def _schedule_replication(self, record: AuditRecord) -> None:
        remote = self._remote()
        if remote is None:
            logger.debug("No remote endpoint configured; %s stored locally only", record.id)
            return
        self._outbox[record.id] = record
        self._persist_outbox()
        self._start(remote, record)

    def _start(self, remote: RemoteRecordStore, record: AuditRecord) -> asyncio.Task[None]:
        task = asyncio.create_task(self._replicate(remote, record))
        self._pending.add(task)
        self._in_flight[record.id] = task
        task.add_done_callback(self._pending.discard)
        task.add_done_callback(lambda done: self._forget(record.id, done))
        return task

    def _forget(self, record_id: str, task: asyncio.Task[None]) -> None:
        if self._in_flight.get(record_id) is task:
            del self._in_flight[record_id]

    def _replay_outbox(self, remote: RemoteRecordStore) -> list[asyncio.Task[None]]:
        return [
            self._start(remote, record)
            for record in list(self._outbox.values())
            if record.id not in self._in_flight
        ]

    async def _replicate(self, remote: RemoteRecordStore, record: AuditRecord) -> None:
        try:
            await remote.upsert(record)
        except RemoteStoreError as exc:
            logger.warning("Remote write for %s failed, kept for retry: %s", record.id, exc)
            self._replication_failed(record, exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error replicating %s, kept for retry", record.id)
            self._replication_failed(record, exc)
            return

        if self._outbox.get(record.id) == record:
            del self._outbox[record.id]
            self._persist_outbox()
        logger.debug("Replicated %s to %s", record.id, remote.endpoint)
        self._notify(ReplicationOutcome(record_id=record.id, succeeded=True))

    def _replication_failed(self, record: AuditRecord, exc: Exception) -> None:
        if record.id not in self._outbox:
            self._outbox[record.id] = self.get(record.id) or record
            self._persist_outbox()
        self._notify(ReplicationOutcome(record_id=record.id, succeeded=False, error=str(exc)))

    def _persist_outbox(self) -> None:
        try:
            self._cache.write_outbox(self._outbox.values())
        except OSError as exc:
            logger.error("Failed to persist replication outbox: %s", exc)

    def _notify(self, outcome: ReplicationOutcome) -> None:
        if self._listener is None:
            return
        try:
            self._listener(outcome)
        except Exception as exc:
            logger.warning("Replication listener raised: %s", exc)

    async def retry_pending(self) -> int:
        """Re-push outbox records concurrently; returns how many were delivered."""
        remote = self._remote()
        if remote is None or not self._outbox:
            return 0
        queued = [record.id for record in self._outbox.values()]
        await asyncio.gather(*self._replay_outbox(remote))
        await self.flush()
        return sum(1 for record_id in queued if record_id not in self._outbox)

    async def flush(self) -> None:
        """Wait for in-flight replication tasks."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def reset(self) -> None:
        """Drop in-memory state; the cache on disk is untouched."""
        self._records = []
        self._outbox.clear()
