from __future__ import annotations

import pytest

from facility_audit import config
from facility_audit.app import get_app_context
from facility_audit.catalog import QuestionCatalog, default_catalog
from facility_audit.domain.models import (
    AuditRecord,
    AuditResponse,
    AuditStatus,
    ResponseStatus,
)
from facility_audit.storage.local_cache import LocalCache
from facility_audit.storage.remote import RemoteStoreError


class FakeRemote:
    """In-memory stand-in for the spreadsheet endpoint."""

    def __init__(self, endpoint: str = "https://example.test/exec") -> None:
        self.endpoint = endpoint
        self.rows: list[AuditRecord] = []
        self.upserts: list[AuditRecord] = []
        self.fetch_calls = 0
        self.fail_fetch = False
        self.fail_upsert = False

    async def fetch_all(self) -> list[AuditRecord]:
        self.fetch_calls += 1
        if self.fail_fetch:
            raise RemoteStoreError("fetch unavailable")
        return list(self.rows)

    async def upsert(self, record: AuditRecord) -> None:
        self.upserts.append(record)
        if self.fail_upsert:
            raise RemoteStoreError("write unavailable")
        self.rows = [r for r in self.rows if r.id != record.id] + [record]


def make_record(
    record_id: str = "rec-1",
    *,
    facility: str = "Oklahoma House",
    statuses: dict[str, str] | None = None,
    timestamp: int = 1_700_000_000_000,
    score: int | None = None,
    ai_analysis: str | None = None,
    location: str = "Unit A - Memory Care",
    auditor: str = "Jane Doe",
) -> AuditRecord:
    from facility_audit.scoring import score as compute_score

    responses = tuple(
        AuditResponse(question_id=qid, status=ResponseStatus(status))
        for qid, status in (statuses or {"hh-1": "pass"}).items()
    )
    return AuditRecord(
        id=record_id,
        facility_name=facility,
        location=location,
        auditor_name=auditor,
        timestamp=timestamp,
        responses=responses,
        status=AuditStatus.COMPLETED,
        overall_score=compute_score(responses) if score is None else score,
        ai_analysis=ai_analysis,
    )


@pytest.fixture
def catalog() -> QuestionCatalog:
    return default_catalog()


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(str(tmp_path / "cache"))


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture(autouse=True)
def _reset_cached_settings():
    config._load_settings_cached.cache_clear()
    get_app_context.cache_clear()
    yield
    config._load_settings_cached.cache_clear()
    get_app_context.cache_clear()
