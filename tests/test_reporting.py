from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from facility_audit.ai.service import AIService
from facility_audit.catalog import QuestionCatalog
from facility_audit.domain.models import ComplianceRating
from facility_audit.reporting import average_score, generate_report, summarize_facility
from facility_audit.storage.facade import RecordNotFoundError, RecordStore
from facility_audit.storage.local_cache import LocalCache

from conftest import make_record


def test_average_score_empty_is_zero() -> None:
    assert average_score([]) == 0


@pytest.mark.asyncio
async def test_facility_summary(cache: LocalCache) -> None:
    store = RecordStore(cache)
    for i, value in enumerate([100, 90, 80, 70, 60, 95]):
        await store.save(make_record(f"r{i}", timestamp=i, score=value))
    await store.save(make_record("elsewhere", facility="Quilters Home", score=0))

    summary = summarize_facility(store, "Oklahoma House")

    assert summary.completed_rounds == 6
    assert summary.average_score == 83
    assert summary.rating is ComplianceRating.YELLOW
    assert not summary.target_met
    assert [p.score for p in summary.trend] == [90, 80, 70, 60, 95]
    assert [r.id for r in summary.recent] == ["r5", "r4", "r3"]


def test_empty_facility_summary(cache: LocalCache) -> None:
    summary = summarize_facility(RecordStore(cache), "Oklahoma House")
    assert summary.completed_rounds == 0
    assert summary.average_score == 0
    assert summary.rating is ComplianceRating.RED
    assert summary.trend == ()


@pytest.mark.asyncio
async def test_generate_report_stores_summary(
    cache: LocalCache, catalog: QuestionCatalog
) -> None:
    store = RecordStore(cache)
    await store.save(make_record("a", statuses={"hh-1": "fail"}))
    ai = AIService(None)
    ai.summarize = AsyncMock(return_value="Three interventions")

    updated = await generate_report(store, ai, catalog, "a")

    assert updated.ai_analysis == "Three interventions"
    assert store.get("a").ai_analysis == "Three interventions"


@pytest.mark.asyncio
async def test_generate_report_unknown_record(
    cache: LocalCache, catalog: QuestionCatalog
) -> None:
    with pytest.raises(RecordNotFoundError):
        await generate_report(RecordStore(cache), AIService(None), catalog, "missing")
