"""Facility dashboard figures and AI report generation for stored rounds."""

from __future__ import annotations

from dataclasses import dataclass

from facility_audit.ai.service import AIService
from facility_audit.catalog import QuestionCatalog
from facility_audit.domain.models import AuditRecord, ComplianceRating
from facility_audit.scoring import classify, round_half_up
from facility_audit.storage.facade import RecordNotFoundError, RecordStore

TREND_SIZE = 5
RECENT_SIZE = 3


@dataclass(frozen=True)
class TrendPoint:
    record_id: str
    timestamp: int
    score: int


@dataclass(frozen=True)
class FacilitySummary:
    facility_name: str
    completed_rounds: int
    average_score: int
    rating: ComplianceRating
    trend: tuple[TrendPoint, ...]
    recent: tuple[AuditRecord, ...]

    @property
    def target_met(self) -> bool:
        return self.rating is ComplianceRating.GREEN


def average_score(records: list[AuditRecord]) -> int:
    """Rounded mean of overall scores; 0 when there are no rounds."""
    if not records:
        return 0
    return round_half_up(sum(r.overall_score for r in records), len(records))


def summarize_facility(store: RecordStore, facility_name: str) -> FacilitySummary:
    history = store.records(facility_name)
    average = average_score(history)
    oldest_first = list(reversed(history))
    trend = tuple(
        TrendPoint(record_id=r.id, timestamp=r.timestamp, score=r.overall_score)
        for r in oldest_first[-TREND_SIZE:]
    )
    return FacilitySummary(
        facility_name=facility_name,
        completed_rounds=len(history),
        average_score=average,
        rating=classify(average),
        trend=trend,
        recent=tuple(history[:RECENT_SIZE]),
    )


async def generate_report(
    store: RecordStore,
    ai: AIService,
    catalog: QuestionCatalog,
    record_id: str,
) -> AuditRecord:
    """Attach an AI corrective-action summary to a stored record."""
    record = store.get(record_id)
    if record is None:
        raise RecordNotFoundError(record_id)
    summary = await ai.summarize(record, catalog)
    return await store.update_field(record_id, {"ai_analysis": summary})
