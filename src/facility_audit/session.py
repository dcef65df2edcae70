"""Audit session controller: setup, answering questions, and finishing a round."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import uuid4

from facility_audit.accumulator import ResponseAccumulator
from facility_audit.ai.service import AIService
from facility_audit.catalog import QuestionCatalog
from facility_audit.domain.models import (
    AuditRecord,
    AuditResponse,
    AuditStatus,
    ResponseStatus,
    ResponseUpdate,
)
from facility_audit.scoring import round_half_up, score
from facility_audit.storage.facade import RecordStore
from facility_audit.utils.time import epoch_millis, utc_now

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    SETUP = "setup"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class SessionStateError(RuntimeError):
    """Operation not allowed in the session's current state."""


class UnknownQuestionError(KeyError):
    """Question id is not part of the catalog."""


def new_record_id(timestamp_ms: int) -> str:
    """Time-ordered id with a random suffix."""
    return f"{timestamp_ms}-{uuid4().hex[:8]}"


class AuditSession:
    """One-shot audit round for a single facility.

    ``SETUP`` collects the auditor name and location; both are required before
    :meth:`begin`. ``IN_PROGRESS`` accepts answers until :meth:`finish`, which
    scores the responses and saves a completed record. A finished session
    cannot be reused.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        store: RecordStore,
        facility_name: str,
        *,
        ai: AIService | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[int], str] = new_record_id,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._ai = ai
        self._clock = clock
        self._id_factory = id_factory
        self.facility_name = facility_name
        self._auditor_name = ""
        self._location = ""
        self._state = SessionState.SETUP
        self._responses = ResponseAccumulator()
        self._selected_category = catalog.categories[0] if catalog.categories else None
        # Id and timestamp fixed by the first finish attempt, reused on retry.
        self._identity: tuple[str, int] | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    # -- setup -----------------------------------------------------------

    @property
    def auditor_name(self) -> str:
        return self._auditor_name

    @auditor_name.setter
    def auditor_name(self, value: str) -> None:
        self._require(SessionState.SETUP)
        self._auditor_name = value

    @property
    def location(self) -> str:
        return self._location

    @location.setter
    def location(self, value: str) -> None:
        self._require(SessionState.SETUP)
        self._location = value

    @property
    def can_begin(self) -> bool:
        return (
            self._state is SessionState.SETUP
            and bool(self._auditor_name.strip())
            and bool(self._location.strip())
        )

    def begin(self) -> bool:
        """Move to ``IN_PROGRESS``; returns False while setup fields are missing."""
        if not self.can_begin:
            return False
        self._state = SessionState.IN_PROGRESS
        logger.info(
            "Audit round started at %s / %s by %s",
            self.facility_name,
            self._location,
            self._auditor_name,
        )
        return True

    # -- navigation and answers -------------------------------------------

    @property
    def selected_category(self) -> str | None:
        return self._selected_category

    def select_category(self, category: str) -> None:
        if category not in self._catalog.categories:
            raise ValueError(f"Unknown category: {category}")
        self._selected_category = category

    def update_response(
        self,
        question_id: str,
        *,
        status: ResponseStatus | None = None,
        comment: str | None = None,
        image_evidence: str | None = None,
    ) -> AuditResponse | None:
        self._require(SessionState.IN_PROGRESS)
        if question_id not in self._catalog:
            raise UnknownQuestionError(question_id)
        return self._responses.upsert(
            ResponseUpdate(
                question_id=question_id,
                status=status,
                comment=comment,
                image_evidence=image_evidence,
            )
        )

    async def attach_image(self, question_id: str, image_evidence: str) -> AuditResponse:
        """Attach photo evidence; an uncommented answer gets the AI description as comment."""
        response = self.update_response(question_id, image_evidence=image_evidence)
        if response.comment or self._ai is None:
            return response
        analysis = await self._ai.analyze_image(image_evidence)
        if self._state is not SessionState.IN_PROGRESS:
            return response
        return self.update_response(question_id, comment=analysis)

    def response(self, question_id: str) -> AuditResponse | None:
        return self._responses.get(question_id)

    def responses(self) -> frozenset[AuditResponse]:
        return self._responses.all()

    # -- progress ----------------------------------------------------------

    @property
    def completion_ratio(self) -> float:
        return self._responses.completion_ratio(self._catalog)

    @property
    def progress_percent(self) -> int:
        total = len(self._catalog)
        if total == 0:
            return 100
        answered = len(self._responses.answered_ids() & self._catalog.question_ids)
        return round_half_up(100 * answered, total)

    @property
    def live_score(self) -> int:
        return score(self._responses.all())

    def is_category_complete(self, category: str) -> bool:
        return self._responses.is_category_complete(self._catalog, category)

    # -- finish ------------------------------------------------------------

    async def finish(self) -> AuditRecord:
        """Score the round, save it, and close the session.

        Partial rounds are allowed. Returns once the record is committed to the
        local cache; remote replication continues in the background. A retry
        after a failed local write saves under the same id.
        """
        self._require(SessionState.IN_PROGRESS)
        responses = tuple(
            sorted(self._responses.all(), key=lambda response: response.question_id)
        )
        if self._identity is None:
            timestamp = epoch_millis(self._clock())
            self._identity = (self._id_factory(timestamp), timestamp)
        record_id, timestamp = self._identity
        record = AuditRecord(
            id=record_id,
            facility_name=self.facility_name,
            location=self._location,
            auditor_name=self._auditor_name,
            timestamp=timestamp,
            responses=responses,
            status=AuditStatus.COMPLETED,
            overall_score=score(responses),
        )
        self._state = SessionState.FINISHED
        try:
            await self._store.save(record)
        except BaseException:
            self._state = SessionState.IN_PROGRESS
            raise
        self._responses = ResponseAccumulator()
        logger.info("Audit round %s saved with score %d", record.id, record.overall_score)
        return record

    def _require(self, state: SessionState) -> None:
        if self._state is not state:
            raise SessionStateError(
                f"Operation requires session state {state.value}, current state is "
                f"{self._state.value}"
            )
