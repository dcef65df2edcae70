"""Data models for questions, responses and audit records.

Records are serialized with camelCase aliases so that the local cache and
the spreadsheet web app share one JSON shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from facility_audit.utils.time import from_epoch_millis


class ResponseStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    NOT_APPLICABLE = "na"

    @classmethod
    def parse(cls, value: str) -> "ResponseStatus":
        """Accept wire values plus the spelled-out ``not_applicable``."""
        lowered = value.strip().lower()
        return cls(_STATUS_ALIASES.get(lowered, lowered))


class AuditStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ComplianceRating(str, Enum):
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"


_STATUS_ALIASES = {"not_applicable": "na", "n/a": "na"}


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    category: str = Field(min_length=1)
    text: str


class AuditResponse(BaseModel):
    """One answer to one catalog question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question_id: str = Field(alias="questionId", min_length=1)
    status: ResponseStatus
    comment: str | None = None
    image_evidence: str | None = Field(default=None, alias="imageUri")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return ResponseStatus.parse(value)
            except ValueError:
                return value
        return value


@dataclass(frozen=True)
class ResponseUpdate:
    """Partial update for a single question; ``None`` means "not provided"."""

    question_id: str
    status: ResponseStatus | None = None
    comment: str | None = None
    image_evidence: str | None = None


class AuditRecord(BaseModel):
    """The unit of persistence: one finished audit round."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    facility_name: str = Field(alias="facilityName")
    location: str
    auditor_name: str = Field(alias="auditorName")
    timestamp: int = Field(description="Creation instant in epoch milliseconds")
    responses: tuple[AuditResponse, ...] = ()
    status: AuditStatus = AuditStatus.COMPLETED
    overall_score: int = Field(alias="overallScore", ge=0, le=100)
    ai_analysis: str | None = Field(default=None, alias="aiAnalysis")

    @field_validator("responses")
    @classmethod
    def _one_response_per_question(
        cls, value: tuple[AuditResponse, ...]
    ) -> tuple[AuditResponse, ...]:
        # Later entries replace earlier ones for the same question.
        by_question: dict[str, AuditResponse] = {}
        for response in value:
            by_question[response.question_id] = response
        return tuple(by_question.values())

    @property
    def is_completed(self) -> bool:
        return self.status is AuditStatus.COMPLETED

    def created_at(self, tz: tzinfo | None = None) -> datetime:
        return from_epoch_millis(self.timestamp, tz)

    def failing_responses(self) -> list[AuditResponse]:
        return [r for r in self.responses if r.status is ResponseStatus.FAIL]

    def failing_question_ids(self) -> list[str]:
        return [r.question_id for r in self.failing_responses()]

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_wire(cls, data: Any) -> "AuditRecord":
        return cls.model_validate(data)
