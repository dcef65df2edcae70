"""Compliance score and rating band calculation."""

from __future__ import annotations

from typing import Iterable

from facility_audit.domain.models import (
    AuditRecord,
    AuditResponse,
    ComplianceRating,
    ResponseStatus,
)

YELLOW_THRESHOLD = 80
GREEN_THRESHOLD = 95


def round_half_up(numerator: int, denominator: int) -> int:
    """Round ``numerator / denominator`` to the nearest integer, halves up.

    Integer arithmetic keeps the result exact, unlike ``round()`` on floats
    which rounds halves to even.
    """
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return (2 * numerator + denominator) // (2 * denominator)


def score(responses: Iterable[AuditResponse]) -> int:
    """Percentage of applicable (non-N/A) responses marked pass.

    No applicable responses scores 100.
    """
    applicable = 0
    passed = 0
    for response in responses:
        if response.status is ResponseStatus.NOT_APPLICABLE:
            continue
        applicable += 1
        if response.status is ResponseStatus.PASS:
            passed += 1
    if applicable == 0:
        return 100
    return round_half_up(100 * passed, applicable)


def classify(value: int | float) -> ComplianceRating:
    if value < YELLOW_THRESHOLD:
        return ComplianceRating.RED
    if value < GREEN_THRESHOLD:
        return ComplianceRating.YELLOW
    return ComplianceRating.GREEN


def recompute(record: AuditRecord) -> int:
    return score(record.responses)


def score_matches(record: AuditRecord) -> bool:
    """True when the stored score equals a fresh recomputation."""
    return record.overall_score == recompute(record)
