"""In-progress response set for one audit session."""

from __future__ import annotations

from facility_audit.catalog import QuestionCatalog
from facility_audit.domain.models import AuditResponse, ResponseStatus, ResponseUpdate

# A comment on an unanswered question is taken as a passing observation.
COMMENT_DEFAULT_STATUS = ResponseStatus.PASS
# A photo on an unanswered question is taken as evidence of a finding.
IMAGE_DEFAULT_STATUS = ResponseStatus.FAIL


def _default_status(update: ResponseUpdate) -> ResponseStatus | None:
    if update.image_evidence is not None:
        return IMAGE_DEFAULT_STATUS
    if update.comment is not None:
        return COMMENT_DEFAULT_STATUS
    return None


def merge_response(
    existing: AuditResponse | None, update: ResponseUpdate
) -> AuditResponse | None:
    """Apply a partial update on top of an existing response.

    Provided fields overwrite, omitted fields keep their previous value. With
    no prior response and no explicit status, attaching an image defaults the
    status to fail and writing a comment defaults it to pass. An update that
    carries nothing for an unanswered question yields ``None``.
    """
    if existing is not None and existing.question_id != update.question_id:
        raise ValueError(
            f"Update for {update.question_id} applied to response for {existing.question_id}"
        )

    if update.status is not None:
        status = update.status
    elif existing is not None:
        status = existing.status
    else:
        status = _default_status(update)
        if status is None:
            return None

    comment = update.comment
    if comment is None and existing is not None:
        comment = existing.comment
    image_evidence = update.image_evidence
    if image_evidence is None and existing is not None:
        image_evidence = existing.image_evidence

    return AuditResponse(
        question_id=update.question_id,
        status=status,
        comment=comment,
        image_evidence=image_evidence,
    )


class ResponseAccumulator:
    def __init__(self) -> None:
        self._responses: dict[str, AuditResponse] = {}

    def __len__(self) -> int:
        return len(self._responses)

    def upsert(self, update: ResponseUpdate) -> AuditResponse | None:
        merged = merge_response(self._responses.get(update.question_id), update)
        if merged is not None:
            self._responses[update.question_id] = merged
        return merged

    def get(self, question_id: str) -> AuditResponse | None:
        return self._responses.get(question_id)

    def all(self) -> frozenset[AuditResponse]:
        return frozenset(self._responses.values())

    def answered_ids(self) -> frozenset[str]:
        return frozenset(self._responses)

    def completion_ratio(self, catalog: QuestionCatalog) -> float:
        """Answered catalog questions over catalog size; 1.0 for an empty catalog."""
        if len(catalog) == 0:
            return 1.0
        answered = self.answered_ids() & catalog.question_ids
        return len(answered) / len(catalog)

    def is_category_complete(self, catalog: QuestionCatalog, category: str) -> bool:
        answered = self.answered_ids()
        return all(q.id in answered for q in catalog.questions_in(category))
