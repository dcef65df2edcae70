from __future__ import annotations

import pytest

from facility_audit.accumulator import ResponseAccumulator, merge_response
from facility_audit.catalog import QuestionCatalog
from facility_audit.domain.models import AuditResponse, ResponseStatus, ResponseUpdate


class TestMergeResponse:
    def test_comment_only_on_new_question_defaults_to_pass(self) -> None:
        merged = merge_response(None, ResponseUpdate("hh-1", comment="Observed at sink"))
        assert merged.status is ResponseStatus.PASS
        assert merged.comment == "Observed at sink"

    def test_image_only_on_new_question_defaults_to_fail(self) -> None:
        update = ResponseUpdate("hh-1", image_evidence="data:image/jpeg;base64,AA")
        merged = merge_response(None, update)
        assert merged.status is ResponseStatus.FAIL
        assert merged.image_evidence == "data:image/jpeg;base64,AA"

    def test_image_does_not_override_existing_status(self) -> None:
        existing = AuditResponse(question_id="hh-1", status=ResponseStatus.PASS)
        merged = merge_response(existing, ResponseUpdate("hh-1", image_evidence="img"))
        assert merged.status is ResponseStatus.PASS

    def test_comment_does_not_override_existing_status(self) -> None:
        existing = AuditResponse(question_id="hh-1", status=ResponseStatus.FAIL)
        merged = merge_response(existing, ResponseUpdate("hh-1", comment="note"))
        assert merged.status is ResponseStatus.FAIL

    def test_status_only_preserves_comment_and_image(self) -> None:
        existing = AuditResponse(
            question_id="hh-1",
            status=ResponseStatus.FAIL,
            comment="no soap",
            image_evidence="img",
        )
        update = ResponseUpdate("hh-1", status=ResponseStatus.NOT_APPLICABLE)
        merged = merge_response(existing, update)
        assert merged.status is ResponseStatus.NOT_APPLICABLE
        assert merged.comment == "no soap"
        assert merged.image_evidence == "img"

    def test_empty_update_on_new_question_is_a_no_op(self) -> None:
        assert merge_response(None, ResponseUpdate("hh-1")) is None

    def test_empty_update_keeps_existing_response(self) -> None:
        existing = AuditResponse(question_id="hh-1", status=ResponseStatus.FAIL, comment="x")
        assert merge_response(existing, ResponseUpdate("hh-1")) == existing

    def test_mismatched_question_is_rejected(self) -> None:
        existing = AuditResponse(question_id="hh-1", status=ResponseStatus.PASS)
        with pytest.raises(ValueError):
            merge_response(existing, ResponseUpdate("hh-2", status=ResponseStatus.PASS))


class TestResponseAccumulator:
    def test_upsert_same_question_keeps_one_response(self) -> None:
        acc = ResponseAccumulator()
        acc.upsert(ResponseUpdate("hh-1", status=ResponseStatus.FAIL, comment="first"))
        acc.upsert(ResponseUpdate("hh-1", status=ResponseStatus.PASS))

        assert len(acc) == 1
        response = acc.get("hh-1")
        assert response is not None
        assert response.status is ResponseStatus.PASS
        assert response.comment == "first"
        assert len(acc.all()) == 1

    def test_get_missing_returns_none(self) -> None:
        assert ResponseAccumulator().get("hh-1") is None

    def test_empty_update_records_nothing(self) -> None:
        acc = ResponseAccumulator()
        assert acc.upsert(ResponseUpdate("hh-1")) is None
        assert len(acc) == 0
        assert acc.answered_ids() == frozenset()

    def test_completion_ratio(self, catalog: QuestionCatalog) -> None:
        acc = ResponseAccumulator()
        assert acc.completion_ratio(catalog) == 0.0

        acc.upsert(ResponseUpdate("hh-1", status=ResponseStatus.PASS))
        acc.upsert(ResponseUpdate("hh-1", status=ResponseStatus.FAIL))
        acc.upsert(ResponseUpdate("ppe-1", status=ResponseStatus.NOT_APPLICABLE))

        assert acc.completion_ratio(catalog) == pytest.approx(2 / len(catalog))

    def test_completion_ratio_empty_catalog(self) -> None:
        assert ResponseAccumulator().completion_ratio(QuestionCatalog([])) == 1.0

    def test_category_completion(self, catalog: QuestionCatalog) -> None:
        acc = ResponseAccumulator()
        acc.upsert(ResponseUpdate("hh-1", status=ResponseStatus.PASS))
        assert not acc.is_category_complete(catalog, "Hand Hygiene")

        acc.upsert(ResponseUpdate("hh-2", comment="ok"))
        assert acc.is_category_complete(catalog, "Hand Hygiene")
