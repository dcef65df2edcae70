"""Static question catalog for F880 infection control rounds."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

import yaml
from pydantic import ValidationError

from facility_audit.domain.models import Question


class CatalogError(ValueError):
    """Raised when a question catalog is malformed."""


AUDIT_CATEGORIES: tuple[str, ...] = (
    "Hand Hygiene",
    "PPE Usage",
    "Environmental Cleaning",
    "Isolation Precautions",
    "Resident Care Equipment",
)

DEFAULT_QUESTIONS: tuple[Question, ...] = (
    Question(
        id="hh-1",
        category="Hand Hygiene",
        text="Staff performs hand hygiene before patient contact.",
    ),
    Question(
        id="hh-2",
        category="Hand Hygiene",
        text="Staff performs hand hygiene after body fluid exposure risk.",
    ),
    Question(id="ppe-1", category="PPE Usage", text="Gowns are worn correctly when indicated."),
    Question(id="ppe-2", category="PPE Usage", text="Masks cover both nose and mouth."),
    Question(
        id="env-1",
        category="Environmental Cleaning",
        text="High-touch surfaces appear clean and sanitary.",
    ),
    Question(
        id="env-2",
        category="Environmental Cleaning",
        text="Disinfectant wipes are readily available and lids are closed.",
    ),
    Question(
        id="iso-1",
        category="Isolation Precautions",
        text="Signage indicating precautions is clearly posted on door.",
    ),
)


class QuestionCatalog:
    """Immutable, ordered set of checklist questions grouped by category."""

    def __init__(
        self,
        questions: Iterable[Question],
        categories: Iterable[str] | None = None,
    ) -> None:
        self._questions = tuple(questions)
        self._by_id: dict[str, Question] = {}
        for question in self._questions:
            if question.id in self._by_id:
                raise CatalogError(f"Duplicate question id: {question.id}")
            self._by_id[question.id] = question

        ordered = list(categories or ())
        for question in self._questions:
            if question.category not in ordered:
                ordered.append(question.category)
        self._categories = tuple(ordered)

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._by_id

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    @property
    def question_ids(self) -> frozenset[str]:
        return frozenset(self._by_id)

    def get(self, question_id: str) -> Question | None:
        return self._by_id.get(question_id)

    def questions_in(self, category: str) -> list[Question]:
        return [q for q in self._questions if q.category == category]


def default_catalog() -> QuestionCatalog:
    return QuestionCatalog(DEFAULT_QUESTIONS, AUDIT_CATEGORIES)


def load_catalog(path: str | None) -> QuestionCatalog:
    """Load a catalog from YAML, or the built-in catalog when ``path`` is unset.

    Expected layout::

        categories: [Hand Hygiene, PPE Usage]
        questions:
          - {id: hh-1, category: Hand Hygiene, text: "..."}
    """
    if not path:
        return default_catalog()

    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")
    with catalog_path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise CatalogError(f"Invalid catalog YAML in {catalog_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogError(f"Catalog root must be a mapping: {catalog_path}")

    raw_questions = data.get("questions") or []
    try:
        questions = [Question.model_validate(item) for item in raw_questions]
    except ValidationError as exc:
        raise CatalogError(f"Invalid question in {catalog_path}: {exc}") from exc

    return QuestionCatalog(questions, data.get("categories") or None)
