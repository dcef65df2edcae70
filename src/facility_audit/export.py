"""CSV export of audit records for spreadsheet import."""

from __future__ import annotations

import csv
import io
from datetime import date, tzinfo
from pathlib import Path
from typing import Iterable

from facility_audit.domain.models import AuditRecord

CSV_HEADERS = (
    "Audit ID",
    "Facility Name",
    "Location/Unit",
    "Date",
    "Time",
    "Auditor",
    "Overall Score",
    "Status",
    "Failed Items (IDs)",
    "AI Summary",
)


def _row(record: AuditRecord, tz: tzinfo | None) -> list[object]:
    created = record.created_at(tz)
    return [
        record.id,
        record.facility_name,
        record.location,
        created.strftime("%Y-%m-%d"),
        created.strftime("%H:%M:%S"),
        record.auditor_name,
        record.overall_score,
        record.status.value,
        "; ".join(record.failing_question_ids()),
        record.ai_analysis or "",
    ]


def records_to_csv(records: Iterable[AuditRecord], tz: tzinfo | None = None) -> str:
    """Render records as CSV; text fields are quoted, the score is not.

    Dates and times are rendered in UTC unless ``tz`` is given.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for record in records:
        writer.writerow(_row(record, tz))
    return buffer.getvalue()


def default_export_name(today: date | None = None) -> str:
    return f"F880_Surveillance_Export_{(today or date.today()).isoformat()}.csv"


def write_csv(
    records: Iterable[AuditRecord],
    path: str | Path,
    tz: tzinfo | None = None,
) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(records_to_csv(records, tz), encoding="utf-8")
    return target
