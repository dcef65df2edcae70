"""On-disk cache slots: the record collection, the replication outbox and the endpoint URL."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from facility_audit.domain.models import AuditRecord

logger = logging.getLogger(__name__)

RECORDS_SLOT = "f880_audits_data_v1.json"
OUTBOX_SLOT = "f880_outbox_v1.json"
ENDPOINT_SLOT = "f880_google_script_url.txt"


class LocalCache:
    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def records_path(self) -> Path:
        return self._base / RECORDS_SLOT

    @property
    def outbox_path(self) -> Path:
        return self._base / OUTBOX_SLOT

    @property
    def endpoint_path(self) -> Path:
        return self._base / ENDPOINT_SLOT

    def read_records(self) -> list[AuditRecord] | None:
        """Return cached records, or ``None`` when the slot is absent or unreadable.

        Entries that fail validation are dropped individually.
        """
        return self._read_record_slot(self.records_path, "record cache")

    def write_records(self, records: Iterable[AuditRecord]) -> None:
        self._write_atomic(self.records_path, _dump_records(records))

    def read_outbox(self) -> list[AuditRecord]:
        """Records still waiting for a successful remote write."""
        return self._read_record_slot(self.outbox_path, "replication outbox") or []

    def write_outbox(self, records: Iterable[AuditRecord]) -> None:
        queued = list(records)
        if not queued:
            self.outbox_path.unlink(missing_ok=True)
            return
        self._write_atomic(self.outbox_path, _dump_records(queued))

    def read_endpoint(self) -> str | None:
        try:
            value = self.endpoint_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Endpoint slot unreadable, treating as absent: %s", exc)
            return None
        return value or None

    def write_endpoint(self, url: str | None) -> None:
        value = (url or "").strip()
        if not value:
            self.endpoint_path.unlink(missing_ok=True)
            return
        self._write_atomic(self.endpoint_path, value)

    def clear(self) -> None:
        self.records_path.unlink(missing_ok=True)
        self.outbox_path.unlink(missing_ok=True)
        self.endpoint_path.unlink(missing_ok=True)

    def _read_record_slot(self, path: Path, label: str) -> list[AuditRecord] | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read %s %s: %s", label, path, exc)
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("%s is corrupt, treating as absent: %s", label.capitalize(), exc)
            return None
        if not isinstance(data, list):
            logger.warning("%s is not a JSON array, treating as absent", label.capitalize())
            return None

        records: list[AuditRecord] = []
        for index, item in enumerate(data):
            try:
                records.append(AuditRecord.from_wire(item))
            except ValidationError as exc:
                logger.warning("Dropping invalid entry at index %d of %s: %s", index, label, exc)
        return records

    def _write_atomic(self, path: Path, text: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._base, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _dump_records(records: Iterable[AuditRecord]) -> str:
    return json.dumps([record.to_wire() for record in records], ensure_ascii=True)
