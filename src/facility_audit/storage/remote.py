"""Client for the spreadsheet-backed remote record store.

The endpoint is a spreadsheet web app: ``GET`` returns every stored record as
a JSON array, ``POST`` with ``{"record": ...}`` appends one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from facility_audit.domain.models import AuditRecord

logger = logging.getLogger(__name__)

# text/plain keeps the POST a "simple" request so the web app needs no preflight.
_POST_HEADERS = {"Content-Type": "text/plain;charset=utf-8"}


class RemoteStoreError(Exception):
    """Remote fetch or write failed (transport, status, or payload)."""


class RemoteRecordStore:
    def __init__(
        self,
        endpoint: str,
        *,
        timeout_seconds: float = 5.0,
        max_retries: int = 1,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def fetch_all(self) -> list[AuditRecord]:
        response = await self._request("GET")
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RemoteStoreError(f"Remote store returned invalid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise RemoteStoreError("Remote store response is not a JSON array")
        try:
            return [AuditRecord.from_wire(item) for item in data]
        except ValidationError as exc:
            raise RemoteStoreError(f"Remote store returned malformed records: {exc}") from exc

    async def upsert(self, record: AuditRecord) -> None:
        body = json.dumps({"record": record.to_wire()}, ensure_ascii=True)
        await self._request("POST", content=body, headers=_POST_HEADERS)

    async def _request(self, method: str, **kwargs: Any) -> httpx.Response:
        last_error: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                async with self._client() as client:
                    response = await client.request(method, self.endpoint, **kwargs)
                    response.raise_for_status()
                    return response
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                last_error = exc
                logger.warning(
                    "Remote %s attempt %d/%d failed: %s",
                    method,
                    attempt + 1,
                    self._max_retries,
                    exc,
                )
                if attempt < self._max_retries - 1:
                    await asyncio.sleep(min(0.5 * 2**attempt, 5.0))
        raise RemoteStoreError(
            f"Remote {method} {self.endpoint} failed: {last_error}"
        ) from last_error
