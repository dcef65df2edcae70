"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from facility_audit.ai.service import AIService, build_ai_service
from facility_audit.catalog import QuestionCatalog, load_catalog
from facility_audit.config import Settings, load_settings
from facility_audit.session import AuditSession
from facility_audit.storage.facade import RecordStore
from facility_audit.storage.local_cache import LocalCache


@dataclass
class AppContext:
    """Application-wide dependency container.

    Built once per process; the record store inside it is the only owner of
    the record collection.
    """

    settings: Settings
    catalog: QuestionCatalog
    cache: LocalCache
    store: RecordStore
    ai: AIService

    @property
    def facilities(self) -> tuple[str, ...]:
        return self.settings.catalog.facilities

    def new_session(self, facility_name: str | None = None) -> AuditSession:
        return AuditSession(
            self.catalog,
            self.store,
            facility_name or self.facilities[0],
            ai=self.ai,
        )


def build_app_context(settings: Settings) -> AppContext:
    cache = LocalCache(settings.storage.cache_dir)
    store = RecordStore(
        cache,
        endpoint=settings.remote.endpoint,
        timeout_seconds=settings.remote.timeout_seconds,
        max_retries=settings.remote.max_retries,
    )
    return AppContext(
        settings=settings,
        catalog=load_catalog(settings.catalog.path),
        cache=cache,
        store=store,
        ai=build_ai_service(settings.ai),
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the cached application context."""
    return build_app_context(load_settings())
