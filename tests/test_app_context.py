from unittest.mock import patch

import pytest

from facility_audit.app import AppContext, build_app_context, get_app_context
from facility_audit.config import CatalogSettings, Settings, StorageSettings
from facility_audit.session import SessionState


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        storage=StorageSettings(cache_dir=str(tmp_path / "cache")),
        catalog=CatalogSettings(facilities=("North Wing", "South Wing")),
    )


def test_build_app_context(settings: Settings) -> None:
    ctx = build_app_context(settings)

    assert isinstance(ctx, AppContext)
    assert len(ctx.catalog) == 7
    assert ctx.store.endpoint is None
    assert not ctx.ai.available
    assert ctx.facilities == ("North Wing", "South Wing")


def test_new_session_defaults_to_first_facility(settings: Settings) -> None:
    session = build_app_context(settings).new_session()

    assert session.facility_name == "North Wing"
    assert session.state is SessionState.SETUP


@patch("facility_audit.app.load_settings")
def test_get_app_context_is_cached(mock_load_settings, settings: Settings) -> None:
    mock_load_settings.return_value = settings

    first = get_app_context()
    second = get_app_context()

    assert first is second
    mock_load_settings.assert_called_once()
