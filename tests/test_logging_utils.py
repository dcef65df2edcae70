from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from facility_audit import logging_utils


def _settings(log_file: str | None, level: str = "INFO") -> SimpleNamespace:
    return SimpleNamespace(
        logging=SimpleNamespace(level=level, file=log_file),
    )


@patch("facility_audit.logging_utils.load_settings")
@patch("facility_audit.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="debug")

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.DEBUG
    assert len(kwargs["handlers"]) == 1


@patch("facility_audit.logging_utils.load_settings")
@patch("facility_audit.logging_utils.logging.basicConfig")
def test_configure_logging_adds_file_handler(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    log_file = tmp_path / "logs" / "audit.log"
    mock_load_settings.return_value = _settings(str(log_file))

    logging_utils.configure_logging()

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 2
    assert isinstance(handlers[1], logging.FileHandler)
    assert log_file.parent.is_dir()
    handlers[1].close()


@patch("facility_audit.logging_utils.load_settings")
@patch("facility_audit.logging_utils.logging.FileHandler", side_effect=OSError("permission denied"))
@patch("facility_audit.logging_utils._logger")
@patch("facility_audit.logging_utils.logging.basicConfig")
def test_configure_logging_file_handler_error(
    _mock_basic_config: MagicMock,
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_load_settings: MagicMock,
    tmp_path,
) -> None:
    mock_load_settings.return_value = _settings(str(tmp_path / "app.log"))

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()


@patch("facility_audit.logging_utils.load_settings")
@patch("facility_audit.logging_utils.logging.basicConfig")
def test_level_override_wins_over_settings(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None, level="WARNING")

    logging_utils.configure_logging("DEBUG")

    assert mock_basic_config.call_args.kwargs["level"] == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG


@patch("facility_audit.logging_utils.load_settings")
@patch("facility_audit.logging_utils.logging.basicConfig")
def test_client_request_logs_are_quieted(
    _mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None)

    logging_utils.configure_logging()

    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
