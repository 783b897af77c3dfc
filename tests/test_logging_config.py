"""Tests for logging setup."""

import logging

import pytest

from ledger_match.utils.logging_config import ROOT_LOGGER_NAME, level_from_name, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []


class TestSetupLogging:
    """Test handler configuration."""

    def test_console_only_by_default(self):
        logger = setup_logging(logging.WARNING)

        assert logger.name == "ledger_match"
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        logger = setup_logging()

        assert len(logger.handlers) == 1

    def test_log_file_records_debug(self, tmp_path):
        log_file = tmp_path / "logs" / "recon.log"
        logger = setup_logging(logging.INFO, log_file=log_file)

        logging.getLogger("ledger_match.matching.engine").info("Reconciliation complete")
        for handler in logger.handlers:
            handler.flush()

        text = log_file.read_text()
        assert "ledger_match.matching.engine - INFO" in text
        assert "Reconciliation complete" in text

    def test_http_client_loggers_quieted_unless_debugging(self):
        setup_logging(logging.INFO)
        assert logging.getLogger("httpx").level == logging.WARNING

        setup_logging(logging.DEBUG)
        assert logging.getLogger("httpx").level == logging.DEBUG


class TestLevelFromName:
    """Test level name translation."""

    @pytest.mark.parametrize(
        "name,expected",
        [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), ("verbose", logging.INFO)],
    )
    def test_level_from_name(self, name, expected):
        assert level_from_name(name) == expected
