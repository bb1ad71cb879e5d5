"""
Tests для конфигурации: таймауты оркестратора, settle delay, логирование.
"""

import logging

import pytest

from btc1_client.config import (
    BASE_SEPOLIA_CHAIN_ID,
    LOG_FORMAT,
    OrchestratorConfig,
    SyncConfig,
    setup_console_logger,
)


class TestOrchestratorConfig:
    def test_defaults(self) -> None:
        config = OrchestratorConfig()

        assert config.confirmation_timeout_sec == 90.0
        assert config.success_display_window_sec == 5.0
        assert config.error_display_window_sec == 3.0
        assert config.expected_chain_id == BASE_SEPOLIA_CHAIN_ID

    @pytest.mark.parametrize("timeout", [0, -1.0])
    def test_timeout_must_be_positive(self, timeout) -> None:
        with pytest.raises(ValueError, match="confirmation_timeout_sec"):
            OrchestratorConfig(confirmation_timeout_sec=timeout)

    def test_negative_window_rejected(self) -> None:
        with pytest.raises(ValueError, match="display windows"):
            OrchestratorConfig(error_display_window_sec=-1)

    def test_chain_check_can_be_disabled(self) -> None:
        assert OrchestratorConfig(expected_chain_id=None).expected_chain_id is None


class TestSyncConfig:
    def test_default_settle_delay(self) -> None:
        assert SyncConfig().settle_delay_sec == 2.0

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            SyncConfig(settle_delay_sec=-0.5)


class TestConsoleLogger:
    def test_single_handler(self) -> None:
        name = "btc1_client.tests.console"
        logger = setup_console_logger(name, level="DEBUG")
        again = setup_console_logger(name)

        assert logger is again
        assert len(logger.handlers) == 1
        assert logger.handlers[0].formatter._fmt == LOG_FORMAT
        assert logger.level == logging.INFO

        logger.handlers.clear()
