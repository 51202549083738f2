# SPDX-License-Identifier: MIT
"""Tests for logging setup."""

from loguru import logger

from pinmatch.utils.logging import setup_logging


class TestSetupLogging:
    """Test setup_logging sinks."""

    def test_file_sink(self, tmp_path):
        """Messages reach the file sink with the thread name."""
        log_file = tmp_path / "logs" / "pinmatch.log"
        setup_logging(level="info", log_file=log_file)
        try:
            logger.info("cluster build starting")
            logger.debug("not written at INFO")
            logger.complete()
        finally:
            logger.remove()

        content = log_file.read_text(encoding="utf-8")
        assert "cluster build starting" in content
        assert "MainThread" in content
        assert "not written at INFO" not in content
