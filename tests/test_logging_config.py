"""
Tests for logging setup.
"""

import logging
import sys

from nftjson.logging_config import DEFAULT_LOG_PATH, setup_logging


class TestSetupLogging:

    def test_console_only(self):
        logger = setup_logging(level="INFO")
        assert logger.name == "nftjson"
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stderr
        assert not logger.propagate

    def test_default_level_is_warning(self):
        assert setup_logging().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "nftjson.log"
        logger = setup_logging(level="DEBUG", log_file=str(log_file), enable_console=False, enable_file=True)
        logging.getLogger("nftjson.engine").debug("Running nft -j list ruleset")
        for handler in logger.handlers:
            handler.flush()
        content = log_file.read_text()
        assert "Running nft -j list ruleset" in content
        assert "nftjson.engine" in content

    def test_log_dir(self, tmp_path):
        setup_logging(log_dir=str(tmp_path), enable_console=False, enable_file=True)
        assert (tmp_path / "nftjson.log").exists()

    def test_repeated_setup_replaces_handlers(self):
        setup_logging(level="DEBUG")
        logger = setup_logging(level="ERROR")
        assert len(logger.handlers) == 1
        assert logger.level == logging.ERROR

    def test_default_log_path(self):
        assert DEFAULT_LOG_PATH.parts[-3:] == (".nftjson", "logs", "nftjson.log")
