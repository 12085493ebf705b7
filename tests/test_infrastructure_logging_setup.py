"""
Tests for logging setup and configuration utilities.
"""

import logging
from pathlib import Path
from unittest.mock import Mock, patch

from chunkwise.infrastructure.config.models import LoggingConfig
from chunkwise.infrastructure.logging.setup import InterceptHandler, setup_logging


class TestSetupLogging:
    """Test cases for setup_logging."""

    def setup_method(self) -> None:
        self.config = LoggingConfig()
        self.config.level = "INFO"
        self.config.console_enabled = True
        self.config.file_enabled = True

    def teardown_method(self) -> None:
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(logging.WARNING)

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_console_and_file(self, mock_loguru: Mock, tmp_path: Path) -> None:
        self.config.log_directory = str(tmp_path / "logs")

        setup_logging(self.config)

        mock_loguru.remove.assert_called_once()
        assert mock_loguru.add.call_count == 2
        assert (tmp_path / "logs").is_dir()

        file_call = mock_loguru.add.call_args_list[1]
        assert file_call.args[0] == tmp_path / "logs" / "chunkwise.log"
        assert file_call.kwargs["rotation"] == "10 MB"
        assert file_call.kwargs["retention"] == 5
        assert file_call.kwargs["level"] == "INFO"

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_console_only(self, mock_loguru: Mock, tmp_path: Path) -> None:
        self.config.file_enabled = False
        self.config.log_directory = str(tmp_path / "unused")

        setup_logging(self.config)

        assert mock_loguru.add.call_count == 1
        assert not (tmp_path / "unused").exists()

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_no_sinks(self, mock_loguru: Mock) -> None:
        self.config.console_enabled = False
        self.config.file_enabled = False

        setup_logging(self.config)

        mock_loguru.remove.assert_called_once()
        mock_loguru.add.assert_not_called()

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_level_is_upper_cased(self, mock_loguru: Mock) -> None:
        self.config.level = "debug"
        self.config.file_enabled = False

        setup_logging(self.config)

        assert mock_loguru.add.call_args.kwargs["level"] == "DEBUG"

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_standard_logging_is_intercepted(self, mock_loguru: Mock) -> None:
        self.config.file_enabled = False

        setup_logging(self.config)

        root_handlers = logging.getLogger().handlers
        assert len(root_handlers) == 1
        assert isinstance(root_handlers[0], InterceptHandler)
        assert logging.getLogger("aiohttp").level == logging.WARNING


class TestInterceptHandler:
    """Test cases for InterceptHandler."""

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_forwards_record(self, mock_loguru: Mock) -> None:
        mock_loguru.level.return_value = Mock(name="level")
        mock_loguru.level.return_value.name = "WARNING"
        record = logging.LogRecord("chunkwise.test", logging.WARNING, __file__, 1,
                                   "chunk %s failed", ("h-1",), None)

        InterceptHandler().emit(record)

        mock_loguru.level.assert_called_once_with("WARNING")
        mock_loguru.opt.return_value.log.assert_called_once_with("WARNING", "chunk h-1 failed")

    @patch('chunkwise.infrastructure.logging.setup.loguru_logger')
    def test_unknown_level_falls_back_to_number(self, mock_loguru: Mock) -> None:
        mock_loguru.level.side_effect = ValueError("no such level")
        record = logging.LogRecord("chunkwise.test", 25, __file__, 1, "custom", (), None)

        InterceptHandler().emit(record)

        mock_loguru.opt.return_value.log.assert_called_once_with("25", "custom")
