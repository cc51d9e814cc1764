"""
Tests for the exception-suppressing decorator.
"""
from unittest.mock import MagicMock

from core.utils.decorators import suppress_exceptions


class TestSuppressExceptions:
    """Test suppress_exceptions decorator."""

    def test_returns_none_and_logs_error_by_default(self):
        mock_logger = MagicMock()

        @suppress_exceptions(mock_logger, "Test failed")
        def failing_func():
            raise ValueError("Test error")

        assert failing_func() is None
        mock_logger.error.assert_called_once()

    def test_returns_custom_value(self):
        mock_logger = MagicMock()

        @suppress_exceptions(mock_logger, "Service query failed", return_value=False)
        def is_running(name):
            raise OSError("access denied")

        assert is_running("WsusService") is False

    def test_log_line_names_function_and_error(self):
        mock_logger = MagicMock()

        @suppress_exceptions(mock_logger, "Service start failed", log_level="warning")
        def start(name):
            raise RuntimeError("Access is denied")

        start("W3SVC")
        mock_logger.error.assert_not_called()
        args = mock_logger.warning.call_args[0]
        assert (args[0] % args[1:]) == "Service start failed (start): Access is denied"

    def test_unknown_level_falls_back_to_error(self):
        mock_logger = MagicMock(spec=["error"])

        @suppress_exceptions(mock_logger, "x", log_level="loud")
        def failing_func():
            raise ValueError("boom")

        failing_func()
        mock_logger.error.assert_called_once()

    def test_passes_through_result_and_metadata(self):
        mock_logger = MagicMock()

        @suppress_exceptions(mock_logger)
        def working_func():
            """Docstring."""
            return "success"

        assert working_func() == "success"
        assert working_func.__name__ == "working_func"
        assert working_func.__doc__ == "Docstring."
        mock_logger.error.assert_not_called()
