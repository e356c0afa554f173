"""Unit tests for agentctx.utils.tracing module."""

from unittest.mock import MagicMock, patch

import pytest

from agentctx.utils.tracing import set_span_attributes, traced


class TestTraced:
    """Tests for the traced decorator."""

    def test_sync_function_runs_in_span(self, mock_tracer):
        @traced("test.sync")
        def add(a, b):
            return a + b

        with patch("agentctx.utils.tracing.get_tracer", return_value=mock_tracer):
            assert add(1, 2) == 3
        mock_tracer.start_as_current_span.assert_called_once_with("test.sync")

    @pytest.mark.asyncio
    async def test_async_function_runs_in_span(self, mock_tracer):
        @traced("test.async")
        async def double(x):
            return x * 2

        with patch("agentctx.utils.tracing.get_tracer", return_value=mock_tracer):
            assert await double(4) == 8
        mock_tracer.start_as_current_span.assert_called_once_with("test.async")

    def test_exception_is_recorded_and_reraised(self, mock_tracer):
        @traced("test.error")
        def boom():
            raise ValueError("bad")

        span = mock_tracer.start_as_current_span.return_value
        with patch("agentctx.utils.tracing.get_tracer", return_value=mock_tracer):
            with pytest.raises(ValueError, match="bad"):
                boom()
        span.record_exception.assert_called_once()
        span.set_status.assert_called_once()

    def test_works_without_configured_provider(self):
        @traced("test.noop")
        def identity(x):
            return x

        assert identity("x") == "x"


class TestSetSpanAttributes:
    """Tests for set_span_attributes."""

    def test_prefixes_keys_and_skips_none(self):
        span = MagicMock()
        with patch("agentctx.utils.tracing.trace.get_current_span", return_value=span):
            set_span_attributes(count=3, missing=None)
        span.set_attribute.assert_called_once_with("agentctx.count", 3)
