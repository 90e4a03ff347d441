"""Tests for workpool.core.logging."""

import io
import json
import threading

import pytest
import structlog
from structlog.testing import capture_logs

from workpool.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)
from workpool.core.settings import PoolSettings


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
    clear_context()


class TestConfigureLogging:
    def test_json_mode_ends_with_json_renderer(self):
        configure_logging(level="DEBUG", json_format=True)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[0], structlog.processors.TimeStamper)
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert structlog.processors.format_exc_info in processors

    def test_console_mode_ends_with_console_renderer(self):
        configure_logging(json_format=False, add_timestamp=False)
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert not any(isinstance(p, structlog.processors.TimeStamper) for p in processors)

    def test_json_lines_go_to_stream(self):
        stream = io.StringIO()
        configure_logging(json_format=True, service="thumbnails", add_timestamp=False, stream=stream)

        get_logger("workpool.test").info("pool.started", capacity=2)

        event = json.loads(stream.getvalue().strip())
        assert event == {
            "event": "pool.started",
            "capacity": 2,
            "level": "info",
            "service": "thumbnails",
            "thread": threading.current_thread().name,
        }

    def test_level_filters_events(self):
        stream = io.StringIO()
        configure_logging(level="WARNING", json_format=True, stream=stream)

        logger = get_logger("workpool.test")
        logger.info("pool.submitted")
        logger.warning("pool.killed")

        lines = stream.getvalue().strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["pool.killed"]

    def test_non_tty_stream_defaults_to_json(self):
        configure_logging(stream=io.StringIO())
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_configure_from_settings(self):
        stream = io.StringIO()
        configure_from_settings(PoolSettings(_env_file=None, log_level="error", log_json=True), stream=stream)

        logger = get_logger("workpool.test")
        logger.warning("pool.rejected")
        logger.error("pool.failed")

        assert json.loads(stream.getvalue().strip())["event"] == "pool.failed"


class TestContext:
    def test_bound_context_reaches_events(self):
        bind_context(batch="b1")
        event = structlog.contextvars.merge_contextvars(None, "info", {"event": "batch.started"})
        assert event == {"batch": "b1", "event": "batch.started"}

    def test_get_logger_accepts_events(self):
        with capture_logs() as logs:
            get_logger("test").info("batch.started", size=3)
        assert logs == [{"event": "batch.started", "size": 3, "log_level": "info"}]

    def test_unbind(self):
        bind_context(batch="b1", pool="p")
        unbind_context("batch")
        assert structlog.contextvars.get_contextvars() == {"pool": "p"}

    def test_log_context_scopes_keys(self):
        with LogContext(pool="thumbs"):
            assert structlog.contextvars.get_contextvars()["pool"] == "thumbs"
        assert "pool" not in structlog.contextvars.get_contextvars()

    def test_log_context_restores_shadowed_values(self):
        bind_context(batch="outer")
        with LogContext(batch="inner"):
            assert structlog.contextvars.get_contextvars()["batch"] == "inner"
        assert structlog.contextvars.get_contextvars()["batch"] == "outer"

    @pytest.mark.asyncio
    async def test_async_log_context(self):
        async with LogContext(pool="async"):
            assert structlog.contextvars.get_contextvars()["pool"] == "async"
        assert "pool" not in structlog.contextvars.get_contextvars()

class TestPoolEvents:
    def test_pool_emits_lifecycle_events(self, make_pool):
        with capture_logs() as logs:
            pool = make_pool(capacity=1, name="logged", executor="inline")
            pool.execute(abs, -1).result(timeout=5)
            pool.shutdown(wait=True, timeout=5)

        events = [entry["event"] for entry in logs]
        assert "pool.started" in events
        assert "pool.shutdown" in events
        assert "pool.terminated" in events
        terminated = next(entry for entry in logs if entry["event"] == "pool.terminated")
        assert terminated["pool"] == "logged"
        assert terminated["succeeded"] == 1

    def test_failure_event_carries_error_fields(self, make_pool):
        def boom(payload):
            raise ValueError("nope")

        with capture_logs() as logs:
            pool = make_pool(capacity=1, executor="inline")
            pool.execute(boom, None).exception(timeout=5)

        failed = next(entry for entry in logs if entry["event"] == "pool.failed")
        assert failed["error_type"] == "RetriesExhausted"
        assert failed["log_level"] == "warning"
