"""
Logging tests

Module under test: memorylayer.log
"""

import io
import logging

from memorylayer.log import (
    ContextFilter,
    MemoryLayerHandler,
    bind_log_context,
    clear_log_context,
    get_log_context,
    setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("memorylayer.test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_bind_restores_previous_context(self):
        clear_log_context()

        with bind_log_context(session_id="s-1"):
            with bind_log_context(operation="assemble"):
                assert get_log_context() == {"session_id": "s-1", "operation": "assemble"}
            assert get_log_context() == {"session_id": "s-1"}

        assert get_log_context() == {}

    def test_unknown_fields_dropped(self):
        clear_log_context()

        with bind_log_context(session_id="s-1", user="alice"):
            assert get_log_context() == {"session_id": "s-1"}


class TestContextFilter:
    def test_fills_fields_from_context(self):
        clear_log_context()
        record = _record()

        with bind_log_context(session_id="s-9"):
            ContextFilter().filter(record)

        assert record.session_id == "s-9"
        assert record.operation is None
        assert record.event == "log"
        assert record.error_type is None

    def test_explicit_fields_kept(self):
        record = _record(event="compaction.done", session_id="explicit")

        with bind_log_context(session_id="bound"):
            ContextFilter().filter(record)

        assert record.event == "compaction.done"
        assert record.session_id == "explicit"


class TestSetupLogging:
    def test_single_handler(self):
        logger = setup_logging("DEBUG")
        setup_logging("WARNING")

        handlers = [h for h in logger.handlers if isinstance(h, MemoryLayerHandler)]
        assert len(handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_formatted_line_carries_context(self):
        stream = io.StringIO()
        setup_logging("INFO", stream=stream)

        with bind_log_context(session_id="s-7", operation="assemble"):
            logging.getLogger("memorylayer.test").info("done", extra={"event": "assemble.done"})

        line = stream.getvalue()
        assert "event=assemble.done" in line
        assert "session_id=s-7" in line
        assert "operation=assemble" in line
        assert line.rstrip().endswith("- done")
