"""Structured logging: JSON records, LogContext, configure_logging and the engine tracer."""

import json
import logging
from datetime import date
from io import StringIO
from uuid import uuid4

import pytest

from cashplan_engines.tracer import TRACE_RECORD, compute_input_fingerprint, traced_engine
from cashplan_kernel.exceptions import InvalidHorizonError
from cashplan_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)

RUN_ID = "planner:u1:weekly:2025-01-01"


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def log_lines():
    """Configure logging into a buffer; call the fixture value to read records."""
    stream = StringIO()

    def _configure(level: int = logging.INFO) -> None:
        configure_logging(stream=stream, level=level)

    def _records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    _records.configure = _configure
    return _records


class TestStructuredFormatter:
    def test_core_keys(self, log_lines):
        log_lines.configure()
        get_logger("services.goal_planner").info("planner_run_started")

        (record,) = log_lines()
        assert record["level"] == "INFO"
        assert record["message"] == "planner_run_started"
        assert record["logger"] == "cashplan.services.goal_planner"
        assert record["ts"].endswith("+00:00")

    def test_extra_values_serialized(self, log_lines):
        log_lines.configure()
        goal_id = uuid4()
        get_logger("t").info(
            "goal_allocated",
            extra={
                "goal_id": goal_id,
                "amount_cents": 5000,
                "period_start": date(2025, 1, 1),
            },
        )

        (record,) = log_lines()
        assert record["goal_id"] == str(goal_id)
        assert record["amount_cents"] == 5000
        assert record["period_start"] == "2025-01-01"

    def test_bound_context_stamped(self, log_lines):
        log_lines.configure()
        with LogContext.bind(user_id="u1", run_id=RUN_ID):
            get_logger("t").info("inside")
        get_logger("t").info("outside")

        inside, outside = log_lines()
        assert (inside["user_id"], inside["run_id"]) == ("u1", RUN_ID)
        assert "user_id" not in outside
        assert "run_id" not in outside

    def test_plain_exception(self, log_lines):
        log_lines.configure()
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("t").exception("failed")

        (record,) = log_lines()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_domain_exception_flattened(self, log_lines):
        log_lines.configure()
        try:
            raise InvalidHorizonError(-2)
        except InvalidHorizonError:
            get_logger("t").exception("horizon_rejected")

        (record,) = log_lines()
        assert record["exc_code"] == "INVALID_HORIZON"
        assert record["exc_horizon"] == -2
        assert record["exc_unit"] == "months"

    def test_formatter_usable_standalone(self):
        record = logging.LogRecord("cashplan.x", logging.WARNING, __file__, 1, "m %s", ("a",), None)
        payload = json.loads(StructuredFormatter().format(record))
        assert payload["message"] == "m a"
        assert payload["level"] == "WARNING"


class TestLogContext:
    def test_set_skips_none(self):
        LogContext.set(user_id="u1", plan_id="p")
        LogContext.set(user_id=None, run_id=RUN_ID)
        assert LogContext.get_all() == {"user_id": "u1", "plan_id": "p", "run_id": RUN_ID}

    def test_clear(self):
        LogContext.set(correlation_id="c")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_each_level(self):
        LogContext.set(user_id="outer")
        with LogContext.bind(user_id="inner", run_id=RUN_ID):
            with LogContext.bind(run_id="planner:u1:paycheck:2025-01-10"):
                assert LogContext.get_all()["run_id"].endswith("2025-01-10")
            assert LogContext.get_all() == {"user_id": "inner", "run_id": RUN_ID}
        assert LogContext.get_all() == {"user_id": "outer"}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(user_id="u1", colour="blue"):
            assert LogContext.get_all() == {"user_id": "u1"}


class TestConfigureLogging:
    def test_second_call_is_noop(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("cashplan").handlers) == 1

    def test_level_filters(self, log_lines):
        log_lines.configure(level=logging.INFO)
        logger = get_logger("engines.payoff")
        logger.debug("dropped")
        logger.warning("kept")
        assert [r["message"] for r in log_lines()] == ["kept"]

    def test_reset_detaches_handler(self):
        configure_logging(stream=StringIO())
        reset_logging()
        root = logging.getLogger("cashplan")
        assert root.handlers == []
        assert root.propagate is True


@traced_engine("doubler", "2.1", fingerprint_fields=("value",))
def _double(value: int, label: str = "") -> int:
    return value * 2


@traced_engine("failing", "1.0")
def _fail() -> None:
    raise RuntimeError("engine exploded")


class TestTracer:
    def test_trace_record(self, log_lines):
        log_lines.configure()

        assert _double(21) == 42

        (record,) = log_lines()
        assert record["message"] == TRACE_RECORD
        assert record["engine_name"] == "doubler"
        assert record["engine_version"] == "2.1"
        assert record["input_fingerprint"] == compute_input_fingerprint(("value",), {"value": 21})
        assert record["duration_ms"] >= 0

    def test_fingerprint_binds_positional_and_keyword(self, log_lines):
        log_lines.configure()

        _double(3, label="a")
        _double(value=3, label="b")

        first, second = log_lines()
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_fingerprint_depends_on_value(self):
        one = compute_input_fingerprint(("x",), {"x": 1})
        assert one != compute_input_fingerprint(("x",), {"x": 2})
        assert len(one) == 16

    def test_failure_emits_no_trace(self, log_lines):
        log_lines.configure()
        with pytest.raises(RuntimeError):
            _fail()
        assert log_lines() == []
