"""
cashplan_engines.tracer -- ``@traced_engine`` decorator.

Every successful call of a traced engine entry point logs one
CASHPLAN_ENGINE_TRACE record with the engine's name and version, a
fingerprint of the selected inputs and the elapsed time. Arguments and
results pass through untouched; a call that raises logs nothing.

    @traced_engine("payoff", "1.0", fingerprint_fields=("payoff_input",))
    def simulate(payoff_input):
        ...

Fingerprint fields are bound against the wrapped signature, so positional
and keyword calls fingerprint alike. An absent field hashes as ``null``.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from typing import Any

from cashplan_kernel.logging_config import get_logger
from cashplan_kernel.utils.hashing import canonicalize_json

_logger = get_logger("engines.tracer")

TRACE_RECORD = "CASHPLAN_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over ``field=<canonical json>`` pairs, in field order."""
    material = "|".join(
        f"{name}={canonicalize_json(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorate(engine: Callable) -> Callable:
        signature = inspect.signature(engine)

        @functools.wraps(engine)
        def traced(*args: Any, **kwargs: Any) -> Any:
            fingerprint = (
                compute_input_fingerprint(
                    fingerprint_fields, signature.bind_partial(*args, **kwargs).arguments
                )
                if fingerprint_fields
                else ""
            )
            started = time.perf_counter()
            result = engine(*args, **kwargs)
            _logger.info(
                TRACE_RECORD,
                extra={
                    "trace_type": TRACE_RECORD,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fingerprint,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "function": engine.__qualname__,
                },
            )
            return result

        return traced

    return decorate
