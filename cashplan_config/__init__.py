"""
cashplan_config -- single public entrypoint for planner and plan configuration.

Responsibility:
    Provides the way to obtain configuration: ``load_planner_config()`` for
    the goal allocation planner and ``load_plan()`` for a payoff plan
    document. The core packages never read configuration files or
    environment variables; callers load once here and pass the frozen
    result down.

Architecture position:
    Configuration -- YAML-driven, parsed at the edge. This package sits
    above ``cashplan_kernel`` and ``cashplan_engines`` and below
    ``cashplan_services``. The kernel and engines MUST NEVER import from
    ``cashplan_config``.

Failure modes:
    - ``FileNotFoundError`` -- an explicit path does not exist.
    - ``ConfigurationError`` subclasses -- invalid values (see loader).

Audit relevance:
    Every successful load emits a ``CASHPLAN_CONFIG_TRACE`` log entry with
    the source path and checksum, tying a planner run or simulation to the
    exact configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from cashplan_config.loader import (
    compute_checksum,
    load_yaml_file,
    parse_plan_document,
    parse_planner_config,
)
from cashplan_config.schema import PlanDocument, PlannerConfig
from cashplan_kernel.logging_config import get_logger

_logger = get_logger("config")

SAMPLES_DIR = Path(__file__).parent / "samples"


def load_planner_config(path: Path | str | None = None) -> PlannerConfig:
    """
    Load the planner configuration.

    With no path, returns the defaults (buffer 200.00, lookahead 45 days,
    max contribution 500.00 per run, cooldown 12 hours, enabled, shock
    mode "suggest").
    """
    if path is None:
        return PlannerConfig()

    data = load_yaml_file(Path(path))
    config = parse_planner_config(data)
    _logger.info(
        "CASHPLAN_CONFIG_TRACE",
        extra={
            "trace_type": "CASHPLAN_CONFIG_TRACE",
            "kind": "planner",
            "source": str(path),
            "checksum": compute_checksum(data),
        },
    )
    return config


def load_plan(path: Path | str) -> PlanDocument:
    """Load a plan document YAML file."""
    data = load_yaml_file(Path(path))
    plan = parse_plan_document(data)
    _logger.info(
        "CASHPLAN_CONFIG_TRACE",
        extra={
            "trace_type": "CASHPLAN_CONFIG_TRACE",
            "kind": "plan",
            "plan_id": plan.plan_id,
            "source": str(path),
            "checksum": compute_checksum(data),
        },
    )
    return plan


__all__ = [
    "PlanDocument",
    "PlannerConfig",
    "SAMPLES_DIR",
    "load_plan",
    "load_planner_config",
]
