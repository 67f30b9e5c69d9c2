"""Utility modules for the cashplan kernel."""

from cashplan_kernel.utils.hashing import canonicalize_json, hash_payload
from cashplan_kernel.utils.idempotency import (
    build_planner_run_id,
    parse_planner_run_id,
)

__all__ = [
    "canonicalize_json",
    "hash_payload",
    "build_planner_run_id",
    "parse_planner_run_id",
]
