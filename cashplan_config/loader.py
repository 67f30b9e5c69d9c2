"""
Configuration Loader (``cashplan_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed ``cashplan_config.schema``
dataclass instances: the planner configuration and whole plan documents.

Architecture position
---------------------
**Config layer** -- infrastructure tooling. Callers build a config once and
hand it to the planner or plan builder; nothing below this layer reads
files or environment variables.

Amounts
-------
Every currency field may be given either as integer cents under a
``*_cents`` key or as decimal dollars under the bare key (``amount: 12.50``).
Dollars are converted with round-half-up. When both are present the cents
key wins.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py`` or the
  kernel/engine domain.
* ``compute_checksum`` produces a deterministic SHA-256 hash for plan
  identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid date  -> ``InvalidDateError``.
* Invalid amount  -> ``InvalidAmountError``.
* Unknown strategy  -> ``InvalidStrategyError``.
* Unknown frequency or bad anchor  -> ``InvalidRecurrenceError``.
* Out-of-range planner setting  -> ``InvalidPlannerConfigError``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from cashplan_config.schema import PlanDocument, PlannerConfig
from cashplan_engines.payoff_types import (
    DebtAccount,
    HybridWeights,
    PlanRules,
    SavingsGoal,
    SavingsRuleType,
    Strategy,
    TargetPayoffRule,
)
from cashplan_kernel.domain.dtos import EventKind, Frequency, RecurringDefinition
from cashplan_kernel.domain.goals import PlannerCadence, ShockMode
from cashplan_kernel.domain.money import require_cents, to_cents
from cashplan_kernel.exceptions import (
    ConfigurationError,
    InvalidAmountError,
    InvalidDateError,
    InvalidPlannerConfigError,
    InvalidRecurrenceError,
)
from cashplan_kernel.utils.hashing import hash_payload


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any, field: str = "date") -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        InvalidDateError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidDateError(field, value) from exc
    raise InvalidDateError(field, value)


def _optional_date(data: dict[str, Any], key: str, owner: str) -> date | None:
    value = data.get(key)
    if value is None:
        return None
    return parse_date(value, f"{owner}.{key}")


def parse_cents(
    data: dict[str, Any],
    key: str,
    owner: str = "",
    *,
    default: int | None = None,
) -> int:
    """
    Read ``<key>_cents`` (integer cents) or ``<key>`` (decimal dollars).

    Raises:
        KeyError: if neither key is present and no default is given.
        InvalidAmountError: if the value is negative or not a number.
    """
    label = f"{owner}.{key}" if owner else key
    cents_key = f"{key}_cents"
    if data.get(cents_key) is not None:
        return require_cents(f"{label}_cents", data[cents_key])
    if data.get(key) is not None:
        raw = data[key]
        if isinstance(raw, bool):
            raise InvalidAmountError(label, raw, "not a number")
        return require_cents(label, to_cents(raw))
    if default is not None:
        return default
    raise KeyError(cents_key)


# ---------------------------------------------------------------------------
# Planner configuration
# ---------------------------------------------------------------------------


def _enum_value(enum_cls: type, field: str, value: Any) -> Any:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidPlannerConfigError(
            field, value, f"expected one of {', '.join(m.value for m in enum_cls)}"
        ) from exc


def parse_planner_config(data: dict[str, Any]) -> PlannerConfig:
    """
    Parse a ``PlannerConfig`` from a dict.

    Accepts either the settings mapping itself or a document with a
    top-level ``planner`` key. Absent keys keep their defaults.
    """
    if "planner" in data and isinstance(data["planner"], dict):
        data = data["planner"]

    kwargs: dict[str, Any] = {}
    for key in ("buffer", "max_contribution"):
        if data.get(key) is not None or data.get(f"{key}_cents") is not None:
            try:
                kwargs[f"{key}_cents"] = parse_cents(data, key, "planner")
            except InvalidAmountError as exc:
                raise InvalidPlannerConfigError(
                    f"{key}_cents", exc.value, exc.reason
                ) from exc
    for key in ("lookahead_days", "cooldown_hours"):
        if data.get(key) is not None:
            kwargs[key] = data[key]
    if data.get("enabled") is not None:
        kwargs["enabled"] = bool(data["enabled"])
    if data.get("shock_mode") is not None:
        kwargs["shock_mode"] = _enum_value(ShockMode, "shock_mode", data["shock_mode"])
    if data.get("cadence") is not None:
        kwargs["default_cadence"] = _enum_value(
            PlannerCadence, "cadence", data["cadence"]
        )

    return PlannerConfig(**kwargs)


# ---------------------------------------------------------------------------
# Plan rules
# ---------------------------------------------------------------------------


def parse_hybrid_weights(data: dict[str, Any]) -> HybridWeights:
    """Parse hybrid weights; missing weights keep their defaults."""
    defaults = HybridWeights()
    return HybridWeights(
        apr_weight=Decimal(str(data.get("apr_weight", defaults.apr_weight))),
        balance_weight=Decimal(str(data.get("balance_weight", defaults.balance_weight))),
    )


def parse_plan_rules(data: dict[str, Any]) -> PlanRules:
    """Parse ``PlanRules`` from a dict. Every key is optional."""
    weights = data.get("hybrid_weights")
    targets = tuple(
        TargetPayoffRule(
            debt_id=str(t["debt_id"]),
            target_date=parse_date(t["target_date"], f"target_payoff.{t['debt_id']}"),
        )
        for t in data.get("target_payoff_dates", [])
    )
    if data.get("savings_floor_cents_per_month") is not None:
        floor = require_cents(
            "rules.savings_floor_cents_per_month", data["savings_floor_cents_per_month"]
        )
    else:
        floor = parse_cents(data, "savings_floor_per_month", "rules", default=0)

    return PlanRules(
        savings_floor_cents_per_month=floor,
        min_buffer_cents=parse_cents(data, "min_buffer", "rules", default=0),
        allow_cancel_subscriptions=bool(data.get("allow_cancel_subscriptions", False)),
        treat_nonessential_bills_skippable=bool(
            data.get("treat_nonessential_bills_skippable", False)
        ),
        debt_priority_order=tuple(str(d) for d in data.get("debt_priority_order", [])),
        hybrid_weights=parse_hybrid_weights(weights) if weights else None,
        target_payoff_dates=targets,
    )


# ---------------------------------------------------------------------------
# Plan document
# ---------------------------------------------------------------------------


def parse_recurring_definition(
    data: dict[str, Any],
    kind: EventKind,
) -> RecurringDefinition:
    """
    Parse one income stream, bill, subscription or debt minimum.

    Preconditions:
        - ``data`` has ``id``, ``frequency`` and an amount.
    """
    definition_id = str(data["id"])
    raw_frequency = str(data["frequency"]).strip().lower().replace("-", "_")
    try:
        frequency = Frequency(raw_frequency)
    except ValueError as exc:
        raise InvalidRecurrenceError(
            definition_id, f"unknown frequency {data['frequency']!r}"
        ) from exc
    return RecurringDefinition(
        id=definition_id,
        name=str(data.get("name", definition_id)),
        amount_cents=parse_cents(data, "amount", definition_id),
        frequency=frequency,
        kind=kind,
        essential=data.get("essential"),
        day_of_month=data.get("day_of_month"),
        day_of_week=data.get("day_of_week"),
        anchor_date=_optional_date(data, "anchor_date", definition_id),
    )


def parse_debt_account(data: dict[str, Any]) -> DebtAccount:
    debt_id = str(data["id"])
    return DebtAccount(
        id=debt_id,
        name=str(data.get("name", debt_id)),
        balance_cents=parse_cents(data, "balance", debt_id),
        apr_bps=data["apr_bps"],
        min_payment_cents=parse_cents(data, "min_payment", debt_id),
        due_day_of_month=data["due_day_of_month"],
    )


def _rule_type(goal_id: str, value: Any) -> SavingsRuleType:
    try:
        return SavingsRuleType(str(value).strip().upper())
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown savings rule type for {goal_id}: {value!r}"
        ) from exc


def parse_savings_goal(data: dict[str, Any]) -> SavingsGoal:
    """
    Parse an engine savings goal.

    ``rule_value`` is taken as-is: cents for the fixed rules, basis points
    for PERCENT_OF_INCOME.
    """
    goal_id = str(data["id"])
    return SavingsGoal(
        id=goal_id,
        name=str(data.get("name", goal_id)),
        target_cents=parse_cents(data, "target", goal_id),
        current_cents=parse_cents(data, "current", goal_id, default=0),
        rule_type=_rule_type(goal_id, data["rule_type"]),
        rule_value=data["rule_value"],
        priority=int(data.get("priority", 0)),
    )


def parse_plan_document(data: dict[str, Any]) -> PlanDocument:
    """
    Parse a whole ``PlanDocument`` from a dict.

    Preconditions:
        - ``data`` has ``start_date``, ``horizon_months`` and ``strategy``.
    """
    if "plan" in data and isinstance(data["plan"], dict):
        data = data["plan"]

    return PlanDocument(
        plan_id=str(data.get("id", "plan")),
        start_date=parse_date(data["start_date"], "start_date"),
        horizon_months=int(data["horizon_months"]),
        strategy=Strategy.parse(data["strategy"]),
        rules=parse_plan_rules(data.get("rules") or {}),
        incomes=tuple(
            parse_recurring_definition(d, EventKind.INCOME)
            for d in data.get("incomes", [])
        ),
        bills=tuple(
            parse_recurring_definition(d, EventKind.BILL) for d in data.get("bills", [])
        ),
        subscriptions=tuple(
            parse_recurring_definition(d, EventKind.SUBSCRIPTION)
            for d in data.get("subscriptions", [])
        ),
        debts=tuple(parse_debt_account(d) for d in data.get("debts", [])),
        savings_goals=tuple(
            parse_savings_goal(d) for d in data.get("savings_goals", [])
        ),
        starting_cash_cents=parse_cents(data, "starting_cash", "plan", default=0),
    )


def load_plan_document(path: Path) -> PlanDocument:
    """Load and parse a plan document YAML file."""
    return parse_plan_document(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums, whatever the key
    order.
    """
    return hash_payload(data)
