#!/usr/bin/env python3
"""
Run the payoff simulation for a YAML plan document and print the result.

Usage:
    python3 scripts/simulate_plan.py <plan.yaml>
    python3 scripts/simulate_plan.py <plan.yaml> --strategy snowball
    python3 scripts/simulate_plan.py <plan.yaml> --schedule

Examples:
    # Summary and warnings for the bundled sample plan
    python3 scripts/simulate_plan.py cashplan_config/samples/household_plan.yaml

    # Compare strategies over a shorter horizon
    python3 scripts/simulate_plan.py plan.yaml --strategy hybrid --horizon 12

    # Include every schedule item
    python3 scripts/simulate_plan.py plan.yaml --schedule
"""

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from cashplan_config import load_plan  # noqa: E402
from cashplan_engines.payoff_types import PayoffResult, Strategy  # noqa: E402
from cashplan_kernel.exceptions import CashplanError  # noqa: E402
from cashplan_kernel.logging_config import configure_logging  # noqa: E402
from cashplan_services.plan_builder import preview_plan  # noqa: E402


def result_to_dict(result: PayoffResult, include_schedule: bool) -> dict:
    payload = {
        "summary": dataclasses.asdict(result.summary),
        "ending_balances": {
            "cash_cents": result.ending_balances.cash_cents,
            "debts": dict(result.ending_balances.debts),
            "savings": dict(result.ending_balances.savings),
        },
        "warnings": list(result.warnings),
    }
    if include_schedule:
        payload["schedule"] = [
            {
                "date": item.date,
                "type": item.type.value,
                "entity_id": item.entity_id,
                "amount_cents": item.amount_cents,
                "notes": item.notes,
                "cash_cents": item.balance_snapshot.cash_cents,
            }
            for item in result.schedule
        ]
    return payload


def main() -> int:
    parser = argparse.ArgumentParser(description="Simulate a household payoff plan")
    parser.add_argument("plan", type=Path, help="Plan document YAML file")
    parser.add_argument("--strategy", help="Override the plan's strategy")
    parser.add_argument("--horizon", type=int, help="Override horizon in months")
    parser.add_argument("--schedule", action="store_true", help="Include schedule items")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine events")
    args = parser.parse_args()

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
    )

    try:
        plan = load_plan(args.plan)
        if args.strategy:
            plan = dataclasses.replace(plan, strategy=Strategy.parse(args.strategy))
        if args.horizon is not None:
            plan = dataclasses.replace(plan, horizon_months=args.horizon)
        result = preview_plan(plan)
    except FileNotFoundError:
        print(f"Plan file not found: {args.plan}", file=sys.stderr)
        return 2
    except CashplanError as exc:
        print(f"{exc.code}: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result_to_dict(result, args.schedule), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
