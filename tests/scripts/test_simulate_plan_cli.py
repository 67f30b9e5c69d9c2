"""
End-to-end tests for scripts/simulate_plan.py, run as a subprocess.
"""

import json
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
SCRIPT = ROOT / "scripts" / "simulate_plan.py"
SAMPLE_PLAN = ROOT / "cashplan_config" / "samples" / "household_plan.yaml"


def _run(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, str(SCRIPT), *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
        timeout=120,
    )


class TestSimulatePlanCli:
    def test_sample_plan_summary(self):
        proc = _run(str(SAMPLE_PLAN), "--horizon", "3")

        assert proc.returncode == 0, proc.stderr
        payload = json.loads(proc.stdout)
        assert payload["summary"]["months"] == 3
        assert set(payload["ending_balances"]["debts"]) == {"visa", "store-card", "car-loan"}
        assert "schedule" not in payload

    def test_schedule_flag(self):
        proc = _run(str(SAMPLE_PLAN), "--horizon", "1", "--schedule", "--strategy", "snowball")

        assert proc.returncode == 0, proc.stderr
        schedule = json.loads(proc.stdout)["schedule"]
        assert schedule[0]["date"] == "2025-01-01"

    def test_unknown_strategy(self):
        proc = _run(str(SAMPLE_PLAN), "--strategy", "yolo")
        assert proc.returncode == 1
        assert "INVALID_STRATEGY" in proc.stderr

    def test_missing_file(self, tmp_path):
        proc = _run(str(tmp_path / "nope.yaml"))
        assert proc.returncode == 2
