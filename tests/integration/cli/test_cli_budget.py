from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

PACKAGE_ROOT = Path(__file__).resolve().parents[3]


@pytest.fixture()
def snapshot_file(tmp_path: Path, snapshot_dict) -> Path:
    path = tmp_path / "budget.json"
    path.write_text(json.dumps(snapshot_dict), encoding="utf-8")
    return path


def run_cli(args: list[str], **extra_env: str) -> subprocess.CompletedProcess[str]:
    """Run the CLI module in a subprocess against the source tree."""
    env = {**os.environ, "PYTHONPATH": str(PACKAGE_ROOT / "src"), "LOGGING_ENABLED": "false", **extra_env}
    cmd = [sys.executable, "-m", "py_budgeteer.presentation.cli.main"] + args
    return subprocess.run(cmd, capture_output=True, text=True, cwd=str(PACKAGE_ROOT), env=env)


def test_totals_json(snapshot_file: Path):
    proc = run_cli(["totals", str(snapshot_file), "--json"])
    assert proc.returncode == 0, proc.stderr
    data = json.loads(proc.stdout)
    totals = data["totals"]
    assert totals["currency"] == "EUR"
    assert totals["base_cost"] == "7500.00"
    assert totals["charges_by_type"] == {"techs": "2600.00"}
    assert totals["grand_total"] == "12625.00"
    assert data["diagnostics"] == []


def test_totals_human(snapshot_file: Path):
    proc = run_cli(["totals", str(snapshot_file)])
    assert proc.returncode == 0, proc.stderr
    out = proc.stdout.splitlines()
    assert out[0] == "Currency: EUR"
    assert "  Production: 6250.00 + charges 2600.00" in out
    assert "Base cost: 7500.00" in out
    assert "  techs: 2600.00" in out
    assert out[-1] == "Grand total: 12625.00"


def test_totals_with_margins_on_charges(snapshot_file: Path):
    proc = run_cli(["totals", str(snapshot_file), "--json"], PYBUDGET__APPLY_SOCIAL_CHARGES_MARGINS="true")
    assert proc.returncode == 0, proc.stderr
    assert json.loads(proc.stdout)["line_totals"]["dop"] == "8250.00"


def test_base_with_breakdown(snapshot_file: Path):
    proc = run_cli(["base", str(snapshot_file), "prod", "dop"])
    assert proc.returncode == 0, proc.stderr
    out = proc.stdout.splitlines()
    assert out[0] == "Base (EUR): 6250.00"
    assert out[1] == "- Production (prod): 6250.00"
    assert "  - DoP (dop): 4000.00" in out


def test_base_with_charges_json(snapshot_file: Path):
    proc = run_cli(["base", str(snapshot_file), "prod", "--with-charges", "--json"])
    assert proc.returncode == 0, proc.stderr
    data = json.loads(proc.stdout)
    assert data["total"] == "8850.00"
    assert data["selection"] == ["prod"]


def test_distribute(snapshot_file: Path):
    proc = run_cli(["distribute", str(snapshot_file)])
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.splitlines() == ["Currency: EUR", "Shooting: 4000.00"]


def test_currency_option_converts(snapshot_file: Path):
    proc = run_cli(["base", str(snapshot_file), "prod", "--currency", "usd", "--json"])
    assert proc.returncode == 0, proc.stderr
    data = json.loads(proc.stdout)
    assert data["currency"] == "USD"
    # lines carry no currency of their own
    assert data["total"] == "6250.00"


def test_solve_margin():
    proc = run_cli(["solve-margin", "8850", "11062.5"])
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip() == "agency_percent=0 margin_percent=25.00"


def test_overtime_json():
    proc = run_cli(["overtime", "400", "--normal", "2", "--x2", "1", "--json"])
    assert proc.returncode == 0, proc.stderr
    data = json.loads(proc.stdout)
    assert data["rates"]["normal"] == "50.00"
    assert data["amount"] == "200.00"


def test_invalid_target_exit_code():
    proc = run_cli(["solve-margin", "100", "90"])
    assert proc.returncode == 2
    assert "[ERROR]" in proc.stderr


def test_debug_logs_stay_off_stdout(snapshot_file: Path):
    proc = run_cli(["totals", str(snapshot_file), "--json"], LOGGING_ENABLED="true", LOG_LEVEL="DEBUG", JSON_LOGS="true")
    assert proc.returncode == 0, proc.stderr
    assert json.loads(proc.stdout)["totals"]["base_cost"] == "7500.00"
    events = [json.loads(line)["event"] for line in proc.stderr.splitlines() if line.startswith("{")]
    assert "valuation.totals" in events
