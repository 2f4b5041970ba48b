"""Command line interface for py_budgeteer.

Commands read a JSON budget snapshot (see ``py_budgeteer.sdk.snapshot``),
run the Engine and print human-readable lines, or JSON with ``--json``.
Amounts are rounded to the money scale for display; the solved margin keeps
full precision. Diagnostics go to stderr as ``[WARN]`` lines, structured logs
go to stderr through structlog.

Exit codes (see ``cli``): 0 success, 2 invalid input or domain error, 1 unexpected.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from typer import Argument, Option, Typer

from py_budgeteer import __version__ as _PKG_VERSION
from py_budgeteer.domain.errors import DomainError, ValidationError
from py_budgeteer.infrastructure.logging.config import configure_logging
from py_budgeteer.sdk.engine import Engine
from py_budgeteer.sdk.json import to_json
from py_budgeteer.sdk.snapshot import load_budget, load_rate_table, read_snapshot_file

from .formatters import breakdown_lines, decimal_from_str, human_decimal, print_diagnostics

_app_help = "Production budget valuation: totals, percentage bases, bucket distribution, margin solving."

app: Typer = Typer(help=_app_help, add_completion=False, pretty_exceptions_enable=False)

_FILE_ARG = Argument(..., exists=True, dir_okay=False, readable=True, help="Budget snapshot (JSON).")
_CURRENCY_OPT = Option(None, "--currency", "-c", help="Display currency; defaults to the snapshot's, then DEFAULT_CURRENCY.")
_RATES_OPT = Option(None, "--rates", exists=True, dir_okay=False, help="JSON rate table overriding the snapshot's 'rates'.")
_JSON_OPT = Option(False, "--json", help="Output JSON instead of human-readable lines.")


@app.callback()
def _setup() -> None:
    # stdout carries command output only
    configure_logging(sys.stderr)


def _load(path: Path, currency: str | None, rates_file: Path | None) -> tuple[Any, str | None, Any]:
    data = read_snapshot_file(path)
    budget = load_budget(data)
    raw_rates = read_snapshot_file(rates_file) if rates_file is not None else data.get("rates")
    return budget, currency or data.get("currency"), load_rate_table(raw_rates)


@app.command("version")
def version_cmd() -> None:
    """Print package version."""
    print(_PKG_VERSION)


@app.command("totals")
def totals_cmd(
    file: Path = _FILE_ARG,
    currency: str | None = _CURRENCY_OPT,
    rates_file: Path | None = _RATES_OPT,
    alternate: bool = Option(False, "--alternate", help="Value lines at their alternate (actual-cost) rate."),
    json_output: bool = _JSON_OPT,
) -> None:
    """Budget totals: base cost, social charges, agency, margin, grand total."""
    budget, target, rates = _load(file, currency, rates_file)
    result = Engine().totals(budget, target, rates, use_alternate_rate=alternate)
    if json_output:
        print(to_json(result, quantize_money=True))
        return
    t = result.totals
    lines = [f"Currency: {t.currency}"]
    for cat in t.categories:
        lines.append(f"  {cat.name or cat.category_id}: {human_decimal(cat.base_cost)} + charges {human_decimal(cat.social_charges)}")
    lines.append(f"Base cost: {human_decimal(t.base_cost)}")
    lines.append(f"Social charges: {human_decimal(t.total_social_charges)}")
    for type_id, amount in sorted(t.charges_by_type.items()):
        lines.append(f"  {type_id}: {human_decimal(amount)}")
    lines.append(f"Total cost: {human_decimal(t.total_cost)}")
    lines.append(f"Agency ({human_decimal(t.agency_percent)}%): {human_decimal(t.agency)}")
    lines.append(f"Margin ({human_decimal(t.margin_percent)}%): {human_decimal(t.margin)}")
    lines.append(f"Grand total: {human_decimal(t.grand_total)}")
    print("\n".join(lines))
    print_diagnostics(result.diagnostics)


@app.command("base")
def base_cmd(
    file: Path = _FILE_ARG,
    ids: list[str] = Argument(..., help="Selected category/sub-category/post ids."),
    with_charges: bool = Option(False, "--with-charges", help="Include social charges of every counted line."),
    currency: str | None = _CURRENCY_OPT,
    rates_file: Path | None = _RATES_OPT,
    json_output: bool = _JSON_OPT,
) -> None:
    """Deduplicated value of a selection, with its breakdown."""
    budget, target, rates = _load(file, currency, rates_file)
    result = Engine().percentage_base(budget, ids, target, rates, include_social_charges=with_charges)
    if json_output:
        print(to_json(result, quantize_money=True))
        return
    print(f"Base ({result.currency}): {human_decimal(result.total)}")
    for line in breakdown_lines(result.breakdown):
        print(line)
    print_diagnostics(result.diagnostics)


@app.command("distribute")
def distribute_cmd(
    file: Path = _FILE_ARG,
    currency: str | None = _CURRENCY_OPT,
    rates_file: Path | None = _RATES_OPT,
    json_output: bool = _JSON_OPT,
) -> None:
    """Amounts attributed to each expense bucket."""
    budget, target, rates = _load(file, currency, rates_file)
    result = Engine().distribution(budget, target, rates)
    if json_output:
        print(to_json(result, quantize_money=True))
        return
    names = {b.id: b.name for b in budget.buckets}
    print(f"Currency: {result.currency}")
    for bucket_id, amount in result.report.totals.items():
        label = names.get(bucket_id) or bucket_id
        print(f"{label}: {human_decimal(amount)}")
    print_diagnostics(result.diagnostics)


@app.command("solve-margin")
def solve_margin_cmd(
    base: str = Argument(..., help="Base cost."),
    target: str = Argument(..., help="Target grand total; must exceed the base cost."),
    json_output: bool = _JSON_OPT,
) -> None:
    """Margin percentage (agency 0) turning BASE into TARGET."""
    result = Engine().solve_margin(decimal_from_str(base), decimal_from_str(target))
    if json_output:
        print(to_json(result))
        return
    print(f"agency_percent={result.agency_percent} margin_percent={result.margin_percent}")


@app.command("overtime")
def overtime_cmd(
    daily_rate: str = Argument(..., help="Daily rate."),
    normal_hours: str = Option("0", "--normal", help="Hours paid at the plain hourly rate."),
    x1_5_hours: str = Option("0", "--x1-5", help="Hours paid at +50%."),
    x2_hours: str = Option("0", "--x2", help="Hours paid at +100%."),
    json_output: bool = _JSON_OPT,
) -> None:
    """Overtime amount for a daily rate (hourly rate = daily rate / OVERTIME_BASE_HOURS)."""
    result = Engine().overtime(
        decimal_from_str(daily_rate),
        decimal_from_str(normal_hours),
        decimal_from_str(x1_5_hours),
        decimal_from_str(x2_hours),
    )
    if json_output:
        print(to_json(result, quantize_money=True))
        return
    r = result.rates
    print(f"hourly={human_decimal(r.normal)} x1.5={human_decimal(r.x1_5)} x2={human_decimal(r.x2)}")
    print(f"overtime={human_decimal(result.amount)}")


def cli(argv: list[str] | None = None) -> int:
    """Run Typer application with top-level error handling.

    ValidationError, DomainError and ValueError print ``[ERROR] ...`` to stderr
    and return 2; unexpected exceptions return 1. SystemExit passes its code
    through. Accepts optional argv for programmatic testing.
    """
    try:
        app(args=argv if argv is not None else sys.argv[1:], prog_name="py-budgeteer")
        return 0
    except ValidationError as ve:
        print(f"[ERROR] {ve}", file=sys.stderr)
        return 2
    except DomainError as de:
        print(f"[ERROR] {de}", file=sys.stderr)
        return 2
    except ValueError as ve:
        print(f"[ERROR] {ve}", file=sys.stderr)
        return 2
    except SystemExit as se:
        return int(se.code) if isinstance(se.code, int) else 0
    except Exception as exc:
        print(f"[ERROR] unexpected: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(cli())


if __name__ == "__main__":  # pragma: no cover
    run()
