#!/usr/bin/env python3
"""Command-line interface for charge-recon."""

import argparse
import logging
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

from charge_recon.config import (
    create_default_config,
    get_config_path,
    get_known_descriptions,
    get_patterns_dir,
    get_reconcile_options,
    load_config,
    save_json_config,
)
from charge_recon.loader import LineItemLoader, write_cycles_csv, write_lines_csv
from charge_recon.models import PATTERN_CONTAINS, PATTERN_REGEX
from charge_recon.patterns import (
    LocalDirectory,
    add_pattern_rule,
    detect_unmatched_credit_charges,
    load_pattern_rules,
)
from charge_recon.reconciler import ChargeReconciler
from charge_recon.summary import compute_totals, format_money


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except ArithmeticError as err:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from err


def collect_files(inputs: list[str]) -> list[Path]:
    """Expand input arguments into table files, warning about missing paths."""
    files: list[Path] = []
    for inp in inputs:
        path = Path(inp)
        if path.is_dir():
            for ext in (".csv", ".xls"):
                files.extend(sorted(path.glob(f"*{ext}")))
                files.extend(sorted(path.glob(f"*{ext.upper()}")))
        elif path.exists():
            files.append(path)
        else:
            print(f"Warning: {inp} not found", file=sys.stderr)
    return files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Link bank payoff lines to the credit card cycles they settle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  charge-recon bank.csv cards.csv -o reconciled.csv
  charge-recon ~/statements/ --patterns-dir ~/statements --cycles-output cycles.csv
  charge-recon --patterns-dir ~/statements --add-pattern "CARD CO"
  charge-recon --patterns-dir ~/statements --add-pattern "^VISA \\d{4}" --regex
  charge-recon --init-config

Input tables need the columns:
  id, source (bank/card), date, charge_date, amount, direction
  (expense/income), description, card_last4
        """,
    )

    parser.add_argument("inputs", nargs="*", help="Line-item tables or directories")
    parser.add_argument(
        "-o",
        "--output",
        default="reconciled.csv",
        help="Output CSV for reconciled lines (default: reconciled.csv)",
    )
    parser.add_argument("--cycles-output", type=Path, help="Also write cycle summaries here")
    parser.add_argument(
        "--format",
        choices=["csv", "tsv"],
        default="csv",
        help="Output format (default: csv)",
    )
    parser.add_argument("--config", type=Path, help="Path to config.json file")
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Write a default config.json (to --config or the XDG location) and exit",
    )
    parser.add_argument(
        "--patterns-dir",
        type=Path,
        help="Directory holding credit_charge_patterns.json",
    )

    # Matching options
    parser.add_argument("--days-before", type=int, help="Days before charge date (default 1)")
    parser.add_argument("--days-after", type=int, help="Days after charge date (default 6)")
    parser.add_argument("--tolerance-ratio", type=decimal_arg, help="Amount tolerance ratio (default 0.01)")
    parser.add_argument("--min-tolerance", type=decimal_arg, help="Minimum amount tolerance (default 2)")

    # Pattern management
    parser.add_argument("--add-pattern", metavar="VALUE", help="Add a payoff description pattern")
    parser.add_argument("--regex", action="store_true", help="Treat --add-pattern as a regex")
    parser.add_argument("--list-patterns", action="store_true", help="List pattern rules")

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def init_config(config_path: Path | None) -> int:
    """Write the default config, refusing to overwrite an existing file."""
    target = config_path or get_config_path()
    if target.exists():
        print(f"Error: {target} already exists", file=sys.stderr)
        return 1
    try:
        saved = save_json_config(create_default_config(), target)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Wrote default config to {saved}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.init_config:
        return init_config(args.config)

    try:
        config: dict[str, Any] | None = load_config(args.config)
        options = get_reconcile_options(
            config,
            {
                "days_before_charge": args.days_before,
                "days_after_charge": args.days_after,
                "tolerance_ratio": args.tolerance_ratio,
                "min_tolerance_amount": args.min_tolerance,
            },
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    patterns_dir = get_patterns_dir(config, args.patterns_dir)
    directory = LocalDirectory(patterns_dir) if patterns_dir else None

    if args.add_pattern or args.list_patterns:
        if directory is None:
            print("Error: --patterns-dir (or patterns_dir in config) is required",
                  file=sys.stderr)
            return 1
        if args.add_pattern:
            kind = PATTERN_REGEX if args.regex else PATTERN_CONTAINS
            try:
                add_pattern_rule(directory, args.add_pattern, kind)
            except (OSError, ValueError) as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            print(f"Added {kind} pattern: {args.add_pattern}", file=sys.stderr)
        if args.list_patterns:
            rules = load_pattern_rules(directory)
            print("Pattern rules:")
            for rule in rules:
                state = "" if rule.active else " (inactive)"
                print(f"  - [{rule.kind}] {rule.value}{state}")
            if not rules:
                print("  (none)")
        return 0

    if not args.inputs:
        parser.print_help()
        return 1

    files = collect_files(args.inputs)
    if not files:
        print("Error: No valid input files found", file=sys.stderr)
        return 1

    loader = LineItemLoader()
    lines = loader.load_files(files)
    for location, error in loader.errors:
        print(f"Warning: {location}: {error}", file=sys.stderr)

    result = ChargeReconciler(directory, options).reconcile(lines)

    payoffs = result.payoff_lines
    combined = [line for line in payoffs if line.matched_combo_size]
    per_card = [c for c in result.cycles if c.is_matchable]
    totals = compute_totals(result.lines)

    print(f"Loaded {len(lines)} lines from {len(files)} files", file=sys.stderr)
    print(f"Card cycles: {len(per_card)} ({len(result.unmatched_cycles)} unmatched)",
          file=sys.stderr)
    print(f"Payoff lines: {len(payoffs)} ({len(combined)} combined)", file=sys.stderr)
    print(f"Expenses: {format_money(totals.expenses)}  Income: {format_money(totals.income)}",
          file=sys.stderr)

    missing = detect_unmatched_credit_charges(result.lines, get_known_descriptions(config))
    if missing:
        print(f"\nWarning: {len(missing)} card payoffs without card detail:", file=sys.stderr)
        for charge in missing:
            print(f"  {charge.date}  {format_money(charge.amount):>10}  {charge.description[:40]}",
                  file=sys.stderr)

    delimiter = "\t" if args.format == "tsv" else ","
    output_path = Path(args.output)
    write_lines_csv(result.lines, output_path, delimiter)
    print(f"Wrote {len(result.lines)} lines to {output_path}", file=sys.stderr)

    if args.cycles_output:
        write_cycles_csv(result.cycles, args.cycles_output, delimiter)
        print(f"Wrote {len(result.cycles)} cycles to {args.cycles_output}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
