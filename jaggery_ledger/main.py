"""
Command-line entry point.

    python -m jaggery_ledger.main [--db PATH] init
    python -m jaggery_ledger.main [--db PATH] summary
    python -m jaggery_ledger.main [--db PATH] set-bag-kg 32.5
"""
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from .constants import APP_NAME
from .database import get_connection
from .database.errors import DomainError
from .database.repositories import get_ledger
from .utils.helpers import fmt_number
from .utils.loggers import get_logger

_log = get_logger("jaggery_ledger.main")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="jaggery_ledger", description=APP_NAME)
    p.add_argument("--db", default=None, help="SQLite database file (default: config DB_PATH)")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("init", help="create/upgrade the database and seed defaults")
    sub.add_parser("summary", help="print stock and dues headline figures")
    bag = sub.add_parser("set-bag-kg", help="change the default bag (sippam) weight")
    bag.add_argument("value", help="weight in kg, > 0")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    conn = get_connection(args.db)
    try:
        ledger = get_ledger(conn)
        if args.command == "init":
            print(f"Database ready (default bag {ledger.settings.get_default_bag_kg():g} kg)")
        elif args.command == "summary":
            s = ledger.reporting.dashboard_summary()
            print(f"Stock on hand : {fmt_number(s['total_stock_kg'])} kg")
            print(f"Stock value   : {fmt_number(s['total_stock_value'])}")
            print(f"Active lots   : {s['active_lots']}")
            print(f"Farmer dues   : {fmt_number(s['farmer_dues'])}")
            print(f"Customer dues : {fmt_number(s['customer_dues'])}")
            print(f"Open pick lines: {s['open_pick_lines']}")
        elif args.command == "set-bag-kg":
            kg = ledger.settings.set_default_bag_kg(args.value)
            print(f"Default bag weight set to {kg:g} kg")
    except DomainError as e:
        _log.error("%s", e.message)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
