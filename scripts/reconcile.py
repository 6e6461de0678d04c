"""
Run the reconciliation sweep once: re-derive every assigned due status and
member balance from the payment ledger.
Usage: python scripts/reconcile.py [--quiet]
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging

from clubdues.db.base import SessionLocal
from clubdues.services.synchronizer import run_reconciliation_sweep


def main(quiet: bool = False) -> int:
    logging.basicConfig(
        level=logging.WARNING if quiet else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    db = SessionLocal()
    try:
        report = run_reconciliation_sweep(db)
    finally:
        db.close()

    print(f"Dues checked:     {report.dues_checked} ({report.dues_changed} changed)")
    print(f"Members checked:  {report.members_checked} ({report.balances_changed} balances changed)")
    for item in report.changed_dues:
        print(f"  - {item['member_name']}: {item['reference']} {item['from_status']} -> {item['to_status']}")
    return 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Reconcile assigned due statuses and member balances")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors")
    args = parser.parse_args()
    sys.exit(main(quiet=args.quiet))
