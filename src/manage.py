"""Logistics management CLI.

Creates and drops the database schema and runs the SLA alert sweep, which a
scheduler is expected to invoke every minute.

Usage:
    python src/manage.py setup-db    # Create all tables
    python src/manage.py drop-db     # Drop all tables
    python src/manage.py sweep-sla   # Raise due SLA alerts
"""

import argparse
import sys


def _domain():
    from logistics.domain import logistics

    logistics.init()
    return logistics


def setup_database():
    from logistics.utils.db import setup_db

    print("Creating logistics database schema...")
    setup_db(_domain())
    print("Done.")


def drop_database():
    from logistics.utils.db import drop_db

    print("Dropping logistics database schema...")
    drop_db(_domain())
    print("Done.")


def sweep_sla(as_of=None):
    from logistics.sla.sweep import SweepSLA

    domain = _domain()
    with domain.domain_context():
        raised = domain.process(SweepSLA(as_of=as_of), asynchronous=False)
    print(f"Raised {len(raised)} SLA alert(s).")
    for alert in raised:
        print(f"  {alert['order_id']} {alert['kind']}")


def main():
    parser = argparse.ArgumentParser(description="Specimen logistics management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    sweep_parser = subparsers.add_parser("sweep-sla", help="Raise SLA alerts that are due")
    sweep_parser.add_argument("--as-of", help="ISO timestamp to evaluate against (default: now)")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-sla":
        from datetime import datetime

        sweep_sla(datetime.fromisoformat(args.as_of) if args.as_of else None)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
