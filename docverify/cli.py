"""Administrative command-line interface.

Creates the database schema, maintains the list of authorized document
numbers (one at a time or from a CSV file) and starts the API server.
"""

import argparse
import csv
import sys
from pathlib import Path

from docverify.core.errors import InvalidInputError
from docverify.db.repository import AuthorizationRegistry
from docverify.db.session import (
    create_db_engine,
    create_session_factory,
    db_session,
    init_db,
)
from docverify.main import main as serve
from docverify.utils.config import AppConfig, load_config
from docverify.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_CSV_COLUMNS = ("docNumber", "docType")


def _session_factory(config: AppConfig):
    engine = create_db_engine(config.database)
    init_db(engine)
    return create_session_factory(engine)


def authorize(config: AppConfig, doc_number: str, doc_type: str) -> bool:
    """Add one document number to the authorization list.

    Returns:
        True if added, False if it was already authorized.
    """
    factory = _session_factory(config)
    with db_session(factory) as session:
        try:
            AuthorizationRegistry(session).add(doc_number, doc_type)
        except InvalidInputError as exc:
            logger.warning("%s", exc.message)
            return False
    return True


def import_authorized(config: AppConfig, csv_path: Path) -> dict[str, int]:
    """Load authorized documents from a CSV with docNumber/docType columns.

    Rows whose number is already authorized, or that have no number, are
    skipped.

    Returns:
        Summary dict with total, added and skipped counts.
    """
    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in _CSV_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"CSV is missing columns: {', '.join(missing)}")
        rows = list(reader)

    factory = _session_factory(config)
    added = 0
    skipped = 0
    with db_session(factory) as session:
        registry = AuthorizationRegistry(session)
        for row in rows:
            doc_number = (row.get("docNumber") or "").strip()
            if not doc_number or registry.lookup(doc_number) is not None:
                skipped += 1
                continue
            registry.add(doc_number, (row.get("docType") or "").strip() or None)
            added += 1

    summary = {"total": len(rows), "added": added, "skipped": skipped}
    logger.info("Imported authorized documents from %s: %s", csv_path, summary)
    return summary


def _print_summary(summary: dict[str, int], csv_path: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Authorized Document Import Complete")
    print(f"{'=' * 50}")
    print(f"Source:  {csv_path}")
    print(f"Total:   {summary['total']}")
    print(f"Added:   {summary['added']}")
    print(f"Skipped: {summary['skipped']}")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        prog="docverify",
        description="Document verification service administration",
    )
    parser.add_argument(
        "-c", "--config", type=Path, help="Configuration file (default: configs/config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    auth_parser = subparsers.add_parser(
        "authorize", help="Authorize a single document number"
    )
    auth_parser.add_argument("doc_number", help="Document number")
    auth_parser.add_argument("doc_type", help="Document type, e.g. passport")

    import_parser = subparsers.add_parser(
        "import-authorized", help="Authorize document numbers from a CSV file"
    )
    import_parser.add_argument("csv_file", type=Path, help="CSV with docNumber,docType")

    subparsers.add_parser("serve", help="Run the API server")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "init-db":
        init_db(create_db_engine(config.database))
        print("Database tables created")
    elif args.command == "authorize":
        if authorize(config, args.doc_number, args.doc_type):
            print(f"Authorized {args.doc_number} ({args.doc_type})")
        else:
            print(f"{args.doc_number} is already authorized")
    elif args.command == "import-authorized":
        if not args.csv_file.exists():
            print(f"Error: {args.csv_file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            summary = import_authorized(config, args.csv_file)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        _print_summary(summary, args.csv_file)
    elif args.command == "serve":
        serve(config)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
