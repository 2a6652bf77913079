from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from typing import List, Optional

from commhealth.analytics.aggregator import UNKNOWN
from commhealth.analytics.snapshot import AnalyticsFilters, compute_analytics
from commhealth.analytics.summary import build_company_summary, render_company_data
from commhealth.db.importer import QuestionBankImporter, ResponseImporter
from commhealth.db.repository import SQLiteRepository
from .config import Settings
from .errors import AppError
from .logging import get_logger, setup_logging


logger = get_logger(__name__)


def _date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value!r}") from e


def _sql_value(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() in ("", UNKNOWN):
        return None
    return value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="commhealth", description="Communication health check analytics.")
    parser.add_argument("--db", help="SQLite database path (defaults to APP_DB_PATH).")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database tables.")

    p = sub.add_parser("import-questions", help="Import a question bank (CSV/Excel).")
    p.add_argument("path")
    p.add_argument("--sheet")

    p = sub.add_parser("import-responses", help="Import a historical response export (CSV/Excel).")
    p.add_argument("path")
    p.add_argument("--sheet")

    for name, help_text in (
        ("analytics", "Print the analytics snapshot as JSON."),
        ("report-data", "Print the company data block for the report generator."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--company")
        p.add_argument("--department")
        p.add_argument("--from", dest="date_from", type=_date)
        p.add_argument("--to", dest="date_to", type=_date)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)

    repo = SQLiteRepository(args.db or settings.db_path)

    try:
        if args.command == "init-db":
            repo.init_schema()
        elif args.command == "import-questions":
            result = QuestionBankImporter(repo).import_file(args.path, sheet_name=args.sheet)
            print(json.dumps({"inserted": result.inserted}))
        elif args.command == "import-responses":
            result = ResponseImporter(repo).import_file(args.path, sheet_name=args.sheet)
            print(json.dumps({"inserted": result.inserted, "skipped": result.skipped_rows}))
        else:
            filters = AnalyticsFilters(
                company=args.company,
                department=args.department,
                date_from=args.date_from,
                date_to=args.date_to,
            )
            # "Unknown" means a missing value, which SQL equality cannot select; AnalyticsFilters does it.
            records = repo.fetch_responses(
                company=_sql_value(filters.company),
                department=_sql_value(filters.department),
                date_from=filters.date_from,
                date_to=filters.date_to,
            )
            snapshot = compute_analytics(records, filters=filters, thresholds=settings.thresholds)
            if args.command == "analytics":
                print(json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2))
            else:
                print(render_company_data(build_company_summary(snapshot)))
    except AppError as e:
        logger.error("Command failed", extra={"command": args.command, "error": str(e)})
        print(f"error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
