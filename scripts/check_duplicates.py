"""
Check a tracker CSV for duplicates from the CLI, optionally ingesting it.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from app.services.duplicate_check_service import (
    DuplicateRecordsRejectedError,
    get_duplicate_check_service,
)
from db.session import session_scope


def main() -> int:
    parser = argparse.ArgumentParser(description="Duplicate-check a tracker CSV.")
    parser.add_argument("csv_path", type=Path, help="CSV file with a header row.")
    parser.add_argument("--project-id", type=int, default=None)
    parser.add_argument("--task-id", type=int, default=None)
    parser.add_argument("--columns", default=None, help="Comma-separated important columns.")
    parser.add_argument(
        "--ingest",
        action="store_true",
        help="Insert unique rows (requires --user-id, --project-id and --task-id).",
    )
    parser.add_argument("--user-id", type=int, default=None)
    parser.add_argument("--policy", choices=["strict", "lenient"], default=None)
    args = parser.parse_args()

    service = get_duplicate_check_service()
    with session_scope() as db, args.csv_path.open("rb") as handle:
        if not args.ingest:
            check = service.check_upload(
                db,
                handle,
                project_id=args.project_id,
                task_id=args.task_id,
                columns=args.columns,
            )
            payload = {
                "total_rows": check.total_rows,
                "columns": list(check.columns),
                "counts_by_kind": check.report.count_by_kind(),
                "duplicate_rows": [duplicate.row_number for duplicate in check.report.duplicates],
            }
            print(json.dumps(payload, indent=2))
            return 1 if check.has_duplicates else 0

        if args.user_id is None or args.project_id is None or args.task_id is None:
            parser.error("--ingest requires --user-id, --project-id and --task-id")

        try:
            outcome = service.ingest_upload(
                db,
                handle,
                user_id=args.user_id,
                project_id=args.project_id,
                task_id=args.task_id,
                policy=args.policy,
            )
        except DuplicateRecordsRejectedError as exc:
            print(json.dumps({"status": "rejected", "message": str(exc)}, indent=2))
            return 1

    print(
        json.dumps(
            {
                "status": "ingested",
                "inserted": outcome.inserted,
                "skipped_rows": outcome.skipped_rows,
                "message": outcome.message,
            },
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
