#!/usr/bin/env python3
"""
Import faculty applications from a JSON dump into the SQLite database.

Expected shape:
    {"applications": [{"first_name": ..., "email": ..., "position": ...,
                       "department": ..., "teaching": [...],
                       "research": [...], "research_info": {...}}, ...]}

Usage:
    python scripts/import_applications.py --json data/applications.json --db data/faculty.db
"""

import argparse
from dataclasses import replace
import json
from pathlib import Path
import sys

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.exc import SQLAlchemyError

from facultyrank.database import (
    Application,
    ResearchExperience,
    ResearchInfo,
    TeachingExperience,
    get_session,
    init_database,
)
from facultyrank.env import Settings
from facultyrank.service import build_service

REQUIRED = ["first_name", "email", "position", "department"]
EXPERIENCE_FIELDS = ["post", "institution", "start_date", "end_date", "experience"]
RESEARCH_INFO_FIELDS = [
    "scopus_id",
    "orchid_id",
    "google_scholar_id",
    "scopus_general_papers",
    "conference_papers",
    "edited_books",
]


def _columns(model) -> set:
    return {column.name for column in model.__table__.columns}


def build_application(record: dict):
    """Build an Application with its satellite rows from one JSON record."""
    allowed = _columns(Application) - {"id", "score", "category", "created_at", "updated_at"}
    application = Application(**{k: v for k, v in record.items() if k in allowed})
    if record.get("id") is not None:
        application.id = int(record["id"])

    teaching = [
        TeachingExperience(**{k: item.get(k) for k in EXPERIENCE_FIELDS})
        for item in record.get("teaching") or []
    ]
    research = [
        ResearchExperience(**{k: item.get(k) for k in EXPERIENCE_FIELDS})
        for item in record.get("research") or []
    ]
    info = record.get("research_info")
    research_info = None
    if info:
        research_info = ResearchInfo(**{k: info[k] for k in RESEARCH_INFO_FIELDS if info.get(k) is not None})
    return application, teaching, research, research_info


def import_applications(json_path: Path, db_path: Path, dry_run: bool = False, score: bool = True) -> bool:
    """
    Import applications from JSON to database.

    Each committed application is scored on a background worker, the same
    way a new submission is. Scoring failures are logged and counted but do
    not fail the import.

    Args:
        json_path: Path to JSON dump
        db_path: Path to SQLite database file
        dry_run: If True, don't write to database
        score: If False, leave imported applications unscored

    Returns:
        True if every valid record was imported (or on a dry run)
    """
    print(f"Loading applications from {json_path}...")
    with open(json_path, encoding="utf-8") as f:
        data = json.load(f)

    records = data.get("applications", [])
    print(f"Found {len(records)} applications in dump")

    if dry_run:
        print("\n[DRY RUN] Would import the following applications:")
        for i, record in enumerate(records[:5], 1):
            print(f"  {i}. {record.get('first_name')} {record.get('last_name') or ''} - "
                  f"{record.get('position')} ({record.get('department')})")
        if len(records) > 5:
            print(f"  ... and {len(records) - 5} more")
        return True

    print(f"\nInitializing database at {db_path}...")
    init_database(db_path)
    session = get_session(db_path)
    service = build_service(replace(Settings.from_env(), db_path=Path(db_path))) if score else None
    scoring = []

    imported = 0
    skipped = 0
    errors = 0

    for index, record in enumerate(records, 1):
        missing = [field for field in REQUIRED if not record.get(field)]
        if missing:
            print(f"⚠️  Skipping record {index}: missing {', '.join(missing)}")
            skipped += 1
            continue

        if record.get("id") is not None and session.get(Application, int(record["id"])):
            print(f"⚠️  Application {record['id']} already exists, skipping")
            skipped += 1
            continue

        try:
            application, teaching, research, research_info = build_application(record)
            session.add(application)
            session.flush()  # assigns application.id
            application_id = application.id

            for row in [*teaching, *research]:
                row.application_id = application.id
                session.add(row)
            if research_info is not None:
                research_info.application_id = application.id
                session.add(research_info)

            # Committed per application; a failed record rolls back alone
            session.commit()
            imported += 1
        except (SQLAlchemyError, TypeError, ValueError) as e:
            session.rollback()
            print(f"❌ Error importing record {index}: {e}")
            errors += 1
            continue

        if service is not None:
            scoring.append(service.predictor.dispatch_background_scoring(application_id))

        if imported % 20 == 0:
            print(f"  Imported {imported} applications...")

    session.close()

    scored = 0
    if service is not None:
        print(f"\nScoring {len(scoring)} applications...")
        service.close()  # waits for background scoring
        scored = sum(1 for future in scoring if future.exception() is None)

    print("\n✅ Import complete!")
    print(f"   Imported: {imported}")
    print(f"   Skipped:  {skipped}")
    print(f"   Errors:   {errors}")
    if service is not None:
        print(f"   Scored:   {scored}")
        if scored < len(scoring):
            print(f"⚠️  {len(scoring) - scored} applications could not be scored; see the log")

    return errors == 0


def main():
    parser = argparse.ArgumentParser(description="Import faculty applications from JSON")
    parser.add_argument("--json", type=Path, default=Path("data/applications.json"),
                        help="Path to JSON dump")
    parser.add_argument("--db", type=Path, default=Path("data/faculty.db"),
                        help="Path to SQLite database file")
    parser.add_argument("--dry-run", action="store_true",
                        help="Show what would be imported without writing")
    parser.add_argument("--no-score", action="store_true",
                        help="Import without scoring the new applications")

    args = parser.parse_args()

    if not args.json.exists():
        print(f"❌ JSON file not found: {args.json}")
        sys.exit(1)

    if not import_applications(args.json, args.db, dry_run=args.dry_run, score=not args.no_score):
        sys.exit(1)


if __name__ == "__main__":
    main()
