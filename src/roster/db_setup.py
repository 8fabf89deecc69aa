"""Utility CLI for creating and seeding the SQL database."""

from __future__ import annotations

import argparse
import sys

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .database import get_engine, get_session_factory, is_database_configured
from .db_models import Base, ScheduledAreaModel
from .defaults import seed_directory
from .directory import SQLDirectoryRepository


def ensure_configured() -> None:
    if not is_database_configured():
        raise SystemExit(
            "ROSTER_DB_URL is not set (or ROSTER_DB_MODE is 'memory'); "
            "cannot run database commands."
        )


def init_db() -> None:
    """Create database tables if they do not already exist."""
    ensure_configured()
    engine = get_engine()
    if engine is None:
        raise SystemExit("Unable to create engine for configured database URL.")

    Base.metadata.create_all(engine)
    print("Database tables ensured.")


def seed_db(*, force: bool = False) -> None:
    """Seed the database with the demo scheduled area and its directory."""
    ensure_configured()
    session_factory = get_session_factory()

    try:
        with session_factory() as session:
            existing = session.execute(select(ScheduledAreaModel)).scalars().first()
        if existing is not None and not force:
            print("Database already contains seed data; skipping.")
            return

        seed_directory(SQLDirectoryRepository(session_factory))
        print("Seed data inserted.")
    except SQLAlchemyError as exc:
        raise SystemExit(f"Failed to seed database: {exc}") from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the roster SQL database.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create database tables.")
    seed_parser = sub.add_parser("seed", help="Seed the database with sample data.")
    seed_parser.add_argument(
        "--force",
        action="store_true",
        help="Merge seed data even if an area already exists.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "init":
        init_db()
    elif args.command == "seed":
        seed_db(force=args.force)
    else:
        raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main(sys.argv[1:])
