"""Apply the SkillQuest schema with Alembic once the database answers.

Run before the engine API starts so the quest set, weekly plan and
class focus tables exist with their uniqueness constraints. ``--sql``
renders the DDL instead of touching a database.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from skillquest.config import Settings
from skillquest.db import models  # noqa: F401
from skillquest.db.base import Base

LOGGER = logging.getLogger("skillquest.migrations")
DATABASE_URL_ENV = "SKILLQUEST_DATABASE_URL"
DEFAULT_TIMEOUT = int(os.getenv("SKILLQUEST_DB_MIGRATION_TIMEOUT", "60"))
DEFAULT_POLL_INTERVAL = float(os.getenv("SKILLQUEST_DB_MIGRATION_POLL_INTERVAL", "3"))
SCRIPT_DIR = Path(__file__).resolve().parent
BACKEND_ROOT = SCRIPT_DIR.parent


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upgrade the SkillQuest schema once the database is reachable.")
    parser.add_argument(
        "--revision",
        default=os.getenv("SKILLQUEST_DB_MIGRATION_REVISION", "head"),
        help="Revision identifier to upgrade to (default: head).",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Seconds to wait for the database (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between readiness probes (default: {DEFAULT_POLL_INTERVAL}).",
    )
    parser.add_argument(
        "--config",
        default=str(BACKEND_ROOT / "alembic.ini"),
        help="Path to alembic.ini.",
    )
    parser.add_argument(
        "--sql",
        action="store_true",
        help="Print the migration SQL instead of applying it.",
    )
    return parser.parse_args(argv)


def get_alembic_config(config_path: str) -> Config:
    config = Config(config_path)
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    """Return the alembic URL, falling back to the engine settings (env or ``.env``)."""
    url = config.get_main_option("sqlalchemy.url")
    if url and url != f"%({DATABASE_URL_ENV})s":
        return url
    settings_url = Settings().database_url  # type: ignore[call-arg]
    if not settings_url:
        raise RuntimeError(f"{DATABASE_URL_ENV} must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", settings_url)
    return settings_url


def wait_for_database(database_url: str, *, timeout: int, poll_interval: float) -> None:
    """Probe with ``SELECT 1`` until it succeeds or ``timeout`` seconds pass."""
    deadline = time.time() + timeout
    engine: Optional[Engine] = None
    last_error: Optional[Exception] = None

    try:
        engine = create_engine(database_url, future=True, pool_pre_ping=True)
        while time.time() < deadline:
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                LOGGER.info("Database is reachable.")
                return
            except OperationalError as exc:
                last_error = exc
                LOGGER.warning("Database not ready yet: %s", exc)
            except SQLAlchemyError as exc:
                last_error = exc
                LOGGER.error("Database error during readiness probe: %s", exc)
                break
            time.sleep(poll_interval)
    finally:
        if engine is not None:
            engine.dispose()

    raise RuntimeError("Database did not become ready in time.") from last_error


def missing_tables(database_url: str) -> List[str]:
    """Engine tables (quest sets, plans, scores, unlocks) absent from the database."""
    engine = create_engine(database_url)
    try:
        present = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    return sorted(set(Base.metadata.tables) - present)


def run_migrations(
    revision: str,
    *,
    timeout: int,
    poll_interval: float,
    config: Optional[Config] = None,
    sql: bool = False,
) -> None:
    config = config or get_alembic_config(str(BACKEND_ROOT / "alembic.ini"))
    database_url = resolve_database_url(config)
    if sql:
        LOGGER.info("Rendering migration SQL up to %s", revision)
        command.upgrade(config, revision, sql=True)
        return

    LOGGER.info("Upgrading schema to %s (timeout=%ss poll=%ss)", revision, timeout, poll_interval)
    wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    command.upgrade(config, revision)
    if revision == "head":
        missing = missing_tables(database_url)
        if missing:
            raise RuntimeError(f"Schema upgrade left tables missing: {', '.join(missing)}")
    LOGGER.info("Schema upgrade complete.")


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("SKILLQUEST_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
            sql=args.sql,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
