"""Create the store for the configured backend and reset it to the default catalog.

Run from the repository root:
    python -m scripts.init_db
"""
import logging
import os

import psycopg2

from pitch_booking.core.config import Settings
from pitch_booking.core.db import get_connection
from pitch_booking.core.store import JsonFileStore, PostgresStore, default_snapshot

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
SCHEMA_PATH = os.path.join(BASE_DIR, "scripts", "schema.sql")

logger = logging.getLogger(__name__)


def run_migration(settings: Settings) -> None:
    conn = get_connection(settings)
    try:
        with conn.cursor() as cur:
            with open(SCHEMA_PATH, "r", encoding="utf-8") as schema_file:
                cur.execute(schema_file.read())
    finally:
        conn.close()
    PostgresStore(settings).save(default_snapshot())


def reset_json_store(settings: Settings) -> None:
    JsonFileStore(settings.data_path).save(default_snapshot())


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()
    if settings.store_backend == "postgres":
        try:
            run_migration(settings)
        except psycopg2.Error as exc:
            logger.error(f"Migration failed on {settings.db_host}:{settings.db_port}/{settings.db_name}: {exc}")
            raise
        logger.info("booking_store created and seeded with the default catalog")
    else:
        reset_json_store(settings)
        logger.info(f"{settings.data_path} reset to the default catalog")


if __name__ == "__main__":
    main()
