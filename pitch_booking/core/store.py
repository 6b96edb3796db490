"""Document stores holding the whole booking state as one snapshot.

A snapshot is a plain dict::

    {"pitches": [...], "reservations": [...], "nextPitchId": 5, "nextReservationId": 1}

Both backends expose ``load()``, ``save(snapshot)`` and ``transaction()``. The
transaction context manager yields a snapshot, and writes it back on a clean exit
only if it changed. Nothing is written when the block raises.
"""
import copy
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2.extras import Json

from pitch_booking.core.config import Settings
from pitch_booking.core.db import get_connection
from pitch_booking.core.errors import StorageError

logger = logging.getLogger(__name__)

DOCUMENT_KEYS = ("pitches", "reservations", "nextPitchId", "nextReservationId")

DEFAULT_PITCHES = [
    {
        "name": "Main Pitch",
        "location": "Sports Complex A",
        "price_per_hour": 50,
        "image_url": "https://images.unsplash.com/photo-1575361204480-aadea25e6e68?w=800",
        "description": "Professional-grade football pitch with artificial turf, perfect for matches and training.",
    },
    {
        "name": "Training Pitch",
        "location": "Sports Complex A",
        "price_per_hour": 35,
        "image_url": "https://images.unsplash.com/photo-1574629810360-7efbbe195018?w=800",
        "description": "Smaller training pitch ideal for practice sessions and small-sided games.",
    },
    {
        "name": "Community Pitch",
        "location": "Community Center",
        "price_per_hour": 25,
        "image_url": "https://images.unsplash.com/photo-1575361204480-aadea25e6e68?w=800",
        "description": "Affordable community pitch with natural grass, great for casual games.",
    },
    {
        "name": "Elite Pitch",
        "location": "Elite Sports Academy",
        "price_per_hour": 75,
        "image_url": "https://images.unsplash.com/photo-1574629810360-7efbbe195018?w=800",
        "description": "Premium pitch with floodlights, changing rooms, and professional facilities.",
    },
]


def default_snapshot() -> dict:
    pitches = [dict(id=i, **pitch) for i, pitch in enumerate(DEFAULT_PITCHES, start=1)]
    return {
        "pitches": pitches,
        "reservations": [],
        "nextPitchId": len(pitches) + 1,
        "nextReservationId": 1,
    }


def is_valid_snapshot(data) -> bool:
    if not isinstance(data, dict):
        return False
    if any(key not in data for key in DOCUMENT_KEYS):
        return False
    return (
        isinstance(data["pitches"], list)
        and isinstance(data["reservations"], list)
        and isinstance(data["nextPitchId"], int)
        and isinstance(data["nextReservationId"], int)
    )


class JsonFileStore:
    """Snapshot kept in a single JSON file, replaced atomically on every save."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.RLock()

    def load(self) -> dict:
        with self._lock:
            if not os.path.exists(self.path):
                logger.info(f"No store at {self.path}, seeding default catalog")
                return self._reset()
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except ValueError as exc:
                # JSONDecodeError and UnicodeDecodeError both land here
                logger.warning(f"Store at {self.path} is unreadable ({exc}), reinitializing")
                return self._reset()
            except OSError as exc:
                logger.error(f"Could not read store at {self.path}: {exc}")
                raise StorageError(f"Could not read store: {exc}") from exc
            if not is_valid_snapshot(data):
                logger.warning(f"Store at {self.path} has an unexpected shape, reinitializing")
                return self._reset()
            return data

    def save(self, snapshot: dict) -> None:
        with self._lock:
            directory = os.path.dirname(self.path) or "."
            tmp_path = None
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".database-", suffix=".json")
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot, f, indent=2)
                os.replace(tmp_path, self.path)
                tmp_path = None
            except OSError as exc:
                logger.error(f"Could not write store at {self.path}: {exc}")
                raise StorageError(f"Could not write store: {exc}") from exc
            finally:
                if tmp_path and os.path.exists(tmp_path):
                    os.remove(tmp_path)

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        with self._lock:
            snapshot = self.load()
            original = copy.deepcopy(snapshot)
            yield snapshot
            if snapshot != original:
                self.save(snapshot)

    def _reset(self) -> dict:
        snapshot = default_snapshot()
        self.save(snapshot)
        return snapshot


class PostgresStore:
    """Snapshot kept as a jsonb document in a single PostgreSQL row.

    ``transaction()`` locks that row with ``SELECT ... FOR UPDATE``, so commits from
    separate server processes are serialized as well.
    """

    DOCUMENT_ID = 1

    def __init__(self, settings: Settings):
        self.settings = settings

    def _connect(self, autocommit: bool = True):
        try:
            return get_connection(self.settings, autocommit=autocommit)
        except psycopg2.Error as exc:
            logger.error(f"Could not connect to {self.settings.db_host}:{self.settings.db_port}: {exc}")
            raise StorageError(f"Database unavailable: {exc}") from exc

    def ensure_schema(self) -> None:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS booking_store (
                        id SMALLINT PRIMARY KEY,
                        document JSONB NOT NULL
                    )
                    """
                )
        except psycopg2.Error as exc:
            raise StorageError(f"Could not create booking_store table: {exc}") from exc
        finally:
            conn.close()

    def load(self) -> dict:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT document FROM booking_store WHERE id = %s", (self.DOCUMENT_ID,))
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise StorageError(f"Could not read store: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            logger.info("booking_store is empty, seeding default catalog")
            return self._reset()
        if not is_valid_snapshot(row["document"]):
            logger.warning("booking_store document has an unexpected shape, reinitializing")
            return self._reset()
        return row["document"]

    def save(self, snapshot: dict) -> None:
        conn = self._connect()
        try:
            with conn.cursor() as cur:
                self._upsert(cur, snapshot)
        except psycopg2.Error as exc:
            logger.error(f"Could not write store: {exc}")
            raise StorageError(f"Could not write store: {exc}") from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        conn = self._connect(autocommit=False)
        try:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT document FROM booking_store WHERE id = %s FOR UPDATE",
                    (self.DOCUMENT_ID,),
                )
                row = cur.fetchone()
                reseeded = row is None or not is_valid_snapshot(row["document"])
                snapshot = default_snapshot() if reseeded else row["document"]
                original = copy.deepcopy(snapshot)
                yield snapshot
                if reseeded or snapshot != original:
                    self._upsert(cur, snapshot)
            conn.commit()
        except psycopg2.Error as exc:
            conn.rollback()
            logger.error(f"Store transaction failed: {exc}")
            raise StorageError(f"Could not write store: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _upsert(self, cur, snapshot: dict) -> None:
        cur.execute(
            """
            INSERT INTO booking_store (id, document) VALUES (%s, %s)
            ON CONFLICT (id) DO UPDATE SET document = EXCLUDED.document
            """,
            (self.DOCUMENT_ID, Json(snapshot)),
        )

    def _reset(self) -> dict:
        snapshot = default_snapshot()
        self.save(snapshot)
        return snapshot


def open_store(settings: Settings):
    """Build the configured store and make sure it holds a usable snapshot."""
    if settings.store_backend == "postgres":
        store = PostgresStore(settings)
        store.ensure_schema()
    elif settings.store_backend == "json":
        store = JsonFileStore(settings.data_path)
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
    store.load()
    return store
