import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import psycopg2

from pitch_booking.core.config import Settings
from pitch_booking.core.errors import ConflictError, StorageError
from pitch_booking.core.store import (
    JsonFileStore,
    PostgresStore,
    default_snapshot,
    open_store,
)


def make_settings(data_dir="", backend="json"):
    return Settings(
        store_backend=backend,
        data_dir=data_dir,
        db_host="localhost",
        db_port=5432,
        db_name="pitch_booking_test",
        db_user="postgres",
        db_password="postgres",
        server_port=0,
    )


class JsonFileStoreTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "nested", "database.json")
        self.store = JsonFileStore(self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def write_raw(self, text):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def test_seeds_default_catalog_when_missing(self):
        snapshot = self.store.load()
        self.assertEqual([p["id"] for p in snapshot["pitches"]], [1, 2, 3, 4])
        self.assertEqual(snapshot["nextPitchId"], 5)
        self.assertEqual(snapshot["nextReservationId"], 1)
        self.assertTrue(os.path.exists(self.path))

    def test_corrupted_file_is_reinitialized(self):
        self.write_raw("{not json")
        with self.assertLogs("pitch_booking.core.store", level="WARNING"):
            snapshot = self.store.load()
        self.assertEqual(snapshot, default_snapshot())
        with open(self.path, encoding="utf-8") as f:
            self.assertEqual(json.load(f), default_snapshot())

    def test_unexpected_shape_is_reinitialized(self):
        self.write_raw(json.dumps({"pitches": [], "reservations": {}}))
        self.assertEqual(self.store.load(), default_snapshot())

    def test_transaction_writes_changes(self):
        with self.store.transaction() as snapshot:
            snapshot["nextReservationId"] = 10
        self.assertEqual(JsonFileStore(self.path).load()["nextReservationId"], 10)

    def test_transaction_discards_changes_on_error(self):
        self.store.load()
        with self.assertRaises(ConflictError):
            with self.store.transaction() as snapshot:
                snapshot["nextReservationId"] = 10
                raise ConflictError("Time slot is already booked")
        self.assertEqual(self.store.load()["nextReservationId"], 1)

    def test_transaction_skips_write_when_unchanged(self):
        self.store.load()
        with patch.object(self.store, "save") as save:
            with self.store.transaction() as snapshot:
                self.assertEqual(len(snapshot["pitches"]), 4)
        save.assert_not_called()

    def test_write_failure_raises_storage_error(self):
        blocker = os.path.join(self.tmp.name, "blocker")
        with open(blocker, "w", encoding="utf-8") as f:
            f.write("not a directory")
        store = JsonFileStore(os.path.join(blocker, "database.json"))
        with self.assertRaises(StorageError) as cm:
            store.save(default_snapshot())
        self.assertEqual(cm.exception.code, "storage_unavailable")


class OpenStoreTest(unittest.TestCase):
    def test_json_backend(self):
        with tempfile.TemporaryDirectory() as tmp:
            store = open_store(make_settings(tmp))
            self.assertIsInstance(store, JsonFileStore)
            self.assertTrue(os.path.exists(os.path.join(tmp, "database.json")))

    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            open_store(make_settings(backend="sqlite"))


class PostgresStoreTest(unittest.TestCase):
    def setUp(self):
        self.conn = MagicMock()
        self.cur = MagicMock()
        self.conn.cursor.return_value.__enter__.return_value = self.cur
        patcher = patch("pitch_booking.core.store.get_connection", return_value=self.conn)
        self.get_connection = patcher.start()
        self.addCleanup(patcher.stop)
        self.store = PostgresStore(make_settings(backend="postgres"))

    def executed_sql(self):
        return [c.args[0] for c in self.cur.execute.call_args_list]

    def test_load_returns_document(self):
        document = default_snapshot()
        self.cur.fetchone.return_value = {"document": document}
        self.assertEqual(self.store.load(), document)
        self.conn.close.assert_called()

    def test_load_seeds_empty_table(self):
        self.cur.fetchone.return_value = None
        self.assertEqual(self.store.load(), default_snapshot())
        self.assertTrue(any("INSERT INTO booking_store" in sql for sql in self.executed_sql()))

    def test_transaction_locks_row_and_commits(self):
        self.cur.fetchone.return_value = {"document": default_snapshot()}
        with self.store.transaction() as snapshot:
            snapshot["nextReservationId"] = 2
        self.get_connection.assert_called_with(self.store.settings, autocommit=False)
        sql = self.executed_sql()
        self.assertIn("FOR UPDATE", sql[0])
        self.assertIn("INSERT INTO booking_store", sql[-1])
        self.conn.commit.assert_called_once()
        self.conn.rollback.assert_not_called()
        self.conn.close.assert_called_once()

    def test_transaction_without_changes_does_not_write(self):
        self.cur.fetchone.return_value = {"document": default_snapshot()}
        with self.store.transaction():
            pass
        self.assertEqual(len(self.executed_sql()), 1)

    def test_transaction_rolls_back_on_domain_error(self):
        self.cur.fetchone.return_value = {"document": default_snapshot()}
        with self.assertRaises(ConflictError):
            with self.store.transaction():
                raise ConflictError("Time slot is already booked")
        self.conn.rollback.assert_called_once()
        self.conn.commit.assert_not_called()

    def test_database_error_becomes_storage_error(self):
        self.cur.execute.side_effect = psycopg2.OperationalError("server closed the connection")
        with self.assertRaises(StorageError):
            with self.store.transaction():
                pass
        self.conn.rollback.assert_called_once()

    def test_connection_failure_becomes_storage_error(self):
        self.get_connection.side_effect = psycopg2.OperationalError("could not connect")
        with self.assertRaises(StorageError):
            self.store.load()


if __name__ == "__main__":
    unittest.main()
