import os
import tempfile
import unittest

from pitch_booking.core.errors import NotFoundError, ValidationError
from pitch_booking.core.store import JsonFileStore
from pitch_booking.repositories.pitch_repository import PitchRepository
from pitch_booking.services.catalog_service import CatalogService


class CatalogServiceTest(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = JsonFileStore(os.path.join(self.tmp.name, "database.json"))
        self.service = CatalogService(PitchRepository(self.store))

    def tearDown(self):
        self.tmp.cleanup()

    def test_default_catalog_sorted_by_name(self):
        names = [p.name for p in self.service.list_pitches()]
        self.assertEqual(names, ["Community Pitch", "Elite Pitch", "Main Pitch", "Training Pitch"])

    def test_equal_names_keep_insertion_order(self):
        first = self.service.add_pitch({"name": "Beach Pitch", "location": "North", "price_per_hour": 20})
        second = self.service.add_pitch({"name": "Beach Pitch", "location": "South", "price_per_hour": 20})
        beach = [p for p in self.service.list_pitches() if p.name == "Beach Pitch"]
        self.assertEqual([p.id for p in beach], [first.id, second.id])

    def test_get_pitch(self):
        pitch = self.service.get_pitch("2")
        self.assertEqual(pitch.name, "Training Pitch")
        self.assertEqual(pitch.price_per_hour, 35)

    def test_get_unknown_pitch(self):
        for pitch_id in (99, "abc", None):
            with self.subTest(pitch_id=pitch_id):
                with self.assertRaises(NotFoundError) as cm:
                    self.service.get_pitch(pitch_id)
                self.assertEqual(cm.exception.code, "pitch_not_found")

    def test_add_pitch_assigns_next_id_and_persists(self):
        pitch = self.service.add_pitch({
            "name": "Indoor Arena",
            "location": "Downtown",
            "price_per_hour": "42.5",
            "description": "Five-a-side hall",
        })
        self.assertEqual(pitch.id, 5)
        self.assertEqual(pitch.price_per_hour, 42.5)

        reopened = CatalogService(PitchRepository(JsonFileStore(self.store.path)))
        self.assertEqual(reopened.get_pitch(5).description, "Five-a-side hall")
        self.assertEqual(self.store.load()["nextPitchId"], 6)

    def test_add_pitch_rejects_bad_input(self):
        cases = [
            ({"location": "Downtown", "price_per_hour": 10}, "missing_field"),
            ({"name": "X", "location": "Downtown", "price_per_hour": 0}, "invalid_price"),
            ({"name": "X", "location": "Downtown", "price_per_hour": -5}, "invalid_price"),
            ({"name": "X", "location": "Downtown", "price_per_hour": "cheap"}, "invalid_price"),
            ({"name": "X", "location": "Downtown"}, "invalid_price"),
        ]
        for data, code in cases:
            with self.subTest(data=data):
                with self.assertRaises(ValidationError) as cm:
                    self.service.add_pitch(data)
                self.assertEqual(cm.exception.code, code)
        self.assertEqual(len(self.service.list_pitches()), 4)


if __name__ == "__main__":
    unittest.main()
