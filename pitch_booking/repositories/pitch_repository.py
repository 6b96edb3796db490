from typing import List, Optional

from pitch_booking.models.pitch import Pitch


class PitchRepository:
    def __init__(self, store):
        self.store = store

    def _snapshot(self, snapshot: Optional[dict]) -> dict:
        return snapshot if snapshot is not None else self.store.load()

    def find_all(self, snapshot: Optional[dict] = None) -> List[Pitch]:
        rows = self._snapshot(snapshot)["pitches"]
        # sorted() is stable, equal names keep insertion order
        return sorted((Pitch.from_dict(row) for row in rows), key=lambda p: p.name)

    def find_by_id(self, pitch_id: Optional[int], snapshot: Optional[dict] = None) -> Optional[Pitch]:
        if pitch_id is None:
            return None
        for row in self._snapshot(snapshot)["pitches"]:
            if row.get("id") == pitch_id:
                return Pitch.from_dict(row)
        return None

    def create(self, pitch: Pitch) -> Pitch:
        with self.store.transaction() as snapshot:
            pitch.id = snapshot["nextPitchId"]
            snapshot["nextPitchId"] += 1
            snapshot["pitches"].append(pitch.to_dict())
        return pitch
