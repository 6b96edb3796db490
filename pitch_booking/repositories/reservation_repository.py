from typing import List, Optional

from pitch_booking.models.pitch import Pitch
from pitch_booking.models.reservation import Reservation

UNKNOWN = "Unknown"


class ReservationRepository:
    def __init__(self, store):
        self.store = store

    def transaction(self):
        return self.store.transaction()

    def _snapshot(self, snapshot: Optional[dict]) -> dict:
        return snapshot if snapshot is not None else self.store.load()

    def create(self, reservation: Reservation, snapshot: dict) -> Reservation:
        """Append to a snapshot opened with ``transaction()``; the caller commits it."""
        reservation.id = snapshot["nextReservationId"]
        snapshot["nextReservationId"] += 1
        snapshot["reservations"].append(reservation.to_dict())
        return reservation

    def find_by_id(self, reservation_id: Optional[int], snapshot: Optional[dict] = None) -> Optional[Reservation]:
        for row in self._snapshot(snapshot)["reservations"]:
            if row.get("id") == reservation_id:
                return Reservation.from_dict(row)
        return None

    def delete(self, reservation_id: Optional[int], snapshot: dict) -> bool:
        rows = snapshot["reservations"]
        for index, row in enumerate(rows):
            if row.get("id") == reservation_id:
                del rows[index]
                return True
        return False

    def find_overlapping(
        self,
        pitch_id: Optional[int],
        booking_date: str,
        start_time: str,
        end_time: str,
        snapshot: Optional[dict] = None,
    ) -> List[Reservation]:
        """Reservations on the same pitch and date whose [start, end) intersects the given one."""
        return [
            r for r in self.find_by_pitch_and_date(pitch_id, booking_date, snapshot)
            if r.overlaps(start_time, end_time)
        ]

    def find_by_pitch_and_date(
        self, pitch_id: Optional[int], booking_date: str, snapshot: Optional[dict] = None
    ) -> List[Reservation]:
        rows = self._snapshot(snapshot)["reservations"]
        matches = [
            Reservation.from_dict(row) for row in rows
            if row.get("pitch_id") == pitch_id and row.get("booking_date") == booking_date
        ]
        return sorted(matches, key=lambda r: r.start_time)

    def find_all_detailed(self) -> List[dict]:
        """Every reservation with its pitch name and location, newest date and start first."""
        snapshot = self.store.load()
        pitches = {row.get("id"): Pitch.from_dict(row) for row in snapshot["pitches"]}
        rows = [
            self.detailed(Reservation.from_dict(row), pitches.get(row.get("pitch_id")))
            for row in snapshot["reservations"]
        ]
        return sorted(rows, key=lambda r: (r["booking_date"], r["start_time"]), reverse=True)

    @staticmethod
    def detailed(reservation: Reservation, pitch: Optional[Pitch]) -> dict:
        row = reservation.to_dict()
        row["pitch_name"] = pitch.name if pitch else UNKNOWN
        row["pitch_location"] = pitch.location if pitch else UNKNOWN
        return row
