import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from pitch_booking.core.errors import ConflictError, NotFoundError, ValidationError
from pitch_booking.models.reservation import Reservation
from pitch_booking.repositories.pitch_repository import PitchRepository
from pitch_booking.repositories.reservation_repository import ReservationRepository
from pitch_booking.services.ids import parse_id

logger = logging.getLogger(__name__)


@dataclass
class Availability:
    available: bool
    conflicts: List[Reservation] = field(default_factory=list)


def _is_blank(value) -> bool:
    return value is None or str(value).strip() == ""


def _require(**fields) -> None:
    missing = [name for name, value in fields.items() if _is_blank(value)]
    if missing:
        raise ValidationError(
            f"All fields are required (missing: {', '.join(missing)})", code="missing_field"
        )


def _require_text(**fields) -> None:
    not_text = [name for name, value in fields.items() if not isinstance(value, str)]
    if not_text:
        raise ValidationError(
            f"Fields must be strings: {', '.join(not_text)}", code="invalid_format"
        )


class _SlotLock:
    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class ReservationService:
    def __init__(self, pitch_repo: PitchRepository, reservation_repo: ReservationRepository):
        self.pitch_repo = pitch_repo
        self.reservation_repo = reservation_repo
        self._slot_locks: Dict[Tuple[Optional[int], str], _SlotLock] = {}
        self._slot_locks_guard = threading.Lock()

    @contextmanager
    def _slot_lock(self, pitch_id: Optional[int], booking_date: str):
        """Serialize check-then-commit for one (pitch, date) key.

        An entry lives only while some request holds or waits on it.
        """
        key = (pitch_id, booking_date)
        with self._slot_locks_guard:
            slot = self._slot_locks.get(key)
            if slot is None:
                slot = self._slot_locks[key] = _SlotLock()
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._slot_locks_guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slot_locks[key]

    def check_availability(self, pitch_id, booking_date: str, start_time: str, end_time: str) -> Availability:
        """Advisory only: the slot is not held, and the answer may be stale by commit time."""
        _require(pitch_id=pitch_id, booking_date=booking_date, start_time=start_time, end_time=end_time)
        _require_text(booking_date=booking_date, start_time=start_time, end_time=end_time)
        conflicts = self.reservation_repo.find_overlapping(
            parse_id(pitch_id), booking_date, start_time, end_time
        )
        return Availability(available=not conflicts, conflicts=conflicts)

    def create_reservation(
        self,
        pitch_id,
        customer_name: str,
        customer_email: str,
        customer_phone: str,
        booking_date: str,
        start_time: str,
        end_time: str,
    ) -> dict:
        # 1. Required fields
        _require(
            pitch_id=pitch_id,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
        )
        _require_text(
            customer_email=customer_email,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
        )

        # 2. Email shape
        if not Reservation.email_is_valid(customer_email):
            raise ValidationError("Invalid email format", code="invalid_email")

        # 3. Date and time formats, then ordering
        if not Reservation.date_is_valid(booking_date):
            raise ValidationError("Booking date must use YYYY-MM-DD", code="invalid_format")
        if not Reservation.time_is_valid(start_time) or not Reservation.time_is_valid(end_time):
            raise ValidationError("Times must use 24-hour HH:MM", code="invalid_format")
        if start_time >= end_time:
            raise ValidationError("End time must be after start time", code="end_before_start")

        pitch_id = parse_id(pitch_id)

        # 4-6. Overlap, pitch lookup and write run as one unit per slot key
        with self._slot_lock(pitch_id, booking_date):
            with self.reservation_repo.transaction() as snapshot:
                conflicts = self.reservation_repo.find_overlapping(
                    pitch_id, booking_date, start_time, end_time, snapshot
                )
                if conflicts:
                    logger.info(
                        f"Rejected {booking_date} {start_time}-{end_time} on pitch {pitch_id}: "
                        f"overlaps reservation {conflicts[0].id}"
                    )
                    raise ConflictError("Time slot is already booked")

                pitch = self.pitch_repo.find_by_id(pitch_id, snapshot)
                if not pitch:
                    raise NotFoundError("Pitch not found", code="pitch_not_found")

                reservation = Reservation(
                    pitch_id=pitch_id,
                    customer_name=customer_name,
                    customer_email=customer_email,
                    customer_phone=customer_phone,
                    booking_date=booking_date,
                    start_time=start_time,
                    end_time=end_time,
                )
                reservation.total_price = reservation.duration_hours() * pitch.price_per_hour
                reservation.created_at = datetime.now(timezone.utc).isoformat()
                self.reservation_repo.create(reservation, snapshot)

        logger.info(
            f"Reservation {reservation.id} confirmed: pitch {pitch_id} on {booking_date} "
            f"{start_time}-{end_time}, total {reservation.total_price}"
        )
        return self.reservation_repo.detailed(reservation, pitch)

    def list_reservations(self) -> List[dict]:
        return self.reservation_repo.find_all_detailed()

    def list_reservations_for(self, pitch_id, booking_date: str) -> List[Reservation]:
        return self.reservation_repo.find_by_pitch_and_date(parse_id(pitch_id), booking_date)

    def cancel_reservation(self, reservation_id) -> bool:
        reservation_id = parse_id(reservation_id)
        with self.reservation_repo.transaction() as snapshot:
            removed = self.reservation_repo.delete(reservation_id, snapshot)
        if removed:
            logger.info(f"Reservation {reservation_id} cancelled")
        return removed
