import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DATE_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_REGEX = re.compile(r"^\d{2}:\d{2}$")
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


@dataclass
class Reservation:
    pitch_id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    booking_date: str
    start_time: str
    end_time: str
    total_price: float = 0
    id: Optional[int] = None
    created_at: Optional[str] = None

    def overlaps(self, start_time: str, end_time: str) -> bool:
        # Half-open [start, end): touching ends are not a conflict
        return self.start_time < end_time and start_time < self.end_time

    def duration_hours(self) -> float:
        start = datetime.strptime(self.start_time, TIME_FORMAT)
        end = datetime.strptime(self.end_time, TIME_FORMAT)
        return (end - start).total_seconds() / 3600

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "pitch_id": self.pitch_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "booking_date": self.booking_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "total_price": self.total_price,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Reservation":
        return cls(**{key: data.get(key) for key in (
            "pitch_id", "customer_name", "customer_email", "customer_phone",
            "booking_date", "start_time", "end_time", "total_price", "id", "created_at",
        )})

    @staticmethod
    def email_is_valid(email: str) -> bool:
        return bool(EMAIL_REGEX.fullmatch(email))

    @staticmethod
    def date_is_valid(value: str) -> bool:
        if not DATE_REGEX.fullmatch(value):
            return False
        try:
            datetime.strptime(value, DATE_FORMAT)
        except ValueError:
            return False
        return True

    @staticmethod
    def time_is_valid(value: str) -> bool:
        if not TIME_REGEX.fullmatch(value):
            return False
        try:
            datetime.strptime(value, TIME_FORMAT)
        except ValueError:
            return False
        return True
