import logging
import math
from typing import List

from pitch_booking.core.errors import NotFoundError, ValidationError
from pitch_booking.models.pitch import Pitch
from pitch_booking.repositories.pitch_repository import PitchRepository
from pitch_booking.services.ids import parse_id

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, pitch_repo: PitchRepository):
        self.pitch_repo = pitch_repo

    def list_pitches(self) -> List[Pitch]:
        return self.pitch_repo.find_all()

    def get_pitch(self, pitch_id) -> Pitch:
        pitch = self.pitch_repo.find_by_id(parse_id(pitch_id))
        if not pitch:
            raise NotFoundError("Pitch not found", code="pitch_not_found")
        return pitch

    def add_pitch(self, data: dict) -> Pitch:
        name = data.get("name")
        location = data.get("location")
        if not name or not location:
            raise ValidationError("Name and location are required", code="missing_field")
        price = data.get("price_per_hour")
        try:
            price = float(price) if isinstance(price, str) else price
        except ValueError:
            price = None
        if (
            isinstance(price, bool)
            or not isinstance(price, (int, float))
            or not math.isfinite(price)
            or price <= 0
        ):
            raise ValidationError("Price per hour must be a positive number", code="invalid_price")

        pitch = Pitch(
            name=name,
            location=location,
            price_per_hour=price,
            image_url=data.get("image_url", ""),
            description=data.get("description", ""),
        )
        pitch = self.pitch_repo.create(pitch)
        logger.info(f"Pitch {pitch.id} '{pitch.name}' added to catalog")
        return pitch
