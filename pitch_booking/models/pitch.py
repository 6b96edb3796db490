from dataclasses import dataclass
from typing import Optional


@dataclass
class Pitch:
    name: str
    location: str
    price_per_hour: float
    image_url: str = ""
    description: str = ""
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "price_per_hour": self.price_per_hour,
            "image_url": self.image_url,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Pitch":
        return cls(
            id=data.get("id"),
            name=data["name"],
            location=data["location"],
            price_per_hour=data["price_per_hour"],
            image_url=data.get("image_url", ""),
            description=data.get("description", ""),
        )
