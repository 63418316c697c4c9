"""Immutable value objects shared by the fleet and trip aggregates."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import DomainError, Error


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float

    @classmethod
    def create(cls, latitude: float, longitude: float) -> "Location":
        if latitude < -90 or latitude > 90:
            raise DomainError(
                Error("Location.InvalidLatitude", "Latitude must be between -90 and 90")
            )
        if longitude < -180 or longitude > 180:
            raise DomainError(
                Error(
                    "Location.InvalidLongitude",
                    "Longitude must be between -180 and 180",
                )
            )
        return cls(latitude, longitude)

    def __str__(self) -> str:
        return f"({self.latitude}, {self.longitude})"


@dataclass(frozen=True)
class BatteryLevel:
    value: int

    MIN_LEVEL = 0
    MAX_LEVEL = 100
    LOW_BATTERY_THRESHOLD = 20

    @classmethod
    def create(cls, value: int) -> "BatteryLevel":
        if value < cls.MIN_LEVEL or value > cls.MAX_LEVEL:
            raise DomainError(
                Error(
                    "BatteryLevel.OutOfRange",
                    f"Battery level must be between {cls.MIN_LEVEL} and {cls.MAX_LEVEL}",
                )
            )
        return cls(value)

    def is_low(self) -> bool:
        return self.value < self.LOW_BATTERY_THRESHOLD

    def is_available(self) -> bool:
        return self.value >= self.LOW_BATTERY_THRESHOLD

    def __str__(self) -> str:
        return f"{self.value}%"


@dataclass(frozen=True)
class QRCode:
    """Vehicle tag printed as a QR code, e.g. ``ECO-1234``."""

    value: str

    PATTERN = re.compile(r"^ECO-\d{4}$")

    @classmethod
    def create(cls, raw: Optional[str]) -> "QRCode":
        if raw is None or not raw.strip():
            raise DomainError(Error("QRCode.Empty", "QR code cannot be empty"))
        normalized = raw.strip().upper()
        if not cls.PATTERN.match(normalized):
            raise DomainError(
                Error(
                    "QRCode.InvalidFormat",
                    "QR code must be in format ECO-XXXX (e.g., ECO-1234)",
                )
            )
        return cls(normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Rating:
    stars: int
    comment: Optional[str] = None

    MIN_STARS = 1
    MAX_STARS = 5
    MAX_COMMENT_LENGTH = 500

    @classmethod
    def create(cls, stars: int, comment: Optional[str] = None) -> "Rating":
        if stars < cls.MIN_STARS or stars > cls.MAX_STARS:
            raise DomainError(
                Error(
                    "Rating.InvalidStars",
                    f"Rating must be between {cls.MIN_STARS} and {cls.MAX_STARS} stars",
                )
            )
        # Blank comments are stored as no comment at all
        if comment is not None and comment.strip():
            comment = comment.strip()
            if len(comment) > cls.MAX_COMMENT_LENGTH:
                raise DomainError(
                    Error(
                        "Rating.CommentTooLong",
                        "Rating comment cannot exceed 500 characters",
                    )
                )
        else:
            comment = None
        return cls(stars, comment)

    def __str__(self) -> str:
        return f"{self.stars} star{'' if self.stars == 1 else 's'}"
