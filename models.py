from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class Source(str, Enum):
    TICKETMASTER = "ticketmaster"   # ticketing platform API
    MARRINER = "marriner"           # theatre operator's own site
    WHATSON = "whatson"             # municipal listings
    FEVERUP = "feverup"             # experiences marketplace

    def __str__(self) -> str:
        return self.value


def _as_utc(value: datetime | None) -> datetime | None:
    """Offset-aware values become naive UTC so every date in a batch compares."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _parse_datetime(value) -> datetime | None:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_price(value) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


def _pick(data: dict, snake: str, camel: str | None = None, default=None):
    """Read a field written either in snake_case or camelCase."""
    if snake in data:
        return data[snake]
    if camel and camel in data:
        return data[camel]
    return default


@dataclass(frozen=True)
class Venue:
    name: str
    address: str = ""
    suburb: str = ""

    @classmethod
    def from_dict(cls, data: dict | str | None) -> Venue:
        if isinstance(data, str):
            return cls(name=data)
        data = data or {}
        return cls(
            name=(data.get("name") or "").strip(),
            address=(data.get("address") or "").strip(),
            suburb=(data.get("suburb") or "").strip(),
        )

    def to_dict(self) -> dict:
        return {"name": self.name, "address": self.address, "suburb": self.suburb}


@dataclass(frozen=True)
class EventRecord:
    title: str
    start_date: datetime
    venue: Venue
    source: Source
    source_id: str
    description: str = ""
    category: str = ""
    subcategories: frozenset[str] = frozenset()
    end_date: datetime | None = None
    price_min: float | None = None
    price_max: float | None = None
    price_details: str | None = None
    is_free: bool = False
    booking_url: str = ""
    image_url: str | None = None
    video_url: str | None = None
    accessibility: frozenset[str] = frozenset()
    age_restriction: str | None = None
    duration: str | None = None
    scraped_at: datetime | None = None
    last_updated: datetime | None = None
    merged_from: tuple[str, ...] = ()

    def __post_init__(self):
        # Callers may hand over lists; records stay hashable and immutable
        object.__setattr__(self, "source", Source(self.source))
        object.__setattr__(self, "subcategories", frozenset(self.subcategories))
        object.__setattr__(self, "accessibility", frozenset(self.accessibility))
        object.__setattr__(self, "merged_from", tuple(self.merged_from))
        for name in ("start_date", "end_date", "scraped_at", "last_updated"):
            object.__setattr__(self, name, _as_utc(getattr(self, name)))

    @property
    def id(self) -> str:
        return f"{self.source.value}:{self.source_id}"

    @property
    def end_or_start(self) -> datetime:
        return self.end_date or self.start_date

    @property
    def is_matchable(self) -> bool:
        """Records without a title, venue name or start date never take part in matching."""
        return bool(
            self.title and self.title.strip()
            and self.venue.name and self.venue.name.strip()
            and self.start_date
        )

    @classmethod
    def from_dict(cls, data: dict) -> EventRecord:
        start_date = _parse_datetime(_pick(data, "start_date", "startDate"))
        if start_date is None:
            raise ValueError(f"Event {data.get('title')!r} has no start date")
        return cls(
            title=(data.get("title") or "").strip(),
            description=data.get("description") or "",
            category=data.get("category") or "",
            subcategories=frozenset(data.get("subcategories") or ()),
            start_date=start_date,
            end_date=_parse_datetime(_pick(data, "end_date", "endDate")),
            venue=Venue.from_dict(data.get("venue")),
            price_min=_parse_price(_pick(data, "price_min", "priceMin")),
            price_max=_parse_price(_pick(data, "price_max", "priceMax")),
            price_details=_pick(data, "price_details", "priceDetails"),
            is_free=bool(_pick(data, "is_free", "isFree", False)),
            booking_url=_pick(data, "booking_url", "bookingUrl", "") or "",
            image_url=_pick(data, "image_url", "imageUrl"),
            video_url=_pick(data, "video_url", "videoUrl"),
            accessibility=frozenset(data.get("accessibility") or ()),
            age_restriction=_pick(data, "age_restriction", "ageRestriction"),
            duration=data.get("duration"),
            source=Source(data["source"]),
            source_id=str(_pick(data, "source_id", "sourceId", "")),
            scraped_at=_parse_datetime(_pick(data, "scraped_at", "scrapedAt")),
            last_updated=_parse_datetime(_pick(data, "last_updated", "lastUpdated")),
            merged_from=tuple(_pick(data, "merged_from", "mergedFrom", ()) or ()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "subcategories": sorted(self.subcategories),
            "start_date": _format_datetime(self.start_date),
            "end_date": _format_datetime(self.end_date),
            "venue": self.venue.to_dict(),
            "price_min": self.price_min,
            "price_max": self.price_max,
            "price_details": self.price_details,
            "is_free": self.is_free,
            "booking_url": self.booking_url,
            "image_url": self.image_url,
            "video_url": self.video_url,
            "accessibility": sorted(self.accessibility),
            "age_restriction": self.age_restriction,
            "duration": self.duration,
            "source": self.source.value,
            "source_id": self.source_id,
            "scraped_at": _format_datetime(self.scraped_at),
            "last_updated": _format_datetime(self.last_updated),
            "merged_from": list(self.merged_from),
        }


@dataclass(frozen=True)
class MatchScore:
    score: float
    breakdown: str      # "t:95 d:100 v:80"


@dataclass(frozen=True)
class DuplicateMatch:
    event1_id: str
    event2_id: str
    confidence: float
    reason: str         # "89% (t:95 d:100 v:80)"
    should_merge: bool = True

    def to_dict(self) -> dict:
        return {
            "event1_id": self.event1_id,
            "event2_id": self.event2_id,
            "confidence": round(self.confidence, 4),
            "reason": self.reason,
            "should_merge": self.should_merge,
        }
