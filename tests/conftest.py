from __future__ import annotations

from datetime import datetime

import pytest

from models import EventRecord, Source, Venue


def make_event(
    source_id: str = "1",
    title: str = "Test Event",
    venue: str | Venue = "Test Venue",
    start: datetime = datetime(2025, 1, 1),
    end: datetime | None = None,
    source: Source = Source.TICKETMASTER,
    **overrides,
) -> EventRecord:
    fields = dict(
        title=title,
        description="Test description",
        category="music",
        subcategories=frozenset({"rock"}),
        start_date=start,
        end_date=end,
        venue=venue if isinstance(venue, Venue) else Venue(venue, "Test", "Melbourne"),
        is_free=False,
        booking_url="https://example.com",
        source=source,
        source_id=f"{source.value}-{source_id}",
    )
    fields.update(overrides)
    return EventRecord(**fields)


@pytest.fixture
def event_factory():
    return make_event
