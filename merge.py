from __future__ import annotations

from dataclasses import replace

from bs4 import BeautifulSoup

from config import DEFAULT_CONFIG, DedupConfig
from models import EventRecord, Venue


def _visible_text(html: str) -> str:
    """Description text as a reader sees it; API descriptions may carry markup."""
    if "<" not in html:
        return html.strip()
    return BeautifulSoup(html, "lxml").get_text(" ", strip=True)


def _is_placeholder_description(text: str, config: DedupConfig) -> bool:
    return _visible_text(text).lower() == config.description_placeholder.lower()


def _has_concrete_address(venue: Venue, config: DedupConfig) -> bool:
    address = venue.address.strip()
    if not address:
        return False
    return address.casefold() not in {p.casefold() for p in config.address_placeholders}


def _first(*values):
    """First non-empty value, in argument order."""
    for value in values:
        if value:
            return value
    return None


def _completeness(event: EventRecord, config: DedupConfig) -> int:
    score = 0
    if event.description and len(_visible_text(event.description)) > 100:
        score += 2
    if event.image_url:
        score += 1
    if event.price_min is not None:
        score += 1
    if event.price_details:
        score += 1
    if event.end_date:
        score += 1
    if _has_concrete_address(event.venue, config):
        score += 1
    if event.accessibility:
        score += 1
    return score


def primary_sort_key(event: EventRecord, config: DedupConfig = DEFAULT_CONFIG) -> tuple[int, int]:
    """Lower sorts first: authoritative source, then the more complete record."""
    return config.priority_of(event.source), -_completeness(event, config)


def select_primary(
    e1: EventRecord, e2: EventRecord, config: DedupConfig = DEFAULT_CONFIG
) -> EventRecord:
    """Pick which of two matched records should be passed as primary.

    Source priority decides first; on equal priority the record with more
    filled-in detail wins, and ``e1`` wins a full tie.
    """
    if primary_sort_key(e2, config) < primary_sort_key(e1, config):
        return e2
    return e1


def _merge_description(primary: EventRecord, secondary: EventRecord, config: DedupConfig) -> str:
    candidates = [
        d for d in (primary.description, secondary.description)
        if d and not _is_placeholder_description(d, config)
    ]
    if not candidates:
        return primary.description or secondary.description
    # max() keeps the first on ties, i.e. the primary's
    return max(candidates, key=lambda d: len(_visible_text(d)))


def _merge_subcategories(
    primary: EventRecord, secondary: EventRecord, category: str, config: DedupConfig
) -> frozenset[str]:
    subcategories = {s for s in primary.subcategories | secondary.subcategories if s}
    if (
        secondary.category
        and secondary.category != category
        and secondary.category != config.fallback_category
    ):
        subcategories.add(secondary.category)
    return frozenset(subcategories)


def _merge_price_details(primary: EventRecord, secondary: EventRecord, config: DedupConfig) -> str | None:
    details = []
    for detail in (primary.price_details, secondary.price_details):
        if detail and detail.strip() and detail.strip() not in details:
            details.append(detail.strip())
    return config.price_details_separator.join(details) or None


def _merge_venue(primary: Venue, secondary: Venue, config: DedupConfig) -> Venue:
    name = primary.name if len(primary.name) >= len(secondary.name) else secondary.name
    if _has_concrete_address(primary, config) or not _has_concrete_address(secondary, config):
        address = primary.address or secondary.address
    else:
        address = secondary.address
    return Venue(
        name=name,
        address=address,
        suburb=_first(primary.suburb, secondary.suburb) or "",
    )


def _present(*values):
    return [v for v in values if v is not None]


def merge_events(
    primary: EventRecord, secondary: EventRecord, config: DedupConfig = DEFAULT_CONFIG
) -> EventRecord:
    """Fold ``secondary`` into a new canonical record based on ``primary``.

    Neither input is modified. Data only one side has is carried over, ranges
    (dates, prices) are widened to cover both, set-like fields are unioned and
    a disagreeing category is kept as a subcategory.
    """
    category = primary.category or secondary.category or config.fallback_category

    start_date = min(primary.start_date, secondary.start_date)
    end_date = max(primary.end_or_start, secondary.end_or_start)

    mins = _present(primary.price_min, secondary.price_min)
    maxes = _present(primary.price_max, secondary.price_max)

    contributors = primary.merged_from or (primary.id,)
    for record_id in secondary.merged_from or (secondary.id,):
        if record_id not in contributors:
            contributors += (record_id,)

    updates = _present(primary.last_updated, secondary.last_updated)

    return replace(
        primary,
        description=_merge_description(primary, secondary, config),
        category=category,
        subcategories=_merge_subcategories(primary, secondary, category, config),
        start_date=start_date,
        end_date=end_date if end_date != start_date else None,
        venue=_merge_venue(primary.venue, secondary.venue, config),
        price_min=min(mins) if mins else None,
        price_max=max(maxes) if maxes else None,
        price_details=_merge_price_details(primary, secondary, config),
        is_free=primary.is_free or secondary.is_free,
        booking_url=_first(primary.booking_url, secondary.booking_url) or "",
        image_url=_first(primary.image_url, secondary.image_url),
        video_url=_first(primary.video_url, secondary.video_url),
        accessibility=primary.accessibility | secondary.accessibility,
        age_restriction=_first(primary.age_restriction, secondary.age_restriction),
        duration=_first(primary.duration, secondary.duration),
        scraped_at=primary.scraped_at or secondary.scraped_at,
        last_updated=max(updates) if updates else None,
        merged_from=contributors,
    )
