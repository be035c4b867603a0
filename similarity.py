"""Per-axis similarity scores and the weighted match score."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from functools import lru_cache

from config import DEFAULT_CONFIG, DedupConfig
from models import EventRecord, MatchScore
from normalize import CACHE_SIZE, clear_normalise_caches, normalise_title, normalise_venue

EXACT_MATCH = 1.0
SUBSTRING_MATCH = 0.95

DATE_OVERLAP = 1.0
DATE_NEAR = 0.85
DATE_FAR = 0.5

NO_GAP = timedelta(0)


def squash(text: str) -> str:
    """Drop all whitespace; bigram comparisons ignore word boundaries."""
    return "".join(text.split())


@lru_cache(maxsize=CACHE_SIZE)
def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


@lru_cache(maxsize=CACHE_SIZE)
def _bigram_set(text: str) -> tuple[frozenset[str], bool]:
    """Distinct bigrams, and whether every bigram occurs only once."""
    bigrams = frozenset(text[i:i + 2] for i in range(len(text) - 1))
    return bigrams, len(bigrams) == len(text) - 1


def _bigram_overlap(a: str, b: str) -> int:
    set_a, unique_a = _bigram_set(a)
    set_b, unique_b = _bigram_set(b)
    # min(count_a, count_b) is 1 for every shared bigram when one side has no repeats
    if unique_a or unique_b:
        return len(set_a & set_b)
    return sum((_bigrams(a) & _bigrams(b)).values())


def bigram_dice(a: str, b: str) -> float:
    """Dice coefficient of two already-squashed strings."""
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    return 2.0 * _bigram_overlap(a, b) / (len(a) + len(b) - 2)


def dice_upper_bound(len_a: int, len_b: int) -> float:
    """Highest ``bigram_dice`` two squashed strings of these lengths can reach."""
    if len_a == len_b:
        return 1.0
    shorter = min(len_a, len_b)
    if shorter < 2:
        return 0.0
    return 2.0 * (shorter - 1) / (len_a + len_b - 2)


@lru_cache(maxsize=CACHE_SIZE)
def dice_coefficient(a: str, b: str) -> float:
    """Sørensen-Dice coefficient over character bigrams, ignoring whitespace."""
    return bigram_dice(squash(a), squash(b))


def text_similarity(na: str, nb: str) -> float:
    """Score two normalised strings: exact, containment, then bigram Dice."""
    if na == nb:
        return EXACT_MATCH
    if na in nb or nb in na:
        return SUBSTRING_MATCH
    return dice_coefficient(na, nb)


def title_similarity(a: str, b: str, config: DedupConfig = DEFAULT_CONFIG) -> float:
    """Similarity of two titles in [0, 1].

    1.0 when the normalised titles are equal (two empty titles included),
    0.95 when one contains the other, bigram Dice coefficient otherwise.
    """
    return text_similarity(normalise_title(a, config), normalise_title(b, config))


def venue_similarity(a: str, b: str, config: DedupConfig = DEFAULT_CONFIG) -> float:
    """Similarity of two venue names in [0, 1], scored like titles."""
    return text_similarity(normalise_venue(a, config), normalise_venue(b, config))


def span_gap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> timedelta:
    """Time between two runs given as inclusive [start, end]; zero when they overlap."""
    if start1 <= end2 and start2 <= end1:
        return NO_GAP
    if end1 < start2:
        return start2 - end1
    return start1 - end2


def date_gap(e1: EventRecord, e2: EventRecord) -> timedelta:
    """Time between two events' runs; zero when they overlap."""
    return span_gap(e1.start_date, e1.end_or_start, e2.start_date, e2.end_or_start)


def date_tier(gap: timedelta, config: DedupConfig = DEFAULT_CONFIG) -> float:
    if not gap:
        return DATE_OVERLAP
    window = timedelta(days=config.date_window_days)
    if gap <= window:
        return DATE_NEAR
    if gap <= window * 2:
        return DATE_FAR
    return 0.0


def date_overlap(
    e1: EventRecord, e2: EventRecord, config: DedupConfig = DEFAULT_CONFIG
) -> float:
    """Tiered date score: 1.0 overlapping, 0.85 within the window,
    0.5 within twice the window, 0 beyond."""
    return date_tier(date_gap(e1, e2), config)


def weighted_score(title: float, date: float, venue: float, config: DedupConfig) -> float:
    return (
        title * config.title_weight
        + date * config.date_weight
        + venue * config.venue_weight
    )


def _percent(value: float) -> str:
    return f"{value * 100:.0f}"


def breakdown(title: float, date: float, venue: float) -> str:
    return f"t:{_percent(title)} d:{_percent(date)} v:{_percent(venue)}"


def match_score(
    e1: EventRecord, e2: EventRecord, config: DedupConfig = DEFAULT_CONFIG
) -> MatchScore:
    """Weighted confidence that two records are the same event."""
    title = title_similarity(e1.title, e2.title, config)
    date = date_overlap(e1, e2, config)
    venue = venue_similarity(e1.venue.name, e2.venue.name, config)
    return MatchScore(
        score=weighted_score(title, date, venue, config),
        breakdown=breakdown(title, date, venue),
    )


def clear_caches() -> None:
    """Drop memoised normalisations and similarity scores."""
    clear_normalise_caches()
    _bigrams.cache_clear()
    _bigram_set.cache_clear()
    dice_coefficient.cache_clear()
