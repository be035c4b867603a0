"""Canonical forms of titles and venue names for comparison."""

from __future__ import annotations

import re
from functools import lru_cache

from config import DEFAULT_CONFIG, DedupConfig

CACHE_SIZE = 10_000


def _normalize(text: str) -> str:
    """Lowercase, turn punctuation into spaces, collapse whitespace."""
    text = re.sub(r"[^\w\s]", " ", (text or "").lower())
    return re.sub(r"\s+", " ", text).strip()


@lru_cache(maxsize=CACHE_SIZE)
def _normalise_title(title: str, stop_words: frozenset[str]) -> str:
    words = [
        word for word in _normalize(title).split(" ")
        if len(word) > 1 and word not in stop_words
    ]
    return " ".join(words)


@lru_cache(maxsize=CACHE_SIZE)
def _normalise_venue(venue: str, geo_suffixes: frozenset[str]) -> str:
    normalised = _normalize(venue)
    tokens = normalised.split(" ")
    # Only trailing place names go; "Princess Theatre" and "Princess Cinema"
    # keep their venue-type word and stay distinct.
    while tokens and tokens[-1] in geo_suffixes:
        tokens.pop()
    stripped = " ".join(tokens)
    if len(stripped) < 2:
        return normalised
    return stripped


def normalise_title(title: str, config: DedupConfig = DEFAULT_CONFIG) -> str:
    """Normalise an event title, dropping stop words and marketing terms.

    >>> normalise_title("Hamilton Live in Melbourne")
    'hamilton'
    """
    return _normalise_title(title or "", config.stop_words)


def normalise_venue(venue: str, config: DedupConfig = DEFAULT_CONFIG) -> str:
    """Normalise a venue name, stripping trailing city/state names.

    >>> normalise_venue("Forum Theatre Melbourne VIC")
    'forum theatre'
    """
    return _normalise_venue(venue or "", config.geo_suffixes)


def clear_normalise_caches() -> None:
    _normalise_title.cache_clear()
    _normalise_venue.cache_clear()
