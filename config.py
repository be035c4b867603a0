"""Tuning for duplicate detection and merging.

A DedupConfig is built once and passed explicitly to every scoring and
merging function, so several configurations can be used side by side.
"""

from __future__ import annotations

from dataclasses import dataclass

from models import Source

# Common words to ignore when normalising titles
STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "at", "to", "for", "of", "in", "on",
    "live", "presents", "featuring", "feat", "ft", "show", "tour", "melbourne",
})

# Trailing venue tokens that only say where the venue is
GEO_SUFFIXES = frozenset({
    "melbourne", "vic", "victoria", "cbd", "australia",
    "nsw", "qld", "wa", "sa", "tas", "nt", "act",
})

# Most authoritative first: the venue operator's own listing beats the
# ticketing platform, which beats curated and marketplace listings.
SOURCE_PRIORITY = (
    Source.MARRINER,
    Source.TICKETMASTER,
    Source.WHATSON,
    Source.FEVERUP,
)


@dataclass(frozen=True)
class DedupConfig:
    title_weight: float = 0.50
    date_weight: float = 0.30
    venue_weight: float = 0.20
    overall_threshold: float = 0.78
    date_window_days: int = 14
    stop_words: frozenset[str] = STOP_WORDS
    geo_suffixes: frozenset[str] = GEO_SUFFIXES
    source_priority: tuple[Source, ...] = SOURCE_PRIORITY
    description_placeholder: str = "No description available"
    address_placeholders: tuple[str, ...] = ("TBA",)
    fallback_category: str = "other"
    price_details_separator: str = " | "

    def __post_init__(self):
        weights = (self.title_weight, self.date_weight, self.venue_weight)
        if any(w < 0 for w in weights):
            raise ValueError(f"Weights must be non-negative, got {weights}")
        if abs(sum(weights) - 1.0) > 1e-9:
            raise ValueError(f"Weights must sum to 1, got {sum(weights):.3f}")
        if not 0.0 <= self.overall_threshold <= 1.0:
            raise ValueError(
                f"overall_threshold must be within [0, 1], got {self.overall_threshold}"
            )
        if self.date_window_days <= 0:
            raise ValueError(
                f"date_window_days must be positive, got {self.date_window_days}"
            )
        # Accept plain sets/lists from callers but keep the config hashable
        object.__setattr__(self, "stop_words", frozenset(self.stop_words))
        object.__setattr__(self, "geo_suffixes", frozenset(self.geo_suffixes))
        object.__setattr__(
            self, "source_priority", tuple(Source(s) for s in self.source_priority)
        )
        object.__setattr__(
            self, "address_placeholders", tuple(self.address_placeholders)
        )

    def priority_of(self, source: Source) -> int:
        """Rank of a source, 0 being the most authoritative."""
        try:
            return self.source_priority.index(source)
        except ValueError:
            return len(self.source_priority)

    @property
    def date_reject_possible(self) -> bool:
        """True when a zero date score alone keeps a pair below threshold."""
        return self.title_weight + self.venue_weight < self.overall_threshold


DEFAULT_CONFIG = DedupConfig()
