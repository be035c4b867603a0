from __future__ import annotations

import logging
import threading
from datetime import timedelta
from itertools import combinations

from config import DEFAULT_CONFIG, DedupConfig
from merge import merge_events, primary_sort_key
from models import DuplicateMatch, EventRecord
from normalize import normalise_title, normalise_venue
from similarity import (
    EXACT_MATCH,
    bigram_dice,
    breakdown,
    clear_caches,
    date_tier,
    dice_upper_bound,
    span_gap,
    squash,
    text_similarity,
    weighted_score,
)

logger = logging.getLogger(__name__)


def _candidate_pairs(
    events: list[EventRecord], indices: list[int], config: DedupConfig
) -> list[tuple[int, int]]:
    """Cross-source index pairs worth scoring, ordered by (i, j)."""
    if not config.date_reject_possible:
        return [
            (i, j) for i, j in combinations(indices, 2)
            if events[i].source != events[j].source
        ]

    # A pair further apart than the widest date tier scores 0 on dates and
    # can't reach the threshold, so only pairs inside that horizon are kept.
    horizon = timedelta(days=config.date_window_days * 2)
    by_start = sorted(indices, key=lambda k: events[k].start_date)
    pairs = []
    for pos, i in enumerate(by_start):
        reach = events[i].end_or_start + horizon
        for nxt in range(pos + 1, len(by_start)):
            j = by_start[nxt]
            if events[j].start_date > reach:
                break
            if events[i].source != events[j].source:
                pairs.append((i, j) if i < j else (j, i))
    pairs.sort()
    return pairs


def _features(event: EventRecord, config: DedupConfig) -> tuple:
    """Per-record values the pair scan reuses: run span, normalised title and venue."""
    title = normalise_title(event.title, config)
    return (
        event.start_date,
        event.end_or_start,
        title,
        squash(title),
        normalise_venue(event.venue.name, config),
    )


def find_duplicates(
    events: list[EventRecord],
    config: DedupConfig = DEFAULT_CONFIG,
    cancel: threading.Event | None = None,
) -> list[DuplicateMatch]:
    """Score every cross-source pair and return those at or above threshold.

    Matches are pairwise: A~B and B~C never imply A~C. Records missing a
    title, venue name or start date are left out. Setting ``cancel`` stops
    the scan and returns the matches found so far.

    Pairs are scored axis by axis, cheapest first, and dropped as soon as the
    best score they could still reach falls below the threshold. Scores of
    the pairs that survive equal ``match_score``.
    """
    clear_caches()
    threshold = config.overall_threshold
    indices = [k for k, event in enumerate(events) if event.is_matchable]
    skipped = len(events) - len(indices)
    if skipped:
        logger.debug(f"Skipping {skipped} events missing title, venue or start date")

    pairs = _candidate_pairs(events, indices, config)
    logger.debug(f"Scoring {len(pairs)} candidate pairs from {len(indices)} events")
    features = {k: _features(events[k], config) for k in indices}

    matches: list[DuplicateMatch] = []
    for i, j in pairs:
        if cancel is not None and cancel.is_set():
            logger.warning(f"Duplicate scan cancelled after {len(matches)} matches")
            break

        start1, end1, title1, squashed1, venue1 = features[i]
        start2, end2, title2, squashed2, venue2 = features[j]

        date = date_tier(span_gap(start1, end1, start2, end2), config)
        if weighted_score(EXACT_MATCH, date, EXACT_MATCH, config) < threshold:
            continue
        venue = text_similarity(venue1, venue2)

        if title1 == title2 or title1 in title2 or title2 in title1:
            title = text_similarity(title1, title2)
        else:
            ceiling = dice_upper_bound(len(squashed1), len(squashed2))
            if weighted_score(ceiling, date, venue, config) < threshold:
                continue
            title = bigram_dice(squashed1, squashed2)

        score = weighted_score(title, date, venue, config)
        if score < threshold:
            continue

        e1, e2 = events[i], events[j]
        reason = f"{score * 100:.0f}% ({breakdown(title, date, venue)})"
        matches.append(DuplicateMatch(
            event1_id=e1.id,
            event2_id=e2.id,
            confidence=score,
            reason=reason,
            should_merge=True,
        ))
        logger.debug(f"Duplicate: {e1.title!r} ~ {e2.title!r} {reason}")

    logger.info(f"Found {len(matches)} duplicate pairs among {len(events)} events")
    return matches


def cluster_matches(
    events: list[EventRecord],
    matches: list[DuplicateMatch],
    config: DedupConfig = DEFAULT_CONFIG,
) -> list[list[EventRecord]]:
    """Group events into merge clusters from pairwise matches.

    Union-find over the match graph, strongest match first. A match is
    rejected when both sides already belong to multi-record clusters, or when
    the clusters would end up holding two records of the same source.
    Every event lands in exactly one cluster.
    """
    index = {event.id: k for k, event in enumerate(events)}
    parent = list(range(len(events)))
    members = {k: [k] for k in range(len(events))}
    sources = {k: {event.source} for k, event in enumerate(events)}

    def find(k: int) -> int:
        while parent[k] != k:
            parent[k] = parent[parent[k]]
            k = parent[k]
        return k

    # sorted() is stable, so equal confidences keep scan order
    for match in sorted(matches, key=lambda m: -m.confidence):
        if match.event1_id not in index or match.event2_id not in index:
            logger.warning(
                f"Ignoring match for unknown events {match.event1_id} / {match.event2_id}"
            )
            continue

        a, b = find(index[match.event1_id]), find(index[match.event2_id])
        if a == b:
            continue
        if len(members[a]) > 1 and len(members[b]) > 1:
            logger.debug(f"Not chaining two merged groups via {match.reason}")
            continue
        if sources[a] & sources[b]:
            logger.debug(f"Not merging two listings from one source via {match.reason}")
            continue

        root, child = min(a, b), max(a, b)
        parent[child] = root
        members[root].extend(members.pop(child))
        sources[root] |= sources.pop(child)

    return [
        [events[k] for k in sorted(members[root])]
        for root in sorted(members)
    ]


def deduplicate(
    events: list[EventRecord],
    config: DedupConfig = DEFAULT_CONFIG,
    matches: list[DuplicateMatch] | None = None,
) -> list[EventRecord]:
    """Collapse cross-source duplicates into canonical events.

    Pass ``matches`` from an earlier ``find_duplicates`` call on the same
    events to skip scanning them again.
    """
    if matches is None:
        matches = find_duplicates(events, config)
    clusters = cluster_matches(events, matches, config)

    canonical: list[EventRecord] = []
    for cluster in clusters:
        ordered = sorted(cluster, key=lambda e: primary_sort_key(e, config))
        merged = ordered[0]
        for other in ordered[1:]:
            merged = merge_events(merged, other, config)
        if len(cluster) > 1:
            logger.info(f"Merged: {merged.title} ({', '.join(merged.merged_from)})")
        canonical.append(merged)

    canonical.sort(key=lambda e: (e.start_date, e.title))
    logger.info(f"Reduced {len(events)} events to {len(canonical)}")
    return canonical
