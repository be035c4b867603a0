#!/usr/bin/env python3
"""EventMerge - collapse cross-source event listings into canonical events."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from config import DEFAULT_CONFIG, DedupConfig
from dedup import cluster_matches, deduplicate, find_duplicates
from models import EventRecord

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Resolved against the working directory at write time
OUTPUT_FILE = Path("docs") / "events.json"


def load_events(path: Path) -> list[EventRecord]:
    """Read a scraper batch: a JSON list of events or {"events": [...]}."""
    data = json.loads(path.read_text(encoding="utf-8"))
    raw_events = data.get("events", []) if isinstance(data, dict) else data

    events = []
    for raw in raw_events:
        try:
            events.append(EventRecord.from_dict(raw))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            title = raw.get("title") if isinstance(raw, dict) else raw
            logger.warning(f"[{path.name}] Skipping unreadable event {title!r}: {exc}")
    logger.info(f"[{path.name}] Loaded {len(events)} events")
    return events


def write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("inputs", nargs="+", type=Path, help="Per-source event JSON files")
    parser.add_argument("-o", "--output", type=Path, default=OUTPUT_FILE)
    parser.add_argument("--threshold", type=float, default=None,
                        help=f"Match cutoff (default {DEFAULT_CONFIG.overall_threshold})")
    parser.add_argument("--matches", type=Path, default=None,
                        help="Also write the scored duplicate pairs here")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> DedupConfig:
    if args.threshold is None:
        return DEFAULT_CONFIG
    return replace(DEFAULT_CONFIG, overall_threshold=args.threshold)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    config = build_config(args)

    all_events: list[EventRecord] = []
    for path in args.inputs:
        all_events.extend(load_events(path))

    logger.info(f"Total events before dedup: {len(all_events)}")
    matches = None
    if args.matches:
        matches = find_duplicates(all_events, config)
        clusters = cluster_matches(all_events, matches, config)
        write_json(args.matches, {
            "count": len(matches),
            "matches": [m.to_dict() for m in matches],
            "clusters": [[e.id for e in c] for c in clusters if len(c) > 1],
        })
        logger.info(f"Written {len(matches)} matches to {args.matches}")

    unique_events = deduplicate(all_events, config, matches)
    logger.info(f"Total events after dedup: {len(unique_events)}")

    output = {
        "last_updated": datetime.now(timezone.utc).isoformat(),
        "count": len(unique_events),
        "events": [e.to_dict() for e in unique_events],
    }
    write_json(args.output, output)
    logger.info(f"Written {len(unique_events)} events to {args.output}")


if __name__ == "__main__":
    main()
