#!/usr/bin/env python3
"""Sample one random content item from a configured source and show its episodes.

Negative results found along the way are stored in the discovery database,
so repeated runs get faster at skipping dead ids.

Usage:
    python scripts/random_content.py --list-sources
    python scripts/random_content.py 1
    python scripts/random_content.py 1 --category 2 --attempts 40
    python scripts/random_content.py 1 --categories
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path so we can import project modules
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from discovery.constants import MAX_SAMPLE_ATTEMPTS  # noqa: E402
from discovery.database import count_negative_results, init_db  # noqa: E402
from discovery.sampler import RandomSampler  # noqa: E402
from discovery.sources import get_categories, get_source, list_sources  # noqa: E402
from playback.playlist_parser import parse  # noqa: E402
from util.errors import ContentExhausted  # noqa: E402


def print_sources():
    sources = list_sources()
    if not sources:
        print("No active sources configured.")
        return
    for source in sources:
        print(f"[{source.id}] {source.name} ({source.type.value}, priority {source.priority})")


def print_categories(source_id: int) -> int:
    source = get_source(source_id)
    if source is None:
        print(f"Source {source_id} not found or inactive.")
        return 1
    categories = get_categories(source)
    if not categories:
        print("No categories available.")
    for category in categories:
        print(f"{category.id}\t{category.name}")
    return 0


def sample_and_print(source_id: int, category: str, attempts: int) -> int:
    source = get_source(source_id)
    if source is None:
        print(f"Source {source_id} not found or inactive.")
        return 1

    init_db()
    sampler = RandomSampler(max_attempts=attempts)
    try:
        record = sampler.sample(source, category)
    except ContentExhausted as e:
        print(f"{e}. Known dead ids for this source: {count_negative_results(source.id)}")
        return 2

    print(f"{record.title} [{record.content_id}]")
    if record.category:
        print(f"Category: {record.category}")
    if record.actor:
        print(f"Cast: {record.actor}")
    print()

    episodes = parse(record.play_url)
    for episode in episodes:
        lines = ", ".join(f"{s.label} -> {s.url}" for s in episode.sources)
        print(f"{episode.index + 1:>3}. {episode.title}: {lines}")
    if not episodes:
        print("No playable episodes.")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Sample random content from an upstream index")
    parser.add_argument("source_id", type=int, nargs="?", help="Configured source id")
    parser.add_argument("--category", default=None, help="Upstream category id")
    parser.add_argument("--attempts", type=int, default=MAX_SAMPLE_ATTEMPTS,
                        help="Maximum candidates to try")
    parser.add_argument("--list-sources", action="store_true", help="List active sources and exit")
    parser.add_argument("--categories", action="store_true", help="List the source's categories and exit")
    args = parser.parse_args()

    if args.list_sources:
        print_sources()
        return 0
    if args.source_id is None:
        parser.error("source_id is required")
    if args.categories:
        return print_categories(args.source_id)
    return sample_and_print(args.source_id, args.category, args.attempts)


if __name__ == "__main__":
    sys.exit(main())
