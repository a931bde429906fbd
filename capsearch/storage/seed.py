"""
Synthetic catalog generator.

Creates a skewed catalog on purpose: one dominant group, one large
secondary group and a long tail, so group caps have something to do.
"""

from __future__ import annotations

import argparse
import logging
import random
from datetime import date, timedelta

from capsearch.config.logging_config import setup_logging
from capsearch.config.settings import get_settings
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore
from capsearch.storage.models import Group, Item
from capsearch.storage.schema import initialize_database

logger = logging.getLogger(__name__)

_KEYWORDS = ["sneakers", "running", "sports", "fitness", "shoes", "outdoor", "apparel"]
_TITLE_WORDS = [
    "classic", "pro", "air", "trail", "ultra", "light", "street", "court",
    "max", "flex", "boost", "runner", "edition", "prime", "vintage",
]

# (country, cumulative probability)
_COUNTRIES = [("US", 0.60), ("GB", 0.80), ("AU", 0.90), ("CA", 1.00)]


def _country(rng: random.Random) -> str:
    roll = rng.random()
    for code, upper in _COUNTRIES:
        if roll < upper:
            return code
    return _COUNTRIES[-1][0]


def make_item(rng: random.Random, group: Group, today: date) -> Item:
    words = rng.sample(_TITLE_WORDS, rng.randint(2, 4))
    return Item(
        group_id=group.id,
        title=f"{group.name} {' '.join(words).capitalize()}",
        keywords=", ".join(rng.sample(_KEYWORDS, rng.randint(2, 4))),
        country_iso=_country(rng),
        start_date=(today - timedelta(days=rng.randint(0, 180))).isoformat(),
        relevance_score=round(rng.random(), 4),
    )


def seed_catalog(
    group_store: GroupStore,
    item_store: ItemStore,
    dominant_items: int = 3000,
    secondary_items: int = 1000,
    tail_items: int = 1000,
    tail_groups: int = 48,
    seed: int = 7,
) -> dict:
    """Insert groups and items; returns counts."""
    rng = random.Random(seed)
    today = date.today()

    groups = []
    for name, cap in [("Nike", 3), ("Adidas", 3)]:
        group = Group(name=name, item_cap=cap)
        group.id = group_store.insert(group)
        groups.append(group)
    for i in range(tail_groups):
        # The last ten tail groups get a tighter cap
        group = Group(name=f"Brand{i + 1:02d}", item_cap=2 if i >= tail_groups - 10 else 3)
        group.id = group_store.insert(group)
        groups.append(group)

    items = [make_item(rng, groups[0], today) for _ in range(dominant_items)]
    items += [make_item(rng, groups[1], today) for _ in range(secondary_items)]
    if len(groups) > 2:
        items += [make_item(rng, rng.choice(groups[2:]), today) for _ in range(tail_items)]
    item_store.insert_many(items)

    logger.info("Seeded %d groups and %d items", len(groups), len(items))
    return {"groups": len(groups), "items": len(items)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Seed the master store with a synthetic catalog.")
    parser.add_argument("--dominant", type=int, default=3000, help="Items of the dominant group.")
    parser.add_argument("--secondary", type=int, default=1000, help="Items of the secondary group.")
    parser.add_argument("--tail", type=int, default=1000, help="Items spread over the tail groups.")
    parser.add_argument("--tail-groups", type=int, default=48, help="Number of tail groups.")
    parser.add_argument("--seed", type=int, default=7, help="Random seed.")
    return parser


def main() -> int:
    args = build_parser().parse_args()

    settings = get_settings()
    setup_logging(log_dir=settings.logs_dir)
    initialize_database(settings.db_path)

    try:
        summary = seed_catalog(
            GroupStore(settings.db_path),
            ItemStore(settings.db_path),
            dominant_items=args.dominant,
            secondary_items=args.secondary,
            tail_items=args.tail,
            tail_groups=args.tail_groups,
            seed=args.seed,
        )
    except Exception as exc:
        logger.exception("Seeding failed: %s", exc)
        return 1

    print(f"groups={summary['groups']} items={summary['items']}")
    print("Run `python -m capsearch.indexing.cli` to index the new items.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
