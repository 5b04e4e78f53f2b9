"""
Atomic named counters backing the human-readable ids
(TGT0001, PROD0001, MR001, VIS000001, ORD000001).

One document per sequence in the `counters` collection, bumped with a
single find_one_and_update so concurrent inserts never draw the same
number. Numbers are never reused, deletions leave gaps.
"""

import logging
from pymongo import ReturnDocument
from config import db

logger = logging.getLogger("sequences")

# name -> (prefix, zero padding)
SEQUENCE_FORMATS = {
    "target": ("TGT", 4),
    "product": ("PROD", 4),
    "employee_id": ("MR", 3),
    "visit": ("VIS", 6),
    "order": ("ORD", 6),
}


async def next_value(name: str) -> int:
    counter = await db.counters.find_one_and_update(
        {"_id": name},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return counter["seq"]


def format_sequence(name: str, value: int) -> str:
    prefix, width = SEQUENCE_FORMATS[name]
    return f"{prefix}{str(value).zfill(width)}"


async def next_code(name: str) -> str:
    """Draws the next number of a sequence and formats it: next_code("target") -> "TGT0007"."""
    return format_sequence(name, await next_value(name))


async def ensure_at_least(name: str, floor: int):
    """
    Moves a sequence forward so that its next value is > floor.

    Used once when seeding a counter over a collection that already holds
    numbered rows (legacy data numbered by count).
    """
    await db.counters.update_one(
        {"_id": name},
        {"$max": {"seq": floor}},
        upsert=True,
    )
    logger.info(f"[SEQUENCE] {name} advanced to {floor}")
