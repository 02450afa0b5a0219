"""Staged relaxation of one direction's raw offers into a candidate pool.

Each stage only runs when the previous one produced nothing, and every stage selects
from the raw offers it was given, so the result is always a subset of the input:

    nonstop preference -> strict hour -> hour - 2 -> 10 cheapest regardless of time
"""
import enum
from typing import Sequence

from ..models import Offer

RELAXED_HOURS = 2
LAST_RESORT_SIZE = 10


class CascadeStage(enum.Enum):
    STRICT = 'strict'
    RELAXED = 'relaxed'
    LAST_RESORT = 'last_resort'
    EMPTY = 'empty'


def filter_nonstop(offers: Sequence[Offer]) -> list[Offer]:
    return [o for o in offers if o.stops == 0]


def filter_by_hour(offers: Sequence[Offer], min_hour: int) -> list[Offer]:
    """Offers departing at or after min_hour local time; missing departures never match."""
    return [o for o in offers if o.departure_hour is not None and o.departure_hour >= min_hour]


def cheapest(offers: Sequence[Offer], limit: int = LAST_RESORT_SIZE) -> list[Offer]:
    return sorted(offers, key=lambda o: o.price)[:limit]


def reduce_with_stage(raw: Sequence[Offer], min_hour: int) -> tuple[CascadeStage, list[Offer]]:
    if not raw:
        return CascadeStage.EMPTY, []
    pool = filter_nonstop(raw) or list(raw)
    selected = filter_by_hour(pool, min_hour)
    if selected:
        return CascadeStage.STRICT, selected
    selected = filter_by_hour(pool, min_hour - RELAXED_HOURS)
    if selected:
        return CascadeStage.RELAXED, selected
    return CascadeStage.LAST_RESORT, cheapest(raw)


def reduce(raw: Sequence[Offer], min_hour: int) -> list[Offer]:
    return reduce_with_stage(raw, min_hour)[1]
