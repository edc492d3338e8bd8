from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from xoso.models import (
    BAO_DAO,
    BAO_LO,
    DA_TYPES,
    DA_XIEN,
    DAU,
    DUOI,
    XIU_CHU_HEAD_TYPES,
    XIU_CHU_TAIL_TYPES,
    ParsedBet,
    TypeTotal,
)

TOTAL_CATEGORIES = ("2c-dd", "2c-b", "3c", "4c", "dat", "dax", "total")
_XIU_CHU_TYPES = XIU_CHU_HEAD_TYPES | XIU_CHU_TAIL_TYPES


def category_for(bet: ParsedBet) -> str | None:
    if bet.type in (DAU, DUOI):
        return "2c-dd"
    if bet.type in (BAO_LO, BAO_DAO):
        return {2: "2c-b", 3: "3c", 4: "4c"}.get(bet.digit_length)
    if bet.type in _XIU_CHU_TYPES:
        return "3c"
    if bet.type in DA_TYPES:
        return "dat"
    if bet.type == DA_XIEN:
        return "dax"
    return None


def totals_by_type(bets: Iterable[ParsedBet]) -> dict[str, TypeTotal]:
    totals = {category: TypeTotal() for category in TOTAL_CATEGORIES}
    for bet in bets:
        buckets = [totals["total"]]
        category = category_for(bet)
        if category is not None:
            buckets.append(totals[category])
        for bucket in buckets:
            bucket.amount += bet.amount
            bucket.win_amount += bet.win_amount or 0
            bucket.win_count += bet.win_count or Decimal(0)
    return totals
