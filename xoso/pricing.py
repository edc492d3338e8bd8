from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from math import comb
from typing import Sequence

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
    Region,
)
from xoso.rates import RateSettings

BASE_UNIT = Decimal(1000)

# Winning numbers per draw for each digit length.
LO_COUNTS: dict[Region, dict[int, int]] = {
    Region.MN: {2: 18, 3: 17, 4: 16},
    Region.MT: {2: 18, 3: 17, 4: 16},
    Region.MB: {2: 27, 3: 23, 4: 20},
}
_HUNDRED = Decimal(100)


def get_lo_count(digits: int, region: Region | str) -> int:
    counts = LO_COUNTS[Region.parse(region)]
    if digits not in counts:
        raise ValueError(f"Unsupported digit length for lo count: {digits}")
    return counts[digits]


def station_multiplier(province_count: int) -> int:
    if province_count >= 4:
        return 6
    if province_count == 3:
        return 3
    return 1


def price_category(bet_type: str, digits: int) -> str | None:
    """Rate category shared by pricing and settlement; None when the bet has no rate."""
    if bet_type == DAU:
        return "2dau"
    if bet_type == DUOI:
        return "2duoi"
    if bet_type in (BAO_LO, BAO_DAO):
        return f"{digits}lo" if digits in (2, 3, 4) else None
    if bet_type in XIU_CHU_HEAD_TYPES:
        return "3dau"
    if bet_type in XIU_CHU_TAIL_TYPES:
        return "4duoi" if digits == 4 else "3duoi"
    if bet_type in DA_TYPES:
        return "da"
    if bet_type == DA_XIEN:
        return "dx"
    return None


def round_money(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _as_list(numbers: str | Sequence[str]) -> list[str]:
    return [numbers] if isinstance(numbers, str) else list(numbers)


def price(
    bet_type: str,
    numbers: str | Sequence[str],
    point: Decimal | int | float,
    province_count: int,
    rate_settings: RateSettings,
    region: Region | str,
) -> int:
    region = Region.parse(region)
    number_list = _as_list(numbers)
    if not number_list:
        return 0
    category = price_category(bet_type, len(number_list[0]))
    if category is None:
        return 0

    point = Decimal(str(point))
    rate = rate_settings.price(region, category) / _HUNDRED

    if bet_type in DA_TYPES or bet_type == DA_XIEN:
        base_price = BASE_UNIT * get_lo_count(2, region) * 2
        combinations = comb(len(number_list), 2)
        if bet_type == DA_XIEN:
            face = base_price * combinations * 2 * point * station_multiplier(province_count)
        else:
            face = base_price * combinations * point * province_count
    elif category.endswith("lo"):
        face = point * BASE_UNIT * get_lo_count(len(number_list[0]), region) * province_count
    else:
        face = point * BASE_UNIT * province_count

    return round_money(face * rate)


def price_bet(bet: ParsedBet, rate_settings: RateSettings, region: Region | str) -> int:
    return price(bet.type, bet.numbers, bet.point, len(bet.provinces), rate_settings, region)
