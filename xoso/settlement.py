from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from itertools import combinations
from typing import Iterable, Mapping, Sequence

from xoso.models import DA_TYPES, DA_XIEN, ParsedBet, Region, SettlementResult
from xoso.pricing import BASE_UNIT, price_category, round_money
from xoso.rates import RateSettings
from xoso.results import PrizeMap, digits_for, loto_digits
from xoso.text import fold

logger = logging.getLogger(__name__)

# Đá xiên pays a fixed 550 per layer unit regardless of the configured windx.
XIEN_BASE_RATE = 550
XIEN_LAYER_MULTIPLIERS = {2: 1, 3: 2, 4: 4}

DrawResultMap = Mapping[str, PrizeMap]


class PairWinPolicy(str, Enum):
    MIN_COUNT = "min"
    HALF_COUNT = "half"


class DaScope(str, Enum):
    PER_PROVINCE = "per_province"
    POOLED = "pooled"


@dataclass(frozen=True)
class SettlementOptions:
    pair_policy: PairWinPolicy = PairWinPolicy.HALF_COUNT
    da_scope: DaScope = DaScope.PER_PROVINCE


def _province_prizes(draw_results: DrawResultMap, name: str) -> PrizeMap | None:
    prizes = draw_results.get(name)
    if prizes is not None:
        return prizes
    wanted = fold(name)
    for key, value in draw_results.items():
        if fold(key) == wanted:
            return value
    return None


def _available_prizes(bet: ParsedBet, draw_results: DrawResultMap) -> list[PrizeMap]:
    found = []
    for name in bet.provinces:
        prizes = _province_prizes(draw_results, name)
        if prizes is None:
            logger.warning("Missing draw results for province: province=%s type=%s", name, bet.type)
            continue
        found.append(prizes)
    return found


def pair_win_count(first: int, second: int, policy: PairWinPolicy) -> Decimal:
    if first < 1 or second < 1:
        return Decimal(0)
    if policy is PairWinPolicy.MIN_COUNT:
        return Decimal(min(first, second))
    return (Decimal(first) + Decimal(second)) / 2


def _pairs_win_count(numbers: Sequence[str], frequencies: Counter, policy: PairWinPolicy) -> Decimal:
    return sum(
        (pair_win_count(frequencies[a], frequencies[b], policy) for a, b in combinations(numbers, 2)),
        Decimal(0),
    )


def _settle_xien_counts(counts: Sequence[int]) -> tuple[int, int]:
    """Layered đá xiên payout for per-number frequencies.

    Returns (win_count, weighted_rate): the full layer pays ``min`` at its
    multiplier, then each smaller combination pays its own ``min`` when every
    member still has a remainder left after the full layer.
    """
    size = len(counts)
    if size not in XIEN_LAYER_MULTIPLIERS:
        return 0, 0
    full = min(counts)
    win_count = full
    weighted = full * XIEN_BASE_RATE * XIEN_LAYER_MULTIPLIERS[size]
    remainders = [c - full for c in counts]
    for layer in range(size - 1, 1, -1):
        for combo in combinations(range(size), layer):
            if all(remainders[i] > 0 for i in combo):
                layer_min = min(counts[i] for i in combo)
                win_count += layer_min
                weighted += layer_min * XIEN_BASE_RATE * XIEN_LAYER_MULTIPLIERS[layer]
    return win_count, weighted


def _settle_xien(bet: ParsedBet, prize_maps: list[PrizeMap]) -> SettlementResult:
    frequencies: Counter = Counter()
    for prizes in prize_maps:
        frequencies.update(loto_digits(prizes, 2))
    counts = [frequencies[n] for n in bet.number_list]
    win_count, weighted = _settle_xien_counts(counts)
    if not win_count:
        return SettlementResult()
    amount = Decimal(weighted) * Decimal(str(bet.point)) * BASE_UNIT
    return SettlementResult(win_count=Decimal(win_count), win_amount=round_money(amount))


def _settle_da(
    bet: ParsedBet,
    prize_maps: list[PrizeMap],
    win_rate: Decimal,
    options: SettlementOptions,
) -> SettlementResult:
    numbers = bet.number_list
    if options.da_scope is DaScope.POOLED:
        pooled: Counter = Counter()
        for prizes in prize_maps:
            pooled.update(loto_digits(prizes, 2))
        win_count = _pairs_win_count(numbers, pooled, options.pair_policy)
    else:
        win_count = sum(
            (_pairs_win_count(numbers, Counter(loto_digits(p, 2)), options.pair_policy) for p in prize_maps),
            Decimal(0),
        )
    if not win_count:
        return SettlementResult()
    amount = win_count * Decimal(str(bet.point)) * BASE_UNIT * win_rate
    return SettlementResult(win_count=win_count, win_amount=round_money(amount))


def settle_bet(
    bet: ParsedBet,
    draw_results: DrawResultMap,
    rate_settings: RateSettings,
    region: Region | str,
    options: SettlementOptions | None = None,
) -> SettlementResult:
    options = options or SettlementOptions()
    region = Region.parse(region)
    if not draw_results or not bet.number_list:
        return SettlementResult()
    prize_maps = _available_prizes(bet, draw_results)
    if not prize_maps:
        return SettlementResult()

    if bet.type == DA_XIEN:
        return _settle_xien(bet, prize_maps)

    category = price_category(bet.type, bet.digit_length)
    if category is None:
        logger.warning("No win rate for bet type: type=%s digits=%d", bet.type, bet.digit_length)
        return SettlementResult()
    win_rate = rate_settings.win_rate(region, category)

    if bet.type in DA_TYPES:
        return _settle_da(bet, prize_maps, win_rate, options)

    win_count = 0
    for prizes in prize_maps:
        drawn = Counter(digits_for(bet.type, bet.digit_length, prizes))
        win_count += sum(drawn[number] for number in bet.number_list)
    if not win_count:
        return SettlementResult()
    amount = Decimal(win_count) * Decimal(str(bet.point)) * BASE_UNIT * win_rate
    return SettlementResult(win_count=Decimal(win_count), win_amount=round_money(amount))


def settle_message(
    bets: Iterable[ParsedBet],
    draw_results: DrawResultMap,
    rate_settings: RateSettings,
    region: Region | str,
    options: SettlementOptions | None = None,
) -> list[SettlementResult]:
    """Settle every bet and record ``win_count`` / ``win_amount`` on it."""
    settled = []
    for bet in bets:
        result = settle_bet(bet, draw_results, rate_settings, region, options)
        bet.win_count = result.win_count
        bet.win_amount = result.win_amount
        settled.append(result)
    return settled
