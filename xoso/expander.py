from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Sequence

from xoso.models import (
    BAO_DAO,
    BAO_LO,
    DA,
    DA_THANG,
    DA_XIEN,
    DAU,
    DAU_DUOI,
    DUOI,
    XIU_CHU,
    XIU_CHU_DAO,
    XIU_CHU_DAO_DAU,
    XIU_CHU_DAO_DUOI,
    XIU_CHU_DAU,
    XIU_CHU_DUOI,
    ErrorKind,
    ParsedBet,
    ParseError,
    Province,
    Region,
)
from xoso.permutation import generate_permutations
from xoso.pricing import price
from xoso.rates import RateSettings
from xoso.registry import BetTypeRegistry, ProvinceRegistry

logger = logging.getLogger(__name__)

# Allowed digit lengths for atomic bet types.
_DIGIT_RULES: dict[str, tuple[int, ...]] = {
    DAU: (2,),
    DUOI: (2,),
    BAO_LO: (2, 3, 4),
    XIU_CHU_DAU: (3,),
    XIU_CHU_DUOI: (3, 4),
}
_XIEN_MIN_PROVINCES = 2


@dataclass
class ParseContext:
    provinces: ProvinceRegistry
    bet_types: BetTypeRegistry
    rate_settings: RateSettings = field(default_factory=RateSettings)
    region: Region = Region.MN
    # Ordered by priority; feeds station shorthand and đá xiên auto-fill.
    priority_provinces: list[Province] = field(default_factory=list)


Expansion = tuple[list[ParsedBet], list[ParseError]]


def _describe_lengths(lengths: tuple[int, ...]) -> str:
    if len(lengths) == 1:
        return str(lengths[0])
    return f"{lengths[0]}-{lengths[-1]}"


def _digit_error(bet_type: str, number: str, lengths: tuple[int, ...], provinces: list[str]) -> ParseError:
    return ParseError(
        message=f"{bet_type} cần số {_describe_lengths(lengths)} chữ số: {number}",
        kind=ErrorKind.CARDINALITY_VIOLATION,
        type=bet_type,
        numbers=[number],
        provinces=provinces,
    )


def _make_bet(
    numbers: str | list[str],
    bet_type: str,
    point: Decimal,
    provinces: list[str],
    ctx: ParseContext,
) -> ParsedBet:
    amount = price(bet_type, numbers, point, len(provinces), ctx.rate_settings, ctx.region)
    return ParsedBet(numbers=numbers, type=bet_type, point=point, provinces=list(provinces), amount=amount)


def _expand_atomic(bet_type: str, numbers, point, names, ctx) -> Expansion:
    bets: list[ParsedBet] = []
    errors: list[ParseError] = []
    lengths = _DIGIT_RULES.get(bet_type)
    for number in numbers:
        if lengths is not None and len(number) not in lengths:
            errors.append(_digit_error(bet_type, number, lengths, names))
            continue
        bets.append(_make_bet(number, bet_type, point, names, ctx))
    return bets, errors


def _expand_dau_duoi(bet_type, numbers, point, names, ctx) -> Expansion:
    bets: list[ParsedBet] = []
    errors: list[ParseError] = []
    for number in numbers:
        if len(number) != 2:
            errors.append(_digit_error(bet_type, number, (2,), names))
            continue
        bets.append(_make_bet(number, DAU, point, names, ctx))
        bets.append(_make_bet(number, DUOI, point, names, ctx))
    return bets, errors


def _expand_xiu_chu(bet_type, numbers, point, names, ctx) -> Expansion:
    bets: list[ParsedBet] = []
    errors: list[ParseError] = []
    for number in numbers:
        if len(number) != 3:
            errors.append(_digit_error(bet_type, number, (3,), names))
            continue
        bets.append(_make_bet(number, XIU_CHU_DAU, point, names, ctx))
        bets.append(_make_bet(number, XIU_CHU_DUOI, point, names, ctx))
    return bets, errors


_XIU_CHU_DAO_HALVES = {
    XIU_CHU_DAO: (XIU_CHU_DAO_DAU, XIU_CHU_DAO_DUOI),
    XIU_CHU_DAO_DAU: (XIU_CHU_DAO_DAU,),
    XIU_CHU_DAO_DUOI: (XIU_CHU_DAO_DUOI,),
}


def _expand_xiu_chu_dao(bet_type, numbers, point, names, ctx) -> Expansion:
    bets: list[ParsedBet] = []
    errors: list[ParseError] = []
    halves = _XIU_CHU_DAO_HALVES[bet_type]
    for number in numbers:
        if len(number) != 3:
            errors.append(_digit_error(bet_type, number, (3,), names))
            continue
        for permutation in generate_permutations(number):
            for half in halves:
                bets.append(_make_bet(permutation, half, point, names, ctx))
    return bets, errors


def _expand_bao_dao(bet_type, numbers, point, names, ctx) -> Expansion:
    bets: list[ParsedBet] = []
    errors: list[ParseError] = []
    for number in numbers:
        if not 2 <= len(number) <= 4:
            errors.append(_digit_error(bet_type, number, (2, 3, 4), names))
            continue
        for permutation in generate_permutations(number):
            bets.append(_make_bet(permutation, BAO_LO, point, names, ctx))
    return bets, errors


def _expand_da(bet_type, numbers, point, names, ctx) -> Expansion:
    if len(numbers) < 2:
        error = ParseError(
            message=f"{bet_type} cần ít nhất 2 số",
            kind=ErrorKind.CARDINALITY_VIOLATION,
            type=bet_type,
            numbers=list(numbers),
            provinces=names,
        )
        return [], [error]
    wrong = [n for n in numbers if len(n) != 2]
    if wrong:
        return [], [_digit_error(bet_type, wrong[0], (2,), names)]
    return [_make_bet(list(numbers), bet_type, point, names, ctx)], []


def _fill_xien_provinces(provinces: Sequence[Province], ctx: ParseContext) -> list[Province]:
    selected = list(provinces)
    for candidate in ctx.priority_provinces:
        if len(selected) >= _XIEN_MIN_PROVINCES:
            break
        if all(p.id != candidate.id for p in selected):
            selected.append(candidate)
    return selected


def _expand_da_xien(numbers, point, provinces: Sequence[Province], ctx: ParseContext) -> Expansion:
    names = [p.name for p in provinces]
    if ctx.region is Region.MB:
        error = ParseError(
            message="Miền Bắc không có đá xiên",
            kind=ErrorKind.REGION_VIOLATION,
            type=DA_XIEN,
            numbers=list(numbers),
            provinces=names,
        )
        return [], [error]
    if not 2 <= len(numbers) <= 4:
        error = ParseError(
            message=f"{DA_XIEN} cần từ 2 đến 4 số",
            kind=ErrorKind.CARDINALITY_VIOLATION,
            type=DA_XIEN,
            numbers=list(numbers),
            provinces=names,
        )
        return [], [error]
    wrong = [n for n in numbers if len(n) != 2]
    if wrong:
        return [], [_digit_error(DA_XIEN, wrong[0], (2,), names)]

    filled = _fill_xien_provinces(provinces, ctx)
    if len(filled) < _XIEN_MIN_PROVINCES:
        error = ParseError(
            message=f"{DA_XIEN} cần ít nhất {_XIEN_MIN_PROVINCES} đài, không đủ đài ưu tiên",
            kind=ErrorKind.RESOURCE_SHORTAGE,
            type=DA_XIEN,
            numbers=list(numbers),
            provinces=names,
        )
        return [], [error]
    if len(filled) > len(provinces):
        logger.debug(
            "Auto-filled provinces for da xien: mentioned=%s filled=%s",
            names,
            [p.name for p in filled],
        )
    return [_make_bet(list(numbers), DA_XIEN, point, [p.name for p in filled], ctx)], []


_HANDLERS: dict[str, Callable[..., Expansion]] = {
    DAU_DUOI: _expand_dau_duoi,
    XIU_CHU: _expand_xiu_chu,
    XIU_CHU_DAO: _expand_xiu_chu_dao,
    XIU_CHU_DAO_DAU: _expand_xiu_chu_dao,
    XIU_CHU_DAO_DUOI: _expand_xiu_chu_dao,
    BAO_DAO: _expand_bao_dao,
    DA: _expand_da,
    DA_THANG: _expand_da,
}


def expand(
    numbers: Sequence[str],
    bet_type: str,
    point: Decimal,
    provinces: Sequence[Province],
    ctx: ParseContext,
) -> Expansion:
    """Turn one (numbers, type, point, provinces) statement into priced bets."""
    numbers = list(numbers)
    if bet_type == DA_XIEN:
        return _expand_da_xien(numbers, point, provinces, ctx)
    if not provinces:
        return [], []
    names = [p.name for p in provinces]
    handler = _HANDLERS.get(bet_type)
    if handler is None:
        return _expand_atomic(bet_type, numbers, point, names, ctx)
    return handler(bet_type, numbers, point, names, ctx)
