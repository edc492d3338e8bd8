from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from xoso.expander import ParseContext, expand
from xoso.models import DA_XIEN, ErrorKind, ParsedMessage, ParseError, Province, Region
from xoso.normalizer import normalize
from xoso.rates import RateSettings
from xoso.registry import BetTypeRegistry, ProvinceRegistry, day_of_week, sort_by_ordering

logger = logging.getLogger(__name__)

ICT = timezone(timedelta(hours=7))
_NUMBER_RE = re.compile(r"^\d+$")
_SINGLE_DIGIT_RE = re.compile(r"^\d$")

MISSING_POINT_MESSAGE = "thiếu điểm sau kiểu cược"
MISSING_NUMBERS_MESSAGE = "thiếu số trước kiểu cược"


class PartKind(Enum):
    NONE = "none"
    PROVINCE = "province"
    NUMBER = "number"
    BET_TYPE = "bet_type"
    POINT = "point"


class _Fold(Enum):
    REPLACE = "replace"
    APPEND = "append"
    START = "start"


# How a token joins the statement being built, keyed by the previous token kind.
_PROVINCE_TRANSITIONS = {
    PartKind.NONE: _Fold.START,
    PartKind.PROVINCE: _Fold.APPEND,
    PartKind.NUMBER: _Fold.START,
    PartKind.BET_TYPE: _Fold.REPLACE,
    PartKind.POINT: _Fold.REPLACE,
}
_NUMBER_TRANSITIONS = {
    PartKind.NONE: _Fold.APPEND,
    PartKind.PROVINCE: _Fold.APPEND,
    PartKind.NUMBER: _Fold.APPEND,
    PartKind.BET_TYPE: _Fold.START,
    PartKind.POINT: _Fold.START,
}


def _read_point(parts: list[str], index: int) -> tuple[Decimal | None, int]:
    """Read the point starting at ``parts[index]``; returns (point, next index)."""
    if index >= len(parts) or not _NUMBER_RE.match(parts[index]):
        return None, index
    whole = parts[index]
    if index + 1 < len(parts) and _SINGLE_DIGIT_RE.match(parts[index + 1]):
        if whole == "0" or int(whole) < 10:
            return Decimal(f"{int(whole)}.{parts[index + 1]}"), index + 2
    return Decimal(int(whole)), index + 1


class _Statement:
    def __init__(self, provinces: list[Province]) -> None:
        self.provinces = provinces
        self.numbers: list[str] = []

    def add_province(self, province: Province, how: _Fold) -> None:
        if how is _Fold.REPLACE:
            self.provinces = [province]
            self.numbers = []
        elif how is _Fold.START:
            self.provinces = [province]
        elif all(p.id != province.id for p in self.provinces):
            self.provinces.append(province)

    def add_number(self, number: str, how: _Fold) -> None:
        if how is _Fold.START:
            self.numbers = [number]
        else:
            self.numbers.append(number)


def _mentioned_provinces(parts: list[str], registry: ProvinceRegistry) -> list[Province]:
    mentioned: list[Province] = []
    for part in parts:
        province = registry.lookup(part)
        if province is not None and all(p.id != province.id for p in mentioned):
            mentioned.append(province)
    return mentioned


def parse(normalized: str, ctx: ParseContext) -> ParsedMessage:
    """Scan normalized tokens left to right and expand each completed statement."""
    result = ParsedMessage(normalized=normalized)
    parts = normalized.split()

    mentioned = _mentioned_provinces(parts, ctx.provinces)
    if not mentioned:
        has_xien = any(
            (bt := ctx.bet_types.lookup(part)) is not None and bt.name == DA_XIEN for part in parts
        )
        if not has_xien:
            logger.debug("No province mentioned, nothing to parse: normalized=%r", normalized)
            return result

    statement = _Statement(list(mentioned))
    last = PartKind.NONE
    i = 0
    while i < len(parts):
        part = parts[i]

        province = ctx.provinces.lookup(part)
        if province is not None:
            statement.add_province(province, _PROVINCE_TRANSITIONS[last])
            last = PartKind.PROVINCE
            i += 1
            continue

        if _NUMBER_RE.match(part):
            statement.add_number(part, _NUMBER_TRANSITIONS[last])
            last = PartKind.NUMBER
            i += 1
            continue

        bet_type = ctx.bet_types.lookup(part)
        if bet_type is not None:
            point, i = _read_point(parts, i + 1)
            if point is None:
                result.errors.append(
                    ParseError(
                        message=MISSING_POINT_MESSAGE,
                        kind=ErrorKind.SYNTAX_INCOMPLETE,
                        type=bet_type.name,
                        numbers=list(statement.numbers),
                        provinces=[p.name for p in statement.provinces],
                    )
                )
                statement.numbers = []
                last = PartKind.BET_TYPE
                continue

            last = PartKind.POINT
            if not statement.numbers:
                result.errors.append(
                    ParseError(
                        message=MISSING_NUMBERS_MESSAGE,
                        kind=ErrorKind.CARDINALITY_VIOLATION,
                        type=bet_type.name,
                        numbers=[],
                        provinces=[p.name for p in statement.provinces],
                    )
                )
                continue

            bets, errors = expand(statement.numbers, bet_type.name, point, statement.provinces, ctx)
            logger.debug(
                "Statement expanded: type=%s numbers=%s point=%s bets=%d errors=%d",
                bet_type.name,
                statement.numbers,
                point,
                len(bets),
                len(errors),
            )
            result.bets.extend(bets)
            result.errors.extend(errors)
            continue

        logger.debug("Ignoring unknown token: token=%r", part)
        last = PartKind.NONE
        i += 1

    return result


def resolve_priority_provinces(
    day_provinces: list[Province],
    rate_settings: RateSettings,
    region: Region,
    day: int,
) -> list[Province]:
    """Priority list from rate settings, else the day's provinces by schedule ordering."""
    by_id = {p.id: p for p in day_provinces}
    configured = [
        by_id[pid] for pid in rate_settings.priority_province_ids(region, day) if pid in by_id
    ]
    if configured:
        return configured
    return sort_by_ordering(day_provinces, day)


def today_ict() -> date:
    return datetime.now(ICT).date()


def parse_message(
    raw: str,
    provinces: ProvinceRegistry,
    bet_types: BetTypeRegistry,
    rate_settings: RateSettings | None = None,
    region: Region | str = Region.MN,
    draw_date: date | None = None,
) -> ParsedMessage:
    region = Region.parse(region)
    settings = rate_settings or RateSettings.default()
    when = draw_date or today_ict()
    day = day_of_week(when)

    day_provinces = provinces.provinces_for_day(region, day)
    if not day_provinces:
        logger.warning("No provinces drawing: region=%s date=%s", region.value, when.isoformat())
        return ParsedMessage(
            errors=[
                ParseError(
                    message=f"Không có đài nào mở xổ ngày {when.strftime('%d/%m/%Y')} ({region.label})",
                    kind=ErrorKind.RESOURCE_SHORTAGE,
                )
            ]
        )

    priority = resolve_priority_provinces(day_provinces, settings, region, day)
    day_registry = ProvinceRegistry(day_provinces)
    normalized = normalize(raw, day_registry, bet_types, priority)
    ctx = ParseContext(
        provinces=day_registry,
        bet_types=bet_types,
        rate_settings=settings,
        region=region,
        priority_provinces=priority,
    )
    result = parse(normalized, ctx)
    logger.info(
        "Message parsed: region=%s date=%s bets=%d errors=%d",
        region.value,
        when.isoformat(),
        len(result.bets),
        len(result.errors),
    )
    return result
