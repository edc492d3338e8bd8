from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import FRIDAY, make_province
from xoso.expander import ParseContext
from xoso.models import BAO_LO, DA_XIEN, DAU, DUOI, ErrorKind, Region
from xoso.parser import MISSING_POINT_MESSAGE, PartKind, _read_point, parse, parse_message
from xoso.rates import RateSettings
from xoso.registry import ProvinceRegistry


def _summary(result) -> list[tuple]:
    return [(b.type, b.numbers, b.point, b.provinces) for b in result.bets]


class TestReadPoint:
    def test_integer(self):
        assert _read_point(["12"], 0) == (Decimal(12), 1)

    def test_decimal_pair(self):
        assert _read_point(["0", "5"], 0) == (Decimal("0.5"), 2)
        assert _read_point(["1", "5", "b"], 0) == (Decimal("1.5"), 2)

    def test_large_whole_is_not_decimal(self):
        assert _read_point(["12", "5"], 0) == (Decimal(12), 1)

    def test_missing(self):
        assert _read_point(["b"], 0) == (None, 0)
        assert _read_point([], 0) == (None, 0)


def test_part_kinds_cover_scanner_states() -> None:
    assert {k.value for k in PartKind} == {"none", "province", "number", "bet_type", "point"}


class TestParse:
    def test_dau_duoi_per_number(self, friday_ctx: ParseContext):
        result = parse("vl 12 34 dd 1", friday_ctx)
        assert _summary(result) == [
            (DAU, "12", Decimal(1), ["Vĩnh Long"]),
            (DUOI, "12", Decimal(1), ["Vĩnh Long"]),
            (DAU, "34", Decimal(1), ["Vĩnh Long"]),
            (DUOI, "34", Decimal(1), ["Vĩnh Long"]),
        ]
        assert all(b.amount == 750 for b in result.bets)
        assert result.errors == []

    def test_missing_point_is_syntax_error(self, friday_ctx: ParseContext):
        result = parse("vl dd", friday_ctx)
        assert result.bets == []
        assert len(result.errors) == 1
        assert result.errors[0].kind is ErrorKind.SYNTAX_INCOMPLETE
        assert result.errors[0].message == MISSING_POINT_MESSAGE

    def test_missing_point_discards_numbers(self, friday_ctx: ParseContext):
        result = parse("vl 12 dd b 2", friday_ctx)
        assert result.bets == []
        kinds = [e.kind for e in result.errors]
        assert kinds == [ErrorKind.SYNTAX_INCOMPLETE, ErrorKind.CARDINALITY_VIOLATION]

    def test_numbers_reused_by_following_bet_type(self, friday_ctx: ParseContext):
        result = parse("vl 12 34 dd 1 b 2", friday_ctx)
        assert [b.type for b in result.bets] == [DAU, DUOI, DAU, DUOI, BAO_LO, BAO_LO]
        assert [b.amount for b in result.bets[-2:]] == [27000, 27000]

    def test_new_numbers_after_point(self, friday_ctx: ParseContext):
        result = parse("vl 12 b 1 34 b 2", friday_ctx)
        assert _summary(result) == [
            (BAO_LO, "12", Decimal(1), ["Vĩnh Long"]),
            (BAO_LO, "34", Decimal(2), ["Vĩnh Long"]),
        ]

    def test_province_list_and_replacement(self, friday_ctx: ParseContext):
        result = parse("vl bd 12 b 1 tv 34 b 1", friday_ctx)
        assert _summary(result) == [
            (BAO_LO, "12", Decimal(1), ["Vĩnh Long", "Bình Dương"]),
            (BAO_LO, "34", Decimal(1), ["Trà Vinh"]),
        ]

    def test_province_after_province_deduplicated(self, friday_ctx: ParseContext):
        result = parse("vl vlong 12 b 1", friday_ctx)
        assert result.bets[0].provinces == ["Vĩnh Long"]

    def test_decimal_point(self, friday_ctx: ParseContext):
        result = parse("vl 12 b 0 5", friday_ctx)
        assert result.bets[0].point == Decimal("0.5")
        assert result.bets[0].amount == 6750

    def test_unknown_token_ignored(self, friday_ctx: ParseContext):
        result = parse("vl 12 zz b 1", friday_ctx)
        assert [b.numbers for b in result.bets] == ["12"]

    def test_no_province_returns_empty(self, friday_ctx: ParseContext):
        result = parse("12 34 dd 1", friday_ctx)
        assert result.bets == []
        assert result.errors == []

    def test_no_province_with_da_xien_auto_fills(self, friday_ctx: ParseContext):
        result = parse("12 34 dx 1", friday_ctx)
        assert _summary(result) == [(DA_XIEN, ["12", "34"], Decimal(1), ["Vĩnh Long", "Bình Dương"])]

    def test_da_xien_with_too_few_priority_provinces(self, friday_ctx: ParseContext):
        friday_ctx.priority_provinces = friday_ctx.priority_provinces[:1]
        result = parse("12 34 dx 1", friday_ctx)
        assert result.bets == []
        assert result.errors[0].kind is ErrorKind.RESOURCE_SHORTAGE


class TestCrossedStationScenario:
    """"tg bt 11 66 dx 5" with Tây Ninh as the second priority station."""

    @pytest.fixture
    def ctx(self, bet_types) -> ParseContext:
        tien_giang = make_province("tiengiang", "Tiền Giang", "tg", ordering=1)
        ben_tre = make_province("bentre", "Bến Tre", "bt", ordering=3)
        tay_ninh = make_province("tayninh", "Tây Ninh", "tn", ordering=2)
        return ParseContext(
            provinces=ProvinceRegistry([tien_giang, ben_tre, tay_ninh]),
            bet_types=bet_types,
            rate_settings=RateSettings.default(),
            region=Region.MN,
            priority_provinces=[tien_giang, tay_ninh],
        )

    def test_two_mentioned_provinces(self, ctx: ParseContext):
        result = parse("tg bt 11 66 dx 5", ctx)
        assert _summary(result) == [(DA_XIEN, ["11", "66"], Decimal(5), ["Tiền Giang", "Bến Tre"])]
        assert result.bets[0].amount == 270000

    def test_one_mentioned_province_is_auto_filled(self, ctx: ParseContext):
        result = parse("tg 11 66 dx 5", ctx)
        assert result.bets[0].provinces == ["Tiền Giang", "Tây Ninh"]

    def test_resource_error_without_priority_provinces(self, ctx: ParseContext):
        ctx.priority_provinces = []
        result = parse("tg 11 66 dx 5", ctx)
        assert result.bets == []
        assert [e.kind for e in result.errors] == [ErrorKind.RESOURCE_SHORTAGE]


class TestParseMessage:
    def test_end_to_end(self, provinces, bet_types):
        result = parse_message("VL 12,34 Đđ 1n", provinces, bet_types, region=Region.MN, draw_date=FRIDAY)
        assert result.normalized == "vl 12 34 dd 1"
        assert len(result.bets) == 4
        assert result.total_amount == 3000
        assert result.ok

    def test_provinces_not_drawing_are_unknown(self, provinces, bet_types):
        # Tiền Giang draws on Sunday only
        result = parse_message("tg 12 b 1", provinces, bet_types, draw_date=FRIDAY)
        assert result.bets == []

    def test_station_shorthand_uses_day_ordering(self, provinces, bet_types):
        result = parse_message("2d 12 dd 1", provinces, bet_types, draw_date=FRIDAY)
        assert result.bets[0].provinces == ["Vĩnh Long", "Bình Dương"]
        assert result.bets[0].amount == 1500

    def test_priority_provinces_from_rate_settings(self, provinces, bet_types):
        settings = RateSettings.from_dict(
            {
                "priorityProvinces": {
                    "MN": {"5": [{"provinceId": "travinh", "priority": 1}, {"provinceId": "vinhlong", "priority": 2}]}
                }
            }
        )
        result = parse_message("2d 12 dd 1", provinces, bet_types, settings, Region.MN, FRIDAY)
        assert result.bets[0].provinces == ["Trà Vinh", "Vĩnh Long"]

    def test_mb_blocks_da_xien(self, provinces, bet_types):
        result = parse_message("mb 11 66 dx 1", provinces, bet_types, region=Region.MB, draw_date=FRIDAY)
        assert result.bets == []
        assert [e.kind for e in result.errors] == [ErrorKind.REGION_VIOLATION]
        assert not result.ok

    def test_to_dict_is_json_ready(self, provinces, bet_types):
        result = parse_message("vl 12 b 0 5", provinces, bet_types, draw_date=FRIDAY)
        data = result.to_dict()
        assert data["bets"][0] == {
            "numbers": "12",
            "type": BAO_LO,
            "point": 0.5,
            "provinces": ["Vĩnh Long"],
            "amount": 6750,
        }
