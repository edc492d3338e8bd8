from __future__ import annotations

from decimal import Decimal

import pytest

from xoso.models import (
    BAO_DAO,
    BAO_LO,
    DA,
    DA_THANG,
    DA_XIEN,
    DAU,
    DUOI,
    XIU_CHU_DAO_DUOI,
    XIU_CHU_DAU,
    XIU_CHU_DUOI,
    ParsedBet,
    Region,
)
from xoso.rates import RateSettings
from xoso.settlement import (
    XIEN_BASE_RATE,
    DaScope,
    PairWinPolicy,
    SettlementOptions,
    _settle_xien_counts,
    pair_win_count,
    settle_bet,
    settle_message,
)

VL = ["Vĩnh Long"]
VL_BD = ["Vĩnh Long", "Bình Dương"]


def _bet(numbers, bet_type: str, provinces=VL, point="1") -> ParsedBet:
    return ParsedBet(numbers=numbers, type=bet_type, point=Decimal(point), provinces=list(provinces))


class TestSimpleBets:
    @pytest.mark.parametrize(
        ("numbers", "bet_type", "count", "amount"),
        [
            ("25", DAU, 1, 75_000),
            ("89", DUOI, 1, 75_000),
            ("17", BAO_LO, 3, 225_000),
            ("81", BAO_DAO, 2, 150_000),
            ("034", BAO_LO, 2, 1_300_000),
            ("6789", BAO_LO, 1, 5_500_000),
            ("417", XIU_CHU_DAU, 1, 650_000),
            ("789", XIU_CHU_DUOI, 1, 650_000),
            ("789", XIU_CHU_DAO_DUOI, 1, 650_000),
            ("6789", XIU_CHU_DUOI, 1, 5_500_000),
            ("99", BAO_LO, 0, 0),
        ],
    )
    def test_win_amounts(self, draw_results, rate_settings, numbers, bet_type, count, amount):
        result = settle_bet(_bet(numbers, bet_type), draw_results, rate_settings, Region.MN)
        assert result.win_count == count
        assert result.win_amount == amount

    def test_point_scales_amount(self, draw_results, rate_settings):
        result = settle_bet(_bet("17", BAO_LO, point="0.5"), draw_results, rate_settings, Region.MN)
        assert result.win_amount == 112_500

    def test_counts_sum_over_provinces(self, draw_results, rate_settings):
        result = settle_bet(_bet("17", BAO_LO, VL_BD), draw_results, rate_settings, Region.MN)
        assert result.win_count == 4

    def test_custom_win_rate(self, draw_results):
        settings = RateSettings.from_flat({"win2lmn": 80})
        result = settle_bet(_bet("17", BAO_LO), draw_results, settings, Region.MN)
        assert result.win_amount == 240_000

    def test_missing_results_are_zero(self, rate_settings):
        assert not settle_bet(_bet("17", BAO_LO), {}, rate_settings, Region.MN).is_win
        assert settle_bet(_bet("17", BAO_LO, ["Trà Vinh"]), {"Vĩnh Long": {}}, rate_settings, "MN").win_amount == 0

    def test_province_name_match_ignores_case_and_accents(self, vinh_long_prizes, rate_settings):
        result = settle_bet(_bet("17", BAO_LO), {"vinh long": vinh_long_prizes}, rate_settings, Region.MN)
        assert result.win_count == 3


class TestPairWinCount:
    def test_both_numbers_must_appear(self):
        assert pair_win_count(3, 0, PairWinPolicy.HALF_COUNT) == 0
        assert pair_win_count(0, 2, PairWinPolicy.MIN_COUNT) == 0

    def test_policies(self):
        assert pair_win_count(3, 2, PairWinPolicy.MIN_COUNT) == 2
        assert pair_win_count(3, 2, PairWinPolicy.HALF_COUNT) == Decimal("2.5")


class TestDaSettlement:
    def test_half_count_per_province(self, draw_results, rate_settings):
        result = settle_bet(_bet(["17", "12"], DA), draw_results, rate_settings, Region.MN)
        assert result.win_count == Decimal("2.5")
        assert result.win_amount == 1_625_000

    def test_min_count(self, draw_results, rate_settings):
        options = SettlementOptions(pair_policy=PairWinPolicy.MIN_COUNT)
        result = settle_bet(_bet(["17", "12"], DA_THANG), draw_results, rate_settings, Region.MN, options)
        assert result.win_count == 2
        assert result.win_amount == 1_300_000

    def test_per_province_does_not_pair_across_stations(self, draw_results, rate_settings):
        result = settle_bet(_bet(["17", "12"], DA, VL_BD), draw_results, rate_settings, Region.MN)
        assert result.win_count == Decimal("2.5")

    @pytest.mark.parametrize(
        ("policy", "count"),
        [(PairWinPolicy.HALF_COUNT, Decimal(3)), (PairWinPolicy.MIN_COUNT, Decimal(2))],
    )
    def test_pooled_scope(self, draw_results, rate_settings, policy, count):
        options = SettlementOptions(pair_policy=policy, da_scope=DaScope.POOLED)
        result = settle_bet(_bet(["17", "12"], DA, VL_BD), draw_results, rate_settings, Region.MN, options)
        assert result.win_count == count

    def test_three_numbers_pairs(self, draw_results, rate_settings):
        # pairs: (17,34) 3, (17,12) 2.5, (34,12) 2.5
        result = settle_bet(_bet(["17", "34", "12"], DA), draw_results, rate_settings, Region.MN)
        assert result.win_count == 8

    def test_no_win_when_one_number_missing(self, draw_results, rate_settings):
        result = settle_bet(_bet(["17", "99"], DA), draw_results, rate_settings, Region.MN)
        assert not result.is_win


class TestXienLayers:
    @pytest.mark.parametrize(
        ("counts", "win_count", "weighted"),
        [
            ((0, 0), 0, 0),
            ((2, 1), 1, 550),
            ((3, 3), 3, 1650),
            ((2, 1, 0), 1, 550),
            ((1, 1, 1), 1, 1100),
            ((2, 2, 1), 3, 2200),
            ((3, 2, 2), 2, 2200),
            ((0, 0, 5), 0, 0),
            ((1, 1, 1, 1), 1, 2200),
            ((2, 2, 2, 1), 9, 7700),
            ((2, 1, 0, 0), 1, 550),
            ((3, 3, 0, 1), 6, 3850),
            ((1, 0, 0, 0), 0, 0),
        ],
    )
    def test_layered_counts(self, counts, win_count, weighted):
        assert _settle_xien_counts(counts) == (win_count, weighted)

    def test_unsupported_sizes(self):
        assert _settle_xien_counts((1,)) == (0, 0)
        assert _settle_xien_counts((1, 1, 1, 1, 1)) == (0, 0)


class TestXienSettlement:
    def test_pooled_pair(self, draw_results, rate_settings):
        result = settle_bet(_bet(["17", "34"], DA_XIEN, VL_BD), draw_results, rate_settings, Region.MN)
        assert result.win_count == 3
        assert result.win_amount == 3 * XIEN_BASE_RATE * 1000

    def test_fixed_base_rate_ignores_windx(self, draw_results):
        settings = RateSettings.from_flat({"windxmn": 700})
        result = settle_bet(_bet(["17", "34"], DA_XIEN, VL_BD), draw_results, settings, Region.MN)
        assert result.win_amount == 1_650_000

    def test_three_numbers(self, draw_results, rate_settings):
        # counts (4, 3, 2): triple 2 at 1100, then pair (17, 34) at 550
        result = settle_bet(_bet(["17", "34", "12"], DA_XIEN, VL_BD), draw_results, rate_settings, Region.MN)
        assert result.win_count == 5
        assert result.win_amount == 3_850_000


def test_settle_message_fills_bets(draw_results, rate_settings) -> None:
    bets = [_bet("17", BAO_LO), _bet("99", BAO_LO)]
    results = settle_message(bets, draw_results, rate_settings, Region.MN)
    assert [r.win_amount for r in results] == [225_000, 0]
    assert bets[0].win_count == 3 and bets[0].is_win
    assert bets[1].win_count == 0 and not bets[1].is_win
    assert bets[0].to_dict()["winAmount"] == 225_000
