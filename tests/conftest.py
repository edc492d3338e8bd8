from __future__ import annotations

import os
from datetime import date

import pytest

from xoso.expander import ParseContext
from xoso.models import Province, Region, ScheduleEntry
from xoso.rates import RateSettings
from xoso.registry import BetTypeRegistry, ProvinceRegistry, load_registry

# Friday: Vĩnh Long, Bình Dương, Trà Vinh draw in the south.
FRIDAY = date(2026, 10, 16)

XOSO_ENV_KEYS = (
    "XOSO_REGION",
    "XOSO_PAIR_WIN_POLICY",
    "XOSO_DA_SCOPE",
    "XOSO_REGISTRY_PATH",
    "XOSO_RATE_SETTINGS_PATH",
    "XOSO_LOG_LEVEL",
)


@pytest.fixture(scope="session")
def registries() -> tuple[ProvinceRegistry, BetTypeRegistry]:
    return load_registry()


@pytest.fixture
def provinces(registries) -> ProvinceRegistry:
    return registries[0]


@pytest.fixture
def bet_types(registries) -> BetTypeRegistry:
    return registries[1]


@pytest.fixture
def rate_settings() -> RateSettings:
    return RateSettings.default()


@pytest.fixture
def friday_provinces(provinces: ProvinceRegistry) -> ProvinceRegistry:
    return provinces.for_day(Region.MN, FRIDAY)


@pytest.fixture
def friday_ctx(friday_provinces: ProvinceRegistry, bet_types: BetTypeRegistry, rate_settings: RateSettings) -> ParseContext:
    return ParseContext(
        provinces=friday_provinces,
        bet_types=bet_types,
        rate_settings=rate_settings,
        region=Region.MN,
        priority_provinces=list(friday_provinces),
    )


def make_province(province_id: str, name: str, aliases: str, day: int = 5, ordering: int = 1, region: Region = Region.MN) -> Province:
    return Province(
        id=province_id,
        name=name,
        region=region,
        aliases=tuple(aliases.split(",")),
        schedule=(ScheduleEntry(day_of_week=day, ordering=ordering),),
    )


@pytest.fixture
def vinh_long_prizes() -> dict[str, list[str]]:
    return {
        "G.8": ["25"],
        "G.7": ["417"],
        "G.6": ["3081", "5512", "9034"],
        "G.5": ["6612"],
        "G.4": ["11223", "45678", "90134", "24680", "13579", "86420", "30517"],
        "G.3": ["77034", "88117"],
        "G.2": ["99945"],
        "G.1": ["12381"],
        "G.ĐB": ["456789"],
    }


@pytest.fixture
def binh_duong_prizes() -> dict[str, list[str]]:
    return {
        "G.8": ["17"],
        "G.7": ["250"],
        "G.6": ["1111", "2222", "3333"],
        "G.5": ["4444"],
        "G.4": ["50505", "60606", "70707", "80808", "90909", "01010", "02020"],
        "G.3": ["03030", "04040"],
        "G.2": ["05050"],
        "G.1": ["06060"],
        "ĐB": ["070707"],
    }


@pytest.fixture
def draw_results(vinh_long_prizes, binh_duong_prizes) -> dict[str, dict[str, list[str]]]:
    return {"Vĩnh Long": vinh_long_prizes, "Bình Dương": binh_duong_prizes}


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in XOSO_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for key in XOSO_ENV_KEYS:
        os.environ.pop(key, None)
