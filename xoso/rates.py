from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

from xoso.models import Region

logger = logging.getLogger(__name__)

CATEGORIES = ("2dau", "2duoi", "2lo", "3dau", "3duoi", "3lo", "4duoi", "4lo", "da", "dx")
DEFAULT_PRICE = Decimal(75)
DEFAULT_WIN_RATES: dict[str, Decimal] = {
    "2dau": Decimal(75),
    "2duoi": Decimal(75),
    "2lo": Decimal(75),
    "3dau": Decimal(650),
    "3duoi": Decimal(650),
    "3lo": Decimal(650),
    "4duoi": Decimal(5500),
    "4lo": Decimal(5500),
    "da": Decimal(650),
    "dx": Decimal(550),
}

# Legacy flat settings spell the bao lô categories "2l", "3l", "4l".
_FLAT_CATEGORY_ALIASES = {"2l": "2lo", "3l": "3lo", "4l": "4lo"}


def _canonical_category(raw: str) -> str | None:
    key = raw.strip().lower()
    key = _FLAT_CATEGORY_ALIASES.get(key, key)
    return key if key in CATEGORIES else None


def _coerce_rate(value: Any, default: Decimal, label: str) -> Decimal:
    if value is None:
        return default
    if isinstance(value, bool):
        logger.warning("Invalid rate value, using default: key=%s value=%r default=%s", label, value, default)
        return default
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.warning("Invalid rate value, using default: key=%s value=%r default=%s", label, value, default)
        return default
    if not rate.is_finite() or rate <= 0:
        logger.warning("Non-positive rate value, using default: key=%s value=%r default=%s", label, value, default)
        return default
    return rate


@dataclass(frozen=True)
class RateTable:
    """Price (% of face value charged) and win multiplier per category for one region."""

    prices: Mapping[str, Decimal] = field(default_factory=lambda: {c: DEFAULT_PRICE for c in CATEGORIES})
    win_rates: Mapping[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_WIN_RATES))
    # Stored as given; settlement does not read it.
    kiruoi: bool | None = None

    def price(self, category: str) -> Decimal:
        return self.prices.get(category, DEFAULT_PRICE)

    def win_rate(self, category: str) -> Decimal:
        return self.win_rates.get(category, DEFAULT_WIN_RATES[category])

    @classmethod
    def build(
        cls,
        prices: Mapping[str, Any] | None = None,
        win_rates: Mapping[str, Any] | None = None,
        kiruoi: bool | None = None,
        label: str = "",
    ) -> RateTable:
        raw_prices = {}
        for key, value in (prices or {}).items():
            category = _canonical_category(str(key).removeprefix("price"))
            if category:
                raw_prices[category] = value
        raw_wins = {}
        for key, value in (win_rates or {}).items():
            category = _canonical_category(str(key).removeprefix("win"))
            if category:
                raw_wins[category] = value

        resolved_prices = {
            c: _coerce_rate(raw_prices.get(c), DEFAULT_PRICE, f"{label}price{c}") for c in CATEGORIES
        }
        resolved_wins = {
            c: _coerce_rate(raw_wins.get(c), DEFAULT_WIN_RATES[c], f"{label}win{c}") for c in CATEGORIES
        }
        return cls(prices=resolved_prices, win_rates=resolved_wins, kiruoi=kiruoi)


@dataclass(frozen=True)
class RateSettings:
    tables: Mapping[Region, RateTable] = field(default_factory=lambda: {Region.MN: RateTable()})
    # (region, day_of_week) -> province ids in priority order
    priority_provinces: Mapping[tuple[Region, int], tuple[str, ...]] = field(default_factory=dict)

    def table(self, region: Region | str) -> RateTable:
        region = Region.parse(region)
        table = self.tables.get(region) or self.tables.get(Region.MN)
        return table if table is not None else RateTable()

    def price(self, region: Region | str, category: str) -> Decimal:
        return self.table(region).price(category)

    def win_rate(self, region: Region | str, category: str) -> Decimal:
        return self.table(region).win_rate(category)

    def priority_province_ids(self, region: Region | str, day: int) -> tuple[str, ...]:
        return tuple(self.priority_provinces.get((Region.parse(region), day), ()))

    @classmethod
    def default(cls) -> RateSettings:
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RateSettings:
        """Build settings from the nested layout, falling back to the flat one."""
        if not data:
            return cls()
        if "prices" in data or "winRates" in data or "win_rates" in data:
            return cls._from_nested(data)
        return cls.from_flat(data)

    @classmethod
    def _from_nested(cls, data: Mapping[str, Any]) -> RateSettings:
        prices = data.get("prices") or {}
        wins = data.get("winRates") or data.get("win_rates") or {}
        tables: dict[Region, RateTable] = {}
        for region in Region:
            key = region.value.lower()
            region_prices = prices.get(key) or prices.get(region.value)
            region_wins = wins.get(key) or wins.get(region.value)
            if region_prices is None and region_wins is None:
                continue
            kiruoi = (region_prices or {}).get("kiruoi")
            tables[region] = RateTable.build(
                prices=region_prices,
                win_rates=region_wins,
                kiruoi=kiruoi if isinstance(kiruoi, bool) else None,
                label=f"{key}.",
            )
        if Region.MN not in tables:
            tables[Region.MN] = RateTable()
        return cls(
            tables=tables,
            priority_provinces=_parse_priority_provinces(
                data.get("priorityProvinces") or data.get("priority_provinces")
            ),
        )

    @classmethod
    def from_flat(cls, data: Mapping[str, Any]) -> RateSettings:
        """Build settings from flat keys such as ``price2daumn`` or ``win2lmb``."""
        tables: dict[Region, RateTable] = {}
        for region in Region:
            suffix = region.value.lower()
            prices: dict[str, Any] = {}
            wins: dict[str, Any] = {}
            for key, value in data.items():
                text = str(key).lower()
                if not text.endswith(suffix):
                    continue
                stem = text[: -len(suffix)]
                if stem.startswith("price"):
                    prices[stem] = value
                elif stem.startswith("win"):
                    wins[stem] = value
            kiruoi = data.get(f"kiruoi{suffix}")
            if not prices and not wins and kiruoi is None:
                continue
            tables[region] = RateTable.build(
                prices=prices,
                win_rates=wins,
                kiruoi=kiruoi if isinstance(kiruoi, bool) else None,
                label=f"{suffix}.",
            )
        if Region.MN not in tables:
            tables[Region.MN] = RateTable()
        return cls(
            tables=tables,
            priority_provinces=_parse_priority_provinces(data.get("priorityProvinces")),
        )

    @classmethod
    def load(cls, path: Path | str) -> RateSettings:
        settings_path = Path(path)
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Rate settings file is not valid JSON: {settings_path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Rate settings file must contain a JSON object: {settings_path}")
        logger.info("Rate settings loaded: path=%s", settings_path)
        return cls.from_dict(data)


def _parse_priority_provinces(raw: Any) -> dict[tuple[Region, int], tuple[str, ...]]:
    """Accept ``{region: {day: [{"provinceId", "priority"}, ...] | [id, ...]}}``."""
    result: dict[tuple[Region, int], tuple[str, ...]] = {}
    if not isinstance(raw, Mapping):
        return result
    for region_key, days in raw.items():
        try:
            region = Region.parse(region_key)
        except ValueError:
            logger.warning("Ignoring priority provinces for unknown region: %r", region_key)
            continue
        if not isinstance(days, Mapping):
            continue
        for day_key, items in days.items():
            try:
                day = int(day_key)
            except (TypeError, ValueError):
                logger.warning("Ignoring priority provinces for invalid day: region=%s day=%r", region.value, day_key)
                continue
            entries: list[tuple[int, int, str]] = []
            for index, item in enumerate(items or []):
                if isinstance(item, Mapping):
                    province_id = item.get("provinceId") or item.get("province_id")
                    priority = item.get("priority", index + 1)
                else:
                    province_id, priority = item, index + 1
                if province_id:
                    entries.append((int(priority), index, str(province_id)))
            result[(region, day)] = tuple(pid for _, _, pid in sorted(entries))
    return result
