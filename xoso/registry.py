from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Iterator

from xoso.models import BetType, Province, Region, ScheduleEntry
from xoso.text import fold, nfc, split_aliases

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent / "data" / "registry.json"
_UNSCHEDULED_ORDERING = 999


def day_of_week(value: date | int) -> int:
    """Day index with 0=Sunday ... 6=Saturday."""
    if isinstance(value, int):
        if not 0 <= value <= 6:
            raise ValueError(f"day_of_week must be between 0 and 6, got {value}")
        return value
    return value.isoweekday() % 7


def _lookup_keys(name: str, aliases: tuple[str, ...]) -> list[str]:
    folded = fold(name)
    return [*aliases, folded, folded.replace(" ", "")]


class ProvinceRegistry:
    def __init__(self, provinces: Iterable[Province]) -> None:
        self._provinces = tuple(provinces)
        self._by_key: dict[str, Province] = {}
        self._by_id: dict[str, Province] = {}
        for province in self._provinces:
            self._by_id.setdefault(province.id, province)
            for key in _lookup_keys(province.name, province.aliases):
                if key:
                    self._by_key.setdefault(key, province)

    def __iter__(self) -> Iterator[Province]:
        return iter(self._provinces)

    def __len__(self) -> int:
        return len(self._provinces)

    def lookup(self, alias: str) -> Province | None:
        return self._by_key.get(fold(alias))

    def by_id(self, province_id: str) -> Province | None:
        return self._by_id.get(province_id)

    def aliases(self) -> list[str]:
        """All province aliases, longest first."""
        found = {alias for province in self._provinces for alias in province.aliases}
        return sorted(found, key=lambda a: (-len(a), a))

    def for_region(self, region: Region | str) -> list[Province]:
        region = Region.parse(region)
        return [p for p in self._provinces if p.region is region]

    def provinces_for_day(self, region: Region | str, when: date | int) -> list[Province]:
        day = day_of_week(when)
        scheduled = [p for p in self.for_region(region) if p.ordering_on(day) is not None]
        return sorted(scheduled, key=lambda p: (p.ordering_on(day), p.name))

    def for_day(self, region: Region | str, when: date | int) -> ProvinceRegistry:
        return ProvinceRegistry(self.provinces_for_day(region, when))


def sort_by_ordering(provinces: Iterable[Province], when: date | int) -> list[Province]:
    day = day_of_week(when)
    return sorted(
        provinces,
        key=lambda p: p.ordering_on(day) if p.ordering_on(day) is not None else _UNSCHEDULED_ORDERING,
    )


class BetTypeRegistry:
    def __init__(self, bet_types: Iterable[BetType]) -> None:
        self._bet_types = tuple(bet_types)
        self._by_key: dict[str, BetType] = {}
        for bet_type in self._bet_types:
            for key in _lookup_keys(bet_type.name, bet_type.aliases):
                if key:
                    self._by_key.setdefault(key, bet_type)

    def __iter__(self) -> Iterator[BetType]:
        return iter(self._bet_types)

    def __len__(self) -> int:
        return len(self._bet_types)

    def lookup(self, alias: str) -> BetType | None:
        return self._by_key.get(fold(alias))

    def aliases(self) -> list[str]:
        return sorted({alias for bt in self._bet_types for alias in bt.aliases}, key=lambda a: (-len(a), a))


def province_from_dict(data: dict[str, Any]) -> Province:
    try:
        schedule = tuple(
            ScheduleEntry(day_of_week=day_of_week(int(item["day"])), ordering=int(item.get("ordering", 1)))
            for item in data.get("schedule", [])
        )
        return Province(
            id=str(data["id"]),
            name=nfc(str(data["name"])),
            region=Region.parse(data["region"]),
            aliases=split_aliases(data.get("aliases")),
            schedule=schedule,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid province entry {data!r}: {exc}") from exc


def bet_type_from_dict(data: dict[str, Any]) -> BetType:
    try:
        return BetType(
            id=str(data["id"]),
            name=nfc(str(data["name"])),
            aliases=split_aliases(data.get("aliases")),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid bet type entry {data!r}: {exc}") from exc


def load_registry(path: Path | str | None = None) -> tuple[ProvinceRegistry, BetTypeRegistry]:
    registry_path = Path(path) if path else DEFAULT_REGISTRY_PATH
    try:
        data = json.loads(registry_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Registry file is not valid JSON: {registry_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Registry file must contain a JSON object: {registry_path}")

    provinces = ProvinceRegistry(province_from_dict(item) for item in data.get("provinces", []))
    bet_types = BetTypeRegistry(bet_type_from_dict(item) for item in data.get("bet_types", []))
    logger.info(
        "Registry loaded: path=%s provinces=%d bet_types=%d",
        registry_path,
        len(provinces),
        len(bet_types),
    )
    return provinces, bet_types
