from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from xoso.rates import RateSettings

# Canonical bet type names.
DAU = "Đầu"
DUOI = "Đuôi"
DAU_DUOI = "Đầu đuôi"
BAO_LO = "Bao lô"
BAO_DAO = "Bao đảo"
XIU_CHU = "Xỉu chủ"
XIU_CHU_DAU = "Xỉu chủ đầu"
XIU_CHU_DUOI = "Xỉu chủ đuôi"
XIU_CHU_DAO = "Xỉu chủ đảo"
XIU_CHU_DAO_DAU = "Xỉu chủ đảo đầu"
XIU_CHU_DAO_DUOI = "Xỉu chủ đảo đuôi"
DA = "Đá"
DA_THANG = "Đá thẳng"
DA_XIEN = "Đá xiên"

BET_TYPE_NAMES = (
    DAU,
    DUOI,
    DAU_DUOI,
    BAO_LO,
    BAO_DAO,
    XIU_CHU,
    XIU_CHU_DAU,
    XIU_CHU_DUOI,
    XIU_CHU_DAO,
    XIU_CHU_DAO_DAU,
    XIU_CHU_DAO_DUOI,
    DA,
    DA_THANG,
    DA_XIEN,
)
DA_TYPES = frozenset({DA, DA_THANG})
XIU_CHU_HEAD_TYPES = frozenset({XIU_CHU_DAU, XIU_CHU_DAO_DAU})
XIU_CHU_TAIL_TYPES = frozenset({XIU_CHU_DUOI, XIU_CHU_DAO_DUOI})


class Region(str, Enum):
    MN = "MN"
    MT = "MT"
    MB = "MB"

    @classmethod
    def parse(cls, value: Region | str) -> Region:
        if isinstance(value, Region):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            raise ValueError(f"Unknown region: {value!r}") from None

    @property
    def label(self) -> str:
        return {Region.MN: "Miền Nam", Region.MT: "Miền Trung", Region.MB: "Miền Bắc"}[self]


@dataclass(frozen=True)
class ScheduleEntry:
    day_of_week: int  # 0=Sunday ... 6=Saturday
    ordering: int


@dataclass(frozen=True)
class Province:
    id: str
    name: str
    region: Region
    aliases: tuple[str, ...] = ()
    schedule: tuple[ScheduleEntry, ...] = ()

    @property
    def primary_alias(self) -> str:
        return self.aliases[0] if self.aliases else self.id

    def ordering_on(self, day_of_week: int) -> int | None:
        orderings = [s.ordering for s in self.schedule if s.day_of_week == day_of_week]
        return min(orderings) if orderings else None


@dataclass(frozen=True)
class BetType:
    id: str
    name: str
    aliases: tuple[str, ...] = ()


class ErrorKind(str, Enum):
    SYNTAX_INCOMPLETE = "syntax_incomplete"
    CARDINALITY_VIOLATION = "cardinality_violation"
    REGION_VIOLATION = "region_violation"
    RESOURCE_SHORTAGE = "resource_shortage"


def _json_number(value: Decimal | int | None) -> int | float | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


@dataclass
class ParsedBet:
    numbers: str | list[str]
    type: str
    point: Decimal
    provinces: list[str]
    amount: int = 0
    win_count: Decimal | None = None
    win_amount: int | None = None

    @property
    def number_list(self) -> list[str]:
        return list(self.numbers) if isinstance(self.numbers, list) else [self.numbers]

    @property
    def digit_length(self) -> int:
        numbers = self.number_list
        return len(numbers[0]) if numbers else 0

    @property
    def is_win(self) -> bool:
        return bool(self.win_count)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "numbers": self.numbers,
            "type": self.type,
            "point": _json_number(self.point),
            "provinces": list(self.provinces),
            "amount": self.amount,
        }
        if self.win_count is not None:
            data["winCount"] = _json_number(self.win_count)
            data["winAmount"] = self.win_amount
        return data


@dataclass
class ParseError:
    message: str
    kind: ErrorKind
    type: str | None = None
    numbers: list[str] | None = None
    provinces: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"message": self.message, "kind": self.kind.value}
        if self.type is not None:
            data["type"] = self.type
        if self.numbers is not None:
            data["numbers"] = list(self.numbers)
        if self.provinces is not None:
            data["provinces"] = list(self.provinces)
        return data


@dataclass
class ParsedMessage:
    bets: list[ParsedBet] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    normalized: str = ""

    @property
    def ok(self) -> bool:
        return bool(self.bets) or not self.errors

    @property
    def total_amount(self) -> int:
        return sum(bet.amount for bet in self.bets)

    def to_dict(self) -> dict[str, Any]:
        return {
            "normalized": self.normalized,
            "bets": [bet.to_dict() for bet in self.bets],
            "errors": [error.to_dict() for error in self.errors],
        }


@dataclass(frozen=True)
class SettlementResult:
    win_count: Decimal = Decimal(0)
    win_amount: int = 0

    @property
    def is_win(self) -> bool:
        return self.win_count > 0


@dataclass
class TypeTotal:
    amount: int = 0
    win_amount: int = 0
    win_count: Decimal = Decimal(0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "winAmount": self.win_amount,
            "winCount": _json_number(self.win_count),
        }


class TicketStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


@dataclass
class Ticket:
    ticket_id: str
    region: Region
    draw_date: date
    bets: list[ParsedBet] = field(default_factory=list)
    raw_content: str = ""
    status: TicketStatus = TicketStatus.PENDING
    rate_settings: RateSettings | None = None  # None: processor default

    @property
    def total_amount(self) -> int:
        return sum(bet.amount for bet in self.bets)


@dataclass
class ProcessResult:
    ticket_id: str
    success: bool
    bets_processed: int = 0
    total_win_amount: int = 0
    error: str | None = None


@dataclass
class BatchProcessResult:
    processed: int = 0
    success: int = 0
    failed: int = 0
    total_win_amount: int = 0
    results: list[ProcessResult] = field(default_factory=list)
