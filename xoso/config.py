from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from xoso.models import Region
from xoso.registry import DEFAULT_REGISTRY_PATH
from xoso.settlement import DaScope, PairWinPolicy, SettlementOptions

PROJECT_ROOT = Path(__file__).resolve().parent.parent
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_choice(name: str, raw: str, choices: dict[str, object]) -> object:
    key = raw.strip().lower()
    if key not in choices:
        raise ValueError(f"Invalid {name} value: {raw!r} (expected one of: {', '.join(choices)})")
    return choices[key]


@dataclass(frozen=True)
class Config:
    region: Region = Region.MN
    pair_policy: PairWinPolicy = PairWinPolicy.HALF_COUNT
    da_scope: DaScope = DaScope.PER_PROVINCE
    registry_path: Path = field(default_factory=lambda: DEFAULT_REGISTRY_PATH)
    rate_settings_path: Path | None = None
    log_level: str = "INFO"

    @property
    def settlement_options(self) -> SettlementOptions:
        return SettlementOptions(pair_policy=self.pair_policy, da_scope=self.da_scope)

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)

    @classmethod
    def from_env(cls, env_path: Path | str | None = None) -> Config:
        load_dotenv(dotenv_path=env_path or PROJECT_ROOT / ".env")

        raw_region = os.getenv("XOSO_REGION", "MN")
        try:
            region = Region.parse(raw_region)
        except ValueError:
            raise ValueError(f"Invalid XOSO_REGION value: {raw_region!r} (expected one of: MN, MT, MB)") from None

        pair_policy = _parse_choice(
            "XOSO_PAIR_WIN_POLICY",
            os.getenv("XOSO_PAIR_WIN_POLICY", "half"),
            {p.value: p for p in PairWinPolicy},
        )
        da_scope = _parse_choice(
            "XOSO_DA_SCOPE",
            os.getenv("XOSO_DA_SCOPE", "per_province"),
            {s.value: s for s in DaScope},
        )

        log_level = os.getenv("XOSO_LOG_LEVEL", "INFO").strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ValueError(f"Invalid XOSO_LOG_LEVEL value: {log_level!r}")

        registry_path = os.getenv("XOSO_REGISTRY_PATH", "").strip()
        rate_settings_path = os.getenv("XOSO_RATE_SETTINGS_PATH", "").strip()

        return cls(
            region=region,
            pair_policy=pair_policy,
            da_scope=da_scope,
            registry_path=Path(registry_path) if registry_path else DEFAULT_REGISTRY_PATH,
            rate_settings_path=Path(rate_settings_path) if rate_settings_path else None,
            log_level=log_level,
        )
