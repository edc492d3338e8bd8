from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Sequence

from xoso.config import Config
from xoso.models import Region
from xoso.parser import parse_message
from xoso.rates import RateSettings
from xoso.registry import load_registry
from xoso.settlement import settle_message
from xoso.totals import totals_by_type

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value!r}") from None


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xoso",
        description="Parse, price and optionally settle a lottery wager message.",
    )
    parser.add_argument("message", help='wager message, or "-" to read it from stdin')
    parser.add_argument("--region", choices=[r.value for r in Region], help="draw region (default: XOSO_REGION)")
    parser.add_argument("--date", type=_parse_date, help="draw date, YYYY-MM-DD (default: today, UTC+7)")
    parser.add_argument("--results", type=Path, help="JSON draw results: province -> tier -> numbers")
    parser.add_argument("--rate-settings", type=Path, help="JSON rate settings (nested or flat layout)")
    parser.add_argument("--registry", type=Path, help="JSON province/bet type registry")
    parser.add_argument("--env", type=Path, help=".env file to load")
    return parser


def _load_results(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Draw results file is not valid JSON: {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Draw results file must contain a JSON object: {path}")
    return data


def run(args: argparse.Namespace, config: Config) -> dict:
    region = Region.parse(args.region or config.region)
    provinces, bet_types = load_registry(args.registry or config.registry_path)
    settings_path = args.rate_settings or config.rate_settings_path
    rate_settings = RateSettings.load(settings_path) if settings_path else RateSettings.default()

    message = sys.stdin.read() if args.message == "-" else args.message
    parsed = parse_message(message, provinces, bet_types, rate_settings, region, args.date)

    if args.results:
        draw_results = _load_results(args.results)
        if draw_results:
            settle_message(parsed.bets, draw_results, rate_settings, region, config.settlement_options)
        else:
            logger.warning("Draw results file is empty, skipping settlement: path=%s", args.results)

    output = parsed.to_dict()
    output["totals"] = {name: total.to_dict() for name, total in totals_by_type(parsed.bets).items()}
    return output


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    try:
        config = Config.from_env(args.env)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(level=config.logging_level, format="%(asctime)s [%(name)s] %(message)s")

    try:
        output = run(args, config)
    except (OSError, ValueError) as exc:
        logger.error("xoso run failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0 if output["bets"] or not output["errors"] else 1


if __name__ == "__main__":
    sys.exit(main())
