"""
Command-line entry point: evaluate one pair from per-timeframe CSV files.

Usage:
    python -m smc_fusion.main EURUSD --data 4h=data/eurusd_4h.csv --data 1h=data/eurusd_1h.csv \
        --data 15m=data/eurusd_15m.csv --data 5m=data/eurusd_5m.csv --technical 64 --direction BUY
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional, Sequence

from smc_fusion.config.profiles import apply_profile, load_profile_from_name
from smc_fusion.core.exceptions import SignalPipelineError
from smc_fusion.data.frames import load_csv
from smc_fusion.models.candle import Candle
from smc_fusion.models.signals import CorrelationVerdict, FundamentalBias, TechnicalEstimate
from smc_fusion.models.structures import Direction
from smc_fusion.pipeline import SignalPipeline
from smc_fusion.utils.config_manager import ConfigManager
from smc_fusion.utils.logger import PipelineLogger


def _parse_data_args(values: Sequence[str]) -> Dict[str, str]:
    paths = {}
    for value in values:
        timeframe, sep, path = value.partition("=")
        if not sep or not timeframe or not path:
            raise argparse.ArgumentTypeError(f"Expected TIMEFRAME=PATH, got '{value}'")
        paths[timeframe.strip()] = path.strip()
    return paths


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evaluate a pair with multi-timeframe smart money structure"
    )
    parser.add_argument("pair", help="Instrument name, e.g. EURUSD")
    parser.add_argument(
        "--data", action="append", default=[], metavar="TIMEFRAME=PATH",
        help="OHLCV CSV for one configured timeframe (repeat per timeframe)"
    )
    parser.add_argument("--config-dir", default="configs", help="Directory holding pipeline_config.yaml")
    parser.add_argument("--profile", help="Override the threshold profile (strict, balanced, relaxed)")
    parser.add_argument("--technical", type=float, help="Technical probability 0-100")
    parser.add_argument("--direction", choices=["BUY", "SELL"], help="Technical estimate direction")
    parser.add_argument("--fundamental", choices=["BUY", "SELL", "NEUTRAL"], default="NEUTRAL")
    parser.add_argument("--fundamental-confidence", type=float, default=50.0)
    parser.add_argument(
        "--block", action="append", default=[], metavar="FACTOR",
        help="Correlation blocking factor (any factor blocks the trade)"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config_dir).config
        if args.profile:
            config = apply_profile(config, load_profile_from_name(args.profile))
        PipelineLogger(config.logging)

        paths = _parse_data_args(args.data)
        market_data: Dict[str, List[Candle]] = {tf: load_csv(path) for tf, path in paths.items()}

        technical = None
        if args.technical is not None:
            direction = Direction(args.direction) if args.direction else None
            technical = TechnicalEstimate(probability=args.technical, direction=direction)

        fundamental = FundamentalBias(
            direction=Direction(args.fundamental),
            confidence=args.fundamental_confidence
        )
        correlation = CorrelationVerdict(allow=not args.block, blocking_factors=list(args.block))

        pipeline = SignalPipeline.from_config(config)
        decision = pipeline.evaluate(args.pair, market_data, technical, fundamental, correlation)
    except (SignalPipelineError, ValueError, argparse.ArgumentTypeError) as e:
        logging.error(f"Evaluation failed: {e}")
        return 1

    print(json.dumps(decision.to_dict(), indent=2))
    return 0 if decision.approved else 2


if __name__ == "__main__":
    sys.exit(main())
