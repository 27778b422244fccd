#!/usr/bin/env python3
"""
Analysis script for MarketLens.

Loads the saved models and prints the analysis report for one symbol as
JSON.

Usage:
    python -m marketlens.scripts.analyze --artifact_dir models/ --bars data/SPY.csv --macro data/macro.csv
"""

import argparse
import json

import pandas as pd

from marketlens.analysis import MarketAnalysisEngine
from marketlens.config import MarketLensConfig
from marketlens.data import SyntheticHistoryGenerator, bars_from_frame, macro_from_frame
from marketlens.storage import LocalArtifactStore
from marketlens.utils import setup_logger


def main():
    parser = argparse.ArgumentParser(description='Run MarketLens analysis')
    parser.add_argument('--artifact_dir', type=str, required=True,
                      help='Directory holding trained models')
    parser.add_argument('--bars', type=str, required=True,
                      help='OHLCV CSV file for the symbol')
    parser.add_argument('--macro', type=str, default=None,
                      help='Macro indicator CSV file')
    parser.add_argument('--device', type=str, default='cpu',
                      help='Device to use (cuda/cpu)')
    parser.add_argument('--seed', type=int, default=42,
                      help='Seed for synthetic macro backfill')
    parser.add_argument('--log_file', type=str, default=None,
                      help='Optional file to log to in addition to stdout')

    args = parser.parse_args()

    # Setup logger
    logger = setup_logger(log_file=args.log_file)
    logger.info("Starting MarketLens analysis")

    config = MarketLensConfig(device=args.device, seed=args.seed)

    bars = bars_from_frame(pd.read_csv(args.bars))
    macro_points = macro_from_frame(pd.read_csv(args.macro)) if args.macro else []
    logger.info("Loaded %d bars and %d macro points", len(bars), len(macro_points))

    engine = MarketAnalysisEngine.from_store(
        LocalArtifactStore(args.artifact_dir),
        config,
        backfill=SyntheticHistoryGenerator(seed=config.seed),
    )
    for name, status in engine.registry.status().items():
        logger.info("%s model: %s", name, status)

    report = engine.analyze(bars, macro_points)
    print(json.dumps(report.to_dict(), indent=2))


if __name__ == '__main__':
    main()
