#!/usr/bin/env python3
"""
Training script for MarketLens.

Builds labelled windows from OHLCV and macro CSV files (or synthetic
series when none are given), trains the trend, anomaly and regime models
and saves them to a local artifact directory.

Usage:
    python -m marketlens.scripts.train --artifact_dir models/ --bars data/SPY.csv --macro data/macro.csv
"""

import argparse
import json
from pathlib import Path

import pandas as pd

from marketlens.config import MarketLensConfig
from marketlens.data import (
    SyntheticHistoryGenerator,
    bars_from_frame,
    build_training_batch,
    macro_from_frame,
)
from marketlens.model import ModelRegistry
from marketlens.storage import LocalArtifactStore
from marketlens.training import TrainingOrchestrator
from marketlens.utils import set_seed, setup_logger


def main():
    parser = argparse.ArgumentParser(description='Train MarketLens models')
    parser.add_argument('--artifact_dir', type=str, required=True,
                      help='Directory trained models are saved to')
    parser.add_argument('--bars', type=str, nargs='*', default=[],
                      help='OHLCV CSV files, one per symbol')
    parser.add_argument('--macro', type=str, default=None,
                      help='Macro indicator CSV file')
    parser.add_argument('--num_epochs', type=int, default=50,
                      help='Number of training epochs')
    parser.add_argument('--batch_size', type=int, default=32,
                      help='Training batch size')
    parser.add_argument('--synthetic_days', type=int, default=365,
                      help='Length of generated series when no CSV is given')
    parser.add_argument('--device', type=str, default='cpu',
                      help='Device to use (cuda/cpu)')
    parser.add_argument('--seed', type=int, default=42,
                      help='Random seed')
    parser.add_argument('--metrics_log', type=str, default='',
                      help='Optional JSONL file for per-epoch metrics')
    parser.add_argument('--log_file', type=str, default=None,
                      help='Optional file to log to in addition to stdout')

    args = parser.parse_args()

    # Setup logger
    logger = setup_logger(log_file=args.log_file)
    logger.info("Starting MarketLens training")

    config = MarketLensConfig(
        num_epochs=args.num_epochs,
        batch_size=args.batch_size,
        device=args.device,
        seed=args.seed,
        metrics_log_file=args.metrics_log,
    )
    set_seed(config.seed)
    generator = SyntheticHistoryGenerator(seed=config.seed)

    # Load data
    if args.bars:
        bars_by_symbol = {
            Path(path).stem: bars_from_frame(pd.read_csv(path))
            for path in args.bars
        }
    else:
        logger.info("No bar data given, generating %d synthetic days", args.synthetic_days)
        bars_by_symbol = {
            'SYNTH_UP': generator.generate_bars(args.synthetic_days, daily_drift=0.004),
            'SYNTH_DOWN': generator.generate_bars(args.synthetic_days, daily_drift=-0.004),
            'SYNTH_FLAT': generator.generate_bars(args.synthetic_days, volatility=0.004),
        }

    if args.macro:
        macro_points = macro_from_frame(pd.read_csv(args.macro))
    else:
        logger.info("No macro data given, generating %d synthetic days", args.synthetic_days)
        macro_points = generator.generate(args.synthetic_days)

    for symbol, bars in bars_by_symbol.items():
        logger.info("%s: %d bars", symbol, len(bars))
    logger.info("Macro series: %d points", len(macro_points))

    batch = build_training_batch(bars_by_symbol, macro_points, config)

    # Train
    registry = ModelRegistry(LocalArtifactStore(args.artifact_dir), config)
    registry.load_all()
    orchestrator = TrainingOrchestrator(registry)
    outcomes = orchestrator.train_models(batch)

    for name, outcome in outcomes.items():
        if outcome.succeeded:
            logger.info(
                "%s: %d samples, persisted=%s, final metrics %s",
                name, outcome.samples, outcome.persisted, json.dumps(outcome.final_metrics()),
            )
        else:
            logger.error("%s: %s", name, outcome.error)

    logger.info("Training complete!")
    if not outcomes or not all(o.succeeded for o in outcomes.values()):
        raise SystemExit(1)


if __name__ == '__main__':
    main()
