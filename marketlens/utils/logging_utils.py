"""
Logging utilities for MarketLens.
"""

import logging
import sys
from datetime import datetime
from typing import Dict, Any, Optional
import json


def setup_logger(
    name: str = 'marketlens',
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logger with consistent formatting.

    Calling it again for the same name does not add duplicate handlers.

    Args:
        name: Logger name
        level: Logging level
        log_file: Optional file to log to in addition to stdout

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler
    if not any(getattr(h, '_marketlens_console', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        handler._marketlens_console = True
        logger.addHandler(handler)

    # File handler
    if log_file and not any(
        isinstance(h, logging.FileHandler) and h.baseFilename.endswith(log_file)
        for h in logger.handlers
    ):
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for h in logger.handlers:
        h.setLevel(level)

    return logger


class MetricsLogger:
    """
    Logs per-epoch training metrics to the logger and optionally a JSONL file.
    """

    def __init__(self, log_file: Optional[str] = None, name: str = 'marketlens.metrics'):
        self.log_file = log_file
        self.logger = logging.getLogger(name)

    def log(self, metrics: Dict[str, Any], epoch: int, model_name: str = '') -> None:
        """
        Log metrics.

        Args:
            metrics: Dictionary of metric name -> value
            epoch: Epoch number
            model_name: Model the metrics belong to
        """
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'model': model_name,
            'epoch': epoch,
            **metrics
        }

        if self.log_file:
            with open(self.log_file, 'a') as f:
                f.write(json.dumps(log_entry) + '\n')

        metrics_str = ', '.join(f'{k} = {v:.4f}' for k, v in metrics.items() if isinstance(v, (int, float)))
        self.logger.info(f"{model_name} Epoch {epoch}: {metrics_str}")

    def log_summary(self, summary: str) -> None:
        """Log a summary string"""
        self.logger.info(summary)
