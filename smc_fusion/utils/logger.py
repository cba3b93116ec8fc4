"""
Logging configuration with multi-handler setup and structured signal logging
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Generator, Optional

from smc_fusion.config.settings import LoggingSettings

SIGNAL_LOGGER_NAME = "signals"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


class SignalLogFilter(logging.Filter):
    """
    Filter to isolate signal events from general logging

    Only allows log records from the 'signals' logger through to the
    signal-specific handler, keeping decisions and learning events out of
    the noise of detector debug output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name == SIGNAL_LOGGER_NAME


class PipelineLogger:
    """
    Centralized logging for the signal pipeline

    Features:
    - Console handler (INFO+)
    - Size-rotated pipeline.log (DEBUG+, 10MB x 5)
    - Daily-rotated signals.log with one JSON line per decision or learning event
    """

    def __init__(self, config: Optional[LoggingSettings] = None):
        """
        Initialize logging infrastructure

        Args:
            config: Logging settings; a relative log_dir is resolved against
                the project root

        Raises:
            OSError: If log directory creation fails
        """
        config = config or LoggingSettings()
        self.log_level = config.log_level

        project_root = Path(__file__).resolve().parent.parent.parent
        self.log_dir = Path(config.log_dir)
        if not self.log_dir.is_absolute():
            self.log_dir = project_root / self.log_dir

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self._setup_logging()

    def _setup_logging(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level.upper()))

        # Clear existing handlers to avoid duplicates
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        file_handler = RotatingFileHandler(
            self.log_dir / "pipeline.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Signals only, daily rotation, 30-day retention
        signal_handler = TimedRotatingFileHandler(
            self.log_dir / "signals.log",
            when="midnight",
            backupCount=30,
            encoding="utf-8"
        )
        signal_handler.setLevel(logging.INFO)
        signal_handler.addFilter(SignalLogFilter())
        root_logger.addHandler(signal_handler)

    @staticmethod
    def log_signal(action: str, data: dict) -> None:
        """
        Log a pipeline event as one JSON line

        Args:
            action: Event type (DECISION, OUTCOME_RECORDED, ...)
            data: Event payload; non-JSON values are written with str()

        Example:
            PipelineLogger.log_signal('DECISION', {
                'pair': 'EURUSD',
                'status': 'APPROVED',
                'direction': 'BUY',
                'entry': 1.085
            })
        """
        logger = logging.getLogger(SIGNAL_LOGGER_NAME)
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            **data
        }
        logger.info(json.dumps(log_entry, default=str))


@contextmanager
def log_execution_time(operation: str) -> Generator[None, None, None]:
    """
    Measure and log execution time at DEBUG

    Usage:
        with log_execution_time('EURUSD evaluation'):
            decision = pipeline.evaluate('EURUSD', market_data)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        logging.getLogger(__name__).debug(f"{operation} completed in {elapsed:.3f}s")
