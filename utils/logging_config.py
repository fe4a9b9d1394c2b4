"""
Logging Configuration

Structured logging for the valuation engine:
- One-line structured output, tagged with the customer being calculated
- Timing of dashboard recomputations
- Environment-based levels (LOG_LEVEL)

Calculators pass the customer through ``extra``:

    logger.warning("3 amount(s) excluded", extra=customer_extra("Alice"))

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

import logging
import sys
import time
from datetime import datetime
from typing import Dict, Optional
import os

CONTEXT_ATTRIBUTE = 'customer_context'


def customer_extra(customer: str) -> Dict[str, str]:
    """``extra`` mapping that tags a log record with a customer."""
    return {CONTEXT_ATTRIBUTE: customer}


class StructuredFormatter(logging.Formatter):
    """
    Structured log formatter.

    Format: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE {customer=...}
    """

    def format(self, record: logging.LogRecord) -> str:
        customer = getattr(record, CONTEXT_ATTRIBUTE, '')

        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        location = f"{record.module}:{record.funcName}:{record.lineno}"

        base_msg = f"[{timestamp}] [{record.levelname:8s}] [{location}] {record.getMessage()}"

        if customer:
            base_msg += f" {{customer={customer}}}"

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


class PerformanceLogger:
    """Context manager that times an operation and flags slow ones."""

    def __init__(self, logger: logging.Logger, operation: str, threshold_ms: float = 1000):
        self.logger = logger
        self.operation = operation
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if self.duration_ms > self.threshold_ms:
            self.logger.warning(f"SLOW: {self.operation} took {self.duration_ms:.1f}ms")
        else:
            self.logger.debug(f"{self.operation} took {self.duration_ms:.1f}ms")


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger writing structured lines to stdout.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Handlers are attached once per logger
    if logger.handlers:
        return logger

    if level is None:
        level = os.getenv('LOG_LEVEL', 'INFO').upper()

    log_level = getattr(logging, level, logging.INFO)
    logger.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_perf_logger(logger: logging.Logger, operation: str, threshold_ms: float = 1000):
    """
    Get a performance logger context manager.

    Usage:
        with get_perf_logger(logger, "build_dashboard", threshold_ms=200):
            dashboard = build_dashboard(book, rates)
    """
    return PerformanceLogger(logger, operation, threshold_ms)


def log_dataframe_info(logger: logging.Logger, df, name: str = "DataFrame"):
    """Log the shape of a table handed to the presentation layer."""
    if df is None:
        logger.warning(f"{name} is None")
        return

    if df.empty:
        logger.info(f"{name} is empty (0 rows)")
    else:
        logger.debug(f"{name}: {len(df)} rows, {len(df.columns)} columns")
