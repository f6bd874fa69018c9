"""Utility modules for pingrind.

Sub-modules:
- logging: configure_logging() for structlog setup
- retry: retry_async() bounded exponential backoff for scoreboard reads
- clock: naive-UTC time helpers shared by the Ledger and the routines
"""

from .clock import utcnow
from .logging import configure_logging
from .retry import retry_async

__all__ = ["configure_logging", "retry_async", "utcnow"]
