"""
Exception hierarchy for the MA60 crossing monitor.

ConfigError is fatal at start-up. Everything else is raised by a
collaborator and handled (logged, skipped or retried) by its caller.
"""

from typing import Optional


class MA60MonitorError(Exception):
    """Base class for all monitor errors."""


class ConfigError(MA60MonitorError):
    """Required configuration is missing or invalid."""


class PersistenceError(MA60MonitorError):
    """State snapshot could not be read or written."""


class StateLoadError(PersistenceError):
    """Persisted state exists but is malformed."""


class StateSaveError(PersistenceError):
    """Persisting the state snapshot failed."""


class FetchError(MA60MonitorError):
    """Market data request failed for a symbol or the symbol list."""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message)
        self.symbol = symbol


class DeliveryError(MA60MonitorError):
    """Webhook rejected or failed to deliver a message."""

    def __init__(self, message: str, errcode: Optional[int] = None):
        super().__init__(message)
        self.errcode = errcode
