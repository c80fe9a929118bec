"""Exceptions raised by the market engine."""


class MarketError(Exception):
    """Base class for market engine errors."""


class StorePersistenceError(MarketError):
    """A market state or ledger document could not be written."""


class ConfigurationError(MarketError):
    """Invalid configuration value."""
