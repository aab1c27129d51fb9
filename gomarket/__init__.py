"""GoMarket cart state manager."""

__version__ = "1.0.0"
