"""Client library for vault, strategy and liquidity position data."""

__version__ = "0.1.0"
