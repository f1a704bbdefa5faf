"""
Trade Journal Importer

Personal trading journal backend. Broker export files (MetaTrader, NinjaTrader,
Tradovate) are parsed, mapped onto canonical trades, normalized to New York
time, deduplicated against existing history and persisted.
"""

__version__ = "0.1.0"
__author__ = "Trade Journal Team"
