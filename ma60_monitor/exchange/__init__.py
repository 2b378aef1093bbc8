"""
Exchange market-data clients.
"""

from ma60_monitor.exchange.binance_client import BinanceClient

__all__ = ['BinanceClient']
