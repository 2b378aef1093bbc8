"""
Shared fixtures for MA60 monitor tests.

Provides close-series builders with an exact MA60, candle DataFrames and a
mock candle source keyed by symbol.
"""

import pytest
import pandas as pd
from datetime import date
from typing import Dict, List
from unittest.mock import Mock

from ma60_monitor.exceptions import FetchError


def make_closes(ma: float, previous: float, latest: float, period: int = 60) -> List[float]:
    """
    Build period + 1 closes whose first `period` average exactly `ma`.

    closes[period - 1] == previous, closes[period] == latest. The first
    close absorbs the difference so the sum stays exact for round numbers.
    """
    closes = [float(ma)] * period
    closes[period - 1] = float(previous)
    closes[0] = 2 * ma - previous
    closes.append(float(latest))
    return closes


def candles_frame(closes: List[float]) -> pd.DataFrame:
    """Daily OHLCV frame with the given closes, oldest first."""
    index = pd.date_range(end="2026-10-19", periods=len(closes), freq="D", tz="UTC")
    return pd.DataFrame(
        {
            "open": closes,
            "high": closes,
            "low": closes,
            "close": closes,
            "volume": [1000.0] * len(closes),
        },
        index=index,
    )


def make_candle_source(series: Dict[str, object]) -> Mock:
    """
    Mock BinanceClient serving candles per symbol.

    Values are close lists, or an Exception instance to raise.
    """
    client = Mock()

    def get_daily_candles(symbol, count=61):
        value = series.get(symbol)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise FetchError(f"Unknown symbol {symbol}", symbol=symbol)
        return candles_frame(value).tail(count)

    client.get_daily_candles.side_effect = get_daily_candles
    client.list_eligible_symbols.return_value = list(series.keys())
    return client


@pytest.fixture
def today():
    return date(2026, 10, 19)


@pytest.fixture
def breakout_closes():
    """MA60 = 50, previous = 49, latest = 51."""
    return make_closes(50, 49, 51)


@pytest.fixture
def breakdown_closes():
    """MA60 = 50, previous = 51, latest = 49."""
    return make_closes(50, 51, 49)


@pytest.fixture
def flat_above_closes():
    """Both closes above MA60 = 50 (no new crossing)."""
    return make_closes(50, 52, 53)


@pytest.fixture
def closes_factory():
    """Factory for close series with an exact MA60: (ma, previous, latest)."""
    return make_closes


@pytest.fixture
def candle_source_factory():
    """Factory for a mock candle source: {symbol: closes | Exception}."""
    return make_candle_source
