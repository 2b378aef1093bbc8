"""
Binance spot market-data client for the MA60 crossing monitor.

Provides:
- Daily OHLCV candles per symbol (oldest first)
- Listing of tradable USDT-quoted spot symbols

Uses the python-binance SDK when API credentials are configured and falls
back to the public REST API (no auth required) otherwise or on SDK failure.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
from binance.client import Client
from dotenv import load_dotenv

from ma60_monitor import config
from ma60_monitor.exceptions import FetchError

logger = logging.getLogger(__name__)

# Kline array layout returned by /api/v3/klines
KLINE_COLUMNS = [
    "open_time",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "close_time",
    "quote_volume",
    "trades",
    "taker_buy_base",
    "taker_buy_quote",
    "ignore",
]

OHLCV_COLUMNS = ["open", "high", "low", "close", "volume"]


class BinanceClient:
    """
    Client for Binance spot market data.

    Every request carries a bounded timeout so a single slow symbol cannot
    stall a full scan.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        timeout: float = config.REQUEST_TIMEOUT_SECONDS,
        base_url: str = config.BINANCE_PUBLIC_API,
    ) -> None:
        """
        Initialize Binance market-data client.

        Args:
            api_key: Binance API key (defaults to BINANCE_API_KEY env var)
            api_secret: Binance secret key (defaults to BINANCE_SECRET_KEY env var)
            timeout: Per-request timeout in seconds
            base_url: Public REST API base URL
        """
        load_dotenv()

        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or os.getenv("BINANCE_API_KEY")
        self.api_secret = api_secret or os.getenv("BINANCE_SECRET_KEY")

        if not self.api_key or not self.api_secret:
            logger.warning(
                "Binance API credentials not found. Client will use the public API."
            )
            self.client = None
        else:
            try:
                self.client = Client(
                    api_key=self.api_key,
                    api_secret=self.api_secret,
                    requests_params={"timeout": self.timeout},
                    ping=False,
                )
                logger.info("Binance client initialized (timeout=%ss)", self.timeout)
            except Exception as e:
                logger.error("Failed to initialize Binance client: %s", e)
                self.client = None

    # =========================================================================
    # MARKET DATA
    # =========================================================================

    def get_daily_candles(self, symbol: str, count: int = config.CANDLE_LOOKBACK) -> pd.DataFrame:
        """
        Fetch the most recent daily candles for a symbol.

        The last row is the current (possibly still forming) day.

        Args:
            symbol: Trading pair (e.g., 'BTCUSDT')
            count: Number of candles to fetch

        Returns:
            DataFrame with columns: open, high, low, close, volume
            Index: candle open datetime (UTC), ascending

        Raises:
            FetchError: If neither the SDK nor the public API returned data
        """
        if self.client:
            try:
                raw = self.client.get_klines(
                    symbol=symbol,
                    interval=Client.KLINE_INTERVAL_1DAY,
                    limit=count,
                )
                return self._build_ohlcv_dataframe(raw).tail(count)
            except Exception as e:
                logger.warning("SDK kline fetch failed for %s, trying public API: %s", symbol, e)

        raw = self._public_get(
            "/api/v3/klines",
            params={"symbol": symbol, "interval": config.KLINE_INTERVAL, "limit": count},
            symbol=symbol,
        )
        try:
            return self._build_ohlcv_dataframe(raw).tail(count)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed klines for {symbol}: {e}", symbol=symbol) from e

    def _build_ohlcv_dataframe(self, raw: List[List[Any]]) -> pd.DataFrame:
        """Build OHLCV DataFrame from raw kline arrays."""
        if not raw:
            return pd.DataFrame(columns=OHLCV_COLUMNS)

        df = pd.DataFrame(raw, columns=KLINE_COLUMNS[: len(raw[0])])
        for col in OHLCV_COLUMNS:
            df[col] = pd.to_numeric(df[col])
        df["datetime"] = pd.to_datetime(df["open_time"], unit="ms", utc=True)
        df = df.set_index("datetime").sort_index()
        return df[OHLCV_COLUMNS]

    # =========================================================================
    # SYMBOLS
    # =========================================================================

    def list_eligible_symbols(self, quote_asset: str = config.QUOTE_ASSET) -> List[str]:
        """
        List actively trading, spot-tradable symbols for a quote asset.

        Args:
            quote_asset: Quote asset filter (default: USDT)

        Returns:
            Sorted list of symbol names

        Raises:
            FetchError: If exchange info could not be retrieved
        """
        info = None
        if self.client:
            try:
                info = self.client.get_exchange_info()
            except Exception as e:
                logger.warning("SDK exchange info fetch failed, trying public API: %s", e)

        if info is None:
            info = self._public_get("/api/v3/exchangeInfo")

        symbols = self._filter_symbols(info.get("symbols", []), quote_asset)
        logger.info(f"Found {len(symbols)} eligible {quote_asset} symbols")
        return symbols

    @staticmethod
    def _filter_symbols(entries: List[Dict[str, Any]], quote_asset: str) -> List[str]:
        return sorted(
            s["symbol"]
            for s in entries
            if s.get("quoteAsset") == quote_asset
            and s.get("status") == config.TRADING_STATUS
            and s.get("isSpotTradingAllowed", False)
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def _public_get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        symbol: Optional[str] = None,
    ) -> Any:
        """GET a public endpoint and decode JSON, raising FetchError on failure."""
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout as e:
            raise FetchError(f"Timeout after {self.timeout}s: {url}", symbol=symbol) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise FetchError(f"Request failed for {url}: {e}", symbol=symbol) from e
