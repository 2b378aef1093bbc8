"""
MA60 crossing analyzer.

Classifies each symbol's latest daily close against the 60-day simple
moving average of the preceding closes:

- NEW_BREAKOUT:  previous close <= MA60 < latest close
- NEW_BREAKDOWN: previous close >= MA60 > latest close
- TRACKED_GAIN / TRACKED_LOSS: an earlier crossing whose direction still
  holds today (strictly above / below MA60)

Classification is a pure function; MA60CrossingAnalyzer folds the results
into four report lists and records new crossings in the CrossingState.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ma60_monitor import config
from ma60_monitor.data.state import CrossingState, CrossingStatus, TrackedAsset
from ma60_monitor.exceptions import FetchError

logger = logging.getLogger(__name__)


class CrossingKind(str, Enum):
    """Outcome of classifying one symbol for one pass."""
    SKIPPED = "skipped"
    NEW_BREAKOUT = "new_breakout"
    NEW_BREAKDOWN = "new_breakdown"
    TRACKED_GAIN = "tracked_gain"
    TRACKED_LOSS = "tracked_loss"
    NO_EVENT = "no_event"


@dataclass
class CrossingResult:
    """Classification of a single symbol."""

    symbol: str
    kind: CrossingKind
    latest_close: Optional[float] = None
    previous_close: Optional[float] = None
    ma60: Optional[float] = None
    # Tracked entries only
    event_price: Optional[float] = None
    change_pct: Optional[float] = None

    @property
    def is_new_crossing(self) -> bool:
        return self.kind in (CrossingKind.NEW_BREAKOUT, CrossingKind.NEW_BREAKDOWN)


@dataclass
class CrossingReport:
    """Four ordered report sections produced by one pass."""

    daily_breakouts: List[str] = field(default_factory=list)
    daily_breakdowns: List[str] = field(default_factory=list)
    tracked_gains: List[str] = field(default_factory=list)
    tracked_losses: List[str] = field(default_factory=list)
    symbols_scanned: int = 0
    symbols_skipped: int = 0

    def summary(self) -> str:
        return (
            f"scanned={self.symbols_scanned} skipped={self.symbols_skipped} "
            f"breakouts={len(self.daily_breakouts)} "
            f"breakdowns={len(self.daily_breakdowns)} "
            f"gains={len(self.tracked_gains)} losses={len(self.tracked_losses)}"
        )


def moving_average(closes: Sequence[float], period: int = config.MA_PERIOD) -> float:
    """
    Simple moving average of the first `period` closes.

    Raises:
        ValueError: If fewer than `period` closes are given
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(closes) < period:
        raise ValueError(f"Need {period} closes, got {len(closes)}")
    return sum(float(c) for c in closes[:period]) / period


def classify_crossing(
    symbol: str,
    closes: Sequence[float],
    tracked: Optional[TrackedAsset] = None,
    period: int = config.MA_PERIOD,
) -> CrossingResult:
    """
    Classify a symbol's latest close against its moving average.

    Uses exactly period + 1 closes (oldest first): the first `period` form
    the average, the last two are yesterday and today. Extra leading
    closes are ignored.

    Args:
        symbol: Trading pair
        closes: Close prices in ascending chronological order
        tracked: Existing tracked entry for the symbol, if any
        period: Moving average window

    Returns:
        CrossingResult (SKIPPED when history is too short or the latest
        close is not positive)
    """
    window = period + 1
    if len(closes) < window:
        return CrossingResult(symbol=symbol, kind=CrossingKind.SKIPPED)

    closes = [float(c) for c in closes[-window:]]
    ma = moving_average(closes, period)
    previous_close = closes[period - 1]
    latest_close = closes[period]

    # A non-positive close cannot be recorded as an event price
    if not latest_close > 0:
        return CrossingResult(symbol=symbol, kind=CrossingKind.SKIPPED)

    result = CrossingResult(
        symbol=symbol,
        kind=CrossingKind.NO_EVENT,
        latest_close=latest_close,
        previous_close=previous_close,
        ma60=ma,
    )

    if latest_close > ma and previous_close <= ma:
        result.kind = CrossingKind.NEW_BREAKOUT
        return result
    if latest_close < ma and previous_close >= ma:
        result.kind = CrossingKind.NEW_BREAKDOWN
        return result

    if tracked is None:
        return result

    # Continuation requires a strict inequality; equality reports nothing
    if tracked.status == CrossingStatus.BREAKOUT and latest_close > ma:
        result.kind = CrossingKind.TRACKED_GAIN
    elif tracked.status == CrossingStatus.BREAKDOWN and latest_close < ma:
        result.kind = CrossingKind.TRACKED_LOSS
    else:
        return result

    result.event_price = tracked.event_price
    result.change_pct = tracked.change_pct(latest_close)
    return result


def format_result_line(result: CrossingResult) -> str:
    """Render a non-trivial CrossingResult as a single report line."""
    if result.kind == CrossingKind.NEW_BREAKOUT:
        return f"{result.symbol} (breakout price: {result.latest_close:f})"
    if result.kind == CrossingKind.NEW_BREAKDOWN:
        return f"{result.symbol} (breakdown price: {result.latest_close:f})"
    if result.kind == CrossingKind.TRACKED_GAIN:
        return (
            f"{result.symbol} (from {result.event_price:f}, "
            f"gain since breakout: {result.change_pct:.2f}%)"
        )
    if result.kind == CrossingKind.TRACKED_LOSS:
        return (
            f"{result.symbol} (from {result.event_price:f}, "
            f"loss since breakdown: {result.change_pct:.2f}%)"
        )
    raise ValueError(f"No report line for {result.kind.value} result")


class MA60CrossingAnalyzer:
    """
    Runs crossing classification over a symbol list.

    Usage:
        analyzer = MA60CrossingAnalyzer(client=BinanceClient())
        state = store.load()
        report = analyzer.analyze(symbols, state, today=date.today())
        store.save(state)
    """

    def __init__(self, client, period: int = config.MA_PERIOD):
        """
        Initialize analyzer.

        Args:
            client: Candle source exposing get_daily_candles(symbol, count)
            period: Moving average window (default: 60)
        """
        self.client = client
        self.period = period

    @property
    def lookback(self) -> int:
        return self.period + 1

    def fetch_closes(self, symbol: str) -> List[float]:
        """
        Fetch the close series for a symbol.

        Returns an empty list when the candle source fails.
        """
        try:
            candles = self.client.get_daily_candles(symbol, self.lookback)
        except FetchError as e:
            logger.debug(f"Skipping {symbol}: {e}")
            return []

        if candles is None or len(candles) == 0:
            return []
        return [float(c) for c in candles["close"].tolist()]

    def evaluate_symbol(self, symbol: str, state: CrossingState) -> CrossingResult:
        """Fetch and classify one symbol without mutating state."""
        closes = self.fetch_closes(symbol)
        if len(closes) < self.lookback:
            logger.debug(
                f"Skipping {symbol}: {len(closes)}/{self.lookback} daily candles"
            )
            return CrossingResult(symbol=symbol, kind=CrossingKind.SKIPPED)
        return classify_crossing(symbol, closes, state.get(symbol), self.period)

    def apply_result(
        self,
        result: CrossingResult,
        report: CrossingReport,
        state: CrossingState,
        today: date,
    ) -> None:
        """Fold one result into the report and record new crossings."""
        if result.kind == CrossingKind.SKIPPED:
            report.symbols_skipped += 1
            return
        if result.kind == CrossingKind.NO_EVENT:
            return

        line = format_result_line(result)

        if result.kind == CrossingKind.NEW_BREAKOUT:
            report.daily_breakouts.append(line)
            state.record_event(
                result.symbol, CrossingStatus.BREAKOUT, result.latest_close, today
            )
            logger.info(
                f"BREAKOUT: {result.symbol} close {result.latest_close:f} "
                f"> MA60 {result.ma60:f}"
            )
        elif result.kind == CrossingKind.NEW_BREAKDOWN:
            report.daily_breakdowns.append(line)
            state.record_event(
                result.symbol, CrossingStatus.BREAKDOWN, result.latest_close, today
            )
            logger.info(
                f"BREAKDOWN: {result.symbol} close {result.latest_close:f} "
                f"< MA60 {result.ma60:f}"
            )
        elif result.kind == CrossingKind.TRACKED_GAIN:
            report.tracked_gains.append(line)
        elif result.kind == CrossingKind.TRACKED_LOSS:
            report.tracked_losses.append(line)

    def analyze(
        self,
        symbols: Iterable[str],
        state: CrossingState,
        today: date,
    ) -> CrossingReport:
        """
        Classify every symbol and update state.

        Symbols are evaluated sequentially in the given order. A symbol with
        short history or a failed fetch is skipped without touching state.

        Args:
            symbols: Symbols to scan
            state: State for this pass (mutated in place)
            today: Date recorded on new crossings

        Returns:
            CrossingReport with four ordered sections
        """
        report = CrossingReport()

        for symbol in symbols:
            report.symbols_scanned += 1
            result = self.evaluate_symbol(symbol, state)
            self.apply_result(result, report, state, today)

        logger.info(f"Analysis complete: {report.summary()}")
        return report
