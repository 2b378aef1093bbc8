"""
MA60 Crossing Monitor Daemon

Orchestrates the daily analysis pass:
- Load crossing state from the JSON snapshot
- List eligible USDT symbols and classify each against MA60
- Send the four-section report to DingTalk
- Persist the updated state

One pass runs immediately at start-up, then once a day at a fixed
wall-clock time via DailyScheduler.

Usage:
    from ma60_monitor.scanning.daemon import MA60MonitorDaemon

    daemon = MA60MonitorDaemon()
    daemon.start()  # Blocks until shutdown
    # Or:
    report = daemon.run_check()  # Single synchronous pass
"""

import logging
import signal as os_signal
import sys
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

import pytz

from ma60_monitor import config
from ma60_monitor.alerters.dingtalk_alerter import DingTalkAlerter
from ma60_monitor.data.state import CrossingState, StateStore
from ma60_monitor.exceptions import FetchError, StateLoadError, StateSaveError
from ma60_monitor.exchange.binance_client import BinanceClient
from ma60_monitor.scanning.analyzer import CrossingReport, MA60CrossingAnalyzer
from ma60_monitor.scanning.scheduler import DailyScheduler

logger = logging.getLogger(__name__)


@dataclass
class MA60DaemonConfig:
    """Configuration for the MA60 monitor daemon."""

    # State snapshot path
    state_file: str = config.DEFAULT_STATE_FILE

    # Daily trigger (wall-clock time in `timezone`)
    run_time: time = time(8, 0)
    timezone: str = config.DEFAULT_TIMEZONE

    # Run one pass before the first scheduled trigger
    run_on_startup: bool = True

    # Moving average window
    ma_period: int = config.MA_PERIOD

    # Exchange credentials (optional, public API otherwise)
    binance_api_key: Optional[str] = None
    binance_secret_key: Optional[str] = None
    request_timeout: float = config.REQUEST_TIMEOUT_SECONDS

    # DingTalk robot
    dingtalk_webhook_url: Optional[str] = None
    dingtalk_secret: Optional[str] = None
    send_startup_message: bool = False


class MA60MonitorDaemon:
    """
    Daemon running the MA60 crossing pass once per day.

    Usage:
        daemon = MA60MonitorDaemon(config=MA60DaemonConfig(dingtalk_webhook_url=url))
        daemon.start()  # Blocks until Ctrl+C

        # Or non-blocking:
        daemon.start(block=False)
        ...
        daemon.stop()
    """

    def __init__(
        self,
        config: Optional[MA60DaemonConfig] = None,
        client: Optional[BinanceClient] = None,
        store: Optional[StateStore] = None,
        alerter: Optional[DingTalkAlerter] = None,
        scheduler: Optional[DailyScheduler] = None,
    ):
        """
        Initialize MA60 monitor daemon.

        Args:
            config: Daemon configuration
            client: Candle source / symbol lister
            store: State snapshot store
            alerter: Pre-configured DingTalk alerter
            scheduler: Pre-configured daily scheduler
        """
        self.config = config or MA60DaemonConfig()
        self.timezone = pytz.timezone(self.config.timezone)

        self.client = client or BinanceClient(
            api_key=self.config.binance_api_key,
            api_secret=self.config.binance_secret_key,
            timeout=self.config.request_timeout,
        )
        self.store = store or StateStore(self.config.state_file)
        self.analyzer = MA60CrossingAnalyzer(client=self.client, period=self.config.ma_period)
        self.scheduler = scheduler or DailyScheduler(timezone=self.config.timezone)
        self.alerter: Optional[DingTalkAlerter] = alerter

        # Daemon state
        self._running = False
        self._shutdown_event = threading.Event()
        self._pass_lock = threading.Lock()

        # Statistics
        self._start_time: Optional[datetime] = None
        self._pass_count = 0
        self._error_count = 0
        self._last_pass_time: Optional[datetime] = None
        self._last_report: Optional[CrossingReport] = None
        self._tracked_count = 0

        if self.alerter is None:
            self._setup_alerter()

    # =========================================================================
    # COMPONENT SETUP
    # =========================================================================

    def _setup_alerter(self) -> None:
        """Initialize DingTalk alerter if a webhook URL is configured."""
        if not self.config.dingtalk_webhook_url:
            logger.warning("DingTalk alerter not configured (no webhook URL)")
            return

        try:
            self.alerter = DingTalkAlerter(
                webhook_url=self.config.dingtalk_webhook_url,
                secret=self.config.dingtalk_secret,
            )
            logger.info("DingTalk alerter initialized")
        except ValueError as e:
            logger.error(f"Failed to initialize DingTalk alerter: {e}")

    # =========================================================================
    # ANALYSIS PASS
    # =========================================================================

    def today(self) -> date:
        """Current calendar date in the scheduler timezone."""
        return datetime.now(self.timezone).date()

    def run_check(self, today: Optional[date] = None) -> Optional[CrossingReport]:
        """
        Run one full pass: load state, analyze, report, persist.

        Args:
            today: Date recorded on new crossings (default: today in timezone)

        Returns:
            CrossingReport, or None if state could not be loaded
        """
        with self._pass_lock:
            today = today or self.today()
            self._pass_count += 1
            logger.info(f"Starting MA60 check #{self._pass_count} for {today.isoformat()}...")

            try:
                state = self.store.load()
            except StateLoadError as e:
                logger.error(f"Failed to load state, aborting pass: {e}")
                self._error_count += 1
                return None

            report = self._analyze(state, today)
            self._send_report(report, today)
            self._save_state(state)

            self._last_pass_time = datetime.now(timezone.utc)
            self._last_report = report
            self._tracked_count = len(state)
            logger.info(f"MA60 check #{self._pass_count} complete")
            return report

    def _analyze(self, state: CrossingState, today: date) -> CrossingReport:
        try:
            symbols = self.client.list_eligible_symbols()
        except FetchError as e:
            logger.error(f"Failed to list symbols: {e}")
            self._error_count += 1
            return CrossingReport()

        return self.analyzer.analyze(symbols, state, today)

    def _send_report(self, report: CrossingReport, today: date) -> None:
        if self.alerter is None:
            logger.info(f"No alerter configured, report not sent ({report.summary()})")
            return

        try:
            if not self.alerter.send_daily_report(report, today):
                self._error_count += 1
        except Exception as e:
            logger.error(f"DingTalk report error: {e}")
            self._error_count += 1

    def _save_state(self, state: CrossingState) -> None:
        try:
            self.store.save(state)
        except StateSaveError as e:
            logger.error(f"Failed to save state: {e}")
            self._error_count += 1

    def _run_check_safely(self) -> None:
        """Scheduler entry point; a failed pass never stops the schedule."""
        try:
            self.run_check()
        except Exception as e:
            logger.exception(f"MA60 check failed: {e}")
            self._error_count += 1

    # =========================================================================
    # DAEMON CONTROL
    # =========================================================================

    def _setup_signal_handlers(self) -> None:
        """Setup OS signal handlers for graceful shutdown."""

        def handle_shutdown(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            self._shutdown_event.set()

        os_signal.signal(os_signal.SIGINT, handle_shutdown)
        os_signal.signal(os_signal.SIGTERM, handle_shutdown)

        # Windows-specific
        if sys.platform == "win32":
            try:
                os_signal.signal(os_signal.SIGBREAK, handle_shutdown)
            except AttributeError:
                pass

    def start(self, block: bool = True) -> None:
        """
        Start the daemon.

        Args:
            block: Block until shutdown signal (default: True)
        """
        if self._running:
            logger.warning("Daemon already running")
            return

        logger.info("Starting MA60 crossing monitor...")
        self._start_time = datetime.now(timezone.utc)
        self._running = True
        self._shutdown_event.clear()

        if block:
            self._setup_signal_handlers()

        if self.alerter is not None and self.config.send_startup_message:
            self.alerter.test_connection()

        if self.config.run_on_startup:
            logger.info("Running initial check...")
            self._run_check_safely()

        self.scheduler.add_daily_job(self._run_check_safely, self.config.run_time)
        self.scheduler.start()
        next_run = self.scheduler.get_next_run_time()
        logger.info(f"Next scheduled check: {next_run}")

        if block:
            self._run_blocking()

    def _run_blocking(self) -> None:
        """Block until shutdown signal."""
        logger.info("Daemon running (Ctrl+C to stop)")

        try:
            while not self._shutdown_event.is_set():
                self._shutdown_event.wait(timeout=1.0)
        except KeyboardInterrupt:
            logger.info("KeyboardInterrupt received")

        self.stop()

    def stop(self) -> None:
        """Stop the daemon gracefully."""
        if not self._running:
            return

        logger.info("Stopping MA60 crossing monitor...")
        self._shutdown_event.set()

        if self.scheduler.is_running:
            self.scheduler.shutdown(wait=True)

        logger.info(f"Final stats: {self.get_status()}")
        self._running = False
        logger.info("MA60 crossing monitor stopped")

    @property
    def is_running(self) -> bool:
        """Check if daemon is running."""
        return self._running

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> Dict[str, Any]:
        """Get daemon status and statistics."""
        uptime = None
        if self._start_time:
            uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        next_run = self.scheduler.get_next_run_time() if self.scheduler.is_running else None

        return {
            'running': self._running,
            'uptime_seconds': uptime,
            'pass_count': self._pass_count,
            'error_count': self._error_count,
            'last_pass_time': (
                self._last_pass_time.isoformat() if self._last_pass_time else None
            ),
            'last_summary': self._last_report.summary() if self._last_report else None,
            'tracked_assets': self._tracked_count,
            'next_run': str(next_run) if next_run else None,
            'alerter_enabled': self.alerter is not None,
        }
