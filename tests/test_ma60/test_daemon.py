"""
Tests for ma60_monitor/scanning/daemon.py

Covers:
- Pass ordering: load -> analyze -> report -> save
- Failure handling (state load, symbol listing, delivery, state save)
- End-to-end pass against a real StateStore
- Start/stop lifecycle and status reporting
"""

import json
import pytest
from datetime import date, time
from unittest.mock import MagicMock, Mock, patch

from ma60_monitor.data.state import CrossingState, CrossingStatus, StateStore
from ma60_monitor.exceptions import FetchError, StateLoadError, StateSaveError
from ma60_monitor.scanning.analyzer import CrossingReport
from ma60_monitor.scanning.daemon import MA60DaemonConfig, MA60MonitorDaemon


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def mock_store():
    store = Mock()
    store.load.return_value = CrossingState()
    return store


@pytest.fixture
def mock_alerter():
    alerter = Mock()
    alerter.send_daily_report.return_value = True
    return alerter


@pytest.fixture
def mock_scheduler():
    scheduler = MagicMock()
    scheduler.is_running = False
    scheduler.get_next_run_time.return_value = None
    return scheduler


@pytest.fixture
def make_daemon(candle_source_factory, mock_store, mock_alerter, mock_scheduler):
    """Factory building a daemon around mocked collaborators."""

    def _make(series=None, store=None, alerter=mock_alerter, config=None, client=None):
        return MA60MonitorDaemon(
            config=config or MA60DaemonConfig(),
            client=client or candle_source_factory(series or {}),
            store=store or mock_store,
            alerter=alerter,
            scheduler=mock_scheduler,
        )

    return _make


# =============================================================================
# INITIALIZATION
# =============================================================================


class TestDaemonInit:
    """Tests for daemon construction."""

    def test_alerter_built_from_config(self, candle_source_factory, mock_store, mock_scheduler):
        config = MA60DaemonConfig(
            dingtalk_webhook_url="https://oapi.dingtalk.com/robot/send?access_token=t",
            dingtalk_secret="SEC",
        )
        daemon = MA60MonitorDaemon(
            config=config,
            client=candle_source_factory({}),
            store=mock_store,
            scheduler=mock_scheduler,
        )

        assert daemon.alerter is not None
        assert daemon.alerter.secret == "SEC"

    def test_no_webhook_leaves_alerter_unset(self, make_daemon):
        daemon = make_daemon(alerter=None)
        assert daemon.alerter is None

    def test_analyzer_uses_configured_period(self, make_daemon):
        daemon = make_daemon(config=MA60DaemonConfig(ma_period=20))
        assert daemon.analyzer.period == 20
        assert daemon.analyzer.lookback == 21


# =============================================================================
# RUN CHECK
# =============================================================================


class TestRunCheck:
    """Tests for run_check."""

    def test_pass_order(self, make_daemon, mock_store, mock_alerter, breakout_closes, today):
        calls = []
        mock_store.load.side_effect = lambda: calls.append("load") or CrossingState()
        mock_alerter.send_daily_report.side_effect = lambda *a: calls.append("send") or True
        mock_store.save.side_effect = lambda state: calls.append("save")
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        daemon.run_check(today)

        assert calls == ["load", "send", "save"]

    def test_report_and_state(self, make_daemon, mock_store, mock_alerter, breakout_closes, today):
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        report = daemon.run_check(today)

        assert report.daily_breakouts == ["ABCUSDT (breakout price: 51.000000)"]
        mock_alerter.send_daily_report.assert_called_once_with(report, today)
        saved_state = mock_store.save.call_args.args[0]
        assert saved_state.get("ABCUSDT").status is CrossingStatus.BREAKOUT
        assert saved_state.get("ABCUSDT").event_date == today

    def test_state_load_error_aborts_pass(self, make_daemon, mock_store, mock_alerter, today):
        mock_store.load.side_effect = StateLoadError("corrupt")
        daemon = make_daemon({"ABCUSDT": [1.0]})

        assert daemon.run_check(today) is None

        mock_alerter.send_daily_report.assert_not_called()
        mock_store.save.assert_not_called()
        assert daemon.get_status()['error_count'] == 1

    def test_symbol_list_failure_sends_empty_report(
        self, make_daemon, mock_store, mock_alerter, today
    ):
        client = Mock()
        client.list_eligible_symbols.side_effect = FetchError("exchange down")
        daemon = make_daemon(client=client)

        report = daemon.run_check(today)

        assert report == CrossingReport()
        mock_alerter.send_daily_report.assert_called_once()
        mock_store.save.assert_called_once()
        assert daemon.get_status()['error_count'] == 1

    def test_delivery_failure_still_saves(
        self, make_daemon, mock_store, mock_alerter, breakout_closes, today
    ):
        mock_alerter.send_daily_report.return_value = False
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        daemon.run_check(today)

        mock_store.save.assert_called_once()
        assert daemon.get_status()['error_count'] == 1

    def test_delivery_exception_still_saves(
        self, make_daemon, mock_store, mock_alerter, breakout_closes, today
    ):
        mock_alerter.send_daily_report.side_effect = RuntimeError("network")
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        daemon.run_check(today)

        mock_store.save.assert_called_once()

    def test_save_failure_logged(self, make_daemon, mock_store, breakout_closes, today):
        mock_store.save.side_effect = StateSaveError("read-only")
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        report = daemon.run_check(today)

        assert report is not None
        assert daemon.get_status()['error_count'] == 1

    def test_without_alerter_still_saves(self, make_daemon, mock_store, breakout_closes, today):
        daemon = make_daemon({"ABCUSDT": breakout_closes}, alerter=None)

        daemon.run_check(today)

        mock_store.save.assert_called_once()

    def test_default_date_uses_timezone(self, make_daemon, mock_store, breakout_closes):
        daemon = make_daemon({"ABCUSDT": breakout_closes})

        with patch.object(MA60MonitorDaemon, 'today', return_value=date(2026, 1, 2)):
            daemon.run_check()

        saved_state = mock_store.save.call_args.args[0]
        assert saved_state.get("ABCUSDT").event_date == date(2026, 1, 2)

    def test_run_check_safely_swallows_errors(self, make_daemon, mock_store):
        mock_store.load.side_effect = RuntimeError("unexpected")
        daemon = make_daemon()

        daemon._run_check_safely()

        assert daemon.get_status()['error_count'] == 1


class TestEndToEnd:
    """Two consecutive passes against a real state file."""

    def test_breakout_then_gain(
        self, make_daemon, mock_alerter, tmp_path, closes_factory, breakout_closes
    ):
        path = tmp_path / "state.json"
        store = StateStore(path)

        daemon = make_daemon({"ABCUSDT": breakout_closes}, store=store)
        daemon.run_check(date(2026, 10, 18))

        snapshot = json.loads(path.read_text())
        assert snapshot["ABCUSDT"]["status"] == "breakout"
        assert snapshot["ABCUSDT"]["eventPrice"] == 51.0

        daemon = make_daemon({"ABCUSDT": closes_factory(50, 51, 55)}, store=store)
        report = daemon.run_check(date(2026, 10, 19))

        assert report.daily_breakouts == []
        assert report.tracked_gains == ["ABCUSDT (from 51.000000, gain since breakout: 7.84%)"]
        # Continuation leaves the event untouched
        assert json.loads(path.read_text())["ABCUSDT"]["eventDate"] == "2026-10-18"

    def test_breakdown_replaces_breakout(
        self, make_daemon, tmp_path, breakout_closes, breakdown_closes
    ):
        store = StateStore(tmp_path / "state.json")

        make_daemon({"ABCUSDT": breakout_closes}, store=store).run_check(date(2026, 10, 18))
        report = make_daemon({"ABCUSDT": breakdown_closes}, store=store).run_check(
            date(2026, 10, 19)
        )

        assert report.daily_breakdowns == ["ABCUSDT (breakdown price: 49.000000)"]
        asset = store.load().get("ABCUSDT")
        assert asset.status is CrossingStatus.BREAKDOWN
        assert asset.event_price == 49.0


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestDaemonLifecycle:
    """Tests for start/stop."""

    def test_start_non_blocking(self, make_daemon, mock_scheduler, mock_store):
        daemon = make_daemon(config=MA60DaemonConfig(run_time=time(9, 15)))

        daemon.start(block=False)

        assert daemon.is_running is True
        mock_store.load.assert_called_once()
        mock_scheduler.add_daily_job.assert_called_once_with(
            daemon._run_check_safely, time(9, 15)
        )
        mock_scheduler.start.assert_called_once()

    def test_start_without_startup_run(self, make_daemon, mock_store):
        daemon = make_daemon(config=MA60DaemonConfig(run_on_startup=False))

        daemon.start(block=False)

        mock_store.load.assert_not_called()

    def test_startup_message(self, make_daemon, mock_alerter):
        daemon = make_daemon(config=MA60DaemonConfig(send_startup_message=True))

        daemon.start(block=False)

        mock_alerter.test_connection.assert_called_once()

    def test_start_twice_is_noop(self, make_daemon, mock_scheduler):
        daemon = make_daemon()
        daemon.start(block=False)
        daemon.start(block=False)

        mock_scheduler.start.assert_called_once()

    def test_stop(self, make_daemon, mock_scheduler):
        daemon = make_daemon()
        daemon.start(block=False)
        mock_scheduler.is_running = True

        daemon.stop()

        mock_scheduler.shutdown.assert_called_once_with(wait=True)
        assert daemon.is_running is False

    def test_stop_when_not_running(self, make_daemon, mock_scheduler):
        make_daemon().stop()
        mock_scheduler.shutdown.assert_not_called()


class TestDaemonStatus:
    """Tests for get_status."""

    def test_initial_status(self, make_daemon):
        status = make_daemon().get_status()

        assert status['running'] is False
        assert status['uptime_seconds'] is None
        assert status['pass_count'] == 0
        assert status['last_summary'] is None
        assert status['alerter_enabled'] is True

    def test_status_after_pass(self, make_daemon, breakout_closes, today):
        daemon = make_daemon({"ABCUSDT": breakout_closes})
        daemon.run_check(today)

        status = daemon.get_status()

        assert status['pass_count'] == 1
        assert status['tracked_assets'] == 1
        assert status['last_pass_time'] is not None
        assert "breakouts=1" in status['last_summary']
