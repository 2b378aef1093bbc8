"""
Report formatting and DingTalk webhook delivery.
"""

from ma60_monitor.alerters.dingtalk_alerter import DingTalkAlerter
from ma60_monitor.alerters.report_formatter import format_daily_report

__all__ = ['DingTalkAlerter', 'format_daily_report']
