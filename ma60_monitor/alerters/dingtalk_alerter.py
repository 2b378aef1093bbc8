"""
DingTalk webhook alerter for the MA60 crossing report.

Features:
- Markdown messages via a DingTalk custom robot
- Optional signed-robot mode (HMAC-SHA256 timestamp signature)
- Rate limiting and retry logic with exponential backoff
"""

import base64
import hashlib
import hmac
import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from ma60_monitor import config
from ma60_monitor.alerters.report_formatter import format_daily_report
from ma60_monitor.exceptions import DeliveryError
from ma60_monitor.scanning.analyzer import CrossingReport

logger = logging.getLogger(__name__)

# DingTalk errcode for "sending too fast"
ERRCODE_RATE_LIMITED = 130101


class DingTalkAlerter:
    """
    DingTalk custom-robot webhook alerter.

    Usage:
        alerter = DingTalkAlerter(webhook_url, secret=None)
        alerter.send_daily_report(report, date.today())
    """

    RATE_LIMIT_WINDOW = config.DINGTALK_RATE_LIMIT_WINDOW
    RATE_LIMIT_MAX = config.DINGTALK_RATE_LIMIT_MAX

    def __init__(
        self,
        webhook_url: str,
        secret: Optional[str] = None,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 10.0,
    ):
        """
        Initialize DingTalk alerter.

        Args:
            webhook_url: Robot webhook URL including access_token
            secret: Signing secret for robots with the signature option enabled
            retry_attempts: Number of attempts per message
            retry_delay: Base delay between retries (exponential backoff)
            timeout: HTTP timeout in seconds
        """
        if not webhook_url:
            raise ValueError("DingTalk webhook URL is required")

        if not webhook_url.startswith(config.DINGTALK_WEBHOOK_PREFIX):
            raise ValueError("Invalid DingTalk webhook URL format")

        self.webhook_url = webhook_url
        self.secret = secret
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.timeout = timeout

        # Rate limiting
        self._request_times: List[float] = []

    def _check_rate_limit(self) -> bool:
        """Check if we're within rate limits."""
        now = time.time()
        self._request_times = [
            t for t in self._request_times
            if now - t < self.RATE_LIMIT_WINDOW
        ]
        return len(self._request_times) < self.RATE_LIMIT_MAX

    def _record_request(self) -> None:
        """Record a request for rate limiting."""
        self._request_times.append(time.time())

    def _sign_params(self) -> Dict[str, str]:
        """Query parameters for signed robots (empty when no secret)."""
        if not self.secret:
            return {}
        timestamp = str(round(time.time() * 1000))
        string_to_sign = f"{timestamp}\n{self.secret}"
        digest = hmac.new(
            self.secret.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            digestmod=hashlib.sha256,
        ).digest()
        return {"timestamp": timestamp, "sign": base64.b64encode(digest).decode("utf-8")}

    @staticmethod
    def _check_response(response: requests.Response) -> None:
        """
        Validate a DingTalk response.

        DingTalk answers HTTP 200 even for rejected messages; the outcome is
        in the JSON errcode.

        Raises:
            DeliveryError: On HTTP error or non-zero errcode
        """
        if response.status_code >= 400:
            raise DeliveryError(
                f"DingTalk webhook error: {response.status_code} - {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise DeliveryError(f"DingTalk returned non-JSON body: {response.text[:200]}") from e

        errcode = body.get("errcode", 0)
        if errcode != 0:
            raise DeliveryError(
                f"DingTalk errcode {errcode}: {body.get('errmsg', '')}",
                errcode=errcode,
            )

    def _send_webhook(self, payload: Dict[str, Any]) -> bool:
        """Send payload to the DingTalk webhook with retry logic."""
        if not self._check_rate_limit():
            wait_time = self.RATE_LIMIT_WINDOW - (
                time.time() - min(self._request_times)
            )
            logger.info(f"Rate limited, waiting {wait_time:.1f}s")
            time.sleep(wait_time)

        for attempt in range(self.retry_attempts):
            try:
                response = requests.post(
                    self.webhook_url,
                    params=self._sign_params(),
                    json=payload,
                    timeout=self.timeout,
                )
                self._record_request()
                self._check_response(response)
                return True

            except DeliveryError as e:
                if e.errcode == ERRCODE_RATE_LIMITED:
                    logger.warning(f"DingTalk rate limited (attempt {attempt + 1})")
                    time.sleep(self.RATE_LIMIT_WINDOW / self.RATE_LIMIT_MAX)
                    continue
                logger.error(str(e))
                return False

            except requests.exceptions.Timeout:
                logger.warning(f"DingTalk webhook timeout (attempt {attempt + 1})")
                time.sleep(self.retry_delay * (2 ** attempt))

            except requests.exceptions.RequestException as e:
                logger.error(f"DingTalk webhook request error: {e}")
                time.sleep(self.retry_delay * (2 ** attempt))

        logger.error(f"DingTalk webhook failed after {self.retry_attempts} attempts")
        return False

    def send_markdown(self, title: str, text: str) -> bool:
        """
        Send a markdown message.

        Args:
            title: Notification title (shown in the chat list preview)
            text: Markdown body

        Returns:
            True if the message was accepted
        """
        payload = {
            "msgtype": "markdown",
            "markdown": {"title": title, "text": text},
        }
        return self._send_webhook(payload)

    def send_daily_report(self, report: CrossingReport, report_date: date) -> bool:
        """
        Format and send the four-section daily report.

        Args:
            report: Analyzer output
            report_date: Date shown in the report header

        Returns:
            True if sent successfully
        """
        text = format_daily_report(report, report_date)
        success = self.send_markdown(config.REPORT_TITLE, text)

        if success:
            logger.info(f"DingTalk daily report sent ({report.summary()})")
        else:
            logger.error("DingTalk daily report delivery failed")

        return success

    def test_connection(self) -> bool:
        """
        Send a short start-up message.

        Returns:
            True if connection test passed
        """
        success = self.send_markdown(
            config.REPORT_TITLE,
            f"#### {config.REPORT_TITLE}\n\nMonitor started.",
        )

        if success:
            logger.info("DingTalk connection test passed")
        else:
            logger.error("DingTalk connection test failed")

        return success
