"""Operator alerts: always logged, emailed when SMTP is configured."""

import asyncio
from datetime import datetime, timezone

import structlog

from cli.config_models import EmailConfig
from cli.email_digest import send_alert_email
from observability import metrics

logger = structlog.get_logger().bind(source="alerts")


class OperatorAlerts:
    """Out-of-band channel for problems a human has to look at.

    Every call produces exactly one alert; there is no cooldown. Inside a
    running event loop the email goes out on a worker thread, so a slow SMTP
    server never holds up requests or retries.
    """

    def __init__(self, email_config: EmailConfig | None = None, device_name: str = "Flight delays oracle"):
        self._email_config = email_config or EmailConfig()
        self._device_name = device_name
        self._sending: set[asyncio.Task] = set()
        self.count = 0

    def notify(self, subject: str, body: str) -> bool:
        """Raise an alert. Returns True if an email was sent or handed to a worker thread."""
        metrics.counter("operator_alerts")
        logger.warning("operator_alert", subject=subject, body=body)
        self.count += 1
        if not (self._email_config.enabled and self._email_config.smtp_host):
            return False

        ts = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        kwargs = {
            "subject": f"{self._device_name}: {subject}",
            "body": f"{body}\n\nTime: {ts}\n",
            "email_config": self._email_config,
        }
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return send_alert_email(**kwargs)

        task = loop.create_task(asyncio.to_thread(send_alert_email, **kwargs))
        self._sending.add(task)
        task.add_done_callback(self._sending.discard)
        return True

    async def drain(self) -> None:
        """Wait for emails still being sent."""
        if self._sending:
            await asyncio.gather(*list(self._sending))

    def posting_problem(self, text: str) -> bool:
        return self.notify("posting problem", text)

    def failed_posting(self, error: BaseException | str) -> bool:
        return self.notify("failed posting", f"Failed to post data feed: {error}")
