"""Rolling 24h request ceilings, per requester and overall."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import structlog

from db import utc_timestamp, wal_connect
from observability import metrics

from .alerts import OperatorAlerts
from .messages import QUOTA_EXCEEDED

logger = structlog.get_logger().bind(source="quota")

WINDOW = timedelta(days=1)


@dataclass(frozen=True)
class QuotaDecision:
    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class QuotaUsage:
    requester: int
    total: int


class QuotaGuard:
    """Counts answered provider requests in ``fd_responses``.

    A request is recorded once the provider has answered; the counts are
    recomputed from the log on every check.
    """

    def __init__(
        self,
        db_path: str | Path,
        alerts: OperatorAlerts,
        max_per_requester_per_day: int = 10,
        max_per_day: int = 100,
    ):
        self.db_path = Path(db_path).expanduser()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.alerts = alerts
        self.max_per_requester_per_day = max_per_requester_per_day
        self.max_per_day = max_per_day
        self._init_db()

    def _init_db(self):
        with wal_connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS fd_responses (
                    response_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    device_address TEXT NOT NULL,
                    feed_name TEXT NOT NULL,
                    response TEXT,
                    creation_date TIMESTAMP NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_fd_responses_date ON fd_responses(creation_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_fd_responses_device "
                "ON fd_responses(device_address, creation_date)"
            )

    def usage(self, requester_id: str, now: Optional[datetime] = None) -> QuotaUsage:
        """Requests in the trailing 24h from ``requester_id`` and from everyone."""
        cutoff = utc_timestamp((now or datetime.now(timezone.utc)) - WINDOW)
        with wal_connect(self.db_path) as conn:
            requester = conn.execute(
                "SELECT COUNT(*) FROM fd_responses WHERE device_address = ? AND creation_date > ?",
                (requester_id, cutoff),
            ).fetchone()[0]
            total = conn.execute(
                "SELECT COUNT(*) FROM fd_responses WHERE creation_date > ?", (cutoff,)
            ).fetchone()[0]
        return QuotaUsage(requester=requester, total=total)

    def check(self, requester_id: str, now: Optional[datetime] = None) -> QuotaDecision:
        usage = self.usage(requester_id, now)
        if usage.requester >= self.max_per_requester_per_day:
            metrics.counter("quota_rejected_requester")
            self.alerts.notify(
                f"too many requests from {requester_id}",
                f"{usage.requester} requests today from {requester_id}",
            )
            return QuotaDecision(False, QUOTA_EXCEEDED)
        if usage.total >= self.max_per_day:
            metrics.counter("quota_rejected_global")
            self.alerts.notify("too many requests", f"{usage.total} requests today")
            return QuotaDecision(False, QUOTA_EXCEEDED)
        return QuotaDecision(True)

    def record(
        self,
        requester_id: str,
        fact_id: str,
        response_body: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Log one answered request against the requester's quota."""
        with wal_connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO fd_responses (device_address, feed_name, response, creation_date) "
                "VALUES (?, ?, ?, ?)",
                (requester_id, fact_id, response_body, utc_timestamp(now)),
            )
        logger.debug("request_recorded", requester=requester_id, fact_id=fact_id)
