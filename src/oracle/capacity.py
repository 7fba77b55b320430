"""Spendable output pool maintenance.

Every data feed costs roughly one fixed-size fee. Fees can only be paid from
stable outputs, and a single large output can back only one transaction at a
time, so when few spendable outputs remain the next publication also splits
the biggest output in two. The plan is advisory: publication goes ahead with
a plain change output when no split is possible.
"""

import structlog

from observability import metrics

from .alerts import OperatorAlerts
from .ledger import LedgerClient
from .models import Output

logger = structlog.get_logger().bind(source="capacity")


class CapacityManager:
    """Plans the outputs of each publication transaction."""

    def __init__(
        self,
        ledger: LedgerClient,
        alerts: OperatorAlerts,
        min_available: int = 100,
        unit_cost: int = 600,
    ):
        self.ledger = ledger
        self.alerts = alerts
        self.min_available = min_available
        self.unit_cost = unit_cost

    async def available_capacity(self) -> int:
        """Number of publications the stable pool can still pay for."""
        address = self.ledger.address
        units = [u for u in await self.ledger.read_units(address) if u.is_stable]
        big = sum(1 for u in units if u.amount >= self.unit_cost)
        small_total = sum(u.amount for u in units if u.amount < self.unit_cost)
        small_total += await self.ledger.read_fee_credits(address)
        available = big + small_total // self.unit_cost
        metrics.gauge("available_capacity", available)
        return available

    async def plan_outputs(self) -> list[Output]:
        """Outputs for the next publication, evaluated fresh on every call."""
        address = self.ledger.address
        outputs = [Output(0, address)]
        count = await self.available_capacity()
        if count > self.min_available:
            return outputs

        candidates = [
            u for u in await self.ledger.read_units(address)
            if u.is_stable and u.amount >= 2 * self.unit_cost
        ]
        if not candidates:
            self.alerts.posting_problem(f"only {count} spendable outputs left, and can't add more")
            return outputs

        amount = max(u.amount for u in candidates)
        half = (amount + 1) // 2
        logger.info("capacity_split_planned", available=count, amount=amount, half=half)
        metrics.counter("capacity_splits")
        outputs.append(Output(half, address))
        return outputs
