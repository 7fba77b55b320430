"""Which requesters are waiting for which unconfirmed fact."""

import structlog

logger = structlog.get_logger().bind(source="interest")


class InterestIndex:
    """``fact_id -> {requester_id}`` for facts not yet ledger-stable."""

    def __init__(self):
        self._waiting: dict[str, set[str]] = {}

    def register(self, fact_id: str, requester_id: str) -> None:
        waiting = self._waiting.setdefault(fact_id, set())
        if requester_id not in waiting:
            waiting.add(requester_id)
            logger.debug("interest_registered", fact_id=fact_id, requester=requester_id)

    def drain(self, fact_id: str) -> set[str]:
        """Remove and return everyone waiting on ``fact_id`` (empty if nobody)."""
        return self._waiting.pop(fact_id, set())

    def waiting(self, fact_id: str) -> frozenset[str]:
        return frozenset(self._waiting.get(fact_id, ()))

    def __contains__(self, fact_id: str) -> bool:
        return fact_id in self._waiting

    def __len__(self) -> int:
        return len(self._waiting)
