"""Flight delay oracle: answers delay queries and publishes them to the ledger."""

from .capacity import CapacityManager
from .context import OracleContext, build_context
from .dispatcher import NotificationDispatcher
from .fact_cache import FactCache
from .interest import InterestIndex
from .ledger import LedgerClient, PublicationError
from .publication import PublicationQueue
from .quota import QuotaGuard
from .resolver import FactResolver

__all__ = [
    "CapacityManager",
    "FactCache",
    "FactResolver",
    "InterestIndex",
    "LedgerClient",
    "NotificationDispatcher",
    "OracleContext",
    "PublicationError",
    "PublicationQueue",
    "QuotaGuard",
    "build_context",
]
