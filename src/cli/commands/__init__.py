"""CLI command modules."""

from .ask import ask
from .ledger import capacity, confirm, fund
from .quota import quota
from .serve import serve

__all__ = [
    "ask",
    "capacity",
    "confirm",
    "fund",
    "quota",
    "serve",
]
