"""Chat transport boundary."""

from abc import ABC, abstractmethod

import structlog
from rich.console import Console
from rich.panel import Panel

logger = structlog.get_logger().bind(source="messenger")


class Messenger(ABC):
    """Delivers plain-text messages to a paired requester."""

    @abstractmethod
    async def send(self, requester_id: str, text: str) -> None:
        """Send ``text`` to ``requester_id``."""


class ConsoleMessenger(Messenger):
    """Prints outgoing messages; used by the CLI."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    async def send(self, requester_id: str, text: str) -> None:
        logger.debug("message_sent", requester=requester_id, length=len(text))
        self.console.print(Panel(text, title=f"→ {requester_id}", expand=False))
