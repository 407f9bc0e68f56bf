import asyncio
from typing import Optional


class CancellationToken:
    """Cooperative stop request, polled by the sync loop between tables"""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Sync stopped by user") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()
