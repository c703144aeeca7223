from typing import Protocol
from datetime import datetime


class Clock(Protocol):
    def now(self) -> datetime:
        """Naive wall-clock time in the clinic timezone."""
        ...
