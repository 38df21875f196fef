"""
Signal types and the protocol every backtestable strategy implements.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Protocol, Sequence


class SignalAction(str, Enum):
    BUY = "buy"
    SELL = "sell"
    NONE = "none"


@dataclass(frozen=True)
class Signal:
    """What a strategy wants to do at one bar, and why."""
    action: SignalAction
    reason: str = ""


HOLD = Signal(SignalAction.NONE)


class Strategy(Protocol):
    """
    Protocol for backtestable strategies.

    A strategy only decides direction. It never sees cash or position size;
    the portfolio decides whether a signal can be acted on.
    """

    params: Dict[str, Any]

    def prepare(self, closes: Sequence[float]) -> None:
        """Precompute indicators over the full close series."""
        ...

    def evaluate(self, i: int) -> Signal:
        """Signal for bar i (1 <= i < len(closes)), comparing against bar i-1."""
        ...
