"""
Session-side models for quoting, fees and swap tracking.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Set

from .amounts import DEFAULT_PRECISION, to_decimal
from .errors import InvalidTransitionError


class SwapDirection(str, Enum):
    """Which simulation a quote runs."""
    NATIVE_TO_SALE = "native_to_sale"    # Forward: offer native, receive sale tokens
    SALE_TO_NATIVE = "sale_to_native"    # Reverse: native needed for a sale-token amount


@dataclass(frozen=True)
class Quote:
    """Result of a simulation, in base units."""
    output_amount: int
    spread: int
    precision: int = DEFAULT_PRECISION

    def __post_init__(self):
        if self.output_amount < 0:
            raise ValueError(f"Quote output must be non-negative, got {self.output_amount}")
        if self.spread < 0:
            raise ValueError(f"Quote spread must be non-negative, got {self.spread}")

    @property
    def display_output(self) -> Decimal:
        return to_decimal(self.output_amount, self.precision)

    @property
    def display_spread(self) -> Decimal:
        return to_decimal(self.spread, self.precision)


@dataclass(frozen=True)
class Weights:
    """Current pool weights. Display only."""
    native_weight: Decimal
    sale_weight: Decimal

    def label(self) -> str:
        return f"{self.native_weight:.0f} : {self.sale_weight:.0f}"


@dataclass(frozen=True)
class SessionBalance:
    """Wallet balances for both sides of the active pair."""
    native: int = 0
    token: int = 0

    @classmethod
    def empty(cls) -> "SessionBalance":
        return cls()


@dataclass(frozen=True)
class TokensRemaining:
    """Sale tokens left in the pool."""
    amount: int = 0          # Whole tokens, floored
    percentage: int = 0      # Of total supply, floored


class PendingSwapStatus(str, Enum):
    """Swap lifecycle status."""
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_STATUSES: Set[PendingSwapStatus] = {
    PendingSwapStatus.CONFIRMED,
    PendingSwapStatus.FAILED,
    PendingSwapStatus.TIMED_OUT,
}


@dataclass
class PendingSwap:
    """Client-side record of a submitted swap until chain finality."""
    instruction_hash: str
    from_symbol: str
    offer_amount: int
    expected_output: Optional[int] = None
    pair_key: str = ""
    status: PendingSwapStatus = PendingSwapStatus.SUBMITTED
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    error: Optional[Exception] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(self, status: PendingSwapStatus, error: Optional[Exception] = None) -> None:
        """Move forward. A terminal swap cannot change status again."""
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Swap {self.instruction_hash} is already {self.status.value}; cannot move to {status.value}"
            )
        self.status = status
        if error is not None:
            self.error = error
        if status in TERMINAL_STATUSES:
            self.finished_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoadingState:
    is_loading: bool = False
    label: Optional[str] = None
    transaction: Optional[str] = None

    @classmethod
    def idle(cls) -> "LoadingState":
        return cls()

    @classmethod
    def busy(cls, label: str, transaction: Optional[str] = None) -> "LoadingState":
        return cls(is_loading=True, label=label, transaction=transaction)


class FeedbackKind(str, Enum):
    NONE = "none"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Feedback:
    """Outcome message for the last user action."""
    kind: FeedbackKind = FeedbackKind.NONE
    title: str = ""
    message: str = ""
    details: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def none(cls) -> "Feedback":
        return cls()

    @classmethod
    def success(cls, title: str = "Success!", message: str = "Your swap went through.") -> "Feedback":
        return cls(kind=FeedbackKind.SUCCESS, title=title, message=message)

    @classmethod
    def error(cls, title: str = "Ooops...", message: str = "Something went wrong.") -> "Feedback":
        return cls(kind=FeedbackKind.ERROR, title=title, message=message)

    def with_details(self, **details: str) -> "Feedback":
        return replace(self, details={**self.details, **details})
