"""
Error Classification

Every failure that leaves a component is one of the classes below. Network
origin errors are translated at the provider boundary with ``classify_error``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors surfaced by the sale core."""

    NETWORK = "network"                    # Transport or node failure
    USER_DECLINED = "user_declined"        # Wallet owner rejected signing
    INSUFFICIENT_BALANCE = "insufficient_balance"
    UNKNOWN_ASSET = "unknown_asset"        # Symbol matches neither side of the pair
    SIMULATION = "simulation"              # Pool rejected a simulated swap
    SUBMISSION = "submission"              # Wallet or chain rejected the instruction
    TX_NOT_FOUND = "tx_not_found"          # Not included yet
    TX_FAILED = "tx_failed"                # Included with a non-zero code
    WALLET = "wallet"                      # Wallet missing or on the wrong network
    STATE = "state"                        # Illegal lifecycle transition


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory
    recoverable: bool = False
    tx_hash: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class SaleError(Exception):
    """Base class for classified sale-core errors."""

    category: ErrorCategory = ErrorCategory.NETWORK
    recoverable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(
            category=self.category,
            recoverable=self.recoverable,
            tx_hash=details.pop("tx_hash", None),
            details=details,
        )


class NetworkError(SaleError):
    """Transient transport or node failure."""

    category = ErrorCategory.NETWORK
    recoverable = True

    def __init__(self, message: str = "Network error", status_code: Optional[int] = None, **details: Any):
        super().__init__(message, status_code=status_code, **details)
        self.status_code = status_code


class UserDeclined(SaleError):
    """The wallet owner declined to sign. Not shown to the user."""

    category = ErrorCategory.USER_DECLINED

    def __init__(self, message: str = "User declined the transaction", **details: Any):
        super().__init__(message, **details)


class InsufficientBalance(SaleError):
    """Raised before any network call when a swap cannot be funded."""

    category = ErrorCategory.INSUFFICIENT_BALANCE

    def __init__(
        self,
        message: str = "Insufficient balance",
        required: Optional[int] = None,
        available: Optional[int] = None,
    ):
        super().__init__(message, required=required, available=available)
        self.required = required
        self.available = available


class UnknownAsset(SaleError):
    category = ErrorCategory.UNKNOWN_ASSET

    def __init__(self, symbol: str):
        super().__init__(f"Asset {symbol!r} is not part of the active pair", symbol=symbol)
        self.symbol = symbol


class SimulationError(SaleError):
    """The pool refused to simulate the swap (e.g. reserve exhausted)."""

    category = ErrorCategory.SIMULATION


class SubmissionError(SaleError):
    """The wallet or chain rejected the instruction for a reason other than a decline."""

    category = ErrorCategory.SUBMISSION


class SwapAlreadyPending(SubmissionError):
    def __init__(self, tx_hash: str):
        super().__init__(f"Swap {tx_hash} is still pending", tx_hash=tx_hash)


class TxNotFoundYet(SaleError):
    category = ErrorCategory.TX_NOT_FOUND
    recoverable = True

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} not found yet", tx_hash=tx_hash)


class TxFailed(SaleError):
    """The chain included the instruction but it failed."""

    category = ErrorCategory.TX_FAILED

    def __init__(self, tx_hash: str, code: int, raw_log: str = ""):
        super().__init__(f"Transaction {tx_hash} failed with code {code}", tx_hash=tx_hash, code=code, raw_log=raw_log)
        self.code = code
        self.raw_log = raw_log


class WalletNotConnected(SaleError):
    category = ErrorCategory.WALLET

    def __init__(self, message: str = "No wallet connected"):
        super().__init__(message)


class WrongNetwork(SaleError):
    category = ErrorCategory.WALLET

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Wallet is on {actual}, expected {expected}", expected=expected, actual=actual)


class InvalidTransitionError(SaleError):
    category = ErrorCategory.STATE


# Fragments the wallet extensions use when the owner rejects a request
_DECLINE_PATTERNS = (
    "user denied",
    "user rejected",
    "request rejected",
    "declined",
)

# Contract error fragments returned by the node for an impossible swap
_SIMULATION_PATTERNS = (
    "ask pool is empty",
    "insufficient liquidity",
    "pool is empty",
    "generic error",
    "overflow",
    "underflow",
)


def is_user_decline(error: Exception) -> bool:
    if isinstance(error, UserDeclined):
        return True
    message = str(error).lower()
    return any(p in message for p in _DECLINE_PATTERNS)


def classify_error(error: Exception, *, simulation: bool = False) -> SaleError:
    """
    Translate an arbitrary exception into the sale-core taxonomy.

    Already classified errors pass through unchanged. ``simulation`` marks a
    simulation query, where a contract-level rejection means the pool cannot
    fill the swap rather than a transient failure.
    """
    if isinstance(error, SaleError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        body = error.response.text
        lowered = body.lower()
        if simulation and status < 500 and (status == 400 or any(p in lowered for p in _SIMULATION_PATTERNS)):
            return SimulationError(f"Simulation rejected: {body[:200]}", status_code=status)
        return NetworkError(f"HTTP {status}: {body[:200]}", status_code=status)

    if isinstance(error, httpx.RequestError):
        return NetworkError(f"{type(error).__name__}: {error}")

    if isinstance(error, (ValueError, KeyError, TypeError)):
        # Malformed node payloads
        return NetworkError(f"Unexpected response: {error}")

    return NetworkError(str(error) or type(error).__name__)
