from .errors import (
    ErrorCategory,
    InsufficientBalance,
    InvalidTransitionError,
    NetworkError,
    SaleError,
    SimulationError,
    SubmissionError,
    SwapAlreadyPending,
    TxFailed,
    TxNotFoundYet,
    UnknownAsset,
    UserDeclined,
    WalletNotConnected,
    WrongNetwork,
)
from .models import PendingSwap, PendingSwapStatus, Quote, SwapDirection

__all__ = [
    "ErrorCategory",
    "InsufficientBalance",
    "InvalidTransitionError",
    "NetworkError",
    "PendingSwap",
    "PendingSwapStatus",
    "Quote",
    "SaleError",
    "SimulationError",
    "SubmissionError",
    "SwapAlreadyPending",
    "SwapDirection",
    "TxFailed",
    "TxNotFoundYet",
    "UnknownAsset",
    "UserDeclined",
    "WalletNotConnected",
    "WrongNetwork",
]
