"""Wallet collaborator: signing and broadcasting happen outside the core."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..core.instructions import SwapInstruction


class WalletSigner(ABC):
    """Signs and broadcasts an instruction on the owner's behalf."""

    @abstractmethod
    async def post(self, instruction: SwapInstruction) -> str:
        """
        Sign and broadcast ``instruction``, returning its tx hash.

        Raises UserDeclined when the owner rejects the request; any other
        exception is treated as a submission failure.
        """
        pass


@dataclass(frozen=True)
class WalletNetwork:
    chain_id: str
    lcd_url: str


@dataclass(frozen=True)
class WalletEvent:
    """One wallet status change, produced by the wallet integration."""
    connected: bool
    address: str = ""
    network: Optional[WalletNetwork] = None

    @classmethod
    def disconnected(cls) -> "WalletEvent":
        return cls(connected=False)
