"""
Swap instruction builder.

Builds the two ``MsgExecuteContract`` shapes a sale swap can take:
- native-origin: execute ``swap`` on the pair, attaching the native coins
- token-origin: execute CW20 ``send`` on the sale token with a ``swap`` hook
"""

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..types.chain import Pair

MSG_EXECUTE_CONTRACT = "/terra.wasm.v1beta1.MsgExecuteContract"


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int

    def to_dict(self) -> Dict[str, str]:
        return {"denom": self.denom, "amount": str(self.amount)}


@dataclass(frozen=True)
class SwapInstruction:
    """An unsigned contract execution, handed to the wallet for signing."""
    sender: str
    contract: str
    execute_msg: Dict[str, Any]
    coins: List[Coin] = field(default_factory=list)
    offer_amount: int = 0
    from_native: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Render as the JSON form accepted by the LCD and the wallet."""
        return {
            "@type": MSG_EXECUTE_CONTRACT,
            "sender": self.sender,
            "contract": self.contract,
            "execute_msg": self.execute_msg,
            "coins": [coin.to_dict() for coin in self.coins],
        }


def _encode_hook(msg: Dict[str, Any]) -> str:
    return base64.b64encode(json.dumps(msg, separators=(",", ":")).encode()).decode()


class InstructionBuilder:
    """Builds swap instructions for the active pair."""

    @staticmethod
    def swap_from_native(pair: Pair, wallet_address: str, amount: int) -> SwapInstruction:
        """
        Offer ``amount`` of the pair's native denom to the pool.

        The coins are attached to the execution, so the wallet pays the amount
        plus the fee from the same native balance.
        """
        if amount < 0:
            raise ValueError(f"Swap amount must be non-negative, got {amount}")
        native = pair.native_ref
        execute_msg = {
            "swap": {
                "offer_asset": {
                    "info": native.to_chain(),
                    "amount": str(amount),
                },
            },
        }
        return SwapInstruction(
            sender=wallet_address,
            contract=pair.pool_address,
            execute_msg=execute_msg,
            coins=[Coin(denom=native.denom, amount=amount)],
            offer_amount=amount,
            from_native=True,
        )

    @staticmethod
    def swap_from_token(pair: Pair, wallet_address: str, amount: int) -> SwapInstruction:
        """Send ``amount`` sale tokens to the pool with an embedded swap hook."""
        if amount < 0:
            raise ValueError(f"Swap amount must be non-negative, got {amount}")
        execute_msg = {
            "send": {
                "contract": pair.pool_address,
                "amount": str(amount),
                "msg": _encode_hook({"swap": {}}),
            },
        }
        return SwapInstruction(
            sender=wallet_address,
            contract=pair.sale_ref.address,
            execute_msg=execute_msg,
            offer_amount=amount,
            from_native=False,
        )
