import base64
import json

import pytest

from lbp_sale.core.instructions import MSG_EXECUTE_CONTRACT, InstructionBuilder

WALLET = "terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v"


class TestSwapFromNative:
    def test_attaches_coins(self, pair):
        instruction = InstructionBuilder.swap_from_native(pair, WALLET, 945_000)

        assert instruction.contract == pair.pool_address
        assert instruction.from_native
        assert instruction.execute_msg == {
            "swap": {
                "offer_asset": {
                    "info": {"native_token": {"denom": "uusd"}},
                    "amount": "945000",
                },
            },
        }
        assert instruction.to_dict()["coins"] == [{"denom": "uusd", "amount": "945000"}]
        assert instruction.to_dict()["@type"] == MSG_EXECUTE_CONTRACT

    def test_negative_amount(self, pair):
        with pytest.raises(ValueError):
            InstructionBuilder.swap_from_native(pair, WALLET, -1)


class TestSwapFromToken:
    def test_sends_to_pool_with_hook(self, pair):
        instruction = InstructionBuilder.swap_from_token(pair, WALLET, 5_000_000)

        assert instruction.contract == pair.sale_ref.address
        assert not instruction.from_native
        assert instruction.coins == []
        send = instruction.execute_msg["send"]
        assert send["contract"] == pair.pool_address
        assert send["amount"] == "5000000"
        assert json.loads(base64.b64decode(send["msg"])) == {"swap": {}}

    def test_same_contract_for_reversed_pair(self, make_pair):
        forward = InstructionBuilder.swap_from_token(make_pair(), WALLET, 1)
        reverse = InstructionBuilder.swap_from_token(make_pair(native_first=True), WALLET, 1)

        assert forward.contract == reverse.contract
