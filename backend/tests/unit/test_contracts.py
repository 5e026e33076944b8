"""Tests for the Aave, ERC-20 and QuickSwap call encoders."""

import asyncio
import sys
from pathlib import Path

import pytest
from web3 import Web3

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from accumulator.config import ContractsConfig
from accumulator.exceptions import EncodingFailed, TokenNotFound
from accumulator.services.contracts import AaveContracts, Erc20Contracts, QuickSwapContracts

from conftest import A_TOKEN, DEPOSIT_TOKEN, REWARD_TOKEN, TEST_ADDRESS

CONTRACTS = ContractsConfig()


class OfflineChain:
    """Builds real contract objects but answers reads from a table."""

    def __init__(self, answers: dict[str, object]):
        self.w3 = Web3(Web3.HTTPProvider("http://localhost:8545"))
        self.answers = answers
        self.calls: list[str] = []

    def contract(self, address, abi):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def call(self, function, **context):
        self.calls.append(function.fn_name)
        return self.answers[function.fn_name]


def _decode(chain: OfflineChain, address: str, abi, data: str):
    fn, params = chain.contract(address, abi).decode_function_input(data)
    return fn.fn_name, params


def test_resolve_token_by_symbol() -> None:
    chain = OfflineChain(
        {
            "getAllReservesTokens": [
                ("USDT", DEPOSIT_TOKEN.address),
                ("WMATIC", REWARD_TOKEN.address),
            ]
        }
    )
    aave = AaveContracts(chain, CONTRACTS, TEST_ADDRESS)

    token = asyncio.run(aave.resolve_token("WMATIC"))

    assert token.symbol == "WMATIC"
    assert token.address == REWARD_TOKEN.address


def test_resolve_unknown_symbol() -> None:
    chain = OfflineChain({"getAllReservesTokens": [("USDT", DEPOSIT_TOKEN.address)]})
    aave = AaveContracts(chain, CONTRACTS, TEST_ADDRESS)

    with pytest.raises(TokenNotFound):
        asyncio.run(aave.resolve_token("DAI"))


def test_claim_encodes_pending_rewards() -> None:
    from accumulator.services.contracts.abis import AAVE_INCENTIVES_ABI

    chain = OfflineChain({"getRewardsBalance": 1234})
    aave = AaveContracts(chain, CONTRACTS, TEST_ADDRESS)

    operation = asyncio.run(aave.encode_claim(A_TOKEN))

    assert operation.to == Web3.to_checksum_address(CONTRACTS.incentives_controller)
    name, params = _decode(chain, operation.to, AAVE_INCENTIVES_ABI, operation.data)
    assert name == "claimRewards"
    assert params["assets"] == [A_TOKEN]
    assert params["amount"] == 1234
    assert params["to"] == TEST_ADDRESS


def test_deposit_encodes_wallet_as_beneficiary() -> None:
    from accumulator.services.contracts.abis import AAVE_LENDING_POOL_ABI

    chain = OfflineChain({})
    aave = AaveContracts(chain, CONTRACTS, TEST_ADDRESS)

    operation = asyncio.run(aave.encode_deposit(DEPOSIT_TOKEN.address, 1480))

    name, params = _decode(chain, operation.to, AAVE_LENDING_POOL_ABI, operation.data)
    assert name == "deposit"
    assert params["asset"] == DEPOSIT_TOKEN.address
    assert params["amount"] == 1480
    assert params["onBehalfOf"] == TEST_ADDRESS
    assert params["referralCode"] == 0


def test_approve_targets_token_contract() -> None:
    from accumulator.services.contracts.abis import ERC20_ABI

    chain = OfflineChain({})
    erc20 = Erc20Contracts(chain, TEST_ADDRESS)

    operation = asyncio.run(
        erc20.encode_approve(REWARD_TOKEN.address, CONTRACTS.exchange_router, 1000)
    )

    assert operation.to == REWARD_TOKEN.address
    name, params = _decode(chain, operation.to, ERC20_ABI, operation.data)
    assert name == "approve"
    assert params["spender"] == Web3.to_checksum_address(CONTRACTS.exchange_router)
    assert params["amount"] == 1000


def test_negative_amount_fails_to_encode() -> None:
    erc20 = Erc20Contracts(OfflineChain({}), TEST_ADDRESS)

    with pytest.raises(EncodingFailed):
        asyncio.run(erc20.encode_approve(REWARD_TOKEN.address, CONTRACTS.exchange_router, -1))


def test_swap_quote_is_last_hop() -> None:
    chain = OfflineChain({"getAmountsOut": [1000, 1500]})
    quickswap = QuickSwapContracts(chain, CONTRACTS, TEST_ADDRESS)

    quote = asyncio.run(
        quickswap.get_swap_quote(1000, [REWARD_TOKEN.address, DEPOSIT_TOKEN.address])
    )

    assert quote == 1500


def test_swap_encodes_minimum_and_deadline() -> None:
    from accumulator.services.contracts.abis import UNISWAP_V2_ROUTER_ABI

    chain = OfflineChain({})
    quickswap = QuickSwapContracts(chain, CONTRACTS, TEST_ADDRESS)
    path = [REWARD_TOKEN.address, DEPOSIT_TOKEN.address]

    operation = asyncio.run(quickswap.encode_swap(1000, 499, path, 1_700_000_300))

    assert operation.to == quickswap.router_address
    name, params = _decode(chain, operation.to, UNISWAP_V2_ROUTER_ABI, operation.data)
    assert name == "swapExactTokensForTokens"
    assert params["amountIn"] == 1000
    assert params["amountOutMin"] == 499
    assert params["path"] == path
    assert params["to"] == TEST_ADDRESS
    assert params["deadline"] == 1_700_000_300
