"""Shared fixtures: an in-memory ledger standing in for the chain and contract encoders."""

import sys
from decimal import Decimal
from pathlib import Path

import pytest
from eth_account import Account
from web3 import Web3

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from accumulator.config import AuditConfig, ConfirmationConfig, GasConfig, Settings
from accumulator.exceptions import SubmissionRejected
from accumulator.pipeline import AccumulatorPipeline
from accumulator.storage import AuditSink
from accumulator.transactions import (
    Broadcaster,
    ConfirmationReceipt,
    TokenReference,
    TransactionSigner,
    UnsignedOperation,
)

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = Account.from_key(TEST_PRIVATE_KEY).address

REWARD_TOKEN = TokenReference(
    symbol="WMATIC", address=Web3.to_checksum_address("0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270")
)
DEPOSIT_TOKEN = TokenReference(
    symbol="USDT", address=Web3.to_checksum_address("0xc2132D05D31c914a87C6611C10748AEb04B58e8F")
)
A_TOKEN = Web3.to_checksum_address("0x60D55F02A771d515e077c9C2403a1ef324885CeC")
INCENTIVES = Web3.to_checksum_address("0x357D51124f59836DeD84c8a1730D72B749d8BC23")
ROUTER = Web3.to_checksum_address("0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff")

FIXED_NOW = 1_700_000_000


class FakeLedger:
    """Chain, fee oracle and balances for one wallet.

    Encoders queue the effect of the operation they build; the effect is
    applied when the signed transaction is broadcast.
    """

    def __init__(self, reward_amount=1000, quote=1500, swap_output=1480, gas_price_gwei=30):
        self.reward_amount = reward_amount
        self.quote = quote
        self.swap_output = swap_output
        self.gas_price_gwei = Decimal(gas_price_gwei)
        self.balances = {REWARD_TOKEN.address: 0, DEPOSIT_TOKEN.address: 0}
        self.deposited = 0
        self.nonce = 0
        self.sent: list[str] = []
        self.reject: set[str] = set()
        self.revert: set[str] = set()
        self.receipt_delay_polls = 0
        self.polls = 0
        self.approvals: list[tuple[str, str, int]] = []
        self.swap_args: tuple | None = None
        self._pending: list[tuple[str, object]] = []
        self._receipts: dict[str, list] = {}

    def queue(self, kind: str, effect) -> UnsignedOperation:
        self._pending.append((kind, effect))
        return UnsignedOperation(
            to=ROUTER if kind == "SWAP" else INCENTIVES,
            data="0x" + kind.encode().hex(),
            description=kind.lower(),
        )

    # chain
    async def get_transaction_count(self, address: str) -> int:
        return self.nonce

    async def send_raw_transaction(self, raw: bytes) -> str:
        kind, effect = self._pending.pop(0)
        if kind in self.reject:
            raise SubmissionRejected(f"{kind} rejected by node")
        tx_hash = Web3.to_hex(Web3.keccak(raw))
        self.sent.append(kind)
        self.nonce += 1
        reverted = kind in self.revert
        if not reverted:
            effect()
        self._receipts[tx_hash] = [
            self.receipt_delay_polls,
            ConfirmationReceipt(
                tx_hash=tx_hash, block_number=100 + self.nonce, status=0 if reverted else 1
            ),
        ]
        return tx_hash

    async def get_receipt(self, tx_hash: str):
        self.polls += 1
        entry = self._receipts.get(tx_hash)
        if entry is None:
            return None
        if entry[0] > 0:
            entry[0] -= 1
            return None
        return entry[1]

    # fee oracle
    async def get_gas_price_gwei(self) -> Decimal:
        return self.gas_price_gwei


class FakeAave:
    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger

    async def encode_claim(self, a_token: str) -> UnsignedOperation:
        def effect():
            self.ledger.balances[REWARD_TOKEN.address] += self.ledger.reward_amount

        return self.ledger.queue("CLAIM", effect)

    async def encode_deposit(self, asset: str, amount: int) -> UnsignedOperation:
        def effect():
            self.ledger.balances[asset] -= amount
            self.ledger.deposited += amount

        return self.ledger.queue("DEPOSIT", effect)


class FakeErc20:
    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger

    async def get_balance(self, token: str) -> int:
        return self.ledger.balances[token]

    async def encode_approve(self, token: str, spender: str, amount: int) -> UnsignedOperation:
        kind = "APPROVE_SWAP" if spender == ROUTER else "APPROVE_DEPOSIT"

        def effect():
            self.ledger.approvals.append((token, spender, amount))

        return self.ledger.queue(kind, effect)


class FakeQuickSwap:
    router_address = ROUTER

    def __init__(self, ledger: FakeLedger):
        self.ledger = ledger

    async def get_swap_quote(self, amount_in: int, path: list[str]) -> int:
        return self.ledger.quote

    async def encode_swap(self, amount_in, min_out, path, deadline) -> UnsignedOperation:
        self.ledger.swap_args = (amount_in, min_out, list(path), deadline)

        def effect():
            self.ledger.balances[path[0]] -= amount_in
            self.ledger.balances[path[-1]] += self.ledger.swap_output

        return self.ledger.queue("SWAP", effect)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        network_url="http://localhost:8545",
        wallet_address=TEST_ADDRESS,
        wallet_private_key=TEST_PRIVATE_KEY,
        gas=GasConfig(price_limit_gwei=100),
        confirmation=ConfirmationConfig(poll_interval_seconds=0),
        audit=AuditConfig(create_event_log=True),
    )


@pytest.fixture
def make_pipeline(settings):
    """Build an AccumulatorPipeline over a FakeLedger."""

    def _make(ledger: FakeLedger, shutdown=None, poll_interval=0.0, run_settings=None):
        run_settings = run_settings or settings
        audit = AuditSink.from_settings(run_settings)
        pipeline = AccumulatorPipeline(
            settings=run_settings,
            aave=FakeAave(ledger),
            erc20=FakeErc20(ledger),
            quickswap=FakeQuickSwap(ledger),
            signer=TransactionSigner(ledger, ledger, run_settings),
            broadcaster=Broadcaster(
                ledger, audit=audit, poll_interval=poll_interval, shutdown=shutdown
            ),
            reward_token=REWARD_TOKEN,
            deposit_token=DEPOSIT_TOKEN,
            deposit_a_token=A_TOKEN,
            clock=lambda: FIXED_NOW,
            shutdown=shutdown,
        )
        return pipeline, audit

    return _make
