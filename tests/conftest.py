"""Shared fixtures: real ed25519 wallets and an in-process fake RPC."""

import asyncio
import base64
import os

import base58
import pytest
from nacl.signing import SigningKey

from memocracy.chain.query import associated_token_address
from memocracy.chain.rpc import ChainRpc
from memocracy.errors import ChainQueryFailure

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BAG_MINT = "B9jYrBoCPN7FcXVHe56KXsYgJE5gbTxsadjvyFiVpump"


class Wallet:
    """A throwaway keypair that signs like a browser wallet does."""

    def __init__(self):
        self.key = SigningKey.generate()
        self.address = base58.b58encode(bytes(self.key.verify_key)).decode()

    def sign(self, message: str) -> str:
        return base64.b64encode(self.key.sign(message.encode("utf-8")).signature).decode()


def new_address() -> str:
    return base58.b58encode(os.urandom(32)).decode()


# ─── Fake RPC ──────────────────────────────────────────────────────

def system_transfer(source: str, dest: str, lamports: int) -> dict:
    return {
        "program": "system",
        "programId": "11111111111111111111111111111111",
        "parsed": {"type": "transfer",
                   "info": {"source": source, "destination": dest, "lamports": lamports}},
    }


def spl_transfer(authority: str, dest_token_account: str, amount: int,
                 kind: str = "transfer") -> dict:
    info = {"authority": authority, "destination": dest_token_account,
            "source": new_address()}
    if kind == "transferChecked":
        info["tokenAmount"] = {"amount": str(amount), "decimals": 6}
        info["mint"] = USDC_MINT
    else:
        info["amount"] = str(amount)
    return {
        "program": "spl-token",
        "programId": "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
        "parsed": {"type": kind, "info": info},
    }


def parsed_tx(*instructions, err=None, slot=100, block_time=1_700_000_000) -> dict:
    return {
        "slot": slot,
        "blockTime": block_time,
        "meta": {"err": err, "fee": 5000},
        "transaction": {"message": {"instructions": list(instructions)}, "signatures": []},
    }


class FakeRpc(ChainRpc):
    """Scriptable ChainRpc that records peak concurrent transaction fetches."""

    def __init__(self):
        self.token_balances: dict[str, dict] = {}
        self.signatures: dict[str, list[dict]] = {}
        self.transactions: dict[str, dict] = {}
        self.accounts: dict[str, dict] = {}
        self.sol_balances: dict[str, int] = {}
        self.fail_balance = False
        self.fail_signatures = False
        self.failing_transactions: set[str] = set()
        self.in_flight = 0
        self.peak_in_flight = 0
        self.calls: list[str] = []

    # helpers

    def set_token_balance(self, wallet: str, mint: str, amount: int, decimals: int = 6):
        ata = associated_token_address(wallet, mint)
        self.token_balances[ata] = {"amount": str(amount), "decimals": decimals,
                                    "uiAmountString": str(amount / 10 ** decimals)}

    def add_transaction(self, address: str, signature: str, tx: dict, err=None):
        self.signatures.setdefault(address, []).append({"signature": signature, "err": err})
        self.transactions[signature] = tx

    # ChainRpc

    async def get_token_account_balance(self, address):
        self.calls.append("getTokenAccountBalance")
        if self.fail_balance:
            raise ChainQueryFailure("getTokenAccountBalance", "HTTP 503", 503)
        if address not in self.token_balances:
            raise ChainQueryFailure("getTokenAccountBalance", "could not find account", -32602)
        return self.token_balances[address]

    async def get_signatures_for_address(self, address, limit=200, before=None):
        self.calls.append("getSignaturesForAddress")
        if self.fail_signatures:
            raise ChainQueryFailure("getSignaturesForAddress", "timeout")
        return self.signatures.get(address, [])[:limit]

    async def get_parsed_transaction(self, signature):
        self.calls.append("getTransaction")
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if signature in self.failing_transactions:
                raise ChainQueryFailure("getTransaction", "HTTP 429", 429)
            return self.transactions.get(signature)
        finally:
            self.in_flight -= 1

    async def get_account_info(self, address):
        return self.accounts.get(address)

    async def get_balance(self, address):
        return self.sol_balances.get(address, 0)


@pytest.fixture
def alice():
    return Wallet()


@pytest.fixture
def bob():
    return Wallet()


@pytest.fixture
def rpc():
    return FakeRpc()
