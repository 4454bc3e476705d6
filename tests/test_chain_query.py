"""Tests for memocracy.chain.query — balances, history batching, transfer parsing."""

from decimal import Decimal

import pytest
from solders.pubkey import Pubkey

from conftest import USDC_MINT, BAG_MINT, new_address, parsed_tx, spl_transfer, system_transfer
from memocracy.chain.models import AssetKind
from memocracy.chain.query import ChainQueryClient, associated_token_address, parse_amount, parse_transfer_events
from memocracy.errors import ValidationError


@pytest.fixture
def chain(rpc):
    return ChainQueryClient(rpc, batch_size=10, batch_delay=0)


# ─── Associated token address ─────────────────────────────────────

def test_ata_is_deterministic_and_mint_specific(alice):
    a1 = associated_token_address(alice.address, USDC_MINT)
    assert a1 == associated_token_address(alice.address, USDC_MINT)
    assert a1 != associated_token_address(alice.address, BAG_MINT)
    assert a1 != alice.address
    assert not Pubkey.from_string(a1).is_on_curve()


def test_ata_rejects_invalid_address():
    with pytest.raises(ValueError):
        associated_token_address("not-a-key", USDC_MINT)


# ─── Balances ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_balance_snapshot(chain, rpc, alice):
    rpc.set_token_balance(alice.address, USDC_MINT, 2_500_000, decimals=6)
    snap = await chain.get_balance_snapshot(alice.address, USDC_MINT)
    assert snap.raw_amount == 2_500_000
    assert snap.ui_amount == Decimal("2.5")


@pytest.mark.asyncio
async def test_missing_account_reads_zero(chain, alice):
    assert await chain.get_balance(alice.address, USDC_MINT) == 0


@pytest.mark.asyncio
async def test_rpc_failure_reads_zero(chain, rpc, alice):
    rpc.set_token_balance(alice.address, USDC_MINT, 100)
    rpc.fail_balance = True
    assert await chain.get_balance(alice.address, USDC_MINT) == 0


@pytest.mark.asyncio
async def test_malformed_wallet_reads_zero(chain, rpc):
    assert await chain.get_balance("bogus!", USDC_MINT) == 0
    assert rpc.calls == []


@pytest.mark.asyncio
async def test_has_token_balance_thresholds(chain, rpc, alice):
    rpc.set_token_balance(alice.address, BAG_MINT, 1000)
    assert await chain.has_token_balance(alice.address, BAG_MINT, "1000") is True
    assert await chain.has_token_balance(alice.address, BAG_MINT, "1001") is False


@pytest.mark.asyncio
async def test_zero_threshold_always_met_even_on_failure(chain, rpc, alice):
    rpc.fail_balance = True
    assert await chain.has_token_balance(alice.address, BAG_MINT, "0") is True
    assert await chain.has_token_balance(alice.address, BAG_MINT, "1") is False


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", ["1.5", "-3", "lots", ""])
async def test_malformed_threshold_raises(chain, alice, bad):
    with pytest.raises(ValidationError):
        await chain.has_token_balance(alice.address, BAG_MINT, bad)


def test_parse_amount():
    assert parse_amount(" 42 ") == 42
    with pytest.raises(ValidationError):
        parse_amount("4.2")


@pytest.mark.asyncio
async def test_mint_info(chain, rpc):
    rpc.accounts[BAG_MINT] = {"data": {"parsed": {"type": "mint", "info": {
        "mintAuthority": None, "freezeAuthority": "Freeze111",
        "supply": "1000000000", "decimals": 6}}}}
    info = await chain.get_mint_info(BAG_MINT)
    assert info.mint_disabled is True
    assert info.freeze_disabled is False
    assert info.supply == 1_000_000_000


@pytest.mark.asyncio
async def test_mint_info_unavailable(chain, rpc):
    assert await chain.get_mint_info(BAG_MINT) is None
    rpc.accounts[USDC_MINT] = {"data": "raw-bytes"}
    assert await chain.get_mint_info(USDC_MINT) is None


@pytest.mark.asyncio
async def test_sol_balance(chain, rpc, alice):
    rpc.sol_balances[alice.address] = 5_000_000_000
    assert await chain.get_sol_balance(alice.address) == 5_000_000_000
    assert await chain.get_sol_balance("bogus") == 0


# ─── History batching ──────────────────────────────────────────────

def fill_history(rpc, address, count):
    for i in range(count):
        rpc.add_transaction(address, f"sig{i}", parsed_tx(system_transfer(address, new_address(), 1)))


@pytest.mark.asyncio
async def test_fetch_respects_batch_size(rpc, alice):
    fill_history(rpc, alice.address, 45)
    chain = ChainQueryClient(rpc, batch_size=7, batch_delay=0)
    txs = await chain.fetch_transactions(alice.address)
    assert len(txs) == 45
    assert rpc.peak_in_flight <= 7
    assert [s for s, _ in txs][:3] == ["sig0", "sig1", "sig2"]


@pytest.mark.asyncio
async def test_fetch_default_window_is_bounded(rpc, alice):
    fill_history(rpc, alice.address, 230)
    chain = ChainQueryClient(rpc, batch_delay=0)
    txs = await chain.fetch_transactions(alice.address)
    assert len(txs) == 200
    assert rpc.peak_in_flight <= 10


@pytest.mark.asyncio
async def test_fetch_pauses_between_batches(rpc, alice, monkeypatch):
    import memocracy.chain.query as query_mod

    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(query_mod.asyncio, "sleep", fake_sleep)
    fill_history(rpc, alice.address, 25)
    await ChainQueryClient(rpc, batch_size=10, batch_delay=0.2).fetch_transactions(alice.address)
    assert [d for d in sleeps if d] == [0.2, 0.2]


@pytest.mark.asyncio
async def test_failed_transaction_becomes_none(chain, rpc, alice):
    fill_history(rpc, alice.address, 3)
    rpc.failing_transactions.add("sig1")
    txs = dict(await chain.fetch_transactions(alice.address))
    assert txs["sig1"] is None
    assert txs["sig0"] is not None


@pytest.mark.asyncio
async def test_errored_signatures_skipped(chain, rpc, alice):
    rpc.add_transaction(alice.address, "bad", parsed_tx(), err={"InstructionError": [0, "x"]})
    fill_history(rpc, alice.address, 1)
    assert [s for s, _ in await chain.fetch_transactions(alice.address)] == ["sig0"]


# ─── Transfer parsing ──────────────────────────────────────────────

def test_parse_system_transfer(alice, bob):
    tx = parsed_tx(system_transfer(alice.address, bob.address, 1_500_000))
    (event,) = parse_transfer_events(tx, "sigA")
    assert event.asset_kind is AssetKind.NATIVE
    assert event.source_wallet == alice.address
    assert event.dest_wallet == bob.address
    assert event.amount_raw == 1_500_000
    assert event.signature == "sigA"
    assert event.block_time == 1_700_000_000


def test_parse_spl_transfers(alice):
    dest = new_address()
    tx = parsed_tx(spl_transfer(alice.address, dest, 300),
                   spl_transfer(alice.address, dest, 700, kind="transferChecked"))
    events = parse_transfer_events(tx, "s")
    assert [e.amount_raw for e in events] == [300, 700]
    assert all(e.asset_kind is AssetKind.FUNGIBLE_TOKEN for e in events)
    assert events[0].source_wallet == alice.address
    assert events[1].mint == USDC_MINT


def test_parse_ignores_errored_and_unparsed(alice, bob):
    assert parse_transfer_events(parsed_tx(system_transfer(alice.address, bob.address, 1),
                                           err={"x": 1})) == []
    assert parse_transfer_events(None) == []
    assert parse_transfer_events({"transaction": {}, "meta": None}) == []
    raw_ix = {"programId": "Other111", "accounts": [], "data": "3Bxs"}
    memo = {"program": "spl-memo", "parsed": "hello"}
    assert parse_transfer_events(parsed_tx(raw_ix, memo)) == []


def test_parse_skips_malformed_instruction(alice, bob):
    broken = {"program": "system", "parsed": {"type": "transfer", "info": {"source": alice.address}}}
    good = system_transfer(alice.address, bob.address, 5)
    events = parse_transfer_events(parsed_tx(broken, good))
    assert [e.amount_raw for e in events] == [5]


def test_parse_skips_non_object_info_and_meta(alice, bob):
    odd = {"program": "spl-token", "parsed": {"type": "transfer", "info": ["x"]}}
    good = system_transfer(alice.address, bob.address, 7)
    assert [e.amount_raw for e in parse_transfer_events(parsed_tx(odd, good))] == [7]

    tx = parsed_tx(good)
    tx["meta"] = "oops"
    assert parse_transfer_events(tx) == []


# ─── Deposits ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_scan_deposits(chain, rpc, alice, bob):
    project = alice.address
    rpc.add_transaction(project, "in1", parsed_tx(system_transfer(bob.address, project, 10)))
    rpc.add_transaction(project, "out1", parsed_tx(system_transfer(project, bob.address, 3)))
    rpc.add_transaction(project, "tok", parsed_tx(spl_transfer(bob.address, new_address(), 9)))
    deposits = await chain.scan_deposits(project)
    assert [(d.signature, d.amount_raw) for d in deposits] == [("in1", 10)]


@pytest.mark.asyncio
async def test_scan_deposits_fails_closed(chain, rpc, alice):
    rpc.fail_signatures = True
    assert await chain.scan_deposits(alice.address) == []
