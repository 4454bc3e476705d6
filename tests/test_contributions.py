"""Tests for memocracy.chain.contributions — transfer totals and USD thresholds."""

from decimal import Decimal

import pytest

from conftest import new_address, parsed_tx, spl_transfer, system_transfer
from memocracy.chain.contributions import CONTRIBUTION_USD_DIVISOR, ContributionAggregator, parse_usd
from memocracy.chain.models import AssetFilter
from memocracy.chain.query import ChainQueryClient
from memocracy.errors import ValidationError


@pytest.fixture
def aggregator(rpc):
    return ContributionAggregator(ChainQueryClient(rpc, batch_size=10, batch_delay=0))


@pytest.fixture
def project():
    return new_address()


@pytest.fixture
def history(rpc, alice, bob, project):
    """alice: 2 SOL transfers to project, 1 elsewhere, 1 token transfer, 1 failed tx."""
    src = alice.address
    rpc.add_transaction(src, "s1", parsed_tx(system_transfer(src, project, 1_000_000)))
    rpc.add_transaction(src, "s2", parsed_tx(system_transfer(src, project, 2_500_000)))
    rpc.add_transaction(src, "s3", parsed_tx(system_transfer(src, bob.address, 9_000_000)))
    rpc.add_transaction(src, "t1", parsed_tx(spl_transfer(src, new_address(), 4_000_000)))
    rpc.add_transaction(src, "f1", parsed_tx(system_transfer(src, project, 50_000_000),
                                             err={"InstructionError": [0, "x"]}))
    # inbound to alice from someone else, signed by them
    rpc.add_transaction(src, "in", parsed_tx(system_transfer(bob.address, project, 7)))


@pytest.mark.asyncio
async def test_sum_sol_only(aggregator, alice, project, history):
    assert await aggregator.sum_transfers_to(alice.address, project, AssetFilter.SOL) == 3_500_000


@pytest.mark.asyncio
async def test_sum_token_only_credits_by_authority(aggregator, alice, project, history):
    # destination owner and mint are not verified
    assert await aggregator.sum_transfers_to(alice.address, project, AssetFilter.USDC) == 4_000_000


@pytest.mark.asyncio
async def test_sum_any(aggregator, alice, project, history):
    assert await aggregator.sum_transfers_to(alice.address, project, AssetFilter.ANY) == 7_500_000


@pytest.mark.asyncio
async def test_sum_is_zero_on_listing_failure(aggregator, rpc, alice, project, history):
    rpc.fail_signatures = True
    assert await aggregator.sum_transfers_to(alice.address, project) == 0


@pytest.mark.asyncio
async def test_sum_invalid_address_is_zero(aggregator, rpc, alice):
    assert await aggregator.sum_transfers_to(alice.address, "nope") == 0
    assert rpc.calls == []


@pytest.mark.asyncio
async def test_individual_tx_failure_is_skipped(aggregator, rpc, alice, project, history):
    rpc.failing_transactions.add("s2")
    assert await aggregator.sum_transfers_to(alice.address, project, AssetFilter.SOL) == 1_000_000


@pytest.mark.asyncio
async def test_batches_bound_concurrency(rpc, alice, project):
    for i in range(95):
        rpc.add_transaction(alice.address, f"s{i}",
                            parsed_tx(system_transfer(alice.address, project, 1)))
    agg = ContributionAggregator(ChainQueryClient(rpc, batch_size=10, batch_delay=0))
    assert await agg.sum_transfers_to(alice.address, project) == 95
    assert 1 < rpc.peak_in_flight <= 10


@pytest.mark.asyncio
async def test_sufficient_contribution_uses_fixed_divisor(aggregator, alice, project, history):
    # 7.5M raw / 1M = $7.50
    assert CONTRIBUTION_USD_DIVISOR == 1_000_000
    assert await aggregator.contribution_usd(alice.address, project) == Decimal("7.5")
    assert await aggregator.has_sufficient_contribution(alice.address, project, "7.5") is True
    assert await aggregator.has_sufficient_contribution(alice.address, project, "7.51") is False


@pytest.mark.asyncio
async def test_zero_minimum_needs_no_rpc(aggregator, rpc, alice, project):
    rpc.fail_signatures = True
    assert await aggregator.has_sufficient_contribution(alice.address, project, "0") is True
    assert rpc.calls == []


@pytest.mark.asyncio
async def test_malformed_minimum(aggregator, alice, project):
    with pytest.raises(ValidationError):
        await aggregator.has_sufficient_contribution(alice.address, project, "ten dollars")


@pytest.mark.parametrize("bad", ["-1", "NaN", "Infinity", "", "1e"])
def test_parse_usd_rejects(bad):
    with pytest.raises(ValidationError):
        parse_usd(bad)


def test_parse_usd_accepts():
    assert parse_usd(" 12.50 ") == Decimal("12.50")
