"""Tests for memocracy.chain.rpc — JSON-RPC transport with mocked HTTP."""

import json

import httpx
import pytest
import respx

from memocracy.chain.rpc import ChainRpc, SolanaRpcClient
from memocracy.errors import ChainQueryFailure

URL = "https://rpc.test"


def rpc_result(result):
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": result})


@pytest.fixture
def client():
    return SolanaRpcClient(URL, retry_delay=0, max_retries=2)


@pytest.mark.asyncio
async def test_token_account_balance(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=rpc_result(
            {"context": {"slot": 1}, "value": {"amount": "2500000", "decimals": 6,
                                               "uiAmountString": "2.5"}}))
        value = await client.get_token_account_balance("Ata111")
        body = json.loads(route.calls[0].request.content)
    assert value["amount"] == "2500000"
    assert body["method"] == "getTokenAccountBalance"
    assert body["params"] == ["Ata111"]
    await client.aclose()


@pytest.mark.asyncio
async def test_signatures_request_shape(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=rpc_result([{"signature": "s1", "err": None}]))
        sigs = await client.get_signatures_for_address("Addr", limit=200, before="s0")
        body = json.loads(route.calls[0].request.content)
    assert sigs == [{"signature": "s1", "err": None}]
    assert body["params"] == ["Addr", {"limit": 200, "before": "s0"}]


@pytest.mark.asyncio
async def test_parsed_transaction_request_shape(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=rpc_result(None))
        assert await client.get_parsed_transaction("sig") is None
        body = json.loads(route.calls[0].request.content)
    assert body["params"][1] == {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}


@pytest.mark.asyncio
async def test_retries_rate_limit_then_succeeds(client):
    with respx.mock:
        route = respx.post(URL).mock(side_effect=[
            httpx.Response(429),
            httpx.Response(503),
            rpc_result({"context": {}, "value": 42}),
        ])
        assert await client.get_balance("Addr") == 42
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=httpx.Response(429))
        with pytest.raises(ChainQueryFailure, match="HTTP 429"):
            await client.get_balance("Addr")
    assert route.call_count == 3


@pytest.mark.asyncio
async def test_transport_error_retried(client):
    with respx.mock:
        respx.post(URL).mock(side_effect=[
            httpx.ConnectTimeout("timed out"),
            rpc_result({"value": 7}),
        ])
        assert await client.get_balance("Addr") == 7


@pytest.mark.asyncio
async def test_jsonrpc_error_not_retried(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=httpx.Response(200, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32602, "message": "Invalid param: could not find account"},
        }))
        with pytest.raises(ChainQueryFailure) as exc:
            await client.get_token_account_balance("Ata")
    assert exc.value.code == -32602
    assert exc.value.method == "getTokenAccountBalance"
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_client_error_status_not_retried(client):
    with respx.mock:
        route = respx.post(URL).mock(return_value=httpx.Response(403))
        with pytest.raises(ChainQueryFailure):
            await client.get_balance("Addr")
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_non_json_body(client):
    with respx.mock:
        respx.post(URL).mock(return_value=httpx.Response(200, text="<html>"))
        with pytest.raises(ChainQueryFailure, match="not JSON"):
            await client.get_balance("Addr")


@pytest.mark.asyncio
async def test_string_jsonrpc_error_becomes_failure(client):
    with respx.mock:
        respx.post(URL).mock(return_value=httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": "rate limited"}))
        with pytest.raises(ChainQueryFailure, match="rate limited") as exc:
            await client.get_signatures_for_address("Addr")
    assert exc.value.code is None


@pytest.mark.asyncio
async def test_string_jsonrpc_error_leaves_eligibility_total(client):
    from conftest import new_address
    from memocracy.chain.query import ChainQueryClient
    from memocracy.eligibility import AccessMode, EligibilityEvaluator, PollPolicy, ProjectWalletRef

    policy = PollPolicy(AccessMode.WALLET, project_wallet=ProjectWalletRef(new_address(), "Fund"),
                        min_contribution_usd="1")
    evaluator = EligibilityEvaluator(ChainQueryClient(client, batch_delay=0))
    with respx.mock:
        respx.post(URL).mock(return_value=httpx.Response(
            200, json={"jsonrpc": "2.0", "id": 1, "error": "rate limited"}))
        decision = await evaluator.evaluate(policy, new_address())
    assert decision.eligible is False
    assert decision.reasons == [
        "No sufficient contribution found to Fund (need ≥ $1 USD, have $0 USD)"
    ]


def test_chain_rpc_requires_every_method():
    class PartialRpc(ChainRpc):
        async def get_token_account_balance(self, address):
            return {}

        async def get_signatures_for_address(self, address, limit=200, before=None):
            return []

        async def get_parsed_transaction(self, signature):
            return None

    with pytest.raises(TypeError):
        PartialRpc()
