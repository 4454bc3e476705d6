"""Tests for memocracy.config and memocracy.logs."""

import json
import logging

import pytest

from memocracy.config import DEFAULT_RPC_URL, Settings
from memocracy.errors import ValidationError
from memocracy.logs import RequestContextFilter, bind_request_context, request_id_var, wallet_var


def test_defaults():
    s = Settings.from_env({})
    assert s.rpc_url == DEFAULT_RPC_URL
    assert s.batch_size == 10
    assert s.signature_scan_limit == 200
    assert s.session_secret is None
    assert s.log_level == "INFO"


def test_overrides():
    s = Settings.from_env({
        "SOLANA_RPC_URL": "http://localhost:8899",
        "RPC_BATCH_SIZE": "4",
        "RPC_BATCH_DELAY": "0",
        "SIGNATURE_SCAN_LIMIT": "50",
        "SESSION_SECRET": "k" * 32,
        "LOG_LEVEL": "debug",
    })
    assert s.rpc_url == "http://localhost:8899"
    assert s.batch_size == 4
    assert s.batch_delay == 0.0
    assert s.signature_scan_limit == 50
    assert s.log_level == "DEBUG"


@pytest.mark.parametrize("env,name", [
    ({"RPC_BATCH_SIZE": "ten"}, "RPC_BATCH_SIZE"),
    ({"RPC_BATCH_SIZE": "0"}, "RPC_BATCH_SIZE"),
    ({"RPC_TIMEOUT": "-1"}, "RPC_TIMEOUT"),
    ({"SESSION_SECRET": "short"}, "SESSION_SECRET"),
])
def test_invalid_values_name_the_variable(env, name):
    with pytest.raises(ValidationError, match=name):
        Settings.from_env(env)


def test_request_context_binding():
    with bind_request_context(wallet="WalletA", request_id="req-1") as rid:
        assert rid == "req-1"
        record = logging.LogRecord("memocracy.x", logging.INFO, __file__, 1, "hi", (), None)
        RequestContextFilter().filter(record)
        assert record.request_id == "req-1"
        assert record.wallet == "WalletA"
    assert request_id_var.get() == ""
    assert wallet_var.get() == ""


def test_json_formatter_output(capsys):
    from pythonjsonlogger.json import JsonFormatter

    logger = logging.getLogger("memocracy.test_json")
    logger.setLevel(logging.DEBUG)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter(fmt="%(levelname)s %(message)s %(request_id)s"))
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)
    try:
        with bind_request_context(request_id="abc"):
            logger.warning("chain failure")
    finally:
        logger.removeHandler(handler)
    line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert line["message"] == "chain failure"
    assert line["request_id"] == "abc"
