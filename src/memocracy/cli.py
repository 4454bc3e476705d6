#!/usr/bin/env python3
"""
memocracy CLI — Command-line access to the wallet identity and scoring core.

Commands:
    challenge      - Issue a sign-in nonce for a wallet
    verify         - Verify a signed challenge and consume its nonce
    balance        - Raw SPL token balance of a wallet
    contribution   - What a wallet has sent to a project wallet
    eligibility    - Evaluate poll eligibility for a wallet
    trust-score    - Coin trust score from live market and chain data
    founding-score - Founding wallet reputation from a JSON state file

Chain settings come from the environment (see memocracy.config).
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from .auth import AuthService
from .chain.contributions import ContributionAggregator, raw_to_usd
from .chain.models import AssetFilter
from .chain.query import ChainQueryClient
from .chain.rpc import SolanaRpcClient
from .config import Settings
from .eligibility import AccessMode, CoinRef, EligibilityEvaluator, PollPolicy, ProjectWalletRef
from .errors import AuthenticationError, MemocracyError
from .logs import setup_structured_logging
from .messages import coin_vote_message, leaderboard_message, normalize_leaderboard_username, vote_login_message
from .nonces import NonceStore
from .storage import SQLiteNonceBackend, SQLiteScoreBackend
from .trustscore.engine import tier_emoji
from .trustscore.founding_wallet import (
    FoundingWalletState,
    ProposalSummary,
    WalletStatus,
    compute_founding_wallet_score,
)
from .trustscore.freshness import TrustScoreService
from .trustscore.market_data import DexScreenerClient, collect_token_metrics


def _output(data: dict, args: argparse.Namespace, human_fn=None):
    """Output data as JSON or pretty-printed."""
    if getattr(args, 'json', False):
        print(json.dumps(data, indent=2, default=str))
    elif human_fn:
        human_fn(data)
    else:
        print(json.dumps(data, indent=2, default=str))


def _message_builder(args):
    if args.flow == "login":
        return vote_login_message
    if args.flow == "leaderboard":
        if args.score is None or not args.username:
            raise MemocracyError("--score and --username are required for the leaderboard flow")
        username = normalize_leaderboard_username(args.username)
        return lambda n: leaderboard_message(args.score, n, username)
    if not args.coin:
        raise MemocracyError("--coin is required for the vote flow")
    return lambda n: coin_vote_message(args.direction, args.coin, n)


def _auth(args) -> AuthService:
    return AuthService(nonces=NonceStore(SQLiteNonceBackend(args.db)))


# ─── Commands ──────────────────────────────────────────────────────

def cmd_challenge(args):
    """Issue a nonce and show the exact message the wallet must sign."""
    nonce = _auth(args).request_challenge(args.wallet)
    result = {"wallet": args.wallet, "nonce": nonce, "message": _message_builder(args)(nonce)}

    def human(d):
        print(f"🔑 Challenge issued for {d['wallet']}")
        print(f"   Nonce:   {d['nonce']}")
        print(f"   Sign:    {d['message']!r}")

    _output(result, args, human)
    return result


def cmd_verify(args):
    """Verify a signed challenge."""
    try:
        _auth(args).verify_challenge(args.wallet, args.nonce, args.signature, _message_builder(args))
        result = {"wallet": args.wallet, "valid": True}
    except AuthenticationError as e:
        result = {"wallet": args.wallet, "valid": False, "error": e.public_message}

    def human(d):
        if d["valid"]:
            print(f"✅ Signature valid for {d['wallet']}")
        else:
            print(f"❌ {d['error']}")

    _output(result, args, human)
    return result


async def _balance(settings: Settings, args) -> dict:
    async with SolanaRpcClient.from_settings(settings) as rpc:
        chain = ChainQueryClient.from_settings(settings, rpc)
        snap = await chain.get_balance_snapshot(args.wallet, args.mint)
        result = {"wallet": args.wallet, "mint": args.mint,
                  "raw_amount": snap.raw_amount, "ui_amount": str(snap.ui_amount)}
        if args.min is not None:
            result["meets_minimum"] = await chain.has_token_balance(args.wallet, args.mint, args.min)
        return result


def cmd_balance(args):
    """Raw token balance of a wallet."""
    result = asyncio.run(_balance(Settings.from_env(), args))

    def human(d):
        print(f"💰 {d['wallet']}")
        print(f"   Mint:    {d['mint']}")
        print(f"   Balance: {d['ui_amount']} ({d['raw_amount']} raw)")
        if "meets_minimum" in d:
            print(f"   Minimum: {'✅ met' if d['meets_minimum'] else '❌ not met'} (≥ {args.min})")

    _output(result, args, human)
    return result


async def _contribution(settings: Settings, args) -> dict:
    async with SolanaRpcClient.from_settings(settings) as rpc:
        aggregator = ContributionAggregator(ChainQueryClient.from_settings(settings, rpc))
        raw = await aggregator.sum_transfers_to(args.source, args.dest, AssetFilter(args.filter))
        return {"source": args.source, "dest": args.dest, "filter": args.filter,
                "raw_total": raw, "usd": str(raw_to_usd(raw))}


def cmd_contribution(args):
    """Sum transfers from one wallet to another."""
    result = asyncio.run(_contribution(Settings.from_env(), args))

    def human(d):
        print(f"📤 {d['source']} → {d['dest']} ({d['filter']})")
        print(f"   Total: {d['raw_total']} raw ≈ ${d['usd']} USD")

    _output(result, args, human)
    return result


async def _eligibility(settings: Settings, args) -> dict:
    coin = CoinRef(args.mint, args.symbol or "tokens") if args.mint else None
    project = None
    if args.project_wallet:
        project = ProjectWalletRef(args.project_wallet, args.label or args.project_wallet,
                                   coin if args.mode == "WALLET" else None)
    policy = PollPolicy(
        access_mode=AccessMode(args.mode),
        coin=coin if args.mode == "COIN" else None,
        coin_min_hold=args.min_hold,
        project_wallet=project,
        min_contribution_usd=args.min_usd,
        contribution_filter=AssetFilter(args.filter),
    )
    async with SolanaRpcClient.from_settings(settings) as rpc:
        evaluator = EligibilityEvaluator(ChainQueryClient.from_settings(settings, rpc))
        decision = await evaluator.evaluate(policy, args.wallet)
    return {"wallet": args.wallet, **decision.to_dict()}


def cmd_eligibility(args):
    """Evaluate whether a wallet may vote under a poll policy."""
    result = asyncio.run(_eligibility(Settings.from_env(), args))

    def human(d):
        mark = "✅ Eligible" if d["eligible"] else "❌ Not eligible"
        print(f"{mark}: {d['wallet']}")
        for reason in d["reasons"]:
            print(f"   - {reason}")

    _output(result, args, human)
    return result


async def _trust_score(settings: Settings, args) -> dict:
    backend = SQLiteScoreBackend(args.db) if args.db else None
    service = TrustScoreService(backend)
    dex = DexScreenerClient.from_settings(settings)

    async with SolanaRpcClient.from_settings(settings) as rpc:
        chain = ChainQueryClient.from_settings(settings, rpc)

        async def load(mint):
            market = await dex.get_token_data(mint)
            if market is None:
                raise MemocracyError(f"no market data for {mint}")
            return await collect_token_metrics(mint, market, chain, args.up, args.down)

        scored = await service.get_score(args.mint, load, force=args.force)
    return scored.to_dict()


def cmd_trust_score(args):
    """Compute (or read a fresh cached) coin trust score."""
    result = asyncio.run(_trust_score(Settings.from_env(), args))

    def human(d):
        print(f"{tier_emoji(d['tier'])} {d['mint']}: {d['overall_score']}/100 ({d['tier']})"
              f"{' [cached]' if d['cached'] else ''}")
        for name, factor in d["factors"].items():
            print(f"   {name:<20} {factor['score']:>3}/{factor['max_score']:<3} {factor['rating']}")

    _output(result, args, human)
    return result


def _load_state(path: str) -> FoundingWalletState:
    with open(path) as f:
        raw = json.load(f)
    try:
        return _state_from_dict(raw, path)
    except (KeyError, TypeError, AttributeError) as e:
        raise MemocracyError(f"malformed founding wallet state in {path}: {e!r}") from None


def _state_from_dict(raw: dict, path: str) -> FoundingWalletState:
    return FoundingWalletState(
        wallet_id=raw.get("wallet_id", path),
        status=WalletStatus(raw.get("status", "ACTIVE")),
        description=raw.get("description", ""),
        funding_goal_usd=raw.get("funding_goal_usd"),
        funding_goal_lamports=raw.get("funding_goal_lamports"),
        current_balance_usd=raw.get("current_balance_usd", 0.0),
        contributor_count=raw.get("contributor_count", 0),
        transaction_count=raw.get("transaction_count", 0),
        proposals=tuple(ProposalSummary(p["status"], p.get("vote_count", 0))
                        for p in raw.get("proposals", [])),
        comment_ratings=tuple(raw.get("comment_ratings", [])),
    )


def cmd_founding_score(args):
    """Founding wallet reputation from a state file."""
    result = compute_founding_wallet_score(_load_state(args.statefile)).to_dict()

    def human(d):
        print(f"{tier_emoji(d['tier'])} {d['wallet_id']}: {d['overall_score']}/100 ({d['tier']})")
        print(f"   Transparency: {d['transparency_score']}")
        print(f"   Execution:    {d['execution_score']}")
        print(f"   Community:    {d['community_score']}")

    _output(result, args, human)
    return result


# ─── Parser ────────────────────────────────────────────────────────

def _add_flow_args(p):
    p.add_argument("--flow", choices=["login", "leaderboard", "vote"], default="login",
                   help="Message template to sign")
    p.add_argument("--score", type=int, help="Leaderboard score")
    p.add_argument("--username", help="Leaderboard username")
    p.add_argument("--coin", help="Coin mint (vote flow)")
    p.add_argument("--direction", choices=["UP", "DOWN"], default="UP", help="Vote direction")
    p.add_argument("--db", default="memocracy.db", help="SQLite nonce database")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="memocracy",
        description="Wallet identity, poll eligibility and trust scoring",
    )
    parser.add_argument("--json", action="store_true", help="Output raw JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", help="Available commands")

    p = sub.add_parser("challenge", help="Issue a sign-in nonce")
    p.add_argument("wallet", help="Wallet public key (base58)")
    _add_flow_args(p)

    p = sub.add_parser("verify", help="Verify a signed challenge")
    p.add_argument("wallet", help="Wallet public key (base58)")
    p.add_argument("nonce", help="Nonce from the challenge command")
    p.add_argument("signature", help="Base64 Ed25519 signature")
    _add_flow_args(p)

    p = sub.add_parser("balance", help="SPL token balance")
    p.add_argument("wallet", help="Wallet public key")
    p.add_argument("mint", help="Token mint")
    p.add_argument("--min", help="Minimum raw amount to check against")

    p = sub.add_parser("contribution", help="Transfers from one wallet to another")
    p.add_argument("source", help="Contributing wallet")
    p.add_argument("dest", help="Project wallet")
    p.add_argument("-f", "--filter", choices=[a.value for a in AssetFilter], default="ANY")

    p = sub.add_parser("eligibility", help="Evaluate poll eligibility")
    p.add_argument("wallet", help="Voting wallet")
    p.add_argument("-m", "--mode", choices=[m.value for m in AccessMode], required=True)
    p.add_argument("--mint", help="Poll coin (or the project wallet's coin)")
    p.add_argument("--symbol", help="Coin symbol")
    p.add_argument("--min-hold", default="1", help="Minimum raw coin balance")
    p.add_argument("--project-wallet", help="Project wallet address (WALLET mode)")
    p.add_argument("--label", help="Project wallet label")
    p.add_argument("--min-usd", default="0", help="Minimum contribution in USD")
    p.add_argument("-f", "--filter", choices=[a.value for a in AssetFilter], default="ANY")

    p = sub.add_parser("trust-score", help="Coin trust score")
    p.add_argument("mint", help="Token mint")
    p.add_argument("--up", type=int, default=0, help="Community upvotes")
    p.add_argument("--down", type=int, default=0, help="Community downvotes")
    p.add_argument("--db", help="SQLite score cache")
    p.add_argument("--force", action="store_true", help="Ignore a fresh cached score")

    p = sub.add_parser("founding-score", help="Founding wallet reputation")
    p.add_argument("statefile", help="Founding wallet state JSON")

    return parser


def main(argv: Optional[list[str]] = None) -> Optional[dict]:
    """CLI entry point. Returns result dict for testing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "challenge": cmd_challenge,
        "verify": cmd_verify,
        "balance": cmd_balance,
        "contribution": cmd_contribution,
        "eligibility": cmd_eligibility,
        "trust-score": cmd_trust_score,
        "founding-score": cmd_founding_score,
    }

    try:
        setup_structured_logging(args.log_level or Settings.from_env().log_level)
        return commands[args.command](args)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except (MemocracyError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
