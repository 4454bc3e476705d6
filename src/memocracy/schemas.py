"""Strict input shapes for the authentication and voting flows."""

from typing import Literal, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator

from .errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def _no_null_bytes(v: str) -> str:
    if "\x00" in v:
        raise ValueError("Null bytes not allowed")
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


class NonceRequest(BaseModel):
    wallet: str = Field(..., min_length=1, max_length=64)

    @field_validator("wallet")
    @classmethod
    def no_null_bytes(cls, v: str) -> str:
        return _no_null_bytes(v)


class LoginRequest(BaseModel):
    wallet: str = Field(..., min_length=1, max_length=64)
    nonce: str = Field(..., min_length=1, max_length=256)
    signature: str = Field(..., min_length=1, max_length=256)

    @field_validator("wallet", "nonce", "signature")
    @classmethod
    def no_null_bytes(cls, v: str) -> str:
        return _no_null_bytes(v)


class LeaderboardSubmission(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    score: int = Field(..., ge=0, le=1_000_000_000)
    wallet: str = Field(..., min_length=1, max_length=64)
    nonce: str = Field(..., min_length=1, max_length=256)
    signature: str = Field(..., min_length=1, max_length=256)

    @field_validator("wallet", "nonce", "signature")
    @classmethod
    def no_null_bytes(cls, v: str) -> str:
        return _no_null_bytes(v)


class CoinVoteRequest(BaseModel):
    coin_mint: str = Field(..., min_length=1, max_length=64)
    wallet: str = Field(..., min_length=1, max_length=64)
    vote: Literal["UP", "DOWN"]
    nonce: str = Field(..., min_length=1, max_length=256)
    signature: str = Field(..., min_length=1, max_length=256)

    @field_validator("coin_mint", "wallet", "nonce", "signature")
    @classmethod
    def no_null_bytes(cls, v: str) -> str:
        return _no_null_bytes(v)


def parse_request(model: Type[M], data: dict) -> M:
    """Validate ``data`` against ``model``; failures become ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        parts = []
        for err in e.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
            parts.append(f"{loc}: {err.get('msg', 'invalid')}")
        raise ValidationError("; ".join(parts)) from None
