"""Pydantic models and dataclasses for request/result types."""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, field_validator

class GenerateIn(BaseModel):
    """Inbound body of the forwarding endpoint."""
    prompt: str

    @field_validator("prompt")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("prompt must not be empty")
        return value


class ResultKind(str, Enum):
    SUCCESS = "success"
    PREFLIGHT = "preflight"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UPSTREAM_AUTH = "upstream_auth"
    UPSTREAM_RATE_LIMIT = "upstream_rate_limit"
    UPSTREAM = "upstream"
    TRANSPORT = "transport"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ProxyResult:
    """Outcome of one forwarding call.

    `body` is the JSON value sent back to the caller; a preflight answer
    carries no body.
    """
    kind: ResultKind
    status: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return self.kind in (ResultKind.SUCCESS, ResultKind.PREFLIGHT)

    @classmethod
    def failure(cls, kind: ResultKind, status: int, error: str, /, **extra: Any) -> "ProxyResult":
        body: dict[str, Any] = {"error": error}
        body.update(extra)
        return cls(kind=kind, status=status, body=body)


@dataclass(frozen=True)
class MalformedBody:
    """Inbound body that could not be decoded as JSON."""
    error: ValueError
