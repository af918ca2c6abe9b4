"""Per-request context utilities."""
from __future__ import annotations

from contextvars import ContextVar, Token

request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
use_case_ctx_var: ContextVar[str | None] = ContextVar("use_case", default=None)


def get_request_id() -> str | None:
    """Return the current request id if available."""
    return request_id_ctx_var.get()


def bind_request_id(request_id: str) -> Token:
    return request_id_ctx_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_ctx_var.reset(token)


def get_use_case() -> str | None:
    """Return the generation use case (chat, mood, breakdown, clarify) being served."""
    return use_case_ctx_var.get()


def bind_use_case(use_case: str) -> Token:
    return use_case_ctx_var.set(use_case)


def reset_use_case(token: Token) -> None:
    use_case_ctx_var.reset(token)
