"""Transport-side error mapping.

SDK and httpx exceptions are wrapped into :class:`pplx.errors.APIError` so
callers see one failure kind for everything that went wrong on the wire.
"""

from __future__ import annotations

import asyncio

import httpx

from pplx.constants import API_KEY_ENV_VAR
from pplx.errors import APIError, RateLimitError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _hint_for(exc: BaseException, status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return f"Check credentials/permissions (try setting {API_KEY_ENV_VAR})."
    if status_code == 429:
        return "Rate limit exceeded; wait before sending more requests."
    for e in _walk_exception_chain(exc):
        if isinstance(e, httpx.TimeoutException) or type(e).__name__.endswith(
            "TimeoutError"
        ):
            return "The request deadline expired; raise the timeout."
    return None


def wrap_transport_error(
    exc: BaseException,
    *,
    phase: str,
    message: str = "request failed",
) -> APIError:
    """Map a transport exception into an APIError carrying its status code."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = "perplexity"
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return err_cls(
        f"{message}{status_note}: {cause}" if cause else f"{message}{status_note}",
        hint=_hint_for(exc, status_code),
        status_code=status_code,
        provider="perplexity",
        phase=phase,
    )
