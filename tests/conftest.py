"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and transport test
doubles. Fixtures in the isolation section are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from typing import TYPE_CHECKING, Any

import pytest

from pplx.models import CompletionResponse

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pplx.request import CompletionRequest
    from pplx.stream import Channel

TEST_MODEL = "sonar"


# =============================================================================
# Test Doubles
# =============================================================================


def make_response(
    content: str,
    *,
    model: str = TEST_MODEL,
    **extra: Any,
) -> CompletionResponse:
    """Build a one-choice response with *content*."""
    return CompletionResponse.model_validate(
        {
            "id": "resp-1",
            "model": model,
            "usage": {"prompt_tokens": 3, "completion_tokens": 5, "total_tokens": 8},
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
            **extra,
        }
    )


class FakeTransport:
    """Transport test double with scripted results.

    ``snapshots`` are put on the channel in order when streaming. When
    ``error`` is set it is raised by ``complete`` and, after the snapshots,
    by ``stream``.
    """

    def __init__(
        self,
        *,
        response: CompletionResponse | None = None,
        snapshots: Sequence[CompletionResponse] = (),
        error: BaseException | None = None,
    ) -> None:
        self.response = response or make_response("ok")
        self.snapshots = list(snapshots)
        self.error = error
        self.requests: list[CompletionRequest] = []
        self.timeout: float | None = None
        self.closed = False
        self.sent = 0

    def set_timeout(self, seconds: float) -> None:
        self.timeout = seconds

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    async def stream(
        self,
        request: CompletionRequest,
        channel: Channel[CompletionResponse],
    ) -> None:
        self.requests.append(request)
        for snapshot in self.snapshots:
            await channel.put(snapshot)
            self.sent += 1
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport double answering ``ok`` (not autouse)."""
    return FakeTransport()


@pytest.fixture
def api_key(monkeypatch: pytest.MonkeyPatch) -> str:
    """Set a dummy PPLX_API_KEY (not autouse)."""
    monkeypatch.setenv("PPLX_API_KEY", "pplx-test-key")
    return "pplx-test-key"


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_pplx_env(monkeypatch):
    """Clear PPLX_* env vars so the host environment never leaks into tests."""
    for key in list(os.environ.keys()):
        if key.startswith("PPLX_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    for name in ("httpx", "httpcore", "openai", "mcp"):
        logging.getLogger(name).setLevel(logging.WARNING)
