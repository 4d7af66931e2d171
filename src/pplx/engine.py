"""Shared query core used by both the terminal and the MCP tool adapters."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import logging
from typing import TYPE_CHECKING, Any

from pplx.compiler import compile_directives
from pplx.dispatch import dispatch
from pplx.validate import ensure_valid

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from types import TracebackType

    from pplx.config import Config
    from pplx.models import CompletionResponse
    from pplx.params import QueryParams
    from pplx.transport.base import Transport

logger = logging.getLogger(__name__)


def make_transport(config: Config) -> Transport:
    """Create the transport selected by *config*."""
    if config.use_mock:
        from pplx.transport.mock import MockTransport

        return MockTransport()

    from pplx.transport.perplexity import PerplexityTransport

    assert config.api_key is not None  # guaranteed by Config
    return PerplexityTransport(
        config.api_key,
        base_url=config.base_url or "",
        timeout=config.timeout,
    )


async def _close_quietly(transport: Transport) -> None:
    try:
        await transport.aclose()
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        # Cleanup should never mask the primary failure.
        logger.warning("Transport cleanup failed: %s", exc)


async def run_query(
    params: QueryParams,
    *,
    config: Config,
    transport: Transport | None = None,
    history: Iterable[Mapping[str, str]] = (),
    on_update: Callable[[CompletionResponse], object] | None = None,
) -> CompletionResponse:
    """Validate, compile and dispatch one query.

    Args:
        params: The parameter set; zero-valued sampling fields get defaults.
        config: Session configuration (credentials, base URL, timeout).
        transport: Optional transport; one is created from *config* and
            closed afterwards when omitted.
        history: Prior conversation turns.
        on_update: Called with each cumulative observation when streaming.

    Returns:
        The final result.

    Example:
        result = await run_query(QueryParams(user_prompt="Why is the sky blue?"),
                                 config=Config())
        print(result.last_content)
    """
    params = params.with_defaults()
    ensure_valid(params)
    directives = compile_directives(params, history=history)

    owned = transport is None
    active = make_transport(config) if transport is None else transport
    active.set_timeout(params.timeout if params.timeout > 0 else config.timeout)
    try:
        return await dispatch(
            directives, active, streaming=params.stream, on_update=on_update
        )
    finally:
        if owned:
            await _close_quietly(active)


class Conversation:
    """Multi-turn session that carries message history between queries.

    Every turn goes through :func:`run_query` with the same parameter set;
    only the user prompt changes.
    """

    def __init__(
        self,
        params: QueryParams,
        *,
        config: Config,
        transport: Transport | None = None,
    ) -> None:
        self.params = params
        self.config = config
        self.history: list[dict[str, str]] = []
        self._owned = transport is None
        self._transport = transport

    async def ask(
        self,
        prompt: str,
        *,
        on_update: Callable[[CompletionResponse], object] | None = None,
    ) -> CompletionResponse:
        """Send *prompt* with the accumulated history and record the answer."""
        if self._transport is None:
            self._transport = make_transport(self.config)
        response = await run_query(
            replace(self.params, user_prompt=prompt),
            config=self.config,
            transport=self._transport,
            history=self.history,
            on_update=on_update,
        )
        self.history.append({"role": "user", "content": prompt})
        self.history.append({"role": "assistant", "content": response.last_content})
        return response

    async def aclose(self) -> None:
        """Close the transport if this conversation created it."""
        if self._owned and self._transport is not None:
            transport, self._transport = self._transport, None
            await _close_quietly(transport)

    async def __aenter__(self) -> Conversation:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Conversation(model={self.params.model!r}, turns={len(self.history) // 2})"


def summarize(response: CompletionResponse) -> dict[str, Any]:
    """Small log-friendly summary of a result."""
    return {
        "model": response.model,
        "chars": len(response.last_content),
        "total_tokens": response.usage.total_tokens,
    }
