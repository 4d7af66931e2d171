"""Dispatch a compiled request, blocking or as a cumulative stream."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pplx.errors import APIError, StreamError
from pplx.request import build_request
from pplx.stream import Channel, StreamReducer
from pplx.transport._errors import wrap_transport_error

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from pplx.compiler import Directive
    from pplx.models import CompletionResponse
    from pplx.request import CompletionRequest
    from pplx.transport.base import Transport

logger = logging.getLogger(__name__)


async def dispatch(
    directives: Iterable[Directive],
    transport: Transport,
    *,
    streaming: bool,
    on_update: Callable[[CompletionResponse], object] | None = None,
) -> CompletionResponse:
    """Send a compiled request and return its final result.

    Args:
        directives: Compiled directive sequence.
        transport: The remote client.
        streaming: Subscribe to the event stream instead of one blocking call.
        on_update: Called once per stream observation (ignored when not
            streaming).

    Returns:
        The single result, or the last observation of the stream.

    Raises:
        ValidationError: If the assembled request is missing model or messages.
        APIError: If the remote call fails.
        StreamError: If the stream fails or closes without any observation.
    """
    request = build_request(directives)
    request.validate()
    if streaming:
        return await dispatch_stream(request, transport, on_update=on_update)
    return await dispatch_once(request, transport)


async def dispatch_once(
    request: CompletionRequest, transport: Transport
) -> CompletionResponse:
    """Issue a single blocking request."""
    logger.debug("Sending completion request (model=%s)", request.model)
    try:
        return await transport.complete(request)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise wrap_transport_error(e, phase="complete") from e


async def dispatch_stream(
    request: CompletionRequest,
    transport: Transport,
    *,
    on_update: Callable[[CompletionResponse], object] | None = None,
) -> CompletionResponse:
    """Stream a request through one consumer task and reduce it.

    The producer (the transport) and the consumer (a :class:`StreamReducer`)
    share a zero-capacity :class:`Channel`. The caller waits on the consumer
    task before reading the reduced result.
    """
    channel: Channel[CompletionResponse] = Channel()
    reducer = StreamReducer()
    try:
        consumer = asyncio.create_task(reducer.consume(channel, on_update))
    except RuntimeError as e:
        raise StreamError(f"could not start stream consumer: {e}") from e

    producer = asyncio.create_task(_produce(transport, request, channel))
    logger.debug("Streaming completion request (model=%s)", request.model)
    try:
        await asyncio.wait({producer, consumer}, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        producer.cancel()
        consumer.cancel()
        raise

    if consumer.done() and consumer.exception() is not None:
        producer.cancel()
        await asyncio.gather(producer, return_exceptions=True)
        raise consumer.exception()  # type: ignore[misc]

    if producer.exception() is not None:
        # The channel is closed, so the consumer finishes on its own.
        await asyncio.gather(consumer, return_exceptions=True)
        cause = producer.exception()
        status_code = cause.status_code if isinstance(cause, APIError) else None
        raise StreamError(
            f"streaming request failed: {cause}",
            hint=getattr(cause, "hint", None),
            status_code=status_code,
        ) from cause

    # Barrier: the consumer has drained the closed channel.
    await consumer
    return reducer.result()


async def _produce(
    transport: Transport,
    request: CompletionRequest,
    channel: Channel[CompletionResponse],
) -> None:
    try:
        await transport.stream(request, channel)
    finally:
        channel.close()
