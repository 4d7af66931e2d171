"""Transport protocol: minimal interface to the remote completion API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pplx.models import CompletionResponse
    from pplx.request import CompletionRequest
    from pplx.stream import Channel


@runtime_checkable
class Transport(Protocol):
    """Send one blocking request, or stream cumulative results into a channel."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send one request and return its single result."""
        ...

    async def stream(
        self,
        request: CompletionRequest,
        channel: Channel[CompletionResponse],
    ) -> None:
        """Put every cumulative observation into *channel*.

        Implementations must not close the channel; the dispatcher closes it
        once this coroutine returns or raises.
        """
        ...

    def set_timeout(self, seconds: float) -> None:
        """Set the overall HTTP deadline for this session."""
        ...

    async def aclose(self) -> None:
        """Release underlying client resources."""
        ...
