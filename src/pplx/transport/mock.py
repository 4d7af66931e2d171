"""Mock transport for offline use and testing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pplx.models import CompletionResponse

if TYPE_CHECKING:
    from pplx.request import CompletionRequest
    from pplx.stream import Channel


class MockTransport:
    """Return deterministic echo answers without API calls.

    Streaming emits one cumulative snapshot per word of the answer.
    """

    def __init__(self) -> None:
        self.timeout: float | None = None
        self.requests: list[CompletionRequest] = []
        self.closed = False

    def set_timeout(self, seconds: float) -> None:
        """Record the requested deadline."""
        self.timeout = seconds

    def _answer(self, request: CompletionRequest) -> str:
        messages = request.body.get("messages") or []
        prompt = messages[-1]["content"] if messages else ""
        return f"echo: {prompt[:100]}"

    def _response(self, request: CompletionRequest, content: str) -> CompletionResponse:
        return CompletionResponse.model_validate(
            {
                "id": "mock-completion",
                "model": request.model,
                "usage": {
                    "prompt_tokens": 10,
                    "completion_tokens": len(content.split()),
                    "total_tokens": 10 + len(content.split()),
                },
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": content},
                        "finish_reason": "stop",
                    }
                ],
            }
        )

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Return the echo answer in one piece."""
        self.requests.append(request)
        return self._response(request, self._answer(request))

    async def stream(
        self,
        request: CompletionRequest,
        channel: Channel[CompletionResponse],
    ) -> None:
        """Emit the echo answer as cumulative word-by-word snapshots."""
        self.requests.append(request)
        words = self._answer(request).split(" ")
        for i in range(1, len(words) + 1):
            await channel.put(self._response(request, " ".join(words[:i])))

    async def aclose(self) -> None:
        """Mark the transport closed."""
        self.closed = True
