"""Perplexity transport over the OpenAI-compatible chat completions API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from pplx.constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_S
from pplx.errors import APIError
from pplx.models import CompletionResponse
from pplx.transport._errors import wrap_transport_error

if TYPE_CHECKING:
    from pplx.request import CompletionRequest
    from pplx.stream import Channel

logger = logging.getLogger(__name__)

# Top-level fields that may arrive on any chunk and should persist in later
# snapshots even when a chunk omits them.
_STICKY_FIELDS = ("citations", "search_results", "images", "related_questions")


class PerplexityTransport:
    """Perplexity API transport backed by ``openai.AsyncOpenAI``."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Initialize with an API key; the client is created lazily."""
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise APIError(
                    "openai package not installed",
                    hint="pip install openai",
                ) from e
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                max_retries=0,
            )
        return self._client

    def set_timeout(self, seconds: float) -> None:
        """Set the overall HTTP deadline for this session."""
        self.timeout = seconds
        if self._client is not None:
            self._client = self._client.with_options(timeout=httpx.Timeout(seconds))

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send one blocking chat-completions request."""
        client = self._get_client()
        try:
            raw = await client.chat.completions.create(**request.openai_kwargs())
            return CompletionResponse.from_raw(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_transport_error(e, phase="complete") from e

    async def stream(
        self,
        request: CompletionRequest,
        channel: Channel[CompletionResponse],
    ) -> None:
        """Stream the request, putting one cumulative snapshot per event."""
        client = self._get_client()
        accumulator = _CumulativeSnapshot()
        try:
            events = await client.chat.completions.create(
                **request.openai_kwargs(), stream=True
            )
            # Closing releases the HTTP stream when the consumer fails or we are cancelled.
            async with events:
                async for chunk in events:
                    snapshot = accumulator.update(chunk)
                    if snapshot is not None:
                        await channel.put(snapshot)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_transport_error(e, phase="stream") from e
        logger.debug("Stream finished after %d event(s)", accumulator.events)

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


class _CumulativeSnapshot:
    """Turn raw stream chunks into cumulative ``CompletionResponse`` snapshots.

    Perplexity chunks carry the full ``message`` so far; when only a
    ``delta`` is present the text is accumulated here so the snapshot
    contract toward the core holds either way.
    """

    def __init__(self) -> None:
        self.content = ""
        self.events = 0
        self._sticky: dict[str, Any] = {}

    def update(self, chunk: Any) -> CompletionResponse | None:
        data = _as_dict(chunk)
        choices = data.get("choices") or []
        if not choices:
            return None
        self.events += 1
        choice = _as_dict(choices[0])

        message = _as_dict(choice.get("message"))
        delta = _as_dict(choice.get("delta"))
        full = message.get("content")
        if isinstance(full, str) and len(full) >= len(self.content):
            self.content = full
        else:
            piece = delta.get("content")
            if isinstance(piece, str):
                self.content += piece

        for key in _STICKY_FIELDS:
            value = data.get(key)
            if value is not None:
                self._sticky[key] = value

        snapshot = {k: v for k, v in data.items() if k not in _STICKY_FIELDS}
        snapshot.update(self._sticky)
        snapshot["choices"] = [
            {
                "index": choice.get("index", 0) or 0,
                "message": {"role": "assistant", "content": self.content},
                "finish_reason": choice.get("finish_reason"),
            }
        ]
        return CompletionResponse.model_validate(snapshot)


def _as_dict(obj: Any) -> dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        result = dump()
        if isinstance(result, dict):
            return result
    return dict(vars(obj))
