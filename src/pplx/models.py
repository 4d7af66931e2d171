"""Response models returned by the transport layer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Model(BaseModel):
    # Unknown API fields are kept so newer responses round-trip.
    model_config = ConfigDict(extra="allow")


class Usage(_Model):
    """Token usage counters."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @field_validator(
        "prompt_tokens", "completion_tokens", "total_tokens", mode="before"
    )
    @classmethod
    def none_as_zero(cls, v: Any) -> Any:
        """Treat missing counters as zero."""
        return 0 if v is None else v


class ChatMessage(_Model):
    """A single role/content message."""

    role: str = "assistant"
    content: str = ""

    @field_validator("role", "content", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat a null role or content as an empty string."""
        return "" if v is None else v


class Choice(_Model):
    """One completion choice."""

    index: int = 0
    message: ChatMessage = Field(default_factory=ChatMessage)
    finish_reason: str | None = None


class SearchResult(_Model):
    """A search hit the answer was grounded on."""

    title: str = ""
    url: str = ""
    date: str | None = None
    last_updated: str | None = None


class Image(_Model):
    """An image returned alongside the answer."""

    image_url: str = ""
    origin_url: str = ""
    width: int = 0
    height: int = 0

    @field_validator("image_url", "origin_url", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat a null URL as an empty string."""
        return "" if v is None else v

    @field_validator("width", "height", mode="before")
    @classmethod
    def none_as_zero(cls, v: Any) -> Any:
        """Treat unknown dimensions as zero."""
        return 0 if v is None else v


class CompletionResponse(_Model):
    """A full (or, while streaming, cumulative) completion result.

    Optional list fields are ``None`` when the API omitted them, which is
    distinct from an empty list.
    """

    id: str = ""
    model: str = ""
    created: int = 0
    usage: Usage = Field(default_factory=Usage)
    choices: list[Choice] = Field(default_factory=list)
    #: Deprecated flat URL list; superseded by *search_results*.
    citations: list[str] | None = None
    search_results: list[SearchResult] | None = None
    images: list[Image] | None = None
    #: Not populated by the API at present.
    related_questions: list[str] | None = None

    @field_validator("usage", mode="before")
    @classmethod
    def none_as_empty_usage(cls, v: Any) -> Any:
        """Stream chunks may carry no usage block until the end."""
        return {} if v is None else v

    @field_validator("id", "model", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat null identifiers as empty strings."""
        return "" if v is None else v

    @property
    def last_content(self) -> str:
        """Content of the last choice, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[-1].message.content

    @classmethod
    def from_raw(cls, raw: Any) -> CompletionResponse:
        """Build from a dict or an SDK object exposing ``model_dump()``."""
        if isinstance(raw, CompletionResponse):
            return raw
        if not isinstance(raw, dict):
            dump = getattr(raw, "model_dump", None)
            raw = dump() if callable(dump) else dict(vars(raw))
        return cls.model_validate(raw)
