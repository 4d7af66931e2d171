"""Request assembly: fold a directive sequence into the outgoing body."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from typing import TYPE_CHECKING, Any

from pplx.compiler import format_date
from pplx.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pplx.compiler import Directive

# Fields the OpenAI chat-completions signature accepts directly. Everything
# else is Perplexity-specific and travels in ``extra_body``.
_STANDARD_FIELDS = frozenset(
    {
        "messages",
        "model",
        "frequency_penalty",
        "max_tokens",
        "presence_penalty",
        "temperature",
        "top_p",
        "stream",
        "response_format",
    }
)

_WEB_SEARCH_OPTIONS = frozenset({"user_location", "search_context_size"})


@dataclass(frozen=True)
class CompletionRequest:
    """Outgoing request body, built from directives."""

    body: dict[str, Any] = field(default_factory=dict)

    @property
    def model(self) -> str:
        return str(self.body.get("model", ""))

    def validate(self) -> None:
        """Check the minimal invariants a transport needs.

        Raises:
            ValidationError: If model or messages are missing, or the last
                message is not a user turn.
        """
        if not self.model:
            raise ValidationError("model", "", "must be a non-empty string")
        messages = self.body.get("messages") or []
        if not messages:
            raise ValidationError("messages", "", "at least one message is required")
        if messages[-1].get("role") != "user":
            raise ValidationError(
                "messages", "", "the last message must come from the user"
            )

    def to_json(self) -> dict[str, Any]:
        """Return the wire body with dates rendered and cleared filters dropped."""
        out: dict[str, Any] = {}
        web_search_options: dict[str, Any] = {}
        for key, value in self.body.items():
            if key == "search_recency_filter" and not value:
                continue
            if isinstance(value, dt.date):
                value = format_date(value)
            if key in _WEB_SEARCH_OPTIONS:
                web_search_options[key] = value
                continue
            out[key] = value
        if web_search_options:
            out["web_search_options"] = web_search_options
        return out

    def openai_kwargs(self) -> dict[str, Any]:
        """Split the wire body into chat-completions kwargs plus ``extra_body``."""
        wire = self.to_json()
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in wire.items():
            if key in _STANDARD_FIELDS:
                kwargs[key] = value
            else:
                extra[key] = value
        # stream is passed by the transport itself
        kwargs.pop("stream", None)
        if extra:
            kwargs["extra_body"] = extra
        return kwargs


def build_request(directives: Iterable[Directive]) -> CompletionRequest:
    """Fold *directives* into a request body.

    A later directive replaces an earlier one with the same name, so an
    explicit clear (such as an empty recency filter) always wins over a
    value set before it.
    """
    body: dict[str, Any] = {}
    for d in directives:
        body[d.name] = d.value
    return CompletionRequest(body=body)
