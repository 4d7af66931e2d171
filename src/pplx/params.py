"""Parameter Set: the full input to one query."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from pplx import constants

if TYPE_CHECKING:
    from collections.abc import Iterable


def _ordered_unique(values: Iterable[str] | None) -> tuple[str, ...]:
    """Return *values* as a tuple with duplicates removed, first occurrence wins."""
    if not values:
        return ()
    if isinstance(values, str):
        values = (values,)
    seen: dict[str, None] = {}
    for v in values:
        item = v.strip()
        if item:
            seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True)
class QueryParams:
    """Optional and required inputs for a single query.

    Empty strings and empty tuples mean "unset": no directive is compiled for
    them. Sampling fields left at zero fall back to library defaults via
    :meth:`with_defaults`.
    """

    user_prompt: str = ""
    system_prompt: str = ""
    model: str = constants.DEFAULT_MODEL

    # Sampling
    temperature: float = constants.DEFAULT_TEMPERATURE
    top_k: int = constants.DEFAULT_TOP_K
    top_p: float = constants.DEFAULT_TOP_P
    frequency_penalty: float = constants.DEFAULT_FREQUENCY_PENALTY
    presence_penalty: float = constants.DEFAULT_PRESENCE_PENALTY
    max_tokens: int = constants.DEFAULT_MAX_TOKENS
    #: HTTP deadline for the whole dispatch, in seconds; values <= 0 use the session default.
    timeout: float = 0.0

    # Web search filters
    search_domains: tuple[str, ...] = ()
    search_recency: str = ""
    location_lat: float = 0.0
    location_lon: float = 0.0
    location_country: str = ""

    # Response enhancement
    return_images: bool = False
    return_related: bool = False
    stream: bool = False

    # Image filters
    image_domains: tuple[str, ...] = ()
    image_formats: tuple[str, ...] = ()

    #: Mutually exclusive with *response_format_regex*.
    response_format_json_schema: str = ""
    #: Mutually exclusive with *response_format_json_schema*.
    response_format_regex: str = ""

    search_mode: str = ""
    search_context_size: str = ""

    # Date filters, MM/DD/YYYY
    search_after_date: str = ""
    search_before_date: str = ""
    last_updated_after: str = ""
    last_updated_before: str = ""

    #: Only meaningful for the deep-research model family.
    reasoning_effort: str = ""

    def __post_init__(self) -> None:
        """Normalize collection fields into ordered, de-duplicated tuples."""
        for name in ("search_domains", "image_domains", "image_formats"):
            object.__setattr__(self, name, _ordered_unique(getattr(self, name)))
        for name in (
            "search_recency",
            "search_mode",
            "search_context_size",
            "reasoning_effort",
        ):
            value = getattr(self, name)
            object.__setattr__(self, name, (value or "").strip())

    def with_defaults(self) -> QueryParams:
        """Return a copy with zero-valued sampling fields set to library defaults."""
        return replace(
            self,
            model=self.model or constants.DEFAULT_MODEL,
            temperature=self.temperature or constants.DEFAULT_TEMPERATURE,
            top_k=self.top_k or constants.DEFAULT_TOP_K,
            top_p=self.top_p or constants.DEFAULT_TOP_P,
            frequency_penalty=(
                self.frequency_penalty or constants.DEFAULT_FREQUENCY_PENALTY
            ),
            presence_penalty=(
                self.presence_penalty or constants.DEFAULT_PRESENCE_PENALTY
            ),
            max_tokens=self.max_tokens or constants.DEFAULT_MAX_TOKENS,
        )

    @property
    def has_location(self) -> bool:
        """Whether any geographic hint differs from its default."""
        return bool(self.location_lat or self.location_lon or self.location_country)
