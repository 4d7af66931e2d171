"""Compile a validated parameter set into an ordered directive sequence.

Directive order is fixed so compiled sequences are deterministic: base
sampling directives, search filters, response enhancement, image filters,
response shape, search mode/context, date filters, reasoning effort.
"""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from pplx import constants
from pplx.errors import CompilationError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from pplx.params import QueryParams

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"([0-9]{2})/([0-9]{2})/([0-9]{4})")

# Parameter field -> directive name, in compile order.
_DATE_DIRECTIVES: tuple[tuple[str, str], ...] = (
    ("search_after_date", "search_after_date_filter"),
    ("search_before_date", "search_before_date_filter"),
    ("last_updated_after", "last_updated_after_filter"),
    ("last_updated_before", "last_updated_before_filter"),
)


@dataclass(frozen=True)
class Directive:
    """One atomic instruction applied to the outgoing request."""

    name: str
    value: Any


def parse_date(value: str, field: str) -> dt.date:
    """Parse *value* strictly as ``MM/DD/YYYY``.

    Raises:
        CompilationError: If the layout does not match or the date does not exist.
    """
    m = _DATE_RE.fullmatch(value)
    if m is not None:
        month, day, year = (int(g) for g in m.groups())
        try:
            return dt.date(year, month, day)
        except ValueError:
            pass
    raise CompilationError(
        field,
        value,
        f"invalid format, use {constants.DATE_LAYOUT}",
        hint="Example: 01/15/2024",
    )


def format_date(value: dt.date) -> str:
    """Render a date in the API's ``M/D/YYYY`` wire form."""
    return f"{value.month}/{value.day}/{value.year}"


def build_messages(
    system_prompt: str,
    user_prompt: str,
    history: Iterable[Mapping[str, str]] = (),
) -> list[dict[str, str]]:
    """Assemble the role/content message list for one request.

    The system message comes first when non-empty, then prior turns, then
    the new user prompt.
    """
    if not user_prompt or not user_prompt.strip():
        raise ValidationError(
            "user_prompt", "", "must be a non-empty string"
        )
    messages: list[dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.extend(
        {"role": turn["role"], "content": turn["content"]} for turn in history
    )
    messages.append({"role": "user", "content": user_prompt})
    return messages


def compile_directives(
    params: QueryParams,
    *,
    history: Iterable[Mapping[str, str]] = (),
) -> tuple[Directive, ...]:
    """Convert a validated parameter set into request directives.

    Assumes :func:`pplx.validate.validate` already passed.

    Args:
        params: The parameter set, with defaults applied.
        history: Prior conversation turns placed between system and user
            messages.

    Returns:
        The directive sequence in its fixed order.

    Raises:
        ValidationError: If the user prompt is empty.
        CompilationError: If the JSON schema or a date field is malformed.
    """
    out: list[Directive] = [
        Directive(
            "messages",
            build_messages(params.system_prompt, params.user_prompt, history),
        ),
        Directive("model", params.model),
        Directive("frequency_penalty", params.frequency_penalty),
        Directive("max_tokens", params.max_tokens),
        Directive("presence_penalty", params.presence_penalty),
        Directive("temperature", params.temperature),
        Directive("top_k", params.top_k),
        Directive("top_p", params.top_p),
    ]

    _add_search(out, params)
    _add_enhancements(out, params)
    _add_image_filters(out, params)
    _add_response_format(out, params)
    if params.search_mode:
        out.append(Directive("search_mode", params.search_mode))
    if params.search_context_size:
        out.append(Directive("search_context_size", params.search_context_size))
    _add_dates(out, params)
    _add_reasoning(out, params)
    return tuple(out)


def _add_search(out: list[Directive], params: QueryParams) -> None:
    if params.search_domains:
        out.append(Directive("search_domain_filter", list(params.search_domains)))
    if params.search_recency:
        # Image results cannot be time-filtered.
        if params.return_images:
            logger.warning(
                "search-recency filter is incompatible with images, ignoring search-recency"
            )
            out.append(Directive("search_recency_filter", ""))
        else:
            out.append(Directive("search_recency_filter", params.search_recency))
    if params.has_location:
        out.append(
            Directive(
                "user_location",
                {
                    "latitude": params.location_lat,
                    "longitude": params.location_lon,
                    "country": params.location_country,
                },
            )
        )


def _add_enhancements(out: list[Directive], params: QueryParams) -> None:
    if params.return_images:
        out.append(Directive("return_images", True))
        out.append(Directive("search_recency_filter", ""))
    if params.return_related:
        out.append(Directive("return_related_questions", True))
    if params.stream:
        out.append(Directive("stream", True))


def _add_image_filters(out: list[Directive], params: QueryParams) -> None:
    if params.image_domains:
        out.append(Directive("image_domain_filter", list(params.image_domains)))
    if params.image_formats:
        for fmt in params.image_formats:
            if fmt.lower() not in constants.KNOWN_IMAGE_FORMATS:
                logger.warning(
                    "Image format '%s' may not be supported. Common formats are: %s",
                    fmt,
                    ", ".join(sorted(constants.KNOWN_IMAGE_FORMATS)),
                )
        out.append(Directive("image_format_filter", list(params.image_formats)))


def _add_response_format(out: list[Directive], params: QueryParams) -> None:
    if params.response_format_json_schema:
        try:
            schema = json.loads(params.response_format_json_schema)
        except json.JSONDecodeError as e:
            raise CompilationError(
                "response_format_json_schema",
                params.response_format_json_schema,
                f"invalid JSON schema: {e}",
            ) from e
        out.append(
            Directive(
                "response_format",
                {"type": "json_schema", "json_schema": {"schema": schema}},
            )
        )
    if params.response_format_regex:
        out.append(
            Directive(
                "response_format",
                {"type": "regex", "regex": {"regex": params.response_format_regex}},
            )
        )


def _add_dates(out: list[Directive], params: QueryParams) -> None:
    for field, name in _DATE_DIRECTIVES:
        raw = getattr(params, field)
        if raw:
            out.append(Directive(name, parse_date(raw, field)))


def _add_reasoning(out: list[Directive], params: QueryParams) -> None:
    if not params.reasoning_effort:
        return
    if constants.REASONING_EFFORT_MODEL_MARKER not in params.model:
        logger.warning(
            "reasoning-effort is only supported by sonar-deep-research model"
        )
    out.append(Directive("reasoning_effort", params.reasoning_effort))
