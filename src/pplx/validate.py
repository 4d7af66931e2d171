"""Static validation of a parameter set before any network activity."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pplx import constants
from pplx.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pplx.params import QueryParams


def _check_enum(field: str, value: str, allowed: Sequence[str]) -> ValidationError | None:
    if value and value not in allowed:
        return ValidationError(
            field, value, f"must be one of: {', '.join(allowed)}"
        )
    return None


def validate(params: QueryParams) -> ValidationError | None:
    """Check enum membership, mutual exclusion and model-family compatibility.

    Checks run in a fixed order and the first failure wins.

    Args:
        params: The parameter set to check.

    Returns:
        The first failure found, or ``None`` when the set is valid.
    """
    err = _check_enum(
        "search_recency", params.search_recency, constants.SEARCH_RECENCY_VALUES
    )
    if err is not None:
        return err

    has_schema = bool(params.response_format_json_schema)
    has_regex = bool(params.response_format_regex)
    if has_schema and has_regex:
        return ValidationError(
            "response_format",
            "",
            "cannot use both json_schema and regex",
            hint="Pass either response_format_json_schema or response_format_regex.",
        )
    if (has_schema or has_regex) and not params.model.startswith(
        constants.RESPONSE_FORMAT_MODEL_PREFIX
    ):
        return ValidationError(
            "response_format",
            "",
            "only supported by sonar models",
            hint=f"Use a sonar model instead of {params.model!r}.",
        )

    for field, value, allowed in (
        ("search_mode", params.search_mode, constants.SEARCH_MODE_VALUES),
        (
            "search_context_size",
            params.search_context_size,
            constants.SEARCH_CONTEXT_SIZE_VALUES,
        ),
        (
            "reasoning_effort",
            params.reasoning_effort,
            constants.REASONING_EFFORT_VALUES,
        ),
    ):
        err = _check_enum(field, value, allowed)
        if err is not None:
            return err

    return None


def ensure_valid(params: QueryParams) -> None:
    """Raise the first validation failure of *params*, if any."""
    err = validate(params)
    if err is not None:
        raise err
