"""Option compilation: directive order, conditional emission and date parsing."""

from __future__ import annotations

import datetime as dt
import logging

from hypothesis import given
from hypothesis import strategies as st
import pytest

from pplx.compiler import (
    Directive,
    build_messages,
    compile_directives,
    format_date,
    parse_date,
)
from pplx.errors import CompilationError, ValidationError
from pplx.params import QueryParams
from pplx.request import build_request

pytestmark = pytest.mark.unit

BASE_NAMES = [
    "messages",
    "model",
    "frequency_penalty",
    "max_tokens",
    "presence_penalty",
    "temperature",
    "top_k",
    "top_p",
]


def _names(directives: tuple[Directive, ...]) -> list[str]:
    return [d.name for d in directives]


def _compile(**kwargs: object) -> tuple[Directive, ...]:
    return compile_directives(QueryParams(**kwargs).with_defaults())  # type: ignore[arg-type]


# =============================================================================
# Base directives
# =============================================================================


def test_minimal_params_compile_to_base_directives_only() -> None:
    directives = _compile(user_prompt="Why is the sky blue?")

    assert _names(directives) == BASE_NAMES
    values = {d.name: d.value for d in directives}
    assert values["messages"] == [
        {"role": "user", "content": "Why is the sky blue?"}
    ]
    assert values["model"] == "sonar"
    assert values["temperature"] == 0.2
    assert values["max_tokens"] == 4096


def test_system_prompt_comes_first() -> None:
    directives = _compile(user_prompt="q", system_prompt="be brief")

    assert directives[0].value == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "q"},
    ]


def test_history_sits_between_system_and_user() -> None:
    history = [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "answer"},
    ]
    messages = build_messages("sys", "second", history)

    assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
    assert messages[-1]["content"] == "second"


@pytest.mark.parametrize("prompt", ["", "   "])
def test_empty_user_prompt_is_rejected(prompt: str) -> None:
    with pytest.raises(ValidationError, match="user_prompt"):
        _compile(user_prompt=prompt)


# =============================================================================
# Conditional directives
# =============================================================================


def test_unset_fields_emit_nothing() -> None:
    directives = _compile(
        user_prompt="q",
        search_domains=(),
        search_recency="",
        image_formats=(),
        search_mode="",
    )
    assert _names(directives) == BASE_NAMES


def test_full_option_set_compiles_in_fixed_order() -> None:
    directives = _compile(
        user_prompt="q",
        search_domains=("arxiv.org",),
        search_recency="week",
        location_lat=48.85,
        location_lon=2.35,
        location_country="FR",
        return_related=True,
        stream=True,
        image_domains=("nasa.gov",),
        image_formats=("png",),
        response_format_regex=r"\d+",
        search_mode="academic",
        search_context_size="high",
        search_after_date="01/15/2024",
        last_updated_before="12/31/2024",
        model="sonar-deep-research",
        reasoning_effort="high",
    )

    assert _names(directives) == [
        *BASE_NAMES,
        "search_domain_filter",
        "search_recency_filter",
        "user_location",
        "return_related_questions",
        "stream",
        "image_domain_filter",
        "image_format_filter",
        "response_format",
        "search_mode",
        "search_context_size",
        "search_after_date_filter",
        "last_updated_before_filter",
        "reasoning_effort",
    ]


def test_location_is_emitted_when_only_country_is_set() -> None:
    directives = _compile(user_prompt="q", location_country="US")
    values = {d.name: d.value for d in directives}

    assert values["user_location"] == {
        "latitude": 0.0,
        "longitude": 0.0,
        "country": "US",
    }


def test_images_clear_recency_after_it_was_set(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="pplx.compiler"):
        directives = _compile(user_prompt="q", search_recency="day", return_images=True)

    recency = [d.value for d in directives if d.name == "search_recency_filter"]
    assert recency[-1] == ""
    assert "day" not in recency
    assert _names(directives).index("return_images") < len(directives) - 1
    assert build_request(directives).body["search_recency_filter"] == ""
    assert "incompatible with images" in caplog.text


def test_images_without_recency_still_emit_a_clear() -> None:
    names = _names(_compile(user_prompt="q", return_images=True))
    assert names[-2:] == ["return_images", "search_recency_filter"]


def test_unknown_image_format_warns_but_still_compiles(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING, logger="pplx.compiler"):
        directives = _compile(user_prompt="q", image_formats=("png", "tiff"))

    values = {d.name: d.value for d in directives}
    assert values["image_format_filter"] == ["png", "tiff"]
    assert "tiff" in caplog.text
    assert "png'" not in caplog.text


def test_json_schema_is_wrapped_for_the_api() -> None:
    directives = _compile(
        user_prompt="q",
        response_format_json_schema='{"type": "object", "properties": {}}',
    )
    values = {d.name: d.value for d in directives}

    assert values["response_format"] == {
        "type": "json_schema",
        "json_schema": {"schema": {"type": "object", "properties": {}}},
    }


def test_regex_is_wrapped_for_the_api() -> None:
    values = {d.name: d.value for d in _compile(user_prompt="q", response_format_regex="a+")}
    assert values["response_format"] == {"type": "regex", "regex": {"regex": "a+"}}


def test_malformed_json_schema_fails_compilation() -> None:
    with pytest.raises(CompilationError, match="response_format_json_schema"):
        _compile(user_prompt="q", response_format_json_schema="{not json")


def test_reasoning_effort_on_other_models_warns(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="pplx.compiler"):
        directives = _compile(user_prompt="q", reasoning_effort="low")

    assert directives[-1] == Directive("reasoning_effort", "low")
    assert "sonar-deep-research" in caplog.text


def test_duplicate_domains_are_collapsed_in_order() -> None:
    values = {
        d.name: d.value
        for d in _compile(user_prompt="q", search_domains=("a.com", "b.com", "a.com"))
    }
    assert values["search_domain_filter"] == ["a.com", "b.com"]


# =============================================================================
# Dates
# =============================================================================


def test_date_directive_carries_a_parsed_date() -> None:
    values = {d.name: d.value for d in _compile(user_prompt="q", search_before_date="03/01/2025")}
    assert values["search_before_date_filter"] == dt.date(2025, 3, 1)


@pytest.mark.parametrize(
    "raw",
    [
        "13/32/2024",
        "2024-01-15",
        "1/5/2024",
        "01-15-2024",
        "02/30/2024",
        "٠١/١٥/٢٠٢٤",
        "01/15/2024\n",
    ],
)
def test_malformed_dates_fail_compilation(raw: str) -> None:
    with pytest.raises(CompilationError) as excinfo:
        _compile(user_prompt="q", search_after_date=raw)

    assert excinfo.value.field == "search_after_date"
    assert "invalid format, use MM/DD/YYYY" in str(excinfo.value)


def test_format_date_drops_leading_zeros() -> None:
    assert format_date(dt.date(2024, 1, 5)) == "1/5/2024"


@given(st.dates(min_value=dt.date(1000, 1, 1), max_value=dt.date(9999, 12, 31)))
def test_dates_round_trip_through_the_strict_layout(day: dt.date) -> None:
    raw = f"{day.month:02d}/{day.day:02d}/{day.year:04d}"
    assert parse_date(raw, "search_after_date") == day


@given(
    recency=st.sampled_from(["", "hour", "day", "week", "month", "year"]),
    domains=st.lists(st.sampled_from(["a.com", "b.org", "c.net"]), max_size=3),
)
def test_images_never_reach_the_wire_with_a_recency_filter(
    recency: str, domains: list[str]
) -> None:
    directives = _compile(
        user_prompt="q",
        search_recency=recency,
        search_domains=tuple(domains),
        return_images=True,
    )
    body = build_request(directives).to_json()

    assert "search_recency_filter" not in body
    assert body["return_images"] is True
