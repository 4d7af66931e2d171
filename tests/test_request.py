"""Request assembly: directive folding, wire body and SDK kwargs."""

from __future__ import annotations

import datetime as dt

import pytest

from pplx.compiler import Directive, compile_directives
from pplx.errors import ValidationError
from pplx.params import QueryParams
from pplx.request import CompletionRequest, build_request

pytestmark = pytest.mark.unit


def _request(**kwargs: object) -> CompletionRequest:
    params = QueryParams(**kwargs).with_defaults()  # type: ignore[arg-type]
    return build_request(compile_directives(params))


def test_later_directive_with_same_name_wins() -> None:
    request = build_request(
        [Directive("search_recency_filter", "week"), Directive("search_recency_filter", "")]
    )
    assert request.body == {"search_recency_filter": ""}


def test_wire_body_drops_cleared_recency_and_formats_dates() -> None:
    request = build_request(
        [
            Directive("model", "sonar"),
            Directive("search_recency_filter", ""),
            Directive("search_after_date_filter", dt.date(2024, 1, 5)),
        ]
    )

    assert request.to_json() == {
        "model": "sonar",
        "search_after_date_filter": "1/5/2024",
    }


def test_location_and_context_size_are_grouped_under_web_search_options() -> None:
    body = _request(
        user_prompt="q", location_country="DE", search_context_size="low"
    ).to_json()

    assert "user_location" not in body
    assert body["web_search_options"] == {
        "user_location": {"latitude": 0.0, "longitude": 0.0, "country": "DE"},
        "search_context_size": "low",
    }


def test_openai_kwargs_split_standard_and_perplexity_fields() -> None:
    kwargs = _request(
        user_prompt="q",
        stream=True,
        search_domains=("arxiv.org",),
        return_related=True,
        response_format_regex="x",
    ).openai_kwargs()

    assert kwargs["model"] == "sonar"
    assert kwargs["messages"] == [{"role": "user", "content": "q"}]
    assert kwargs["response_format"] == {"type": "regex", "regex": {"regex": "x"}}
    assert "stream" not in kwargs
    assert kwargs["extra_body"]["top_k"] == 0
    assert kwargs["extra_body"]["search_domain_filter"] == ["arxiv.org"]
    assert kwargs["extra_body"]["return_related_questions"] is True


def test_validate_requires_a_model() -> None:
    request = build_request([Directive("messages", [{"role": "user", "content": "q"}])])
    with pytest.raises(ValidationError, match="model"):
        request.validate()


def test_validate_requires_messages() -> None:
    with pytest.raises(ValidationError, match="messages"):
        build_request([Directive("model", "sonar")]).validate()


def test_validate_requires_last_message_from_user() -> None:
    request = build_request(
        [
            Directive("model", "sonar"),
            Directive("messages", [{"role": "system", "content": "s"}]),
        ]
    )
    with pytest.raises(ValidationError, match="last message"):
        request.validate()
