from __future__ import annotations

import pytest

from pplx.errors import (
    EXIT_API,
    EXIT_CONFIGURATION,
    EXIT_GENERAL,
    EXIT_IO,
    EXIT_VALIDATION,
    APIError,
    CompilationError,
    ConfigurationError,
    OutputError,
    ParameterError,
    PplxError,
    RateLimitError,
    StreamError,
    ValidationError,
    exit_code_for,
)

pytestmark = pytest.mark.unit


def test_api_error_structured_metadata() -> None:
    err = APIError(
        "boom",
        hint="do this",
        status_code=503,
        provider="perplexity",
        phase="complete",
    )

    assert str(err) == "boom"
    assert err.hint == "do this"
    assert err.status_code == 503
    assert err.provider == "perplexity"
    assert err.phase == "complete"


def test_api_error_defaults_to_none() -> None:
    err = APIError("fail")
    assert err.hint is None
    assert err.status_code is None
    assert err.provider is None
    assert err.phase is None


def test_validation_error_message_shapes() -> None:
    single = ValidationError("search_mode", "news", "must be one of: web, academic")
    combo = ValidationError("response_format", "", "cannot use both json_schema and regex")

    assert str(single) == "validation failed for search_mode=news: must be one of: web, academic"
    assert str(combo) == "validation failed for response_format: cannot use both json_schema and regex"
    assert single.field == "search_mode"
    assert single.reason == "must be one of: web, academic"


def test_parameter_error_message_shapes() -> None:
    assert str(ParameterError("user_prompt", None, "must be a non-empty string")) == (
        "parameter error for user_prompt: must be a non-empty string"
    )
    assert str(ParameterError("user_prompt", 42, "must be a non-empty string")) == (
        "parameter error for user_prompt=42: must be a non-empty string"
    )


def test_stream_error_is_an_api_error_in_the_stream_phase() -> None:
    err = StreamError("no response received from stream", status_code=500)

    assert isinstance(err, APIError)
    assert str(err) == "stream error: no response received from stream"
    assert err.phase == "stream"
    assert err.status_code == 500


def test_subclass_hierarchy() -> None:
    """Every specific failure is catchable as PplxError."""
    for err in (
        CompilationError("f", "v", "r"),
        RateLimitError("slow", status_code=429),
        OutputError("io"),
        ConfigurationError("cfg"),
    ):
        assert isinstance(err, PplxError)
    assert isinstance(CompilationError("f", "v", "r"), ValidationError)


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (ValidationError("f", "v", "r"), EXIT_VALIDATION),
        (CompilationError("f", "v", "r"), EXIT_VALIDATION),
        (ParameterError("p", None, "r"), EXIT_VALIDATION),
        (APIError("x"), EXIT_API),
        (RateLimitError("x"), EXIT_API),
        (StreamError("x"), EXIT_API),
        (ConfigurationError("x"), EXIT_CONFIGURATION),
        (OutputError("x"), EXIT_IO),
        (BrokenPipeError("x"), EXIT_IO),
        (RuntimeError("x"), EXIT_GENERAL),
    ],
)
def test_exit_code_per_failure_kind(exc: BaseException, code: int) -> None:
    assert exit_code_for(exc) == code
