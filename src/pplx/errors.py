"""Exception hierarchy for pplx."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

# CLI exit codes, one per failure kind.
EXIT_SUCCESS = 0
EXIT_GENERAL = 1
EXIT_VALIDATION = 2
EXIT_API = 3
EXIT_CONFIGURATION = 4
EXIT_IO = 5


class PplxError(Exception):
    """Base exception for all pplx errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ValidationError(PplxError):
    """A parameter set violates a static rule.

    ``value`` is empty when the failure concerns a combination of fields
    rather than a single value.
    """

    def __init__(
        self,
        field: str,
        value: str,
        reason: str,
        *,
        hint: str | None = None,
    ) -> None:
        if value:
            message = f"validation failed for {field}={value}: {reason}"
        else:
            message = f"validation failed for {field}: {reason}"
        super().__init__(message, hint=hint)
        self.field = field
        self.value = value
        self.reason = reason


class CompilationError(ValidationError):
    """A field passed validation but its content is not well-formed."""


class ParameterError(PplxError):
    """A tool-call argument could not be extracted."""

    def __init__(self, parameter: str, value: object, reason: str) -> None:
        if value is None:
            message = f"parameter error for {parameter}: {reason}"
        else:
            message = f"parameter error for {parameter}={value}: {reason}"
        super().__init__(message)
        self.parameter = parameter
        self.value = value
        self.reason = reason


class ConfigurationError(PplxError):
    """Configuration validation or resolution failed."""


class APIError(PplxError):
    """Remote call failed (network, status, malformed body, deadline)."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class RateLimitError(APIError):
    """Rate limit exceeded (HTTP 429)."""


class StreamError(APIError):
    """A stream produced no observation or could not be consumed."""

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            f"stream error: {message}",
            hint=hint,
            status_code=status_code,
            provider="perplexity",
            phase="stream",
        )


class OutputError(PplxError):
    """Writing a result to its sink failed."""


def exit_code_for(exc: BaseException) -> int:
    """Map an exception to the CLI exit code for its failure kind."""
    if isinstance(exc, (ValidationError, ParameterError)):
        return EXIT_VALIDATION
    if isinstance(exc, APIError):
        return EXIT_API
    if isinstance(exc, ConfigurationError):
        return EXIT_CONFIGURATION
    if isinstance(exc, (OutputError, OSError)):
        return EXIT_IO
    return EXIT_GENERAL


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
