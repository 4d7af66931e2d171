"""pplx: compile, dispatch and render Perplexity queries.

Public API:
    - run_query(): Validate, compile and dispatch one query
    - Conversation: Multi-turn session carrying message history
    - QueryParams: The full input to one query
    - Config: Session configuration (credentials, base URL, timeout)
    - render_text() / render_json(): Terminal sinks
    - format_tool_result() / format_tool_error(): MCP tool envelopes
"""

from __future__ import annotations

import logging

from pplx.compiler import Directive, compile_directives
from pplx.config import Config
from pplx.dispatch import dispatch
from pplx.engine import Conversation, run_query
from pplx.errors import (
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
from pplx.formatting import (
    build_payload,
    format_tool_error,
    format_tool_result,
    render,
    render_json,
    render_text,
)
from pplx.models import CompletionResponse
from pplx.params import QueryParams
from pplx.validate import validate

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("pplx-cli")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("pplx").addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "CompilationError",
    "CompletionResponse",
    "Config",
    "ConfigurationError",
    "Conversation",
    "Directive",
    "OutputError",
    "ParameterError",
    "PplxError",
    "QueryParams",
    "RateLimitError",
    "StreamError",
    "ValidationError",
    "build_payload",
    "compile_directives",
    "dispatch",
    "exit_code_for",
    "format_tool_error",
    "format_tool_result",
    "render",
    "render_json",
    "render_text",
    "run_query",
    "validate",
]
