"""MCP adapter: expose the query core as a ``query`` tool over stdio."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, Any

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from pplx import constants
from pplx.config import Config
from pplx.engine import run_query
from pplx.errors import ParameterError, PplxError
from pplx.formatting import format_tool_error, format_tool_result
from pplx.params import QueryParams

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from mcp.types import CallToolResult

    from pplx.transport.base import Transport

logger = logging.getLogger(__name__)

SERVER_NAME = "Perplexity MCP Server"
TOOL_NAME = "query"
TOOL_DESCRIPTION = "Query Perplexity AI with extensive search and filtering options"


# --- Argument extraction ---


def _str(args: Mapping[str, Any], key: str) -> str:
    value = args.get(key)
    return value if isinstance(value, str) else ""


def _float(args: Mapping[str, Any], key: str) -> float:
    value = args.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _int(args: Mapping[str, Any], key: str) -> int:
    return int(_float(args, key))


def _bool(args: Mapping[str, Any], key: str) -> bool:
    value = args.get(key)
    return value if isinstance(value, bool) else False


def _str_list(args: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = args.get(key)
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def params_from_arguments(args: Mapping[str, Any]) -> QueryParams:
    """Translate a loose tool-call payload into a parameter set.

    Values of the wrong type are treated as unset. Numbers are accepted as
    int or float.

    Raises:
        ParameterError: If ``user_prompt`` is missing or empty.
    """
    user_prompt = args.get("user_prompt")
    if not isinstance(user_prompt, str) or not user_prompt:
        raise ParameterError("user_prompt", user_prompt, "must be a non-empty string")

    return QueryParams(
        user_prompt=user_prompt,
        system_prompt=_str(args, "system_prompt"),
        model=_str(args, "model"),
        frequency_penalty=_float(args, "frequency_penalty"),
        max_tokens=_int(args, "max_tokens"),
        presence_penalty=_float(args, "presence_penalty"),
        temperature=_float(args, "temperature"),
        top_k=_int(args, "top_k"),
        top_p=_float(args, "top_p"),
        timeout=_float(args, "timeout"),
        search_domains=_str_list(args, "search_domains"),
        search_recency=_str(args, "search_recency"),
        location_lat=_float(args, "location_lat"),
        location_lon=_float(args, "location_lon"),
        location_country=_str(args, "location_country"),
        return_images=_bool(args, "return_images"),
        return_related=_bool(args, "return_related"),
        stream=_bool(args, "stream"),
        image_domains=_str_list(args, "image_domains"),
        image_formats=_str_list(args, "image_formats"),
        response_format_json_schema=_str(args, "response_format_json_schema"),
        response_format_regex=_str(args, "response_format_regex"),
        search_mode=_str(args, "search_mode"),
        search_context_size=_str(args, "search_context_size"),
        search_after_date=_str(args, "search_after_date"),
        search_before_date=_str(args, "search_before_date"),
        last_updated_after=_str(args, "last_updated_after"),
        last_updated_before=_str(args, "last_updated_before"),
        reasoning_effort=_str(args, "reasoning_effort"),
    )


async def handle_query(
    arguments: Mapping[str, Any],
    *,
    config: Config,
    transport: Transport | None = None,
) -> CallToolResult:
    """Run one tool call through the core and wrap the outcome in an envelope.

    Streaming requests are collected and returned as one complete response.
    """
    try:
        params = params_from_arguments(arguments)
        response = await run_query(params, config=config, transport=transport)
    except PplxError as e:
        logger.info("query tool failed: %s", e)
        return format_tool_error(e)
    return format_tool_result(response)


# --- Server ---


def create_server(
    config: Config,
    *,
    transport_factory: Callable[[], Transport] | None = None,
) -> FastMCP:
    """Build the MCP server with the ``query`` tool registered."""
    server = FastMCP(SERVER_NAME)

    @server.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    async def query(
        user_prompt: Annotated[str, Field(description="The user query/prompt")],
        system_prompt: Annotated[
            str, Field(description="System prompt to guide the AI response")
        ] = "",
        model: Annotated[
            str, Field(description=f"Model to use (default: {constants.DEFAULT_MODEL})")
        ] = "",
        frequency_penalty: Annotated[
            float, Field(description="Frequency penalty for response generation")
        ] = 0.0,
        max_tokens: Annotated[
            int, Field(description="Maximum number of tokens in response")
        ] = 0,
        presence_penalty: Annotated[
            float, Field(description="Presence penalty for response generation")
        ] = 0.0,
        temperature: Annotated[
            float, Field(description="Temperature for response generation")
        ] = 0.0,
        top_k: Annotated[int, Field(description="Top-K sampling parameter")] = 0,
        top_p: Annotated[float, Field(description="Top-P sampling parameter")] = 0.0,
        timeout: Annotated[float, Field(description="HTTP timeout in seconds")] = 0.0,
        search_domains: Annotated[
            list[str], Field(description="Filter search results to specific domains")
        ] = [],  # noqa: B006
        search_recency: Annotated[
            str, Field(description="Filter by time: hour, day, week, month, year")
        ] = "",
        location_lat: Annotated[float, Field(description="User location latitude")] = 0.0,
        location_lon: Annotated[float, Field(description="User location longitude")] = 0.0,
        location_country: Annotated[
            str, Field(description="User location country code")
        ] = "",
        return_images: Annotated[
            bool, Field(description="Include images in response")
        ] = False,
        return_related: Annotated[
            bool, Field(description="Include related questions")
        ] = False,
        stream: Annotated[
            bool,
            Field(
                description=(
                    "Enable streaming responses "
                    "(will be collected and returned as complete response)"
                )
            ),
        ] = False,
        image_domains: Annotated[
            list[str], Field(description="Filter images by domains")
        ] = [],  # noqa: B006
        image_formats: Annotated[
            list[str], Field(description="Filter images by formats (jpg, png, etc.)")
        ] = [],  # noqa: B006
        response_format_json_schema: Annotated[
            str, Field(description="JSON schema for structured output (sonar model only)")
        ] = "",
        response_format_regex: Annotated[
            str, Field(description="Regex pattern for structured output (sonar model only)")
        ] = "",
        search_mode: Annotated[
            str, Field(description="Search mode: web (default) or academic")
        ] = "",
        search_context_size: Annotated[
            str, Field(description="Search context size: low, medium, or high")
        ] = "",
        search_after_date: Annotated[
            str, Field(description="Filter results published after date (MM/DD/YYYY)")
        ] = "",
        search_before_date: Annotated[
            str, Field(description="Filter results published before date (MM/DD/YYYY)")
        ] = "",
        last_updated_after: Annotated[
            str, Field(description="Filter results last updated after date (MM/DD/YYYY)")
        ] = "",
        last_updated_before: Annotated[
            str, Field(description="Filter results last updated before date (MM/DD/YYYY)")
        ] = "",
        reasoning_effort: Annotated[
            str,
            Field(description="Reasoning effort for sonar-deep-research: low, medium, or high"),
        ] = "",
    ) -> str:
        arguments = {
            "user_prompt": user_prompt,
            "system_prompt": system_prompt,
            "model": model,
            "frequency_penalty": frequency_penalty,
            "max_tokens": max_tokens,
            "presence_penalty": presence_penalty,
            "temperature": temperature,
            "top_k": top_k,
            "top_p": top_p,
            "timeout": timeout,
            "search_domains": search_domains,
            "search_recency": search_recency,
            "location_lat": location_lat,
            "location_lon": location_lon,
            "location_country": location_country,
            "return_images": return_images,
            "return_related": return_related,
            "stream": stream,
            "image_domains": image_domains,
            "image_formats": image_formats,
            "response_format_json_schema": response_format_json_schema,
            "response_format_regex": response_format_regex,
            "search_mode": search_mode,
            "search_context_size": search_context_size,
            "search_after_date": search_after_date,
            "search_before_date": search_before_date,
            "last_updated_after": last_updated_after,
            "last_updated_before": last_updated_before,
            "reasoning_effort": reasoning_effort,
        }
        transport = transport_factory() if transport_factory is not None else None
        result = await handle_query(arguments, config=config, transport=transport)
        text = "".join(getattr(c, "text", "") for c in result.content)
        if result.isError:
            raise ToolError(text)
        return text

    return server


def run_stdio(config: Config | None = None) -> None:
    """Resolve configuration and serve the tool over stdio."""
    server = create_server(config or Config())
    logger.info("Starting %s on stdio", SERVER_NAME)
    server.run(transport="stdio")
