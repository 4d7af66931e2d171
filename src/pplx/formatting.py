"""Map a final result onto its sink: terminal text, JSON, or an MCP tool result.

Core fields (content, model, usage) are always present. Optional fields
(search results, images, related questions) appear only when the API sent
them and they are non-empty.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal

from mcp.types import CallToolResult, TextContent

from pplx.errors import OutputError

if TYPE_CHECKING:
    from typing import TextIO

    from pplx.models import CompletionResponse

SinkKind = Literal["text", "json"]


def _search_entries(response: CompletionResponse) -> list[Any]:
    """Return search results, or the deprecated citations when those are absent."""
    if response.search_results:
        return list(response.search_results)
    if response.search_results is None and response.citations:
        return list(response.citations)
    return []


def build_payload(response: CompletionResponse) -> dict[str, Any]:
    """Build the structured result object shared by the JSON and tool sinks."""
    result: dict[str, Any] = {
        "content": response.last_content,
        "model": response.model,
        "usage": response.usage.model_dump(mode="json"),
    }
    if response.search_results:
        result["search_results"] = [
            sr.model_dump(mode="json", exclude_none=True)
            for sr in response.search_results
        ]
    elif response.search_results is None and response.citations:
        result["citations"] = list(response.citations)
    if response.images:
        result["images"] = [img.model_dump(mode="json") for img in response.images]
    if response.related_questions:
        result["related_questions"] = list(response.related_questions)
    return result


def _write(sink: TextIO, text: str) -> None:
    try:
        sink.write(text)
    except OSError as e:
        raise OutputError(f"error writing response: {e}") from e


def render_text(
    response: CompletionResponse,
    sink: TextIO,
    *,
    include_content: bool = True,
) -> None:
    """Write content, citations, images and related questions as plain text.

    Args:
        response: The final result.
        sink: Text stream to write to.
        include_content: Set to ``False`` after the content was already
            streamed incrementally.
    """
    if include_content:
        _write(sink, response.last_content + "\n")

    for i, entry in enumerate(_search_entries(response)):
        if isinstance(entry, str):
            _write(sink, f"[{i}]: {entry}\n")
            continue
        date_info = ""
        if entry.date:
            date_info = f" (date: {entry.date})"
        elif entry.last_updated:
            date_info = f" (updated: {entry.last_updated})"
        _write(sink, f"[{i}]: {entry.title} - {entry.url}{date_info}\n")

    if response.images:
        _write(sink, "\n📸 Images:\n")
        for i, img in enumerate(response.images, start=1):
            _write(
                sink,
                f"[{i}]: {img.image_url} (origin: {img.origin_url}) - "
                f"{img.width}x{img.height}\n",
            )

    if response.related_questions:
        _write(sink, "\n❓ Related Questions:\n")
        for i, question in enumerate(response.related_questions, start=1):
            _write(sink, f"{i}. {question}\n")


def render_json(response: CompletionResponse, sink: TextIO) -> None:
    """Write the structured result as indented JSON."""
    _write(sink, json.dumps(build_payload(response), indent=2, ensure_ascii=False) + "\n")


def render(response: CompletionResponse, sink: TextIO, kind: SinkKind = "text") -> None:
    """Render *response* to *sink* in the requested shape."""
    if kind == "json":
        render_json(response, sink)
    else:
        render_text(response, sink)


def format_tool_result(response: CompletionResponse | None) -> CallToolResult:
    """Wrap a result in an MCP tool-result envelope."""
    if response is None:
        return _tool_error("No response received")
    if not response.choices:
        return _tool_error("Response contains no choices")
    text = json.dumps(build_payload(response), ensure_ascii=False)
    return CallToolResult(content=[TextContent(type="text", text=text)])


def format_tool_error(exc: BaseException) -> CallToolResult:
    """Wrap a failure in an MCP error envelope."""
    return _tool_error(f"Request failed: {exc}")


def _tool_error(message: str) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=message)],
        isError=True,
    )
