"""Terminal adapter: ``pplx query``, ``pplx chat`` and ``pplx mcp-stdio``.

Examples:
    pplx query -p "What changed in Python 3.13?" -r week
    pplx query -p "Latest JWST images" -i --image-formats png,jpg --json
    pplx chat -S
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import re
import string
import sys
from dataclasses import replace
from typing import TYPE_CHECKING

from pplx import constants
from pplx.config import Config
from pplx.engine import Conversation, run_query, summarize
from pplx.errors import EXIT_SUCCESS, PplxError, exit_code_for
from pplx.formatting import render_json, render_text
from pplx.params import QueryParams
from pplx.stream import IncrementalRenderer

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from typing import TextIO

    from pplx.models import CompletionResponse

    OnUpdate = Callable[[CompletionResponse], object] | None
    Ask = Callable[[OnUpdate], Awaitable[CompletionResponse]]

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
LOG_FORMATS = ("text", "json")

_KEY_PREFIXES = ("pplx-", "sk-", "pk-", "api-", "key-", "token-", "secret-")
_KEY_CHARS = frozenset(string.ascii_letters + string.digits + "-_")
_WORD_RE = re.compile(r"\S+")


def mask_api_key(key: str) -> str:
    """Keep the first and last four characters of a secret.

    Examples:
        ``"pplx-1234567890abcdef"`` -> ``"pplx-****-cdef"``;
        anything shorter than 12 characters -> ``"[REDACTED]"``.
    """
    if not key:
        return "[EMPTY]"
    if len(key) < 12:
        return "[REDACTED]"
    return f"{key[:4]}-****-{key[-4:]}"


def looks_like_api_key(token: str) -> bool:
    """True for known key prefixes or long runs of key-like characters."""
    token = token.strip()
    if len(token) < 10:
        return False
    if token.startswith(_KEY_PREFIXES):
        return True
    if len(token) < 20 or " " in token:
        return False
    return sum(c in _KEY_CHARS for c in token) / len(token) >= 0.9


def _mask_word(match: re.Match[str]) -> str:
    word = match.group(0)
    core = word.rstrip(".,;:!?")
    name, sep, value = core.rpartition("=")
    if sep and looks_like_api_key(value):
        return f"{name}={mask_api_key(value)}{word[len(core):]}"
    if looks_like_api_key(core):
        return mask_api_key(core) + word[len(core):]
    return word


def redact_secrets(text: str) -> str:
    """Mask every whitespace-separated word of *text* that looks like a key."""
    return _WORD_RE.sub(_mask_word, text)


class _RedactSecrets(logging.Filter):
    """Mask API-key-like words in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg, record.args = redacted, None
        return True


class _JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str, fmt: str, stream: TextIO | None = None) -> None:
    """Route library logs to stderr with the requested level and shape."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(_RedactSecrets())
    if fmt == "json":
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(level=LOG_LEVELS[level], handlers=[handler], force=True)


def _csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


# --- Parser ---


def _add_query_args(parser: argparse.ArgumentParser) -> None:
    sampling = parser.add_argument_group("model and sampling")
    sampling.add_argument(
        "-m",
        "--model",
        default=constants.DEFAULT_MODEL,
        help="Model id, see https://docs.perplexity.ai/guides/model-cards",
    )
    sampling.add_argument(
        "-t", "--temperature", type=float, default=constants.DEFAULT_TEMPERATURE
    )
    sampling.add_argument(
        "-T", "--max-tokens", type=int, default=constants.DEFAULT_MAX_TOKENS
    )
    sampling.add_argument("-k", "--top-k", type=int, default=constants.DEFAULT_TOP_K)
    sampling.add_argument("--top-p", type=float, default=constants.DEFAULT_TOP_P)
    sampling.add_argument(
        "--frequency-penalty",
        type=float,
        default=constants.DEFAULT_FREQUENCY_PENALTY,
    )
    sampling.add_argument(
        "--presence-penalty",
        type=float,
        default=constants.DEFAULT_PRESENCE_PENALTY,
    )
    sampling.add_argument(
        "--timeout",
        type=float,
        default=constants.DEFAULT_TIMEOUT_S,
        help="HTTP timeout in seconds.",
    )

    search = parser.add_argument_group("search")
    search.add_argument(
        "-d",
        "--search-domains",
        type=_csv,
        action="extend",
        default=[],
        help="Comma-separated domains to restrict search results to.",
    )
    search.add_argument(
        "-r",
        "--search-recency",
        default="",
        help="Filter by time: hour, day, week, month, year.",
    )
    search.add_argument("--location-lat", type=float, default=0.0)
    search.add_argument("--location-lon", type=float, default=0.0)
    search.add_argument("--location-country", default="")
    search.add_argument(
        "-a", "--search-mode", default="", help="Search mode: web or academic."
    )
    search.add_argument(
        "-c",
        "--search-context-size",
        default="",
        help="Search context size: low, medium or high.",
    )
    for flag, what in (
        ("--search-after-date", "published after"),
        ("--search-before-date", "published before"),
        ("--last-updated-after", "last updated after"),
        ("--last-updated-before", "last updated before"),
    ):
        search.add_argument(
            flag, default="", help=f"Filter results {what} date (MM/DD/YYYY)."
        )

    response = parser.add_argument_group("response")
    response.add_argument(
        "-i",
        "--return-images",
        action="store_true",
        help="Include images (disables --search-recency).",
    )
    response.add_argument(
        "-q", "--return-related", action="store_true", help="Include related questions."
    )
    response.add_argument(
        "-S", "--stream", action="store_true", help="Stream the answer as it arrives."
    )
    response.add_argument(
        "--image-domains", type=_csv, action="extend", default=[]
    )
    response.add_argument(
        "--image-formats",
        type=_csv,
        action="extend",
        default=[],
        help="Comma-separated image formats (jpg, png, ...).",
    )
    response.add_argument(
        "--response-format-json-schema",
        default="",
        help="JSON schema for structured output (sonar models only).",
    )
    response.add_argument(
        "--response-format-regex",
        default="",
        help="Regex for structured output (sonar models only).",
    )
    response.add_argument(
        "--reasoning-effort",
        default="",
        help="Reasoning effort for sonar-deep-research: low, medium or high.",
    )
    response.add_argument(
        "--json", action="store_true", help="Print the result as JSON."
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--log-level", choices=sorted(LOG_LEVELS), default="info")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default="text")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Answer from the offline mock transport instead of the API.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pplx", description="Query and chat with the Perplexity API."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    query = sub.add_parser("query", help="Send a single query.")
    query.add_argument("-p", "--user-prompt", default="")
    query.add_argument("-s", "--sys-prompt", default="")
    _add_query_args(query)
    _add_common_args(query)

    chat = sub.add_parser("chat", help="Interactive multi-turn chat.")
    _add_query_args(chat)
    _add_common_args(chat)

    mcp = sub.add_parser("mcp-stdio", help="Serve the query tool over MCP stdio.")
    _add_common_args(mcp)
    return parser


def params_from_namespace(args: argparse.Namespace) -> QueryParams:
    """Build a parameter set from parsed flags."""
    return QueryParams(
        user_prompt=getattr(args, "user_prompt", ""),
        system_prompt=getattr(args, "sys_prompt", ""),
        model=args.model,
        temperature=args.temperature,
        top_k=args.top_k,
        top_p=args.top_p,
        frequency_penalty=args.frequency_penalty,
        presence_penalty=args.presence_penalty,
        max_tokens=args.max_tokens,
        timeout=args.timeout,
        search_domains=tuple(args.search_domains),
        search_recency=args.search_recency,
        location_lat=args.location_lat,
        location_lon=args.location_lon,
        location_country=args.location_country,
        return_images=args.return_images,
        return_related=args.return_related,
        stream=args.stream,
        image_domains=tuple(args.image_domains),
        image_formats=tuple(args.image_formats),
        response_format_json_schema=args.response_format_json_schema,
        response_format_regex=args.response_format_regex,
        search_mode=args.search_mode,
        search_context_size=args.search_context_size,
        search_after_date=args.search_after_date,
        search_before_date=args.search_before_date,
        last_updated_after=args.last_updated_after,
        last_updated_before=args.last_updated_before,
        reasoning_effort=args.reasoning_effort,
    )


# --- Commands ---


def read_input(label: str, *, stdin: TextIO, stdout: TextIO) -> str:
    """Read lines until an empty line or EOF; lines are joined with spaces."""
    stdout.write(f"{label}: (set an empty line to validate the entry)\n")
    stdout.flush()
    lines: list[str] = []
    while line := stdin.readline().rstrip("\r\n"):
        lines.append(line)
    return " ".join(lines)


async def _answer(
    ask: Ask,
    params: QueryParams,
    *,
    as_json: bool,
    stdout: TextIO,
) -> CompletionResponse:
    """Run *ask* and print its result, streaming content when enabled."""
    if params.stream and not as_json:
        renderer = IncrementalRenderer(stdout)
        response = await ask(renderer)
        stdout.write("\n")
        render_text(response, stdout, include_content=False)
    else:
        response = await ask(None)
        if as_json:
            render_json(response, stdout)
        else:
            render_text(response, stdout)
    logger.debug("Query finished: %s", summarize(response))
    return response


async def run_query_command(
    args: argparse.Namespace, *, config: Config, stdout: TextIO
) -> None:
    params = params_from_namespace(args)

    async def ask(on_update: OnUpdate) -> CompletionResponse:
        return await run_query(params, config=config, on_update=on_update)

    await _answer(ask, params, as_json=args.json, stdout=stdout)


async def run_chat_command(
    args: argparse.Namespace,
    *,
    config: Config,
    stdin: TextIO,
    stdout: TextIO,
) -> None:
    system = read_input(
        "system message (optional - enter to skip)", stdin=stdin, stdout=stdout
    )
    params = replace(params_from_namespace(args), system_prompt=system)
    async with Conversation(params, config=config) as conversation:
        while True:
            prompt = read_input("Ask anything (enter to quit)", stdin=stdin, stdout=stdout)
            if not prompt:
                return

            async def ask(
                on_update: OnUpdate, _prompt: str = prompt
            ) -> CompletionResponse:
                return await conversation.ask(_prompt, on_update=on_update)

            await _answer(ask, params, as_json=args.json, stdout=stdout)


def _report(exc: BaseException, stderr: TextIO) -> None:
    stderr.write(f"Error: {exc}\n")
    hint = getattr(exc, "hint", None)
    if hint:
        stderr.write(f"Hint: {hint}\n")


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """Entry point for the ``pplx`` console script; returns the exit code."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format, stderr)

    try:
        config = Config(use_mock=args.mock)
        if args.command == "mcp-stdio":
            from pplx.mcp_server import run_stdio

            run_stdio(config)
        elif args.command == "chat":
            asyncio.run(
                run_chat_command(args, config=config, stdin=stdin, stdout=stdout)
            )
        else:
            asyncio.run(run_query_command(args, config=config, stdout=stdout))
    except KeyboardInterrupt:
        return 130
    except (PplxError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        _report(exc, stderr)
        return exit_code_for(exc)
    return EXIT_SUCCESS


if __name__ == "__main__":
    raise SystemExit(main())
