"""Configuration: frozen Config with environment-resolved credentials."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from pplx.constants import API_KEY_ENV_VAR, DEFAULT_BASE_URL, DEFAULT_TIMEOUT_S
from pplx.errors import ConfigurationError

load_dotenv()

_BASE_URL_ENV_VAR = "PPLX_BASE_URL"


@dataclass(frozen=True)
class Config:
    """Immutable session configuration.

    The API key is auto-resolved from ``PPLX_API_KEY`` when not given.
    Query tuning lives in :class:`pplx.params.QueryParams`, not here.

    Example:
        config = Config()  # key read from PPLX_API_KEY
        offline = Config(use_mock=True)
    """

    #: Auto-resolved from ``PPLX_API_KEY`` when *None*.
    api_key: str | None = None
    #: Auto-resolved from ``PPLX_BASE_URL`` when *None*.
    base_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT_S
    use_mock: bool = False

    def __post_init__(self) -> None:
        """Auto-resolve credentials and validate configuration."""
        if self.timeout <= 0:
            raise ConfigurationError(
                f"timeout must be > 0, got {self.timeout}",
                hint="This is the overall HTTP deadline in seconds.",
            )

        if self.base_url is None:
            object.__setattr__(
                self,
                "base_url",
                os.environ.get(_BASE_URL_ENV_VAR) or DEFAULT_BASE_URL,
            )

        if self.api_key is None and not self.use_mock:
            object.__setattr__(self, "api_key", os.environ.get(API_KEY_ENV_VAR))

        if not self.use_mock and not self.api_key:
            raise ConfigurationError(
                f"{API_KEY_ENV_VAR} environment variable is not set",
                hint=f"Set {API_KEY_ENV_VAR} or pass api_key=...",
            )

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(base_url={self.base_url!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"timeout={self.timeout}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
