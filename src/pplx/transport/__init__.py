"""Transport implementations."""

from .base import Transport
from .mock import MockTransport
from .perplexity import PerplexityTransport

__all__ = [
    "MockTransport",
    "PerplexityTransport",
    "Transport",
]
