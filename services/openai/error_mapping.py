"""Translate OpenAI SDK exceptions into the service error taxonomy."""

from typing import Type, TypeVar

import httpx
import openai

from services.errors import UpstreamError

E = TypeVar("E", bound=UpstreamError)


def to_upstream_error(exc: Exception, error_cls: Type[E], operation: str) -> E:
    """Return an `error_cls` instance carrying the upstream status and message."""
    if isinstance(exc, (openai.APITimeoutError, httpx.TimeoutException)):
        return error_cls(f"{operation} timed out: {exc}")
    if isinstance(exc, openai.APIStatusError):
        return error_cls(f"{operation} API error: {exc.message}", status=exc.status_code)
    if isinstance(exc, (openai.APIConnectionError, httpx.HTTPError)):
        return error_cls(f"{operation} network error: {exc}")
    return error_cls(f"{operation} failed: {exc}")
