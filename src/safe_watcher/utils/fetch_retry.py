"""Bounded-retry wrapper around a single HTTP GET."""

import logging
from collections.abc import Callable

import httpx

from ..errors import ResponseValidationError

logger = logging.getLogger(__name__)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    retries: int = 3,
    validate: Callable[[httpx.Response], None] | None = None,
) -> httpx.Response:
    """GET ``url`` and retry immediately on failure.

    Args:
        client: HTTP client used for the request
        url: Absolute URL to fetch
        retries: Additional attempts after the first one
        validate: Hook that raises ``ResponseValidationError`` when a
            response is unusable, turning it into a retryable failure

    Returns:
        The first response that passed validation

    Raises:
        httpx.HTTPError: If every attempt failed at the transport level
        ResponseValidationError: If every attempt was rejected by ``validate``
    """
    last_error: Exception | None = None
    for attempt in range(retries + 1):
        try:
            response: httpx.Response = await client.get(url)
            if validate is not None:
                validate(response)
            return response
        except (httpx.HTTPError, ResponseValidationError) as e:
            last_error = e
            logger.warning(f"Request to {url} failed (attempt {attempt + 1}/{retries + 1}): {e}")

    assert last_error is not None
    raise last_error
