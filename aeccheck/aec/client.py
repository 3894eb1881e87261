"""AEC data model GraphQL client.

Fetches element/property pages for a model (element group) and wraps every
transport, HTTP or GraphQL failure in RemoteFetchError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from aeccheck.aec.normalizer import is_filter_syntax_error
from aeccheck.config import AECConfig
from aeccheck.errors import FilterSyntaxError, RemoteFetchError

logger = logging.getLogger(__name__)

ELEMENTS_BY_GROUP_QUERY = """
query GetElementsFromCategory($elementGroupId: ID!, $propertyFilter: String!, $cursor: String, $limit: Int) {
  elementsByElementGroup(
    elementGroupId: $elementGroupId,
    filter: { query: $propertyFilter },
    pagination: { cursor: $cursor, limit: $limit }
  ) {
    pagination { cursor pageSize }
    results {
      id
      name
      alternativeIdentifiers {
        revitElementId
        externalElementId
      }
      properties {
        results {
          name
          value
        }
      }
    }
  }
}
"""

RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class AECGraphQLClient:
    """Async client for the AEC data model GraphQL API.

    Usage:
        async with AECGraphQLClient(token) as client:
            elements = await client.fetch_elements(model_id, "property.name.category==Walls")
    """

    def __init__(
        self,
        access_token: str,
        config: AECConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not access_token:
            raise ValueError("Missing AEC access token")

        self.config = config or AECConfig()
        self.client = httpx.AsyncClient(
            timeout=self.config.request_timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
        )

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """POST a GraphQL query, retrying transient failures with linear backoff.

        Returns:
            The ``data`` member of the response

        Raises:
            FilterSyntaxError: If the platform rejects the property filter
            RemoteFetchError: On any other failure after retries
        """
        attempts = max(1, self.config.retry_attempts)

        for attempt in range(1, attempts + 1):
            try:
                response = await self.client.post(
                    self.config.graphql_url, json={"query": query, "variables": variables or {}}
                )
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status in RETRYABLE_STATUS_CODES and attempt < attempts:
                    await self._backoff(attempt, f"HTTP {status}")
                    continue
                raise RemoteFetchError(f"AEC API error: {status} {exc.response.text}") from exc
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt < attempts:
                    await self._backoff(attempt, type(exc).__name__)
                    continue
                raise RemoteFetchError(f"AEC API request failed: {exc!r}") from exc
            except ValueError as exc:
                raise RemoteFetchError(f"AEC API returned malformed JSON: {exc}") from exc

            if not isinstance(payload, dict):
                raise RemoteFetchError("AEC API returned a non-object payload")

            errors = payload.get("errors")
            if isinstance(errors, list) and errors:
                message = str((errors[0] or {}).get("message") or "AEC GraphQL error")
                if is_filter_syntax_error(message):
                    raise FilterSyntaxError(message)
                raise RemoteFetchError(message)

            return payload.get("data") or {}

        raise RemoteFetchError("AEC GraphQL request failed")  # pragma: no cover

    async def _backoff(self, attempt: int, reason: str) -> None:
        wait = self.config.retry_backoff_seconds * attempt
        logger.warning(f"AEC request failed ({reason}), retry {attempt} in {wait:.2f}s")
        await asyncio.sleep(wait)

    async def fetch_elements(self, model_id: str, property_filter: str) -> list[dict[str, Any]]:
        """Fetch every element of a model matching a property filter.

        Follows pagination cursors until the platform returns none.
        """
        elements: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            data = await self.execute(
                ELEMENTS_BY_GROUP_QUERY,
                {
                    "elementGroupId": model_id,
                    "propertyFilter": property_filter,
                    "cursor": cursor,
                    "limit": self.config.page_limit,
                },
            )
            payload = data.get("elementsByElementGroup")
            if not isinstance(payload, dict):
                raise RemoteFetchError("AEC API response is missing elementsByElementGroup")

            page = payload.get("results")
            if isinstance(page, list):
                elements.extend(e for e in page if isinstance(e, dict))

            cursor = (payload.get("pagination") or {}).get("cursor") or None
            if not cursor:
                break

        logger.debug(f"Fetched {len(elements)} elements for filter {property_filter!r}")
        return elements

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> AECGraphQLClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
