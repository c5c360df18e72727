"""Hasura GraphQL client for the directory data."""

import logging
from typing import Any, Dict, Optional

import httpx

from frames_directory.errors import GraphQLError, UpstreamError

logger = logging.getLogger(__name__)


class HasuraClient:
    """Posts GraphQL queries to the directory's Hasura endpoint.

    Args:
        http: Shared async HTTP client
        url: GraphQL endpoint
        auth: Value for the ``Authorization`` header; anonymous when None
    """

    source = "hasura"

    def __init__(self, http: httpx.AsyncClient, url: str, auth: Optional[str] = None):
        self.http = http
        self.url = url
        self.auth = auth

    async def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Run a query and return its ``data`` object.

        Raises:
            UpstreamError: On transport failures and non-2xx responses
            GraphQLError: When the response carries an ``errors`` list
        """
        return await self._post(query, variables)

    async def mutate(
        self, mutation: str, variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run a mutation and return its ``data`` object. Raises like ``query``."""
        logger.debug(f"Hasura mutation with variables {sorted((variables or {}).keys())}")
        return await self._post(mutation, variables)

    async def _post(self, document: str, variables: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.auth:
            headers["Authorization"] = self.auth

        try:
            response = await self.http.post(
                self.url,
                json={"query": document, "variables": variables or {}},
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                self.source,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(self.source, f"request failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(self.source, f"invalid JSON response: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamError(self.source, "unexpected response shape")
        if payload.get("errors"):
            raise GraphQLError(self.source, payload["errors"])

        data = payload.get("data")
        if data is None:
            raise UpstreamError(self.source, "response has no data")
        return data
