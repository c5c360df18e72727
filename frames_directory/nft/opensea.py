"""OpenSea REST v2 fetchers for accounts and collections."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from frames_directory import config
from frames_directory.errors import UpstreamError
from frames_directory.models import ContractDetails

logger = logging.getLogger(__name__)

# Account lookups answer 400 for malformed and 404 for unknown addresses
_NO_ACCOUNT_STATUSES = (400, 404)


class OpenSeaClient:
    """Thin OpenSea API client. Caching happens in ``NFTCollectionsService``."""

    source = "opensea"

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: Optional[str] = None,
        base_url: str = config.OPENSEA_API_URL,
    ):
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    def _headers(self) -> Dict[str, str]:
        headers = {"accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            return await self.http.get(
                f"{self.base_url}{path}", params=params, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise UpstreamError(self.source, f"request failed: {e}") from e

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        if response.is_error:
            raise UpstreamError(
                self.source,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(self.source, f"invalid JSON response: {e}") from e

    async def fetch_username(self, address: str) -> Optional[str]:
        """
        Look up the OpenSea username registered for an address.

        Returns:
            The username, or None when OpenSea has no account for the address

        Raises:
            UpstreamError: On any other failure
        """
        response = await self._get(f"/accounts/{address}")
        if response.status_code in _NO_ACCOUNT_STATUSES:
            logger.debug(f"No OpenSea account for {address} (HTTP {response.status_code})")
            return None
        return self._json(response).get("username") or None

    async def fetch_collections(self, username: str) -> List[ContractDetails]:
        """
        List the contracts of every collection created by ``username``.

        A collection deployed on several chains yields one row per contract.

        Raises:
            UpstreamError: On any failure
        """
        data = self._json(await self._get("/collections", params={"creator_username": username}))

        contracts = []
        for collection in data.get("collections") or []:
            for contract in collection.get("contracts") or []:
                if not isinstance((contract or {}).get("address"), str):
                    continue
                contracts.append(
                    ContractDetails(
                        name=collection.get("name"),
                        contract_address=contract["address"],
                        chain_id=contract.get("chain"),
                        image_url=collection.get("image_url"),
                        banner_image_url=collection.get("banner_image_url"),
                        description=collection.get("description"),
                        opensea_url=collection.get("opensea_url"),
                        project_url=collection.get("project_url"),
                        discord_url=collection.get("discord_url"),
                        twitter_username=collection.get("twitter_username"),
                    )
                )

        logger.debug(f"OpenSea returned {len(contracts)} contracts for {username}")
        return contracts
