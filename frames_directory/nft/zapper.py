"""Zapper public GraphQL fetcher for collections by deployer."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from frames_directory import config
from frames_directory.errors import GraphQLError, UpstreamError
from frames_directory.models import ContractDetails

logger = logging.getLogger(__name__)

DEFAULT_NETWORKS = [
    "ETHEREUM_MAINNET",
    "OPTIMISM_MAINNET",
    "POLYGON_MAINNET",
    "ARBITRUM_MAINNET",
    "BASE_MAINNET",
]

DEPLOYER_COLLECTIONS_QUERY = """
query DeployerCollections($deployers: [Address!], $networks: [Network!]!, $first: Int, $after: String) {
  nftCollectionsForDeployers(
    input: { deployers: $deployers, networks: $networks, first: $first, after: $after }
  ) {
    edges {
      node {
        id
        address
        name
        symbol
        description
        network
        nftStandard
        totalSupply
        holdersCount
        floorPrice {
          valueUsd
        }
        medias {
          logo {
            thumbnail
            original
          }
          banner {
            original
            large
          }
        }
      }
    }
  }
}
"""


def _first_url(media: Optional[Dict[str, Any]], *sizes: str) -> str:
    media = media or {}
    for size in sizes:
        if media.get(size):
            return media[size]
    return ""


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def contract_from_node(node: Dict[str, Any]) -> ContractDetails:
    medias = node.get("medias") or {}
    floor_price = node.get("floorPrice") or {}
    return ContractDetails(
        name=node.get("name"),
        contract_address=node["address"].lower(),
        chain_id=node.get("network"),
        image_url=_first_url(medias.get("logo"), "original", "thumbnail"),
        banner_image_url=_first_url(medias.get("banner"), "original", "large"),
        description=node.get("description"),
        symbol=node.get("symbol"),
        nft_standard=node.get("nftStandard"),
        total_supply=_as_int(node.get("totalSupply")),
        holders_count=_as_int(node.get("holdersCount")),
        floor_price_usd=floor_price.get("valueUsd"),
    )


class ZapperClient:
    """Thin Zapper API client. Caching happens in ``NFTCollectionsService``."""

    source = "zapper"

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str = "",
        url: str = config.ZAPPER_API_URL,
    ):
        self.http = http
        self.api_key = api_key
        self.url = url

    async def fetch_collections(
        self,
        deployer: str,
        chain: Optional[str] = None,
        first: int = 100,
    ) -> List[ContractDetails]:
        """
        List collections deployed by an address.

        Args:
            deployer: Deployer address
            chain: Zapper network name (e.g. "BASE_MAINNET"); all supported
                networks when omitted
            first: Page size

        Raises:
            UpstreamError: On transport failures, non-2xx responses and
                responses without a ``data`` object
        """
        variables = {
            "deployers": [deployer],
            "networks": [chain.upper()] if chain else DEFAULT_NETWORKS,
            "first": first,
        }

        try:
            response = await self.http.post(
                self.url,
                json={"query": DEPLOYER_COLLECTIONS_QUERY, "variables": variables},
                headers={
                    "Content-Type": "application/json",
                    "x-zapper-api-key": self.api_key,
                },
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

        if not isinstance(payload, dict) or not payload.get("data"):
            if isinstance(payload, dict) and payload.get("errors"):
                raise GraphQLError(self.source, payload["errors"])
            raise UpstreamError(self.source, "invalid response structure")

        result = payload["data"].get("nftCollectionsForDeployers")
        if not result:
            logger.warning(f"No NFT collections data in Zapper response for {deployer}")
            return []

        contracts = [
            contract_from_node(edge["node"])
            for edge in result.get("edges") or []
            if isinstance((edge.get("node") or {}).get("address"), str)
        ]
        logger.debug(f"Zapper returned {len(contracts)} contracts for {deployer}")
        return contracts
