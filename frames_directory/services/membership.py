"""Directory membership checks and self-service joins.

Joining creates a user in the directory circle through the ``createUsers``
action. A successful join drops the cached creators list and the cached
profile of the address so the new member shows up on the next read.
"""

import logging

from frames_directory import config
from frames_directory.cache.keys import CREATORS_CACHE_KEY, creator_key
from frames_directory.cache.revalidating import RevalidatingCache
from frames_directory.errors import StoreUnavailableError, UpstreamError
from frames_directory.graphql_client import HasuraClient
from frames_directory.services.basenames import is_address

logger = logging.getLogger(__name__)

CHECK_MEMBERSHIP_QUERY = """
query CreatorsDirCheckMembership($address: String!, $circleId: bigint!) {
  users(
    where: {
      circle_id: { _eq: $circleId }
      profile: { address: { _ilike: $address } }
    }
  ) {
    id
    profile {
      id
      name
    }
  }
}
"""

JOIN_DIRECTORY_MUTATION = """
mutation CreatorsDirJoinDirectory(
  $circleId: Int!
  $address: String!
  $name: String!
  $entrance: String!
) {
  createUsers(
    payload: {
      circle_id: $circleId
      users: { address: $address, name: $name, entrance: $entrance }
    }
  ) {
    id
  }
}
"""


def _validate_address(address: str) -> None:
    if not is_address(address):
        raise ValueError(f"Invalid address '{address}'")


class MembershipService:
    """Membership lookups and joins for the directory circle."""

    def __init__(
        self,
        hasura: HasuraClient,
        cache: RevalidatingCache,
        circle_id: int = config.CIRCLE_ID,
        entrance: str = config.DIRECTORY_ENTRANCE,
    ):
        self.hasura = hasura
        self.cache = cache
        self.circle_id = circle_id
        self.entrance = entrance

    async def address_is_member(self, address: str) -> bool:
        """
        Check whether an address already belongs to the directory circle.

        The address match is case-insensitive. Upstream failures answer False.

        Raises:
            ValueError: If ``address`` is not a 0x-prefixed 40 hex digit address
        """
        _validate_address(address)
        try:
            data = await self.hasura.query(
                CHECK_MEMBERSHIP_QUERY, {"address": address, "circleId": self.circle_id}
            )
        except UpstreamError as e:
            logger.error(f"Error checking membership for {address}: {e}")
            return False
        return bool(data.get("users"))

    async def join_directory(self, address: str, name: str) -> bool:
        """
        Add an address to the directory circle under ``name``.

        Returns:
            True when the directory created the user, False otherwise

        Raises:
            ValueError: For an invalid address or a blank name
        """
        _validate_address(address)
        name = (name or "").strip()
        if not name:
            raise ValueError("Name must not be empty")

        try:
            data = await self.hasura.mutate(
                JOIN_DIRECTORY_MUTATION,
                {
                    "circleId": self.circle_id,
                    "address": address,
                    "name": name,
                    "entrance": self.entrance,
                },
            )
        except UpstreamError as e:
            logger.error(f"Error joining directory for {address}: {e}")
            return False

        created = data.get("createUsers") or []
        joined = bool(created and isinstance(created[0], dict) and created[0].get("id"))
        if not joined:
            logger.warning(f"Join for {address} created no user")
            return False

        logger.info(f"✓ {address} joined the directory as '{name}'")
        try:
            await self.cache.invalidate(CREATORS_CACHE_KEY, creator_key(address))
        except StoreUnavailableError as e:
            logger.error(f"Failed to drop directory caches after join of {address}: {e}")
        return True
