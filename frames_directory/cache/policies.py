"""Cache policies for each cache domain."""

from dataclasses import dataclass
from typing import Optional

from frames_directory import config


@dataclass(frozen=True)
class CachePolicy:
    """
    How long a domain's entries live and when they are refreshed.

    Attributes:
        ttl_seconds: Expiry written with every fresh entry
        revalidation_window_seconds: Trailing part of the TTL during which a
            background refresh is started. None disables revalidation and
            makes the domain a plain read-through cache.
        lock_ttl_seconds: Lifetime of the revalidation lock
        cache_none: Store ``None`` results (negative caching)
    """

    ttl_seconds: int
    revalidation_window_seconds: Optional[int] = None
    lock_ttl_seconds: Optional[int] = None
    cache_none: bool = False

    def __post_init__(self):
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if (self.revalidation_window_seconds is None) != (self.lock_ttl_seconds is None):
            raise ValueError(
                "revalidation_window_seconds and lock_ttl_seconds must be set together"
            )

    @property
    def revalidates(self) -> bool:
        return self.revalidation_window_seconds is not None


CREATORS_POLICY = CachePolicy(
    ttl_seconds=config.CREATORS_CACHE_DURATION,
    revalidation_window_seconds=config.CREATORS_REVALIDATION_WINDOW,
    lock_ttl_seconds=config.LOCK_DURATION,
)

SINGLE_CREATOR_POLICY = CachePolicy(
    ttl_seconds=config.SINGLE_CREATOR_CACHE_DURATION,
    revalidation_window_seconds=config.SINGLE_CREATOR_REVALIDATION_WINDOW,
    lock_ttl_seconds=config.LOCK_DURATION,
)

# A missing OpenSea account is a valid answer and is cached like any other
COLLECTIONS_POLICY = CachePolicy(
    ttl_seconds=config.COLLECTIONS_CACHE_DURATION,
    cache_none=True,
)
