"""Cache key builders for the directory cache domains.

Key Naming Convention:
    - Creators list: one fixed key plus one fixed lock key
    - Single creator: "creator:{address}" / "creator_lock:{address}"
    - Third-party lookups: "{provider}-{type}-{identifier}", lowercased
    - Basenames: "basename:{addr|name|records}:{identifier}"

Addresses are always lowercased so checksummed and plain spellings of the
same address share one entry.

Usage:
    from frames_directory.cache.keys import creator_key

    key = creator_key("0xABC...")
    # Returns: "creator:0xabc..."
"""

CREATORS_CACHE_KEY = "creators-directory-all"
REVALIDATION_LOCK_KEY = "creators-directory-revalidation-lock"

SINGLE_CREATOR_CACHE_PREFIX = "creator:"
SINGLE_CREATOR_LOCK_PREFIX = "creator_lock:"

ADDRESS_TO_BASENAME_PREFIX = "basename:addr:"
BASENAME_TO_ADDRESS_PREFIX = "basename:name:"
BASENAME_TEXT_RECORDS_PREFIX = "basename:records:"

REFRESH_LOCK_PREFIX = "refresh-lock-"

PROVIDER_OPENSEA = "opensea"
PROVIDER_ZAPPER = "zapper"

BASENAME_SUFFIX = ".base.eth"


def _require(value: str, name: str) -> str:
    if not value:
        raise ValueError(f"{name} is required")
    return value


def lock_key_for(key: str) -> str:
    """Default lock key for a data key without a dedicated lock namespace."""
    return f"lock:{_require(key, 'key')}"


# ============================================================================
# Creator Keys
# ============================================================================


def creator_key(address: str) -> str:
    """
    Build cache key for a single creator.

    Example:
        >>> creator_key("0xAbC")
        'creator:0xabc'
    """
    return f"{SINGLE_CREATOR_CACHE_PREFIX}{_require(address, 'address').lower()}"


def creator_lock_key(address: str) -> str:
    """Build the revalidation lock key for a single creator."""
    return f"{SINGLE_CREATOR_LOCK_PREFIX}{_require(address, 'address').lower()}"


# ============================================================================
# Third-party Lookup Keys
# ============================================================================


def provider_key(provider: str, kind: str, identifier: str) -> str:
    """
    Build cache key for a third-party lookup.

    Args:
        provider: "opensea" or "zapper"
        kind: Lookup type, e.g. "username" or "collections"
        identifier: Usually the deployer address

    Example:
        >>> provider_key("opensea", "username", "0xAbC")
        'opensea-username-0xabc'
    """
    _require(identifier, "identifier")
    return f"{provider}-{kind}-{identifier}".lower()


def opensea_username_key(address: str) -> str:
    return provider_key(PROVIDER_OPENSEA, "username", address)


def opensea_collections_key(address: str) -> str:
    return provider_key(PROVIDER_OPENSEA, "collections", address)


def zapper_collections_key(address: str) -> str:
    return provider_key(PROVIDER_ZAPPER, "collections", address)


def collection_keys_for_address(address: str) -> list[str]:
    """Every third-party lookup key cached for an address."""
    return [
        opensea_username_key(address),
        opensea_collections_key(address),
        zapper_collections_key(address),
    ]


# ============================================================================
# Basename Keys
# ============================================================================


def is_basename(value: str) -> bool:
    return value.lower().endswith(BASENAME_SUFFIX)


def basename_address_key(address: str) -> str:
    return f"{ADDRESS_TO_BASENAME_PREFIX}{_require(address, 'address').lower()}"


def basename_name_key(basename: str) -> str:
    return f"{BASENAME_TO_ADDRESS_PREFIX}{_require(basename, 'basename').lower()}"


def basename_records_key(basename: str) -> str:
    return f"{BASENAME_TEXT_RECORDS_PREFIX}{_require(basename, 'basename').lower()}"


def basename_lookup_key(value: str) -> str:
    """Pick the name- or address-side key depending on the input shape."""
    if is_basename(value):
        return basename_name_key(value)
    return basename_address_key(value)


# ============================================================================
# Refresh Keys
# ============================================================================


def refresh_lock_key(address: str) -> str:
    return f"{REFRESH_LOCK_PREFIX}{_require(address, 'address').lower()}"
