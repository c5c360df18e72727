"""NFT collection fetchers (OpenSea, Zapper) and their cached service."""
