"""Directory services built on the revalidating cache."""
