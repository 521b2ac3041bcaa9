"""Memoization primitives shared by the ontology layer."""

from phenotab.caching.single_flight import CacheStats, SingleFlightCache

__all__ = ["CacheStats", "SingleFlightCache"]
