"""Snapshot caching and stale-while-revalidate refresh."""

from .refresh import RefreshOrchestrator
from .store import CacheLookup, Freshness, SnapshotCache, classify

__all__ = ["SnapshotCache", "CacheLookup", "Freshness", "classify", "RefreshOrchestrator"]
