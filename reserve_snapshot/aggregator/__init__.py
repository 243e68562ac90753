"""Reserve aggregation for Flash Pool markets."""

from __future__ import annotations

from reserve_snapshot.aggregator.models import ReserveReading, Snapshot
from reserve_snapshot.aggregator.reserves import ReserveAggregator, get_total_reserves, list_markets

__all__ = ["ReserveAggregator", "ReserveReading", "Snapshot", "get_total_reserves", "list_markets"]
