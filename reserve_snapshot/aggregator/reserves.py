"""Flash Pool reserve aggregation across all markets."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from beartype import beartype

from reserve_snapshot.aggregator.models import ReserveReading, Snapshot
from reserve_snapshot.chain.client import ChainClient
from reserve_snapshot.chain.codec import Address, ByteReader
from reserve_snapshot.utils.config import ALL_MARKETS_METHOD, TOTAL_RESERVES_METHOD
from reserve_snapshot.utils.errors import AggregationError, ReserveSnapshotError
from reserve_snapshot.utils.logger import get_logger

logger = get_logger(__name__)


@beartype
def list_markets(client: ChainClient, root_address: Address) -> list[Address]:
    """
    List all market contracts registered in the Flash Pool root contract.

    Args:
        client: Chain client used for the read-only call
        root_address: Flash Pool root contract address

    Returns:
        Market addresses in listing order

    Raises:
        InvocationError: If the contract call fails
        DecodeError: If the result is truncated or the count prefix is irregular
    """
    reader = ByteReader(client.pre_exec_invoke(root_address, ALL_MARKETS_METHOD))
    count = reader.next_var_uint()
    return [reader.next_address() for _ in range(count)]


@beartype
def get_total_reserves(client: ChainClient, market_address: Address) -> int:
    """
    Read a market's total reserves.

    Args:
        client: Chain client used for the read-only call
        market_address: Market contract address

    Returns:
        Total reserves as a signed 128-bit integer

    Raises:
        InvocationError: If the contract call fails
        DecodeError: If the result is shorter than 16 bytes
    """
    reader = ByteReader(client.pre_exec_invoke(market_address, TOTAL_RESERVES_METHOD))
    return reader.next_i128()


class ReserveAggregator:
    """Collects total reserves for every market under one root contract."""

    def __init__(
        self,
        client: ChainClient,
        root_address: Address,
        asset_map: Mapping[str, str],
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            client: Chain client used for all read-only calls
            root_address: Flash Pool root contract address
            asset_map: Canonical market address hex -> display name
        """
        self.client = client
        self.root_address = root_address
        self.asset_map = asset_map

    def display_name(self, market_address: Address) -> str:
        """Return the configured name for a market, or its address hex if unmapped."""
        name = self.asset_map.get(market_address.to_hex())
        if name:
            return name
        logger.warning(f"Market {market_address} missing from asset_map, using address as name")
        return market_address.to_hex()

    @beartype
    def readings(self) -> list[ReserveReading]:
        """
        Query every market sequentially, aborting on the first failure.

        Returns:
            One reading per listed market, in listing order

        Raises:
            AggregationError: Wrapping the first listing or market-level failure
        """
        try:
            markets = list_markets(self.client, self.root_address)
        except ReserveSnapshotError as e:
            raise AggregationError(f"Listing markets of {self.root_address} failed: {e}") from e
        logger.debug(f"Found {len(markets)} markets under {self.root_address}")

        readings: list[ReserveReading] = []
        for market_address in markets:
            try:
                balance = get_total_reserves(self.client, market_address)
            except ReserveSnapshotError as e:
                raise AggregationError(f"Reading reserves of market {market_address} failed: {e}") from e
            readings.append(ReserveReading(name=self.display_name(market_address), balance=balance))
        return readings

    @beartype
    def total_reserve(self) -> dict[str, str]:
        """
        Aggregate total reserves keyed by display name.

        Returns:
            Display name -> decimal balance string, in listing order

        Raises:
            AggregationError: If any market query fails
        """
        return {reading.name: str(reading.balance) for reading in self.readings()}

    @beartype
    def snapshot(self, captured_at: datetime) -> Snapshot:
        """Capture all readings as a Snapshot stamped with ``captured_at``."""
        return Snapshot(captured_at=captured_at, readings=tuple(self.readings()))
