"""Test doubles and buffer builders shared across tests."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import datetime, timedelta

from reserve_snapshot.chain.codec import Address, ByteWriter

ETH_HEX = "aa" * 20
DAI_HEX = "bb" * 20
ROOT_HEX = "cc" * 20


def markets_buffer(addresses: Sequence[Address]) -> bytes:
    writer = ByteWriter().write_var_uint(len(addresses))
    for address in addresses:
        writer.write_address(address)
    return writer.to_bytes()


def reserve_buffer(amount: int) -> bytes:
    return ByteWriter().write_i128(amount).to_bytes()


class StubChainClient:
    """Chain client returning canned buffers keyed by (contract hex, method)."""

    def __init__(self, responses: dict[tuple[str, str], bytes | Exception]) -> None:
        self.rpc_address = "stub://chain"
        self.responses = responses
        self.calls: list[tuple[str, str]] = []

    def pre_exec_invoke(self, contract: Address, method: str, params: Sequence[object] = ()) -> bytes:
        key = (contract.to_hex(), method)
        self.calls.append(key)
        response = self.responses[key]
        if isinstance(response, Exception):
            raise response
        return response

    def get_block_count(self) -> int:
        return 1


class FakeClock:
    """Clock whose sleeps advance time instantly."""

    def __init__(self, current: datetime) -> None:
        self.current = current
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def sleep(self, seconds: float, stop_event: threading.Event) -> bool:
        if stop_event.is_set():
            return True
        self.sleeps.append(seconds)
        if seconds > 0:
            self.current += timedelta(seconds=seconds)
        return stop_event.is_set()
