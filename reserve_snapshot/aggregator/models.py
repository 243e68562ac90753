"""Data models for reserve snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ReserveReading:
    """Total reserves of one market at one polling instant."""

    name: str
    balance: int

    def to_line(self) -> str:
        return f"{self.name}\t{self.balance}\n"


@dataclass(frozen=True)
class Snapshot:
    """All reserve readings captured at one polling instant, in listing order."""

    captured_at: datetime
    readings: tuple[ReserveReading, ...]

    def render(self) -> str:
        return "".join(reading.to_line() for reading in self.readings)
