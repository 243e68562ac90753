"""Configuration constants and config file loading for reserve snapshots."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any
from urllib.parse import urlparse

from beartype import beartype

from reserve_snapshot.chain.codec import Address
from reserve_snapshot.utils.errors import ConfigError

# CLI defaults
DEFAULT_CONFIG_PATH = Path("./config.json")
DEFAULT_LOG_LEVEL = 2  # info
DEFAULT_LOG_DIR = Path("logs")

# Output
DATA_DIR = Path("data")
SNAPSHOT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f +0000 UTC"

# Scheduling
DEFAULT_GRACE_PERIOD = 120  # seconds of polling after the start instant

# RPC
DEFAULT_RPC_TIMEOUT = 30.0
WASM_INVOKE_TX_TYPE = 0xD2
PRE_EXEC_SUCCESS_STATE = 1

# Flash Pool contract entry points
ALL_MARKETS_METHOD = "allMarkets"
TOTAL_RESERVES_METHOD = "totalReserves"


@dataclass(frozen=True)
class SnapshotConfig:
    """Immutable settings for one snapshot run."""

    json_rpc_address: str
    flash_pool_address: Address
    asset_map: Mapping[str, str]
    scan_interval: int
    start_time: datetime | None = None
    grace_period: int = DEFAULT_GRACE_PERIOD
    output_dir: Path = field(default=DATA_DIR)
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT


def _require_positive_int(raw: Mapping[str, Any], key: str, default: int | None = None) -> int:
    if key not in raw:
        if default is None:
            raise ConfigError(f"Missing required config field: {key}")
        return default
    value = raw[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


def _parse_rpc_address(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError("json_rpc_address must be a non-empty string")
    parsed = urlparse(value.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"json_rpc_address is not an http(s) URL: {value}")
    return value.strip()


def _parse_address(value: Any, key: str) -> Address:
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a hex string, got {value!r}")
    try:
        return Address.from_hex(value)
    except ValueError as e:
        raise ConfigError(f"{key}: {e}") from e


def _parse_asset_map(value: Any) -> Mapping[str, str]:
    """
    Normalize asset_map keys to canonical address hex.

    Display names must be unique, otherwise two markets would share one
    snapshot line and only the last reading would survive. Markets missing
    from the map are written under their address hex, so a configured name
    that is itself an address hex may share a line name with such a market.
    """
    if value is None:
        return MappingProxyType({})
    if not isinstance(value, dict):
        raise ConfigError("asset_map must be an object of address -> name")

    asset_map: dict[str, str] = {}
    seen_names: dict[str, str] = {}
    for key, name in value.items():
        address = _parse_address(key, f"asset_map key {key!r}")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"asset_map name for {key} must be a non-empty string")
        canonical = address.to_hex()
        if canonical in asset_map:
            raise ConfigError(f"asset_map contains {key} more than once")
        # Duplicate names would collapse two markets into one snapshot line
        if name in seen_names:
            raise ConfigError(
                f"asset_map name {name!r} used for both {seen_names[name]} and {canonical}; "
                "each market needs its own name or its snapshot line would be overwritten",
            )
        seen_names[name] = canonical
        asset_map[canonical] = name
    return MappingProxyType(asset_map)


def _parse_start_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"start_time must be an ISO-8601 string, got {value!r}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigError(f"Invalid start_time {value!r}: {e}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _parse_rpc_timeout(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"rpc_timeout must be a positive number, got {value!r}")
    return float(value)


@beartype
def parse_config(raw: Mapping[str, Any]) -> SnapshotConfig:
    """
    Validate a decoded config document.

    Args:
        raw: Decoded JSON object

    Returns:
        SnapshotConfig instance

    Raises:
        ConfigError: If a field is missing or invalid
    """
    output_dir = raw.get("output_dir", str(DATA_DIR))
    if not isinstance(output_dir, str) or not output_dir:
        raise ConfigError(f"output_dir must be a non-empty string, got {output_dir!r}")

    return SnapshotConfig(
        json_rpc_address=_parse_rpc_address(raw.get("json_rpc_address")),
        flash_pool_address=_parse_address(raw.get("flash_pool_address"), "flash_pool_address"),
        asset_map=_parse_asset_map(raw.get("asset_map")),
        scan_interval=_require_positive_int(raw, "scan_interval"),
        start_time=_parse_start_time(raw.get("start_time")),
        grace_period=_require_positive_int(raw, "grace_period", DEFAULT_GRACE_PERIOD),
        output_dir=Path(output_dir),
        rpc_timeout=_parse_rpc_timeout(raw.get("rpc_timeout", DEFAULT_RPC_TIMEOUT)),
    )


@beartype
def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> SnapshotConfig:
    """
    Read and validate a JSON config file.

    Args:
        path: Path to the config file

    Returns:
        SnapshotConfig instance

    Raises:
        ConfigError: If the file is unreadable, not valid JSON or invalid
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return parse_config(raw)
