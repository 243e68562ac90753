"""End-to-end tests for the command-line entry point."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

from helpers import DAI_HEX, ETH_HEX, ROOT_HEX, FakeClock, StubChainClient
from reserve_snapshot.main import build_parser, main, run_snapshots
from reserve_snapshot.utils.config import load_config
from reserve_snapshot.utils.errors import InvocationError

T0 = datetime(2020, 10, 22, 23, 59, tzinfo=timezone.utc)


def write_config(tmp_path: Path, **extra: object) -> Path:
    document = {
        "json_rpc_address": "http://127.0.0.1:20336",
        "flash_pool_address": "0x" + ROOT_HEX,
        "asset_map": {"0x" + ETH_HEX: "ETH", "0x" + DAI_HEX: "DAI"},
        "scan_interval": 30,
        "output_dir": str(tmp_path / "data"),
    }
    document.update(extra)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_parser_defaults() -> None:
    """Test flag defaults match the documented CLI."""
    args = build_parser().parse_args([])
    assert args.loglevel == 2
    assert args.config == Path("./config.json")


def test_run_snapshots_writes_one_file_per_cycle(
    tmp_path: Path,
    reserve_responses: dict[tuple[str, str], bytes | Exception],
) -> None:
    """Test stub chain data flows through to identical snapshot files."""
    config = load_config(write_config(tmp_path, start_time=T0.isoformat(), grace_period=60))
    clock = FakeClock(T0 - timedelta(seconds=5))

    written = run_snapshots(config, StubChainClient(reserve_responses), clock=clock)

    assert [p.name for p in written] == [
        "2020-10-22 23:59:00.000000 +0000 UTC",
        "2020-10-22 23:59:30.000000 +0000 UTC",
        "2020-10-23 00:00:00.000000 +0000 UTC",
    ]
    for path in written:
        assert path.read_bytes() == b"ETH\t100\nDAI\t200\n"


def test_run_snapshots_failed_cycle_writes_nothing(tmp_path: Path) -> None:
    """Test an aggregation failure leaves no snapshot file behind."""
    config = load_config(write_config(tmp_path, start_time=T0.isoformat(), grace_period=1))
    client = StubChainClient({(ROOT_HEX, "allMarkets"): InvocationError("rpc down")})

    written = run_snapshots(config, client, clock=FakeClock(T0))

    assert written == []
    assert not (tmp_path / "data").exists()


def test_main_missing_config_returns_error(tmp_path: Path) -> None:
    """Test a missing config file is fatal with exit code 1."""
    code = main(["--config", str(tmp_path / "missing.json"), "--log-dir", str(tmp_path / "logs")])
    assert code == 1


def test_main_runs_schedule(
    tmp_path: Path,
    reserve_responses: dict[tuple[str, str], bytes | Exception],
) -> None:
    """Test main wires config, client and scheduler and exits cleanly."""
    # Start well in the past so the first cycle is also the last
    config_path = write_config(tmp_path, start_time="2020-10-22T23:59:00Z")
    stub = StubChainClient(reserve_responses)
    client_class = MagicMock()
    client_class.return_value.__enter__.return_value = stub

    with patch("reserve_snapshot.main.OntologyRpcClient", client_class), patch(
        "reserve_snapshot.main.install_signal_handlers",
    ) as install_handlers:
        code = main(["--config", str(config_path), "--log-dir", str(tmp_path / "logs"), "--loglevel", "1"])

    assert code == 0
    client_class.assert_called_once_with("http://127.0.0.1:20336", timeout=30.0)
    install_handlers.assert_called_once()
    files = list((tmp_path / "data").iterdir())
    assert len(files) == 1
    assert files[0].read_text(encoding="utf-8") == "ETH\t100\nDAI\t200\n"
    assert (tmp_path / "logs" / "reserve_snapshot.log").exists()
