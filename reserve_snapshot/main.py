"""Command-line entry point for the reserve snapshot service."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from collections.abc import Sequence
from pathlib import Path

from reserve_snapshot.aggregator.reserves import ReserveAggregator
from reserve_snapshot.chain.client import ChainClient, OntologyRpcClient
from reserve_snapshot.scheduler.snapshot_scheduler import Clock, SnapshotScheduler
from reserve_snapshot.storage.snapshot_writer import SnapshotFileWriter
from reserve_snapshot.utils.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    SnapshotConfig,
    load_config,
)
from reserve_snapshot.utils.errors import ConfigError, InvocationError
from reserve_snapshot.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reserve-snapshot",
        description="Snapshot Flash Pool market reserves on a fixed schedule.",
    )
    parser.add_argument(
        "--loglevel",
        type=int,
        default=DEFAULT_LOG_LEVEL,
        help="Log level: 0 trace, 1 debug, 2 info, 3 warn, 4 error, 5 fatal (default: %(default)s)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the JSON config file (default: %(default)s)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=DEFAULT_LOG_DIR,
        help="Directory for the log file (default: %(default)s)",
    )
    return parser


def check_node(client: OntologyRpcClient) -> None:
    """Log the node's block height; an unreachable node is not fatal at startup."""
    try:
        height = client.get_block_count()
    except InvocationError as e:
        logger.warning(f"Could not reach {client.rpc_address}: {e}")
        return
    logger.info(f"Connected to {client.rpc_address}. Current block count: {height}")


def install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum: int, frame: object) -> None:
        logger.warning(f"Received signal {signum}, stopping")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def run_snapshots(
    config: SnapshotConfig,
    client: ChainClient,
    clock: Clock | None = None,
    stop_event: threading.Event | None = None,
) -> list[Path]:
    """
    Wire the aggregator, writer and scheduler together and run to completion.

    Args:
        config: Loaded configuration
        client: Chain client for read-only calls
        clock: Optional time source (wall clock if None)
        stop_event: Optional cancellation event

    Returns:
        Paths of all written snapshot files
    """
    aggregator = ReserveAggregator(client, config.flash_pool_address, config.asset_map)
    writer = SnapshotFileWriter(config.output_dir)
    scheduler = SnapshotScheduler.from_config(
        config,
        source=aggregator,
        sink=writer,
        clock=clock,
        stop_event=stop_event,
    )
    return scheduler.run()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse flags, load config and run the snapshot schedule. Returns the exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.loglevel, args.log_dir)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"parse config failed, err: {e}")
        return 1

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    with OntologyRpcClient(config.json_rpc_address, timeout=config.rpc_timeout) as client:
        check_node(client)
        written = run_snapshots(config, client, stop_event=stop_event)

    logger.info(f"Wrote {len(written)} snapshot files to {config.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
