"""Snapshot persistence: one tab-separated file per polling cycle."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from beartype import beartype

from reserve_snapshot.aggregator.models import Snapshot
from reserve_snapshot.utils.config import DATA_DIR, SNAPSHOT_TIMESTAMP_FORMAT
from reserve_snapshot.utils.errors import SnapshotWriteError
from reserve_snapshot.utils.logger import get_logger

logger = get_logger(__name__)


@beartype
def snapshot_file_name(captured_at: datetime) -> str:
    """
    Format a capture time as a snapshot file name, e.g. ``2020-10-22 23:59:00.000000 +0000 UTC``.

    Args:
        captured_at: Timezone-aware capture time, converted to UTC

    Raises:
        ValueError: If ``captured_at`` is naive
    """
    if captured_at.tzinfo is None or captured_at.utcoffset() is None:
        raise ValueError(f"Capture time must be timezone-aware, got {captured_at!r}")
    return captured_at.astimezone(timezone.utc).strftime(SNAPSHOT_TIMESTAMP_FORMAT)


def default_file_mode() -> int:
    """Return the mode a plain ``open()`` would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class SnapshotFileWriter:
    """Writes each snapshot to ``<output_dir>/<capture timestamp>``."""

    def __init__(self, output_dir: Path = DATA_DIR) -> None:
        self.output_dir = output_dir

    @beartype
    def write(self, snapshot: Snapshot) -> Path:
        """
        Persist a snapshot as ``name<TAB>balance`` lines.

        The content goes to a temporary file in the output directory first and
        is renamed into place, so a failed write never leaves a partial file.

        Args:
            snapshot: Snapshot to persist

        Returns:
            Path of the written file

        Raises:
            SnapshotWriteError: If the file cannot be created or written
        """
        path = self.output_dir / snapshot_file_name(snapshot.captured_at)
        tmp_name: str | None = None
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.output_dir, prefix=".snapshot-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(snapshot.render())
            # mkstemp creates 0600 files
            os.chmod(tmp_name, default_file_mode())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise SnapshotWriteError(f"Cannot write snapshot {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning(f"Could not remove temporary file {tmp_name}")

        logger.info(f"Wrote {len(snapshot.readings)} reserves to {path}")
        return path
