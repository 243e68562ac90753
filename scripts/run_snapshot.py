"""Run the reserve snapshot service from a source checkout."""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from reserve_snapshot.main import main

if __name__ == "__main__":
    sys.exit(main())
