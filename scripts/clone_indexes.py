#!/usr/bin/env python3
"""Run the index cloner from a source checkout without installing it.

    python scripts/clone_indexes.py \
      --from "mongodb://localhost:27017/shop" \
      --to "mongodb://backup:27017/shop_copy" --on-conflict skip
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from index_clone.cli import main  # noqa: E402  (after sys.path setup)

if __name__ == "__main__":
    sys.exit(main())
