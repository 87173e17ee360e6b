"""
Seed the project document with sample data on first deploy.

By default the sample is only written when no document exists yet. Use
--force to overwrite whatever is stored (the write is marked FORCED).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from showcase.dependencies import get_safe_store
from showcase.errors import ShowcaseError
from showcase.store import seed_sample_data


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample project data")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the stored document even if it already has data",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    store = get_safe_store()

    try:
        result = seed_sample_data(store, force=args.force)
    except (ShowcaseError, OSError) as exc:
        logger.error("Seeding failed: %s", exc)
        return 1

    if result is None:
        logger.info("Nothing written; pass --force to overwrite existing data")
        return 0
    logger.info(
        "Wrote %d sample projects to %s", result.metadata["totalProjects"], result.url
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
