"""
Print diagnostics and an integrity report for the stored project document.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from showcase.config import get_settings
from showcase.dependencies import get_safe_store
from showcase.report import diagnose, generate_system_report


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Diagnose stored project data")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the structured diagnostics as JSON instead of the text report",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    store = get_safe_store()
    diagnostics = diagnose(store, get_settings())

    if args.json:
        print(json.dumps(diagnostics, indent=2, ensure_ascii=False))
    else:
        print(generate_system_report(store.load()))

    status = diagnostics["document"]["status"]
    if status in ("unreadable", "invalid"):
        logger.error("Stored project data is %s", status)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
