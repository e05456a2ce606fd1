"""Rebuild channel/architecture compatibility fields for stored packages."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))

from openstore_api.service.maintenance import update_calculated  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute derived package listing fields.")
    parser.add_argument("package_id", nargs="?", default=None, help="Only update this package.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    updated = update_calculated(args.package_id)
    if args.package_id and not updated:
        print(f"Package '{args.package_id}' not found.", file=sys.stderr)
        sys.exit(1)
    print(f"Updated {len(updated)} package(s).")


if __name__ == "__main__":
    main()
