"""Delete expired organization invitations.

Meant to run from cron or a scheduled job; the service itself never sweeps.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from orgspace.services.engine import run_cleanup


logger = logging.getLogger("orgspace.scripts.cleanup_expired_invitations")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete expired organization invitations")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print a summary line",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    started = time.perf_counter()
    deleted = run_cleanup()
    logger.info(
        "invitation_cleanup_finished: deleted=%s duration_seconds=%.3f",
        deleted,
        time.perf_counter() - started,
    )
    if not args.quiet:
        print(f"Deleted {deleted} expired invitations.")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
