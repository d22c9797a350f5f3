#!/usr/bin/env python3
"""
collect.py: Run one occupancy collection and update history.json/status.json.

Meant to be scheduled (cron, CI) every few minutes. Exits with status 1 when
the run fails; the failure is recorded in status.json before exiting.

Usage:
    kitracker-collect [--history data/history.json] [--status data/status.json] [--max-days 7]
"""

import argparse
import os
import sys

from kitracker import config as cfg
from kitracker.api.collector import collect
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__, log_file="collect.log")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Collect current gym occupancy")
    parser.add_argument(
        "--history",
        type=str,
        default=os.path.join(cfg.DATA_DIR, cfg.HISTORY_FILE),
        help="History file path or s3:// URL",
    )
    parser.add_argument(
        "--status",
        type=str,
        default=os.path.join(cfg.DATA_DIR, cfg.STATUS_FILE),
        help="Status file path or s3:// URL",
    )
    parser.add_argument(
        "--max-days",
        type=int,
        default=cfg.RETENTION_DAYS,
        help="Days of history to keep",
    )
    args = parser.parse_args(argv)

    try:
        status = collect(args.history, args.status, max_days=args.max_days)
    except Exception as e:
        logger.exception(f"Collection failed: {e}")
        return 1

    if status is None:
        logger.info("Nothing to record")
    else:
        logger.info(status.message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
