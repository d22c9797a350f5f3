#!/usr/bin/env python3
"""
scrape.py: Print the current occupancy as JSON without touching the history.

Usage:
    kitracker-scrape
"""

import argparse
import json
import sys

from kitracker.api.scraper import ScrapeError, scrape_occupancy
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Scrape the current gym occupancy")
    parser.parse_args(argv)

    try:
        sample = scrape_occupancy()
    except ScrapeError as e:
        logger.error(f"Scrape failed: {e}")
        print(f"❌ Error: {e}")
        return 1

    print(json.dumps(sample.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
