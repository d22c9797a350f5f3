"""
scraper.py: Reads the live occupancy bars from the Kletterzentrum Innsbruck
website.

The site renders occupancy through a WordPress AJAX call guarded by a nonce
embedded in the main page, so a scrape is two requests:

1. GET the main page and pull the nonce out of the ki_ajax script object.
2. POST the AJAX action with that nonce and parse the returned HTML.

Functions:
- extract_nonce()
- fetch_occupancy_html(nonce)
- parse_occupancy_html(html)
- scrape_occupancy()
"""

import re
from typing import Dict, Optional

import pandas as pd
import requests
from bs4 import BeautifulSoup

from kitracker import config as cfg
from kitracker.models.occupancy import Sample, compute_overall
from kitracker.utils.log_util import app_logger

logger = app_logger(__name__)

NONCE_PATTERN = re.compile(r"""ki_ajax\s*=\s*\{[^}]*nonce["']?\s*:\s*["']([^"']+)["']""")
SECTORS_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")

LEAD_WORDS = ("seil", "lead")
BOULDER_WORDS = ("boulder",)


class ScrapeError(Exception):
    """The occupancy could not be read from the website."""


def extract_nonce(
    session: Optional[requests.Session] = None,
    timeout: float = cfg.FETCH_TIMEOUT_SECONDS,
) -> str:
    """
    Fetch the main page and extract the WordPress nonce token.

    :param session: Optional requests session.
    :param timeout: Request timeout in seconds.
    :return: The nonce token.
    :raises ScrapeError: on HTTP failure or when no token is found.
    """
    http = session or requests
    try:
        resp = http.get(
            cfg.MAIN_PAGE,
            headers={"User-Agent": cfg.USER_AGENT, "Accept": "text/html"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ScrapeError(f"Failed to fetch main page: {e}") from e

    if resp.status_code != 200:
        raise ScrapeError(f"Failed to fetch main page: {resp.status_code}")

    match = NONCE_PATTERN.search(resp.text)
    if not match:
        raise ScrapeError("Could not find nonce token in page")
    return match.group(1)


def fetch_occupancy_html(
    nonce: str,
    session: Optional[requests.Session] = None,
    timeout: float = cfg.FETCH_TIMEOUT_SECONDS,
) -> str:
    """
    Call the AJAX endpoint that renders the occupancy bars.

    :param nonce: Token from extract_nonce().
    :return: The HTML fragment.
    :raises ScrapeError: on HTTP failure.
    """
    http = session or requests
    try:
        resp = http.post(
            cfg.AJAX_URL,
            data={"action": cfg.AJAX_ACTION, "nonce": nonce},
            headers={
                "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
                "X-Requested-With": "XMLHttpRequest",
                "User-Agent": cfg.USER_AGENT,
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ScrapeError(f"AJAX request failed: {e}") from e

    if resp.status_code != 200:
        raise ScrapeError(f"AJAX request failed: {resp.status_code}")
    return resp.text


def _parse_percentage(value: Optional[str]) -> Optional[int]:
    match = re.match(r"\s*(-?\d+)", value or "")
    return int(match.group(1)) if match else None


def _classify(text: str) -> Optional[str]:
    text = text.lower()
    if any(word in text for word in LEAD_WORDS):
        return "lead"
    if any(word in text for word in BOULDER_WORDS):
        return "boulder"
    return None


def parse_occupancy_html(html: str) -> Dict[str, Optional[object]]:
    """
    Parse the occupancy bars.

    The markup is a .bar-container per area holding a [data-percentage] bar
    and a .label ("Seil"/"Lead" or "Boulder"). If no container matches, any
    [data-percentage] element is classified by its parent's text instead.

    :param html: HTML fragment from the AJAX endpoint.
    :return: dict with lead, boulder, overall, openSectors (values may be None).
    """
    soup = BeautifulSoup(html, "html.parser")
    result: Dict[str, Optional[object]] = {
        "lead": None,
        "boulder": None,
        "overall": None,
        "openSectors": None,
    }

    for container in soup.select(".bar-container"):
        bar = container.select_one("[data-percentage]")
        label = container.select_one(".label")
        if bar is None or label is None:
            continue
        area = _classify(label.get_text().strip())
        if area:
            result[area] = _parse_percentage(bar.get("data-percentage"))

    if result["lead"] is None and result["boulder"] is None:
        for bar in soup.select("[data-percentage]"):
            parent_text = bar.parent.get_text() if bar.parent else ""
            area = _classify(parent_text)
            if area and result[area] is None:
                result[area] = _parse_percentage(bar.get("data-percentage"))

    result["overall"] = compute_overall(result["lead"], result["boulder"])

    sectors = SECTORS_PATTERN.search(html)
    if sectors:
        result["openSectors"] = f"{sectors.group(1)}/{sectors.group(2)}"

    return result


def scrape_occupancy(
    now: Optional[pd.Timestamp] = None, session: Optional[requests.Session] = None
) -> Sample:
    """
    Fetch and parse the current occupancy.

    :param now: Timestamp for the sample, defaults to the current UTC time.
    :param session: Optional requests session shared by both calls.
    :return: Sample with lead, boulder, overall and open sectors.
    :raises ScrapeError: when the site cannot be read or no bar matched.
    """
    nonce = extract_nonce(session)
    html = fetch_occupancy_html(nonce, session)
    data = parse_occupancy_html(html)

    if data["lead"] is None and data["boulder"] is None:
        raise ScrapeError("Failed to parse occupancy data: No known selectors matched")

    now = now if now is not None else pd.Timestamp.now(tz="UTC")
    logger.debug(f"Scraped occupancy: {data}")
    return Sample.create(
        now,
        lead=data["lead"],
        boulder=data["boulder"],
        open_sectors=data["openSectors"],
    )
