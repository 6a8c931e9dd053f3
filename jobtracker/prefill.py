"""
Best-effort drafts for the add form.

Each source returns an optional Draft of {company, position, url}. Nothing
here is trusted: a draft only becomes a record by going through
JobRecordStore.create(), with the same validation as typed input.
"""

from pathlib import Path
from typing import Optional, Tuple

import requests
from bs4 import BeautifulSoup

from .env import get_settings
from .errors import StoreError
from .logger import get_logger
from .models import Draft
from .retry import RetryError, exponential_backoff
from .schema import MAX_NAME_LENGTH, MAX_URL_LENGTH, sanitize_text, validate_url

logger = get_logger()

MAX_FILE_BYTES = 10 * 1024 * 1024
DRAFT_FILE_SUFFIXES = {".pdf", ".txt"}
TITLE_SEPARATORS = (" - ", " | ", " at ")
USER_AGENT = "jobtracker/0.1 (+job application tracker)"


class PrefillError(StoreError):
    default_message = "Could not read the posting. Please enter details manually."


def draft_from_text(text: str) -> Optional[Draft]:
    """First non-empty line is the company, the second is the position."""
    if not isinstance(text, str):
        return None
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return None
    company = sanitize_text(lines[0][:MAX_NAME_LENGTH], MAX_NAME_LENGTH)
    position = sanitize_text(lines[1][:MAX_NAME_LENGTH], MAX_NAME_LENGTH) if len(lines) > 1 else ""
    return Draft(company=company, position=position, url="")


def draft_from_file(path: Path) -> Optional[Draft]:
    """Read a PDF or text file as text and draft from its first lines.

    No PDF parsing happens: the bytes are decoded leniently and whatever
    readable text comes out is used.
    """
    path = Path(path)
    if path.suffix.lower() not in DRAFT_FILE_SUFFIXES:
        raise PrefillError("Please upload a PDF file")
    try:
        size = path.stat().st_size
        if size > MAX_FILE_BYTES:
            raise PrefillError("PDF file is too large. Maximum size is 10MB.")
        raw = path.read_bytes()
    except OSError as e:
        logger.warning("Could not read draft file", path=str(path), error=str(e))
        raise PrefillError("Could not read PDF. Please enter details manually.") from e

    return draft_from_text(raw.decode("utf-8", errors="ignore"))


def _split_title(title: str) -> Tuple[str, str]:
    for sep in TITLE_SEPARATORS:
        if sep in title:
            head, tail = title.split(sep, 1)
            return head.strip(), tail.strip()
    return title.strip(), ""


def _meta(soup: BeautifulSoup, prop: str) -> str:
    tag = soup.find("meta", attrs={"property": prop})
    if tag and tag.get("content"):
        return tag["content"].strip()
    return ""


def parse_posting_html(html: str, url: str = "") -> Optional[Draft]:
    """Pull position and company out of a posting page."""
    soup = BeautifulSoup(html, "html.parser")

    position = ""
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        position = h1.get_text(strip=True)

    page_title = ""
    t = soup.find("title")
    if t and t.get_text(strip=True):
        page_title = t.get_text(strip=True)
    page_title = page_title or _meta(soup, "og:title")

    company = _meta(soup, "og:site_name")

    # "Software Engineer - Acme" style titles carry both parts
    head, tail = _split_title(page_title)
    position = position or head
    company = company or tail

    if not position and not company:
        return None

    clean_url = sanitize_text(url, MAX_URL_LENGTH)
    return Draft(
        company=sanitize_text(company, MAX_NAME_LENGTH),
        position=sanitize_text(position, MAX_NAME_LENGTH),
        url=clean_url if validate_url(clean_url) else "",
    )


@exponential_backoff(
    max_retries=2,
    base_delay=1.0,
    exceptions=(requests.exceptions.Timeout, requests.exceptions.ConnectionError),
)
def _fetch_with_retry(url: str, timeout: float):
    return requests.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})


def fetch_posting(url: str, timeout: Optional[float] = None) -> str:
    """Fetch a posting page and return its HTML.

    Raises:
        PrefillError: On invalid URL, HTTP error, timeout, or request failure
    """
    if not url or not validate_url(url):
        raise PrefillError("Please enter a valid URL (starting with http:// or https://)")
    if timeout is None:
        timeout = get_settings().fetch_timeout

    try:
        resp = _fetch_with_retry(url, timeout)
        resp.raise_for_status()
        return resp.text
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "HTTPError"
        if status == 404:
            logger.warning("Posting URL not found", url=url, status=404)
            raise PrefillError(f"Posting not found (404): {url}") from e
        logger.error("Posting request failed", url=url, status=status)
        raise PrefillError(f"Posting request failed ({status}): {url}") from e
    except RetryError as e:
        logger.warning("Posting request kept failing", url=url, attempts=e.attempts)
        raise PrefillError("Posting request timed out. Try again later.") from e
    except requests.exceptions.RequestException as e:
        logger.error("Posting request error", url=url, error=str(e))
        raise PrefillError(f"Posting request error: {e}") from e


def draft_from_url(url: str, timeout: Optional[float] = None) -> Draft:
    """Draft from a posting page; falls back to a URL-only draft."""
    html = fetch_posting(url, timeout)
    draft = parse_posting_html(html, url)
    if draft is None:
        logger.info("No posting details found", url=url)
        return Draft(url=sanitize_text(url, MAX_URL_LENGTH))
    return draft
