from typing import Any, Dict, List
from urllib.parse import urlparse

from .models import STATUS_VALUES, Status

MAX_NAME_LENGTH = 100
MAX_URL_LENGTH = 500

REQUIRED_STR_FIELDS = ["company", "position"]
ALLOWED_URL_SCHEMES = {"http", "https"}


def sanitize_text(value: Any, max_len: int) -> str:
    """Strip surrounding whitespace and cut to max_len. Non-text becomes ""."""
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_len]


def validate_url(url: Any) -> bool:
    """Empty is fine (the URL is optional); otherwise absolute http(s) only."""
    if url == "":
        return True
    if not isinstance(url, str):
        return False
    try:
        p = urlparse(url)
        # netloc alone is not enough: "http://:80" parses with a port and no host
        return p.scheme in ALLOWED_URL_SCHEMES and bool(p.netloc) and bool(p.hostname)
    except ValueError:
        return False


def validate_status(status: Any) -> bool:
    return Status.parse(status) is not None


def validate_required(company: Any, position: Any) -> bool:
    return bool(sanitize_text(company, MAX_NAME_LENGTH)) and bool(
        sanitize_text(position, MAX_NAME_LENGTH)
    )


def validate_record(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Checks a record-like mapping the same way create() would.
    """
    if not isinstance(data, dict):
        return ["Record must be a JSON object"]

    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not sanitize_text(data[f], MAX_NAME_LENGTH):
            errors.append(f"Field '{f}' must be a non-empty string")

    url = data.get("url", "")
    if url is not None and not isinstance(url, str):
        errors.append("Field 'url' must be a string if provided")
    elif url and not validate_url(sanitize_text(url, MAX_URL_LENGTH)):
        errors.append("Field 'url' must be an absolute http:// or https:// URL")

    if "status" in data and not validate_status(data["status"]):
        errors.append(f"Field 'status' must be one of: {', '.join(STATUS_VALUES)}")

    return errors
