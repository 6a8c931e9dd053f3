"""
Text encoding for job records.

``decode`` never raises: it returns a DecodeResult that is either ok (with a
record) or carries the reason the stored text was rejected.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from .models import JobRecord, Status

MAX_VALUE_BYTES = int(4.5 * 1024 * 1024)

REQUIRED_FIELDS = ("id", "company", "position")


@dataclass(frozen=True)
class DecodeError:
    reason: str


@dataclass(frozen=True)
class DecodeResult:
    record: Optional[JobRecord] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def _fail(reason: str) -> DecodeResult:
    return DecodeResult(error=DecodeError(reason))


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def encode(record: JobRecord) -> str:
    return json.dumps(record.to_dict(), separators=(",", ":"), ensure_ascii=False)


def encoded_size(text: str) -> int:
    return len(text.encode("utf-8"))


def from_dict(data: Any) -> DecodeResult:
    """Build a record from an already-parsed JSON value."""
    if not isinstance(data, dict):
        return _fail("not a JSON object")

    for f in REQUIRED_FIELDS:
        v = data.get(f)
        if not isinstance(v, str) or not v:
            return _fail(f"missing or empty field: {f}")

    url = data.get("url")
    if url is None:
        url = ""
    elif not isinstance(url, str):
        return _fail("field 'url' is not a string")

    status = Status.parse(data.get("status", Status.APPLIED.value))
    if status is None:
        return _fail(f"unknown status: {data.get('status')!r}")

    timestamp = data.get("timestamp", 0)
    last_update = data.get("lastUpdate", timestamp)
    if not _is_int(timestamp) or not _is_int(last_update):
        return _fail("timestamps must be integers")

    return DecodeResult(record=JobRecord(
        id=data["id"],
        company=data["company"],
        position=data["position"],
        url=url,
        status=status,
        timestamp=timestamp,
        last_update=last_update,
    ))


def decode(text: Any) -> DecodeResult:
    if not isinstance(text, str):
        return _fail("stored value is not text")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return _fail(f"invalid JSON: {e.msg}")
    except (ValueError, RecursionError) as e:
        return _fail(f"invalid JSON: {type(e).__name__}")
    return from_dict(data)
