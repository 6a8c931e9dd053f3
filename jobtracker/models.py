"""
Job application record and the values that travel with it.
"""

import random
import string
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

KEY_PREFIX = "job:"
ID_SUFFIX_LENGTH = 9
_ID_ALPHABET = string.digits + string.ascii_lowercase


class Status(str, Enum):
    """Application status. Any status may move to any other."""

    APPLIED = "Applied"
    INTERVIEW = "Interview"
    OFFER = "Offer"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"

    @classmethod
    def parse(cls, value: Any) -> Optional["Status"]:
        """Return the matching status, or None for anything outside the enum."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


STATUS_VALUES = tuple(s.value for s in Status)


@dataclass(frozen=True)
class JobRecord:
    """One job application as persisted in the backend."""

    id: str
    company: str
    position: str
    url: str = ""
    status: Status = Status.APPLIED
    timestamp: int = 0
    last_update: int = 0

    @property
    def key(self) -> str:
        return record_key(self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape, shared by the backend encoding and export bundles."""
        return {
            "id": self.id,
            "company": self.company,
            "position": self.position,
            "url": self.url,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "lastUpdate": self.last_update,
        }


@dataclass(frozen=True)
class Draft:
    """Unvalidated {company, position, url} triple from a prefill source."""

    company: str = ""
    position: str = ""
    url: str = ""

    def to_input(self) -> Dict[str, str]:
        return {"company": self.company, "position": self.position, "url": self.url}


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_id(now: Optional[int] = None) -> str:
    """Time component plus a random base36 suffix, e.g. 1718000000000_k3j9x0a1b."""
    stamp = now_ms() if now is None else now
    suffix = "".join(random.choices(_ID_ALPHABET, k=ID_SUFFIX_LENGTH))
    return f"{stamp}_{suffix}"


def record_key(record_id: str) -> str:
    return f"{KEY_PREFIX}{record_id}"


def id_from_key(key: str) -> Optional[str]:
    if not key.startswith(KEY_PREFIX):
        return None
    return key[len(KEY_PREFIX):] or None
