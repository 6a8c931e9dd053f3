"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs from writing log files into the working tree
os.environ.setdefault("JOBTRACKER_LOG_FILE", "false")
os.environ.setdefault("JOBTRACKER_LOG_LEVEL", "WARNING")

import json
from typing import Any, Dict

import pytest

from jobtracker.backend import MemoryBackend
from jobtracker.models import JobRecord, Status
from jobtracker.store import JobRecordStore


class FlakyBackend(MemoryBackend):
    """MemoryBackend that fails on demand and remembers every write."""

    def __init__(self, data=None, fail_list=False, fail_get=(), fail_set=(), fail_delete=False):
        super().__init__(data)
        self.fail_list = fail_list
        self.fail_get = set(fail_get)
        self.fail_set = set(fail_set)
        self.fail_delete = fail_delete
        self.set_calls = []

    async def list(self, prefix):
        if self.fail_list:
            raise ConnectionError("backend unavailable")
        return await super().list(prefix)

    async def get(self, key):
        if key in self.fail_get:
            raise TimeoutError(f"get timed out: {key}")
        return await super().get(key)

    async def set(self, key, value):
        self.set_calls.append(key)
        if key in self.fail_set:
            raise RuntimeError(f"write rejected: {key}")
        await super().set(key, value)

    async def delete(self, key):
        if self.fail_delete:
            raise ConnectionError("backend unavailable")
        await super().delete(key)


def raw_record(**overrides) -> str:
    """Stored encoding of a record, for seeding backends directly."""
    data = {
        "id": "1700000000000_abc123xyz",
        "company": "Acme Corp",
        "position": "Software Engineer",
        "url": "https://boards.greenhouse.io/acme/jobs/12345",
        "status": "Applied",
        "timestamp": 1700000000000,
        "lastUpdate": 1700000000000,
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def backend() -> FlakyBackend:
    return FlakyBackend()


@pytest.fixture
def store(backend) -> JobRecordStore:
    return JobRecordStore(backend)


@pytest.fixture
def valid_job_input() -> Dict[str, Any]:
    """What a user would type into the add form."""
    return {
        "company": "Acme Corp",
        "position": "Software Engineer",
        "url": "https://boards.greenhouse.io/acme/jobs/12345",
    }


@pytest.fixture
def sample_record() -> JobRecord:
    return JobRecord(
        id="1700000000000_abc123xyz",
        company="Acme Corp",
        position="Software Engineer",
        url="https://boards.greenhouse.io/acme/jobs/12345",
        status=Status.INTERVIEW,
        timestamp=1700000000000,
        last_update=1700000500000,
    )


@pytest.fixture
def seeded_backend() -> FlakyBackend:
    """Two valid records, older one first."""
    return FlakyBackend({
        "job:1": raw_record(id="1", company="Old Co", position="Analyst", timestamp=1000, lastUpdate=1000),
        "job:2": raw_record(id="2", company="New Co", position="Engineer", timestamp=2000, lastUpdate=2500),
    })
