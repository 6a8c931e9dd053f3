"""
Front-end state for the tracker.

A TrackerSession owns the list of records a user is looking at. The list is
a snapshot: every mutation is followed by a fresh store.list(), nothing is
patched in place. Operations return a Notice (message plus how long to show
it) instead of raising, so a front end only has to display them.
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Union

from .errors import (
    ERROR_DISPLAY_SECONDS,
    SUMMARY_DISPLAY_SECONDS,
    StoreError,
)
from .logger import get_logger
from .models import Draft, JobRecord, Status
from .store import JobRecordStore

logger = get_logger()

MAX_IMPORT_BYTES = 10 * 1024 * 1024
DELETE_PROMPT = "Delete this application? This action cannot be undone."

Confirm = Callable[[str], bool]


@dataclass(frozen=True)
class Notice:
    text: str
    level: str = "info"
    seconds: int = ERROR_DISPLAY_SECONDS

    @property
    def is_error(self) -> bool:
        return self.level == "error"


def _error(exc_or_text: Union[StoreError, str]) -> Notice:
    if isinstance(exc_or_text, StoreError):
        return Notice(exc_or_text.message, "error", exc_or_text.display_seconds)
    return Notice(exc_or_text, "error", ERROR_DISPLAY_SECONDS)


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"job-applications-{today.isoformat()}.json"


class TrackerSession:
    def __init__(self, store: JobRecordStore):
        self.store = store
        self.records: List[JobRecord] = []

    @property
    def count(self) -> int:
        return len(self.records)

    async def refresh(self) -> Optional[Notice]:
        """Reload the snapshot. On failure the snapshot is emptied."""
        try:
            self.records = await self.store.list()
        except StoreError as e:
            self.records = []
            return _error(e)
        return None

    async def add(self, data: Union[Mapping[str, Any], Draft]) -> Notice:
        try:
            record = await self.store.create(data)
        except StoreError as e:
            return _error(e)
        except Exception as e:
            logger.error("Error saving job", error=str(e))
            return _error("Failed to save application. Please try again.")
        await self.refresh()
        return Notice(f"Added {record.position} at {record.company}")

    async def set_status(self, record_id: str, status: Union[Status, str]) -> Notice:
        try:
            record = await self.store.update_status(record_id, status)
        except StoreError as e:
            return _error(e)
        except Exception as e:
            logger.error("Error updating job status", id=record_id, error=str(e))
            return _error("Failed to update status. Please try again.")
        await self.refresh()
        return Notice(f"{record.position} at {record.company} is now {record.status.value}")

    async def remove(self, record_id: str, confirm: Confirm) -> Optional[Notice]:
        """Delete after the user agrees. Returns None if they decline."""
        if not record_id:
            return None
        if not confirm(DELETE_PROMPT):
            return None
        try:
            await self.store.delete(record_id)
        except StoreError as e:
            return _error(e)
        await self.refresh()
        return Notice("Application deleted")

    def export_to(self, path: Optional[Path] = None, today: Optional[date] = None) -> Notice:
        """Write the current snapshot as a bundle file."""
        path = Path(path) if path else Path(export_filename(today))
        try:
            text = self.store.export_snapshot(self.records)
        except StoreError as e:
            return _error(e)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            logger.error("Export error", path=str(path), error=str(e))
            return _error("Failed to export data. Please try again.")
        return Notice(
            f"Exported {self.count} applications to {path}",
            seconds=SUMMARY_DISPLAY_SECONDS,
        )

    async def import_from(self, path: Path, confirm: Confirm) -> Optional[Notice]:
        """Merge a bundle file into the store.

        Asks for confirmation when the store already has records. Returns
        None if the user declines.
        """
        path = Path(path)
        try:
            if path.stat().st_size > MAX_IMPORT_BYTES:
                return _error("Import file is too large. Maximum size is 10MB.")
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read import file", path=str(path), error=str(e))
            return _error("Failed to read file")

        try:
            candidates = self.store.parse_bundle(text)
        except StoreError as e:
            return _error(e)

        if self.records:
            prompt = (
                f"You have {self.count} existing application(s). "
                f"Import will add {len(candidates)} more. Continue?"
            )
            if not confirm(prompt):
                return None

        try:
            report = await self.store.import_bundle(text, existing_count=self.count)
        except StoreError as e:
            return _error(e)

        await self.refresh()
        level = "error" if report.fail_count else "info"
        return Notice(report.message, level, report.display_seconds)

    def close(self) -> None:
        self.records = []
        close = getattr(self.store.backend, "close", None)
        if callable(close):
            close()
