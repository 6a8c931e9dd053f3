"""
Job record store.

Reads, validates, writes, merges and exports job records against a
key-value backend. The store keeps no state between calls: callers re-run
list() after a mutation to see the result.

Single-key operations let backend errors through unchanged (delete wraps
them in DeleteFailed). Multi-key operations isolate failures per item:
list() skips entries it cannot load, import_bundle() counts failed writes.
"""

import asyncio
import json
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Union

from .backend import KeyValueBackend
from .codec import MAX_VALUE_BYTES, decode, encode, encoded_size
from .errors import (
    SUMMARY_DISPLAY_SECONDS,
    BundleImportError,
    DeleteFailed,
    ExportError,
    ExportReason,
    ImportReason,
    ListFailed,
    NotFoundError,
    StoreError,
    ValidationError,
    ValidationReason,
)
from .logger import get_logger
from .models import (
    KEY_PREFIX,
    Draft,
    JobRecord,
    Status,
    generate_id,
    id_from_key,
    now_ms,
    record_key,
)
from .schema import (
    MAX_NAME_LENGTH,
    MAX_URL_LENGTH,
    sanitize_text,
    validate_required,
    validate_url,
)

logger = get_logger()

BUNDLE_VERSION = "1.0"
ID_ATTEMPTS = 5


@dataclass(frozen=True)
class ImportReport:
    """Running tally of an import: one tally() per candidate."""

    success_count: int = 0
    fail_count: int = 0

    display_seconds: ClassVar[int] = SUMMARY_DISPLAY_SECONDS

    def tally(self, ok: bool) -> "ImportReport":
        if ok:
            return replace(self, success_count=self.success_count + 1)
        return replace(self, fail_count=self.fail_count + 1)

    @property
    def message(self) -> str:
        if self.fail_count:
            return f"Imported {self.success_count} applications. {self.fail_count} failed."
        return f"Successfully imported {self.success_count} applications"


def export_timestamp(when: Optional[datetime] = None) -> str:
    """ISO-8601 UTC with milliseconds, e.g. 2024-05-01T09:30:00.000Z."""
    when = when or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_millis(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(value)


class JobRecordStore:
    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    # Reads

    async def list(self) -> List[JobRecord]:
        """All decodable records, newest first.

        Raises ListFailed if the backend cannot enumerate keys. Entries that
        fail to load or decode are logged and skipped.
        """
        logger.record_backend_call()
        try:
            keys = await self.backend.list(KEY_PREFIX)
        except Exception as e:
            logger.error("Failed to enumerate applications", error=str(e))
            raise ListFailed() from e

        loaded = await asyncio.gather(*(self._load(key) for key in keys))
        records = [r for r in loaded if r is not None]
        records.sort(key=lambda r: r.timestamp, reverse=True)

        logger.record_listed(len(records))
        logger.debug("Listed applications", keys=len(keys), records=len(records))
        return records

    async def _load(self, key: str) -> Optional[JobRecord]:
        logger.record_backend_call()
        try:
            value = await self.backend.get(key)
        except Exception as e:
            logger.warning("Error loading application", key=key, error=str(e))
            logger.record_skipped(type(e).__name__)
            return None

        if value is None:
            # deleted between list and get
            logger.debug("Application vanished before read", key=key)
            return None

        result = decode(value)
        if not result.ok:
            logger.warning("Invalid job data", key=key, reason=result.error.reason)
            logger.record_skipped("DecodeError")
            return None
        if result.record.id != id_from_key(key):
            logger.warning("Stored id does not match key", key=key, id=result.record.id)
            logger.record_skipped("KeyMismatch")
            return None
        return result.record

    async def get(self, record_id: str) -> JobRecord:
        """Fetch one record. NotFoundError if absent or undecodable."""
        if not record_id:
            raise NotFoundError(record_id)

        logger.record_backend_call()
        value = await self.backend.get(record_key(record_id))
        if value is None:
            raise NotFoundError(record_id)

        result = decode(value)
        if not result.ok or result.record.id != record_id:
            reason = result.error.reason if result.error else "id mismatch"
            logger.warning("Stored application is unreadable", id=record_id, reason=reason)
            raise NotFoundError(record_id)
        return result.record

    # Writes

    async def create(self, data: Union[Mapping[str, Any], Draft]) -> JobRecord:
        """Validate user input and persist it as a new record.

        Raises ValidationError before touching the backend when the input is
        unusable. Backend failures propagate unchanged.
        """
        if isinstance(data, Draft):
            data = data.to_input()

        company = sanitize_text(data.get("company"), MAX_NAME_LENGTH)
        position = sanitize_text(data.get("position"), MAX_NAME_LENGTH)
        url = sanitize_text(data.get("url") or "", MAX_URL_LENGTH)

        if not validate_required(company, position):
            raise ValidationError(ValidationReason.MISSING_FIELDS)
        if not validate_url(url):
            raise ValidationError(ValidationReason.INVALID_URL)

        raw_status = data.get("status")
        status = Status.parse(raw_status)
        if status is None:
            if raw_status:
                logger.warning("Unknown status, defaulting to Applied", status=str(raw_status))
            status = Status.APPLIED

        now = now_ms()
        record = JobRecord(
            id=generate_id(now),
            company=company,
            position=position,
            url=url,
            status=status,
            timestamp=now,
            last_update=now,
        )
        self._check_size(encode(record))

        record = await self._claim_unused_id(record)
        try:
            await self._put(record)
        except Exception as e:
            logger.error("Error saving application", id=record.id, error=str(e))
            logger.record_write_failure(type(e).__name__)
            raise

        logger.info("Created application", id=record.id, company=company, position=position)
        return record

    async def _claim_unused_id(self, record: JobRecord) -> JobRecord:
        for _ in range(ID_ATTEMPTS):
            logger.record_backend_call()
            if await self.backend.get(record.key) is None:
                return record
            logger.warning("Generated id already in use, regenerating", id=record.id)
            record = replace(record, id=generate_id(record.timestamp))
        raise StoreError("Failed to save application. Please try again.")

    async def update_status(self, record_id: str, status: Union[Status, str]) -> JobRecord:
        """Set a new status and bump lastUpdate. Last writer wins."""
        new_status = Status.parse(status)
        if new_status is None:
            raise ValidationError(ValidationReason.INVALID_STATUS)

        record = await self.get(record_id)
        updated = replace(
            record,
            status=new_status,
            last_update=max(now_ms(), record.timestamp),
        )
        try:
            await self._put(updated)
        except Exception as e:
            logger.error("Error updating application status", id=record_id, error=str(e))
            logger.record_write_failure(type(e).__name__)
            raise

        logger.info(
            "Updated application status",
            id=record_id,
            old=record.status.value,
            new=new_status.value,
        )
        return updated

    async def delete(self, record_id: str) -> None:
        """Remove a record. Deleting a missing id is not an error."""
        if not record_id:
            raise DeleteFailed("No application selected")

        logger.record_backend_call()
        try:
            await self.backend.delete(record_key(record_id))
        except Exception as e:
            logger.error("Error deleting application", id=record_id, error=str(e))
            raise DeleteFailed() from e
        logger.info("Deleted application", id=record_id)

    def _check_size(self, text: str) -> None:
        size = encoded_size(text)
        if size > MAX_VALUE_BYTES:
            raise ValidationError(ValidationReason.TOO_LARGE)

    async def _put(self, record: JobRecord) -> None:
        text = encode(record)
        self._check_size(text)
        logger.record_backend_call()
        await self.backend.set(record.key, text)
        logger.record_write()

    # Export / import

    def export_snapshot(
        self,
        records: Sequence[JobRecord],
        exported_at: Optional[datetime] = None,
    ) -> str:
        """Wrap records in a versioned bundle. ExportError if there are none."""
        if not records:
            raise ExportError(ExportReason.EMPTY)

        bundle = {
            "version": BUNDLE_VERSION,
            "exportDate": export_timestamp(exported_at),
            "jobs": [r.to_dict() for r in records],
        }
        logger.info("Exported applications", count=len(records))
        return json.dumps(bundle, indent=2, ensure_ascii=False)

    def parse_bundle(self, text: str) -> List[Dict[str, Any]]:
        """Decode an import file and keep the usable candidates.

        Accepts a bundle object with a ``jobs`` list or a bare list (older
        exports). Nothing is written.
        """
        try:
            parsed = json.loads(text)
        except (TypeError, ValueError, RecursionError) as e:
            raise BundleImportError(ImportReason.BAD_FORMAT) from e

        if isinstance(parsed, list):
            items = parsed
        elif isinstance(parsed, dict) and isinstance(parsed.get("jobs"), list):
            items = parsed["jobs"]
            version = parsed.get("version")
            if version is not None and version != BUNDLE_VERSION:
                logger.warning("Importing bundle with unknown version", version=version)
        else:
            raise BundleImportError(ImportReason.BAD_FORMAT)

        if not items:
            raise BundleImportError(
                ImportReason.NO_VALID_RECORDS, "No applications found in file"
            )

        candidates = [
            item for item in items
            if isinstance(item, dict)
            and item.get("company")
            and item.get("position")
            and item.get("id")
        ]
        if not candidates:
            raise BundleImportError(ImportReason.NO_VALID_RECORDS)

        skipped = len(items) - len(candidates)
        if skipped:
            logger.info("Ignoring incomplete import entries", skipped=skipped)
        return candidates

    async def import_bundle(self, text: str, existing_count: int = 0) -> ImportReport:
        """Merge a bundle into the store, overwriting records with the same id.

        Every candidate is written on its own; a failure is counted and the
        next candidate is still attempted. Whether to merge into a non-empty
        store is for the caller to confirm beforehand.
        """
        candidates = self.parse_bundle(text)
        logger.info(
            "Importing applications",
            candidates=len(candidates),
            existing=existing_count,
        )

        report = ImportReport()
        for candidate in candidates:
            report = report.tally(await self._import_one(candidate))

        logger.info(
            "Import finished",
            success=report.success_count,
            failed=report.fail_count,
        )
        return report

    async def _import_one(self, candidate: Mapping[str, Any]) -> bool:
        try:
            record = self._record_from_candidate(candidate)
            await self._put(record)
        except Exception as e:
            logger.warning(
                "Error importing application",
                id=candidate.get("id"),
                error=str(e),
            )
            logger.record_write_failure(type(e).__name__)
            return False
        return True

    def _record_from_candidate(self, candidate: Mapping[str, Any]) -> JobRecord:
        now = now_ms()

        record_id = candidate.get("id")
        if not record_id:
            record_id = generate_id(now)
        elif isinstance(record_id, int) and not isinstance(record_id, bool):
            record_id = str(record_id)
        elif not isinstance(record_id, str):
            raise ValidationError(ValidationReason.MISSING_FIELDS, "Invalid id")

        company = sanitize_text(candidate.get("company"), MAX_NAME_LENGTH)
        position = sanitize_text(candidate.get("position"), MAX_NAME_LENGTH)
        url = sanitize_text(candidate.get("url") or "", MAX_URL_LENGTH)
        if not validate_required(company, position):
            raise ValidationError(ValidationReason.MISSING_FIELDS)
        if not validate_url(url):
            raise ValidationError(ValidationReason.INVALID_URL)

        timestamp = _as_millis(candidate.get("timestamp")) or now
        last_update = _as_millis(candidate.get("lastUpdate")) or now

        return JobRecord(
            id=record_id,
            company=company,
            position=position,
            url=url,
            status=Status.parse(candidate.get("status")) or Status.APPLIED,
            timestamp=timestamp,
            last_update=max(last_update, timestamp),
        )
