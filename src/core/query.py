"""
Commit listing - reads the backing file (remote first, local copy otherwise) and
decodes it newest-first. Listing never fails; an unreadable log is an empty one.
"""

from typing import Dict, List, Optional

from util.logging import logger
from .codec import CommitRecord, STATUS_APPROVED, STATUS_PENDING, decode_log
from .errors import StoreError
from .store import ILogStore


class QueryService:
    """Read side of the commit log."""

    def __init__(self, store: Optional[ILogStore], fallback: Optional[ILogStore] = None):
        self.store = store
        self.fallback = fallback

    def _read_records(self, store: ILogStore) -> List[CommitRecord]:
        return decode_log(store.read().content)

    def list_commits(self) -> List[CommitRecord]:
        """All decodable records, newest first."""
        records: List[CommitRecord] = []

        if self.store is not None:
            try:
                records = self._read_records(self.store)
            except StoreError:
                logger.warning(f"Reading {self.store.name} store failed, using local copy")
            except Exception as e:
                logger.error(f"Unexpected error reading {self.store.name} store: {e}")

        if not records and self.fallback is not None:
            try:
                records = self._read_records(self.fallback)
            except Exception as e:
                logger.error(f"Local fallback read failed: {e}")
                records = []

        return records

    def summarize(self) -> Dict:
        """Counts by status plus the newest record."""
        records = self.list_commits()
        return {
            "total": len(records),
            "approved": sum(1 for r in records if r.status == STATUS_APPROVED),
            "pending": sum(1 for r in records if r.status == STATUS_PENDING),
            "latest": records[0] if records else None,
        }
