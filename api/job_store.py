"""In-memory job store keyed on job URL.

Stands in for the persistence collaborator: create/read/update/delete plus
``upsert`` so repeated searches refresh rather than duplicate records.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.models import ScrapedJobRecord

logger = logging.getLogger(__name__)

__all__ = ["InMemoryJobStore"]


class InMemoryJobStore:
    """Thread-safe dict-backed record store."""

    def __init__(self) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def upsert(self, record: ScrapedJobRecord) -> Dict[str, Any]:
        """Insert a new job (status ``new``) or refresh the scraped fields of an existing one."""
        now = datetime.now(timezone.utc).isoformat()
        data = record.to_dict()
        with self._lock:
            existing = self._rows.get(record.url)
            if existing is None:
                row = {**data, "status": "new", "description": None, "createdAt": now, "updatedAt": now}
                self._rows[record.url] = row
            else:
                existing.update(data)
                existing["updatedAt"] = now
                row = existing
            return dict(row)

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(url)
            return dict(row) if row else None

    def list(self, source: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [dict(r) for r in self._rows.values()]
        if source and source != "all":
            rows = [r for r in rows if r["source"] == source]
        return sorted(rows, key=lambda r: r["createdAt"], reverse=True)

    def update(self, url: str, **fields: Any) -> Optional[Dict[str, Any]]:
        with self._lock:
            row = self._rows.get(url)
            if row is None:
                return None
            row.update({k: v for k, v in fields.items() if v is not None})
            row["updatedAt"] = datetime.now(timezone.utc).isoformat()
            return dict(row)

    def delete(self, url: str) -> bool:
        with self._lock:
            return self._rows.pop(url, None) is not None
