"""
Persistence for ingested listings and run logs.

The orchestrator talks to the JobStore interface only; PostgresJobStore is
the production implementation on the Supabase database (psycopg2).
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2 import errors as pg_errors, sql
from psycopg2.extras import Json, RealDictCursor

from app.db_config import db_config

logger = logging.getLogger(__name__)

JOBS_TABLE = "jobs"
LOGS_TABLE = "job_import_logs"


class ImportStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    CLASSIFIED = "classified"
    NO_SIGNAL = "no_signal"
    EXPIRED = "expired"
    ERROR = "error"


class RunAction(str, Enum):
    RUN_STARTED = "run_started"
    IMPORTED = "imported"
    UPDATED = "updated"
    SKIPPED = "skipped"
    EXPIRED = "expired"
    ERROR = "error"
    RUN_COMPLETED = "run_completed"


class StoreError(Exception):
    """Persistence failure."""


class DuplicateListingError(StoreError):
    """Insert hit the (source_name, source_unique_id) uniqueness constraint."""


@dataclass
class JobRecord:
    """A persisted listing"""
    title: str
    source_name: str
    source_unique_id: str
    content_hash: str
    hospital_name: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    description: Optional[str] = None
    apply_url: Optional[str] = None
    source_url: Optional[str] = None
    import_status: ImportStatus = ImportStatus.PENDING_REVIEW
    is_published: bool = False
    imported_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    link_status: Optional[str] = None
    link_checked_at: Optional[datetime] = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobRecord":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            title=row.get("title") or "",
            source_name=row.get("source_name") or "",
            source_unique_id=row.get("source_unique_id") or "",
            content_hash=row.get("content_hash") or "",
            hospital_name=row.get("hospital_name"),
            location=row.get("location"),
            department=row.get("department"),
            tags=list(row.get("tags") or []),
            description=row.get("description"),
            apply_url=row.get("apply_url"),
            source_url=row.get("source_url"),
            import_status=ImportStatus(row.get("import_status") or ImportStatus.PENDING_REVIEW.value),
            is_published=bool(row.get("is_published")),
            imported_at=row.get("imported_at"),
            last_seen_at=row.get("last_seen_at"),
            link_status=row.get("link_status"),
            link_checked_at=row.get("link_checked_at"),
        )


@dataclass
class RunLogEntry:
    """One append-only run log row"""
    run_id: str
    action: RunAction
    source_unique_id: Optional[str] = None
    job_id: Optional[str] = None
    job_title: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class JobStore(ABC):
    """Storage operations used by ingestion runs"""

    @abstractmethod
    def find_existing(self, sources: Iterable[str]) -> List[JobRecord]:
        """All listings of the given sources, any status"""

    @abstractmethod
    def find_published_by_apply_url(self, apply_url: str) -> Optional[JobRecord]:
        """A published listing with this apply URL, if any"""

    @abstractmethod
    def insert_listing(self, record: JobRecord) -> str:
        """Insert a listing and return its id; raises DuplicateListingError"""

    @abstractmethod
    def update_listing(self, job_id: str, **fields) -> None:
        """Update the given columns of one listing"""

    @abstractmethod
    def insert_log(self, entry: RunLogEntry) -> None:
        """Append a run log row"""

    @abstractmethod
    def last_completed_run_at(self) -> Optional[datetime]:
        """Timestamp of the newest run_completed row"""

    @abstractmethod
    def find_pending_review(self, sources: Optional[Iterable[str]], limit: int) -> List[JobRecord]:
        """Unpublished pending_review listings, oldest first"""

    @abstractmethod
    def find_missing_region(self, sources: Optional[Iterable[str]], labels: Iterable[str], limit: int) -> List[JobRecord]:
        """Listings whose location is empty or carries none of the labels, oldest first"""

    @abstractmethod
    def find_published_with_apply_url(self, limit: int) -> List[JobRecord]:
        """Published listings with an apply URL, least recently checked first"""


UPDATABLE_COLUMNS = {
    "title", "hospital_name", "location", "department", "tags", "description",
    "apply_url", "source_url", "content_hash", "import_status", "last_seen_at",
    "link_status", "link_checked_at",
}

INSERT_COLUMNS = (
    "title", "hospital_name", "location", "department", "tags", "description",
    "apply_url", "source_url", "source_name", "source_unique_id", "content_hash",
    "import_status", "is_published", "imported_at", "last_seen_at",
)


def _db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class PostgresJobStore(JobStore):
    """JobStore on PostgreSQL via psycopg2"""

    def __init__(self, conn_params: Optional[Dict[str, Any]] = None):
        self.conn_params = conn_params or db_config.get_connection_params()
        if not self.conn_params:
            raise StoreError("Database not configured (SUPABASE_DB_URL missing)")

    @contextmanager
    def _cursor(self):
        """Cursor in its own connection; commits on success, rolls back on error"""
        conn = psycopg2.connect(**self.conn_params, connect_timeout=10)
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def find_existing(self, sources: Iterable[str]) -> List[JobRecord]:
        source_list = [_db_value(s) for s in sources]
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT * FROM {JOBS_TABLE} WHERE source_name = ANY(%s)",
                (source_list,),
            )
            rows = cursor.fetchall()
        logger.info(f"[job_store] Loaded {len(rows)} existing listings for {source_list}")
        return [JobRecord.from_row(row) for row in rows]

    def find_published_by_apply_url(self, apply_url: str) -> Optional[JobRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT * FROM {JOBS_TABLE} WHERE apply_url = %s AND is_published = true LIMIT 1",
                (apply_url,),
            )
            row = cursor.fetchone()
        return JobRecord.from_row(row) if row else None

    def insert_listing(self, record: JobRecord) -> str:
        values = asdict(record)
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING id").format(
            table=sql.Identifier(JOBS_TABLE),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in INSERT_COLUMNS),
            placeholders=sql.SQL(", ").join(sql.Placeholder() for _ in INSERT_COLUMNS),
        )
        try:
            with self._cursor() as cursor:
                cursor.execute(query, [_db_value(values[c]) for c in INSERT_COLUMNS])
                row = cursor.fetchone()
        except pg_errors.UniqueViolation as e:
            raise DuplicateListingError(str(e))
        return str(row["id"])

    def update_listing(self, job_id: str, **fields) -> None:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        if not fields:
            return

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder())
            for column in fields
        )
        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=sql.Identifier(JOBS_TABLE),
            assignments=assignments,
        )
        with self._cursor() as cursor:
            cursor.execute(query, [_db_value(v) for v in fields.values()] + [job_id])

    def insert_log(self, entry: RunLogEntry) -> None:
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                INSERT INTO {LOGS_TABLE} (run_id, action, source_unique_id, job_id, job_title, details)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    entry.run_id,
                    _db_value(entry.action),
                    entry.source_unique_id,
                    entry.job_id,
                    entry.job_title,
                    Json(entry.details),
                ),
            )

    def last_completed_run_at(self) -> Optional[datetime]:
        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT created_at FROM {LOGS_TABLE} WHERE action = %s ORDER BY created_at DESC LIMIT 1",
                (RunAction.RUN_COMPLETED.value,),
            )
            row = cursor.fetchone()
        return row["created_at"] if row else None

    def find_pending_review(self, sources: Optional[Iterable[str]], limit: int) -> List[JobRecord]:
        query = f"""
            SELECT * FROM {JOBS_TABLE}
            WHERE import_status = %s
              AND is_published = false
        """
        params: List[Any] = [ImportStatus.PENDING_REVIEW.value]
        if sources:
            query += " AND source_name = ANY(%s)"
            params.append([_db_value(s) for s in sources])
        query += " ORDER BY imported_at ASC LIMIT %s"
        params.append(limit)

        with self._cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [JobRecord.from_row(row) for row in rows]

    def find_missing_region(self, sources: Optional[Iterable[str]], labels: Iterable[str], limit: int) -> List[JobRecord]:
        query = f"""
            SELECT * FROM {JOBS_TABLE}
            WHERE (location IS NULL OR btrim(location) = '' OR NOT (lower(location) LIKE ANY(%s)))
        """
        params: List[Any] = [[f"%{label.lower()}%" for label in labels]]
        if sources:
            query += " AND source_name = ANY(%s)"
            params.append([_db_value(s) for s in sources])
        query += " ORDER BY imported_at ASC LIMIT %s"
        params.append(limit)

        with self._cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [JobRecord.from_row(row) for row in rows]

    def find_published_with_apply_url(self, limit: int) -> List[JobRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                f"""
                SELECT * FROM {JOBS_TABLE}
                WHERE is_published = true AND apply_url IS NOT NULL AND apply_url <> ''
                ORDER BY link_checked_at ASC NULLS FIRST
                LIMIT %s
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [JobRecord.from_row(row) for row in rows]


_store: Optional[JobStore] = None


def get_job_store() -> JobStore:
    """Get or create the global job store"""
    global _store
    if _store is None:
        _store = PostgresJobStore()
    return _store
