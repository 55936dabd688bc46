"""Database helpers for qualification jobs and lead scan results."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

from psycopg2 import extras, pool

from qualifier.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None

JOB_COUNTERS = ("completed", "failed")


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    finally:
        pg_pool.putconn(conn)


def _execute(sql: str, params: Any = None) -> None:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params)
        conn.commit()


def _fetch(sql: str, params: Any = None) -> List[Dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        conn.commit()
    return [dict(row) for row in rows]


_INSERT_JOB = """
INSERT INTO qualification_jobs (user_id, total, completed, failed, status)
VALUES (%(user_id)s, %(total)s, 0, 0, 'running')
RETURNING id;
"""

_INSERT_ITEM = """
INSERT INTO qualification_job_items (user_id, job_id, lead_id, status)
VALUES (%(user_id)s, %(job_id)s, %(lead_id)s, 'queued');
"""

_MARK_LEADS_QUEUED = """
UPDATE leads SET scan_status = 'queued' WHERE id::text = ANY(%(lead_ids)s);
"""


def create_job(lead_ids: Iterable[Any], user_id: Optional[str] = None) -> str:
    """Create a running job with one queued item per lead and return its id."""
    ids = [str(lead_id) for lead_id in lead_ids if lead_id]
    if not ids:
        raise ValueError("at least one lead id is required to create a job")

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_INSERT_JOB, {"user_id": user_id, "total": len(ids)})
            job_id = str(cur.fetchone()[0])
            extras.execute_batch(
                cur,
                _INSERT_ITEM,
                [{"user_id": user_id, "job_id": job_id, "lead_id": lead_id} for lead_id in ids],
            )
            cur.execute(_MARK_LEADS_QUEUED, {"lead_ids": ids})
        conn.commit()

    logger.info("Created qualification job %s with %d leads", job_id, len(ids))
    return job_id


_SELECT_QUEUED_ITEMS = """
SELECT items.id AS item_id, items.lead_id, row_to_json(leads) AS lead
FROM qualification_job_items AS items
JOIN leads ON leads.id = items.lead_id
WHERE items.job_id = %(job_id)s AND items.status = 'queued'
ORDER BY items.id
LIMIT %(limit)s;
"""


def fetch_queued_items(job_id: str, limit: int) -> List[Dict[str, Any]]:
    """Queued items of a job, each carrying its lead row under ``lead``."""
    return _fetch(_SELECT_QUEUED_ITEMS, {"job_id": job_id, "limit": limit})


def count_queued_items(job_id: str) -> int:
    rows = _fetch(
        "SELECT COUNT(*) AS queued FROM qualification_job_items WHERE job_id = %(job_id)s AND status = 'queued';",
        {"job_id": job_id},
    )
    return int(rows[0]["queued"]) if rows else 0


def mark_item_status(item_id: Any, status: str, error: Optional[str] = None) -> None:
    _execute(
        "UPDATE qualification_job_items SET status = %(status)s, error = %(error)s WHERE id = %(item_id)s;",
        {"item_id": item_id, "status": status, "error": error},
    )


_UPDATE_LEAD_SCAN = """
UPDATE leads SET
    scan_status = %(scan_status)s,
    scan_score = %(scan_score)s,
    scan_reasons = %(scan_reasons)s,
    scan_missing = %(scan_missing)s,
    scan_recommended_angle = %(scan_recommended_angle)s,
    scan_confidence = %(scan_confidence)s,
    scan_findings_json = %(scan_findings_json)s,
    scan_last_at = %(scan_last_at)s,
    scan_error = %(scan_error)s
WHERE id = %(lead_id)s;
"""


def _prepare_scan_params(lead_id: Any, row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "lead_id": lead_id,
        "scan_status": row.get("scan_status", "done"),
        "scan_score": row.get("scan_score"),
        "scan_reasons": list(row.get("scan_reasons") or []),
        "scan_missing": list(row.get("scan_missing") or []),
        "scan_recommended_angle": row.get("scan_recommended_angle"),
        "scan_confidence": row.get("scan_confidence"),
        "scan_findings_json": extras.Json(row.get("scan_findings_json") or {}),
        "scan_last_at": row.get("scan_last_at"),
        "scan_error": row.get("scan_error"),
    }


def save_scan_result(lead_id: Any, row: Dict[str, Any]) -> None:
    """Persist the scan columns produced by ``scan_result_to_row``."""
    if lead_id is None:
        raise ValueError("lead_id is required to save a scan result")
    _execute(_UPDATE_LEAD_SCAN, _prepare_scan_params(lead_id, row))
    logger.debug("Saved scan result for lead %s", lead_id)


def mark_lead_failed(lead_id: Any, error: str) -> None:
    _execute(
        "UPDATE leads SET scan_status = 'failed', scan_error = %(error)s WHERE id = %(lead_id)s;",
        {"lead_id": lead_id, "error": error},
    )


def increment_job_counter(job_id: str, column: str) -> None:
    """Atomically bump the ``completed`` or ``failed`` counter of a job."""
    if column not in JOB_COUNTERS:
        raise ValueError(f"unknown job counter: {column}")
    _execute(
        f"UPDATE qualification_jobs SET {column} = {column} + 1 WHERE id = %(job_id)s;",
        {"job_id": job_id},
    )


def set_job_status(job_id: str, status: str) -> None:
    _execute(
        "UPDATE qualification_jobs SET status = %(status)s WHERE id = %(job_id)s;",
        {"job_id": job_id, "status": status},
    )


def get_job(job_id: str) -> Optional[Dict[str, Any]]:
    rows = _fetch("SELECT * FROM qualification_jobs WHERE id = %(job_id)s;", {"job_id": job_id})
    return rows[0] if rows else None


def get_lead(lead_id: Any) -> Optional[Dict[str, Any]]:
    rows = _fetch("SELECT * FROM leads WHERE id = %(lead_id)s;", {"lead_id": lead_id})
    return rows[0] if rows else None
