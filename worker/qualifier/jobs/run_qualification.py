"""CLI job that drains queued qualification items and stores scan results."""

import argparse
import logging
import time
from typing import Any, Dict, Optional

from qualifier.core import db
from qualifier.core.config import get_settings
from qualifier.core.models import ScanResult
from qualifier.core.scanner import scan_lead
from qualifier.etl.transform import lead_from_row, scan_result_to_row

logger = logging.getLogger(__name__)


def _scan_item(job_id: str, item: Dict[str, Any]) -> ScanResult:
    item_id = item["item_id"]
    lead_row = item.get("lead") or {}
    lead_id = item.get("lead_id") or lead_row.get("id")

    db.mark_item_status(item_id, "scanning")
    result = scan_lead(lead_from_row(lead_row), policy=get_settings().fetch_policy())
    db.save_scan_result(lead_id, scan_result_to_row(result))
    db.mark_item_status(item_id, "done")
    db.increment_job_counter(job_id, "completed")
    return result


def process_job_batch(job_id: str, batch_size: Optional[int] = None) -> Dict[str, Any]:
    """Scan the next batch of queued items of a job.

    Returns ``{"status": ..., "processed": n}`` where status is ``done`` once
    nothing is queued any more, ``waiting`` when the select came back empty
    but items are still queued, and ``running`` otherwise.
    """
    if not job_id:
        raise ValueError("job_id is required")

    limit = batch_size or get_settings().batch_size
    items = db.fetch_queued_items(job_id, limit)

    if not items:
        if db.count_queued_items(job_id) == 0:
            db.set_job_status(job_id, "done")
            logger.info("Qualification job %s finished", job_id)
            return {"status": "done", "processed": 0}
        return {"status": "waiting", "processed": 0}

    processed = 0
    for item in items:
        try:
            _scan_item(job_id, item)
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or exc.__class__.__name__
            logger.error("Failed to qualify item %s: %s", item.get("item_id"), message)
            db.mark_item_status(item["item_id"], "failed", error=message)
            db.mark_lead_failed(item.get("lead_id"), message)
            db.increment_job_counter(job_id, "failed")
        processed += 1

    logger.info("Job %s: processed %d item(s)", job_id, processed)
    return {"status": "running", "processed": processed}


def run_until_done(
    job_id: str,
    *,
    batch_size: Optional[int] = None,
    poll_interval: float = 2.0,
    max_idle_polls: int = 30,
) -> int:
    """Process batches until the job is done; returns the number of items handled."""
    total = 0
    idle_polls = 0
    while True:
        summary = process_job_batch(job_id, batch_size)
        total += summary["processed"]
        if summary["status"] == "done":
            return total
        if summary["status"] == "waiting":
            idle_polls += 1
            if idle_polls >= max_idle_polls:
                logger.warning("Job %s still has queued items after %d polls; giving up", job_id, idle_polls)
                return total
            time.sleep(poll_interval)
        else:
            idle_polls = 0


def scan_single_lead(lead_id: str, user_id: Optional[str] = None) -> Optional[ScanResult]:
    """Create a one-item job for ``lead_id`` and scan it immediately."""
    job_id = db.create_job([lead_id], user_id=user_id)
    items = db.fetch_queued_items(job_id, 1)
    if not items:
        logger.warning("Lead %s was not found for job %s", lead_id, job_id)
        db.set_job_status(job_id, "failed")
        return None

    result = _scan_item(job_id, items[0])
    db.set_job_status(job_id, "done")
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run lead qualification scans for a job")
    parser.add_argument("--job-id", dest="job_id", required=True, help="Qualification job to process")
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=get_settings().batch_size,
        help="Number of queued items to scan per batch",
    )
    parser.add_argument("--until-done", dest="until_done", action="store_true", help="Keep processing batches until the job is done")
    parser.add_argument("--poll-interval", dest="poll_interval", type=float, default=2.0, help="Seconds to wait while items are still queued")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    if args.until_done:
        run_until_done(args.job_id, batch_size=args.batch_size, poll_interval=args.poll_interval)
    else:
        process_job_batch(args.job_id, batch_size=args.batch_size)


if __name__ == "__main__":
    main()
