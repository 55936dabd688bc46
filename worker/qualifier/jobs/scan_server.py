"""HTTP entrypoint for lead qualification scans (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict

from flask import Flask, jsonify, request

from qualifier.core import db
from qualifier.core.config import get_settings
from qualifier.core.scanner import scan_lead
from qualifier.etl.transform import lead_from_row
from qualifier.jobs.run_qualification import process_job_batch, run_until_done, scan_single_lead

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
_executor = ThreadPoolExecutor(max_workers=get_settings().max_workers)

# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only, never the database."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": getattr(settings, "worker_port", None),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/scan")
def scan() -> Any:
    """Scan a lead payload inline and return the result without persisting it."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    if not (payload.get("business_name") or payload.get("name")):
        return jsonify({"error": "business_name is required"}), 400

    result = scan_lead(lead_from_row(payload), policy=get_settings().fetch_policy())
    return jsonify({"data": result.to_dict()}), 200


@app.post("/qualification/start")
def start_job() -> Any:
    """Create a qualification job for ``lead_ids`` and process it in the background."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    lead_ids = payload.get("lead_ids")
    if not isinstance(lead_ids, list) or not lead_ids:
        return jsonify({"error": "lead_ids must be a non-empty list"}), 400

    try:
        job_id = db.create_job(lead_ids, user_id=payload.get("user_id"))
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to create qualification job: %s", exc)
        return jsonify({"error": "failed to create job"}), 500

    logger.info("Queueing qualification job %s (%d leads)", job_id, len(lead_ids))
    _executor.submit(_run_job_safe, job_id)
    return jsonify({"job_id": job_id}), 202


@app.post("/qualification/start-single")
def start_single() -> Any:
    """Scan one stored lead right away and return its result."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    lead_id = payload.get("lead_id")
    if not lead_id:
        return jsonify({"error": "lead_id is required"}), 400

    try:
        result = scan_single_lead(str(lead_id), user_id=payload.get("user_id"))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Immediate scan failed for lead %s: %s", lead_id, exc)
        return jsonify({"error": "scan failed"}), 500

    if result is None:
        return jsonify({"error": "lead not found"}), 404
    return jsonify({"data": {"lead_id": lead_id, **result.to_dict()}}), 200


@app.post("/qualification/run")
def run_batch() -> Any:
    """Process one batch of a job; callers poll this until status is ``done``."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    job_id = payload.get("job_id")
    if not job_id:
        return jsonify({"error": "job_id is required"}), 400

    summary = process_job_batch(str(job_id))
    return jsonify(summary), 200


@app.get("/qualification/status")
def job_status() -> Any:
    job_id = request.args.get("job_id")
    if not job_id:
        return jsonify({"error": "job_id is required"}), 400

    job = db.get_job(job_id)
    if not job:
        return jsonify({"error": "job not found"}), 404
    return jsonify(job), 200


# ---------- Internals ----------


def _run_job_safe(job_id: str) -> None:
    try:
        run_until_done(job_id)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Qualification job %s failed: %s", job_id, exc)


def main() -> None:
    env_port = os.getenv("PORT")
    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
