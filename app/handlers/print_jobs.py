import logging

from flask import Blueprint, jsonify, request

from app.handlers.coupons import invalid, parse_batch, template_url_for
from app.tasks import queue

jobs_bp = Blueprint("print_jobs", __name__)

logger = logging.getLogger("coupon_api")


# -------------------------------
# MUTATION: ENQUEUE PRINT JOB
# -------------------------------
@jobs_bp.route("/api/print/jobs", methods=["POST"])
def create_job():
    data = request.get_json(silent=True)

    try:
        records, settings = parse_batch(data)
        template_url = template_url_for(data, settings)
    except ValueError as exc:
        return invalid(str(exc))

    job_id = queue.enqueue({
        "records": data["records"],
        "settings": data.get("settings"),
        "templateUrl": template_url,
        "cardsPerPage": data.get("cardsPerPage"),
    })
    logger.info(f"📤 Queued print job {job_id} | records={len(records)}")

    return jsonify({"status": "queued", "job_id": job_id}), 202


# -------------------------------
# READ-ONLY: JOB STATUS
# -------------------------------
@jobs_bp.route("/api/print/jobs/<job_id>", methods=["GET"])
def job_status(job_id):
    status = queue.get_status(job_id)

    if not status:
        return jsonify({"status": "not_found"}), 404

    failed = status.get("failed", "")
    return jsonify({
        "job_id": job_id,
        "status": status.get("status"),
        "pages": int(status["pages"]) if status.get("pages") else None,
        "failed": [key for key in failed.split(",") if key],
        "url": status.get("url"),
        "error": status.get("error"),
    })
