import io
import logging
import os
from urllib.parse import urlparse

from flask import Blueprint, current_app, jsonify, request, send_file

from app.errors import SurfaceCreationError
from app.export import image_to_png, pages_to_pdf
from app.models import CouponRecord, RenderSettings
from app.rendering.compositor import CouponCompositor
from app.rendering.pages import BatchPageLayout

coupons_bp = Blueprint("coupons", __name__)

logger = logging.getLogger("coupon_api")


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def get_compositor() -> CouponCompositor:
    return current_app.extensions["coupon_compositor"]


def invalid(error: str):
    return jsonify({"status": "invalid", "error": error}), 400


def template_url_for(payload: dict, settings: RenderSettings) -> str:
    requested = payload.get("templateUrl") or settings.background_template
    if not requested:
        return current_app.config["DEFAULT_TEMPLATE_URL"]
    if not isinstance(requested, str):
        raise ValueError("templateUrl must be a string")
    return check_template_url(requested)


def check_template_url(url: str) -> str:
    """
    Vet a caller-supplied template location.

    http(s) URLs must name a host in TEMPLATE_ALLOWED_HOSTS (when set);
    local paths and file:// URLs must resolve inside TEMPLATE_DIR.
    Raises ValueError otherwise.
    """
    parsed = urlparse(url)

    if parsed.scheme in ("http", "https"):
        host = (parsed.hostname or "").lower()
        allowed = current_app.config["TEMPLATE_ALLOWED_HOSTS"]
        if not host or (allowed and host not in allowed):
            raise ValueError(f"template host not allowed: {host or url}")
        return url

    if parsed.scheme not in ("", "file"):
        raise ValueError(f"unsupported template URL scheme: {parsed.scheme}")

    root = os.path.realpath(current_app.config["TEMPLATE_DIR"])
    path = os.path.realpath(
        os.path.join(root, parsed.path if parsed.scheme == "file" else url)
    )
    if os.path.commonpath([root, path]) != root:
        raise ValueError("template path outside the template directory")
    return path


def parse_batch(payload) -> tuple[list[CouponRecord], RenderSettings]:
    """Records + settings of a print request; raises ValueError on a malformed body."""
    if not isinstance(payload, dict):
        raise ValueError("JSON object body required")

    raw_records = payload.get("records")
    if not isinstance(raw_records, list) or not raw_records:
        raise ValueError("records must be a non-empty list")

    records = [CouponRecord.from_dict(item) for item in raw_records]
    return records, RenderSettings.from_dict(payload.get("settings"))


@coupons_bp.errorhandler(SurfaceCreationError)
def surface_error(exc):
    logger.error(f"🔥 Surface allocation failed: {exc}")
    return jsonify({"status": "error", "error": str(exc)}), 507


# -------------------------------------------------
# Single coupon preview
# -------------------------------------------------
@coupons_bp.route("/api/coupons/preview", methods=["POST"])
def preview():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return invalid("JSON object body required")

    try:
        record = CouponRecord.from_dict(data.get("record"))
        settings = RenderSettings.from_dict(data.get("settings"))
        template_url = template_url_for(data, settings)
    except ValueError as exc:
        return invalid(str(exc))

    logger.info(f"🧩 Preview requested for {record.key}")
    coupon = get_compositor().render(record, settings, template_url)

    return send_file(
        io.BytesIO(image_to_png(coupon.image)),
        mimetype="image/png",
        download_name=f"coupon_{record.key}.png",
    )


# -------------------------------------------------
# Batch print (synchronous)
# -------------------------------------------------
@coupons_bp.route("/api/coupons/print", methods=["POST"])
def print_batch():
    data = request.get_json(silent=True)

    try:
        records, settings = parse_batch(data)
        template_url = template_url_for(data, settings)
    except ValueError as exc:
        return invalid(str(exc))

    limit = current_app.config["MAX_SYNC_RECORDS"]
    if len(records) > limit:
        logger.warning(f"⚠️ Sync print refused | records={len(records)} limit={limit}")
        return jsonify({
            "status": "too_large",
            "error": f"at most {limit} records per synchronous print; use /api/print/jobs",
        }), 413

    dpi = current_app.config["PRINT_DPI"]
    layout = BatchPageLayout(get_compositor(), dpi=dpi)
    pages = layout.render_pages(
        records,
        settings,
        template_url,
        data.get("cardsPerPage", current_app.config["DEFAULT_CARDS_PER_PAGE"]),
    )
    failed = [err.record_key for page in pages for err in page.failures]

    if failed:
        logger.warning(f"⚠️ Print batch skipped records: {', '.join(failed)}")

    response = send_file(
        io.BytesIO(pages_to_pdf(pages, dpi)),
        mimetype="application/pdf",
        download_name="coupons.pdf",
    )
    response.headers["X-Page-Count"] = str(len(pages))
    response.headers["X-Failed-Records"] = ",".join(failed)
    return response
