import json
import logging
import os

import redis

from app.config import Config
from app.export import pages_to_pdf
from app.models import CouponRecord, RenderSettings
from app.rendering.compositor import CouponCompositor
from app.rendering.pages import BatchPageLayout
from app.rendering.template_cache import TemplateImageCache
from app.tasks.queue import PRINT_QUEUE, set_status

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("print_worker")


def build_layout() -> BatchPageLayout:
    cache = TemplateImageCache(timeout=Config.TEMPLATE_FETCH_TIMEOUT)
    compositor = CouponCompositor(cache=cache, currency_symbol=Config.CURRENCY_SYMBOL)
    return BatchPageLayout(compositor, dpi=Config.PRINT_DPI)


def process_job(r, task: dict, layout: BatchPageLayout,
                output_dir: str | None = None, base_url: str | None = None) -> dict:
    job_id = task["job_id"]
    output_dir = output_dir or Config.GENERATED_DIR
    base_url = base_url or Config.BASE_URL

    set_status(r, job_id, status="running")

    records = [CouponRecord.from_dict(item) for item in task.get("records") or []]
    settings = RenderSettings.from_dict(task.get("settings"))
    template_url = (
        task.get("templateUrl")
        or settings.background_template
        or Config.DEFAULT_TEMPLATE_URL
    )

    pages = layout.render_pages(records, settings, template_url, task.get("cardsPerPage"))
    failed = [err.record_key for page in pages for err in page.failures]

    result = {"status": "done", "pages": len(pages), "failed": ",".join(failed)}

    if pages:
        os.makedirs(output_dir, exist_ok=True)
        filename = f"print_{job_id}.pdf"
        output_path = os.path.join(output_dir, filename)
        with open(output_path, "wb") as fh:
            fh.write(pages_to_pdf(pages, layout.dpi))

        result["file"] = output_path
        result["url"] = f"{base_url}/static/generated/{filename}"
        logger.info(f"✅ Print job {job_id} → {output_path}")

    if failed:
        logger.warning(f"⚠️ Print job {job_id} skipped records: {', '.join(failed)}")

    set_status(r, job_id, **result)
    return result


def run():
    r = redis.Redis(
        host=Config.REDIS_HOST,
        port=Config.REDIS_PORT,
        decode_responses=True,
    )
    layout = build_layout()

    logger.info("🚀 Print worker started and waiting for jobs...")

    while True:
        try:
            _, raw = r.blpop(PRINT_QUEUE)
            task = json.loads(raw)

            job_id = task.get("job_id")
            if not job_id:
                logger.warning(f"⚠️ Invalid task skipped: {task}")
                continue

            logger.info(f"➡️ Processing print job {job_id} | records={len(task.get('records') or [])}")

            try:
                process_job(r, task, layout)
            except Exception as exc:
                set_status(r, job_id, status="failed", error=str(exc))
                raise

        except Exception:
            logger.exception("🔥 Worker error")


if __name__ == "__main__":
    run()
