import logging

from flask import Flask

from app.config import Config, STATIC_DIR
from app.handlers.coupons import coupons_bp
from app.handlers.print_jobs import jobs_bp
from app.rendering.compositor import CouponCompositor
from app.rendering.template_cache import TemplateImageCache

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


def create_app(overrides: dict | None = None):
    app = Flask(__name__, static_folder=STATIC_DIR)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    cache = TemplateImageCache(timeout=app.config["TEMPLATE_FETCH_TIMEOUT"])
    app.extensions["coupon_compositor"] = CouponCompositor(
        cache=cache,
        currency_symbol=app.config["CURRENCY_SYMBOL"],
    )

    app.register_blueprint(coupons_bp)
    app.register_blueprint(jobs_bp)

    return app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=Config.PORT)
