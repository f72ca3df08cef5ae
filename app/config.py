import os

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
STATIC_DIR = os.path.join(BASE_DIR, "static")


class Config:
    DEFAULT_TEMPLATE_URL = os.getenv(
        "DEFAULT_TEMPLATE_URL",
        os.path.join(STATIC_DIR, "images", "base_coupon.png"),
    )
    TEMPLATE_FETCH_TIMEOUT = float(os.getenv("TEMPLATE_FETCH_TIMEOUT", 15))
    # request payloads may only name local templates under this directory
    TEMPLATE_DIR = os.getenv("TEMPLATE_DIR", os.path.join(STATIC_DIR, "images"))
    # comma-separated; empty allows any http(s) host
    TEMPLATE_ALLOWED_HOSTS = [
        h.strip().lower()
        for h in os.getenv("TEMPLATE_ALLOWED_HOSTS", "").split(",")
        if h.strip()
    ]
    FONT_DIR = os.getenv("FONT_DIR", os.path.join(STATIC_DIR, "fonts"))

    PRINT_DPI = int(os.getenv("PRINT_DPI", 600))
    DEFAULT_CARDS_PER_PAGE = int(os.getenv("DEFAULT_CARDS_PER_PAGE", 10))
    # larger batches go through /api/print/jobs
    MAX_SYNC_RECORDS = int(os.getenv("MAX_SYNC_RECORDS", 100))
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")

    GENERATED_DIR = os.getenv(
        "GENERATED_DIR", os.path.join(STATIC_DIR, "generated")
    )
    BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")

    PORT = int(os.getenv("PORT", 8000))
    REDIS_HOST = os.getenv("REDIS_HOST", "redis")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
