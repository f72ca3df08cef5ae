import logging
import os
from functools import lru_cache

from PIL import ImageFont

from app.config import Config

logger = logging.getLogger("coupon_fonts")

FONT_FILES = {
    # (bold, mono) -> file name
    (True, False): "DejaVuSans-Bold.ttf",
    (False, False): "DejaVuSans.ttf",
    (True, True): "DejaVuSansMono-Bold.ttf",
    (False, True): "DejaVuSansMono.ttf",
}


@lru_cache(maxsize=256)
def load_font(size: int, bold: bool = True, mono: bool = False, font_dir: str | None = None):
    size = max(1, int(size))
    filename = FONT_FILES[(bool(bold), bool(mono))]
    font_dir = font_dir or Config.FONT_DIR

    # bundled copy first, then Pillow's lookup in the system font dirs
    for candidate in (os.path.join(font_dir, filename), filename):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue

    logger.warning(f"⚠️ Font {filename} not found, using Pillow default at {size}px")
    return ImageFont.load_default(size=size)
