import logging
import math

from PIL import Image, ImageDraw

from app.config import Config
from app.constants import (
    REFERENCE_HEIGHT,
    REFERENCE_WIDTH,
    SERIAL_BOX_ASCENT,
    SERIAL_BOX_FILL,
    SERIAL_BOX_FONT,
    SERIAL_BOX_HEIGHT,
    SERIAL_BOX_PAD_X,
    SERIAL_BOX_RADIUS,
)
from app.errors import RecordRenderError, SurfaceCreationError, TemplateLoadError
from app.formatting import format_amount, format_date
from app.models import CouponRecord, FieldId, RenderedCoupon, RenderSettings
from app.rendering.fonts import load_font
from app.rendering.layout import resolve_layout
from app.rendering.qr import encode_qr
from app.rendering.surface import new_surface
from app.rendering.template_cache import TemplateImageCache, default_cache

logger = logging.getLogger("coupon_renderer")


def _int_box(box) -> tuple[int, int, int, int]:
    left, top, right, bottom = box
    return math.floor(left), math.floor(top), math.ceil(right), math.ceil(bottom)


def _union(a, b):
    return min(a[0], b[0]), min(a[1], b[1]), max(a[2], b[2]), max(a[3], b[3])


class CouponCompositor:
    """
    Draws one coupon: template background, text fields, serial backing box
    and an optional QR code, on a surface the size of the template.

    Missing templates and QR failures degrade the output instead of raising.
    """

    def __init__(
        self,
        cache: TemplateImageCache | None = None,
        qr_encoder=encode_qr,
        font_loader=load_font,
        currency_symbol: str | None = None,
    ):
        self.cache = cache if cache is not None else default_cache
        self.qr_encoder = qr_encoder
        self.font_loader = font_loader
        self.currency_symbol = (
            Config.CURRENCY_SYMBOL if currency_symbol is None else currency_symbol
        )

    # -----------------------------
    # Template
    # -----------------------------
    def load_template(self, template_url: str) -> Image.Image | None:
        try:
            return self.cache.get(template_url)
        except TemplateLoadError as exc:
            logger.warning(f"⚠️ Template unavailable, using blank background | {exc}")
            return None

    # -----------------------------
    # Entry points
    # -----------------------------
    def render(
        self, record: CouponRecord, settings: RenderSettings, template_url: str
    ) -> RenderedCoupon:
        return self.draw(record, settings, self.load_template(template_url), template_url)

    def draw(
        self,
        record: CouponRecord,
        settings: RenderSettings,
        template: Image.Image | None,
        template_url: str = "",
    ) -> RenderedCoupon:
        logger.debug(f"🧩 Rendering coupon {record.key}")

        if template is not None:
            width, height = template.size
        else:
            width, height = REFERENCE_WIDTH, REFERENCE_HEIGHT

        surface = new_surface(width, height, "white")
        layout = resolve_layout(settings, template.width if template is not None else None)
        coupon = RenderedCoupon(
            image=surface,
            template_url=template_url,
            template_loaded=template is not None,
            layout=layout,
        )

        try:
            if template is not None:
                surface.paste(template, (0, 0), template if template.mode == "RGBA" else None)

            draw = ImageDraw.Draw(surface, "RGBA")
            self._draw_text(draw, coupon, FieldId.NAME, record.name)
            self._draw_text(draw, coupon, FieldId.EMP_ID, record.emp_id)
            self._draw_text(draw, coupon, FieldId.DATE, format_date(record.issue_date))
            self._draw_serial(draw, coupon, record.serial_code)

            if settings.amount_visible:
                self._draw_text(
                    draw,
                    coupon,
                    FieldId.AMOUNT,
                    format_amount(record.amount, self.currency_symbol),
                )
        except SurfaceCreationError:
            raise
        except Exception as exc:
            raise RecordRenderError(record.key, exc) from exc

        if settings.qr_enabled:
            self._draw_qr(coupon, record)

        return coupon

    # -----------------------------
    # Fields
    # -----------------------------
    def _font_for(self, field, mono=False):
        return self.font_loader(round(field.font_size), field.bold, mono)

    def _draw_text(self, draw, coupon, field_id, text, mono=False):
        field = coupon.layout[field_id]
        font = self._font_for(field, mono)
        xy = (field.x, field.y)

        # left-aligned, y is the text baseline
        draw.text(xy, text, fill=field.color, font=font, anchor="ls")
        coupon.boxes[field_id] = _int_box(draw.textbbox(xy, text, font=font, anchor="ls"))

    def _draw_serial(self, draw, coupon, serial):
        field = coupon.layout[FieldId.SERIAL]
        scale = coupon.layout.scale
        font = self._font_for(field, mono=True)

        text_width = draw.textlength(serial, font=font)
        left = field.x - SERIAL_BOX_PAD_X * scale
        top = field.y - field.font_size * SERIAL_BOX_ASCENT / SERIAL_BOX_FONT
        right = field.x + text_width + SERIAL_BOX_PAD_X * scale
        bottom = top + field.font_size * SERIAL_BOX_HEIGHT / SERIAL_BOX_FONT

        box = _int_box((left, top, right, bottom))
        draw.rounded_rectangle(
            box,
            radius=max(0, round(SERIAL_BOX_RADIUS * scale)),
            fill=SERIAL_BOX_FILL,
        )
        self._draw_text(draw, coupon, FieldId.SERIAL, serial, mono=True)
        coupon.boxes[FieldId.SERIAL] = _union(
            coupon.boxes[FieldId.SERIAL], box
        )

    def _draw_qr(self, coupon, record):
        field = coupon.layout[FieldId.QR]
        width = max(1, round(field.width))
        height = max(1, round(field.height))

        try:
            qr_img = self.qr_encoder(record.serial_code, width)
        except Exception:
            logger.exception(f"🔥 QR generation failed for {record.key}, continuing without QR")
            return

        if qr_img.size != (width, height):
            qr_img = qr_img.resize((width, height), Image.LANCZOS)

        x, y = round(field.x), round(field.y)
        coupon.image.paste(qr_img.convert("RGB"), (x, y))
        coupon.qr_drawn = True
        coupon.boxes[FieldId.QR] = (x, y, x + width, y + height)
