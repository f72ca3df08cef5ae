import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from PIL import Image, ImageDraw

from app.config import Config
from app.constants import (
    A4_HEIGHT_IN,
    A4_WIDTH_IN,
    CARD_PADDING_CSS,
    CSS_DPI,
    DEFAULT_GRID,
    GRID_LAYOUTS,
    SEPARATOR_COLOR,
)
from app.errors import RecordRenderError, SurfaceCreationError
from app.models import CouponRecord, PlacedCard, PrintPage, RenderSettings
from app.rendering.compositor import CouponCompositor
from app.rendering.surface import new_surface

logger = logging.getLogger("coupon_pages")


def _density(value) -> int | None:
    # exact whole numbers only; 5.9 must not truncate into the 5-card grid
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def grid_for(cards_per_page) -> tuple[int, int]:
    """(cols, rows) for a cards-per-page choice; unknown values get the 10-card grid."""
    return GRID_LAYOUTS.get(_density(cards_per_page), DEFAULT_GRID)


def a4_pixels(dpi: int) -> tuple[int, int]:
    return round(A4_WIDTH_IN * dpi), round(A4_HEIGHT_IN * dpi)


def page_count(record_count: int, cards_per_page) -> int:
    cols, rows = grid_for(cards_per_page)
    return math.ceil(record_count / (cols * rows))


def fit_scale(image_size: tuple[int, int], cell_size: tuple[float, float]) -> float:
    """Uniform scale fitting an image inside a cell without distorting it."""
    (img_w, img_h), (cell_w, cell_h) = image_size, cell_size
    return min(cell_w / img_w, cell_h / img_h)


@dataclass(frozen=True)
class PageGeometry:
    width: int
    height: int
    cols: int
    rows: int
    dpi: int

    @classmethod
    def for_density(cls, cards_per_page, dpi: int) -> "PageGeometry":
        cols, rows = grid_for(cards_per_page)
        width, height = a4_pixels(dpi)
        return cls(width=width, height=height, cols=cols, rows=rows, dpi=dpi)

    @property
    def per_page(self) -> int:
        return self.cols * self.rows

    @property
    def cell_width(self) -> float:
        return self.width / self.cols

    @property
    def cell_height(self) -> float:
        return self.height / self.rows

    @property
    def padding(self) -> float:
        return CARD_PADDING_CSS * self.dpi / CSS_DPI

    @property
    def effective_cell(self) -> tuple[float, float]:
        return (
            self.cell_width - self.padding * 2,
            self.cell_height - self.padding * 2,
        )

    @property
    def stroke_width(self) -> int:
        return max(1, round(self.dpi / CSS_DPI))

    def position(self, index_in_page: int) -> tuple[int, int]:
        # row-major: left to right, then top to bottom
        return index_in_page % self.cols, index_in_page // self.cols

    def cell_origin(self, col: int, row: int) -> tuple[float, float]:
        return (
            col * self.cell_width + self.padding,
            row * self.cell_height + self.padding,
        )


class BatchPageLayout:
    """
    Lays rendered coupons out on A4 pages at print density.

    Records are rendered one after another onto each page. A record that
    fails leaves its cell blank and is reported on PrintPage.failures;
    only SurfaceCreationError aborts the batch.
    """

    def __init__(self, compositor: CouponCompositor | None = None, dpi: int | None = None):
        self.compositor = compositor or CouponCompositor()
        self.dpi = dpi or Config.PRINT_DPI

    def geometry(self, cards_per_page=None) -> PageGeometry:
        if cards_per_page is None:
            cards_per_page = Config.DEFAULT_CARDS_PER_PAGE
        return PageGeometry.for_density(cards_per_page, self.dpi)

    def render_pages(
        self,
        records: Iterable[CouponRecord],
        settings: RenderSettings,
        template_url: str,
        cards_per_page=None,
    ) -> list[PrintPage]:
        return list(self.iter_pages(records, settings, template_url, cards_per_page))

    def iter_pages(
        self,
        records: Iterable[CouponRecord],
        settings: RenderSettings,
        template_url: str,
        cards_per_page=None,
    ) -> Iterator[PrintPage]:
        records = list(records)
        if not records:
            return

        geometry = self.geometry(cards_per_page)
        total = math.ceil(len(records) / geometry.per_page)
        logger.info(
            f"🖨️ Laying out {len(records)} coupons on {total} page(s) "
            f"| grid={geometry.cols}x{geometry.rows} dpi={geometry.dpi}"
        )

        # one template load for the whole batch
        template = self.compositor.load_template(template_url)

        for page_index in range(total):
            start = page_index * geometry.per_page
            chunk = records[start:start + geometry.per_page]
            yield self._render_page(
                page_index + 1, chunk, settings, template, template_url, geometry
            )

    def _render_page(
        self,
        number: int,
        records: Sequence[CouponRecord],
        settings: RenderSettings,
        template: Image.Image | None,
        template_url: str,
        geometry: PageGeometry,
    ) -> PrintPage:
        surface = new_surface(geometry.width, geometry.height, "white")
        page = PrintPage(number=number, image=surface)
        draw = ImageDraw.Draw(surface)
        cell_w, cell_h = geometry.effective_cell

        for index, record in enumerate(records):
            col, row = geometry.position(index)
            x, y = geometry.cell_origin(col, row)

            try:
                coupon = self.compositor.draw(record, settings, template, template_url)
                scale = fit_scale(coupon.size, (cell_w, cell_h))
                target = (
                    max(1, round(coupon.size[0] * scale)),
                    max(1, round(coupon.size[1] * scale)),
                )
                scaled = coupon.image.resize(target, Image.LANCZOS)
                left, top = round(x), round(y)
                surface.paste(scaled, (left, top))
            except SurfaceCreationError:
                raise
            except Exception as exc:
                error = exc if isinstance(exc, RecordRenderError) else RecordRenderError(record.key, exc)
                logger.error(
                    f"🔥 Coupon {record.key} failed on page {number} "
                    f"(col={col}, row={row}), leaving cell blank",
                    exc_info=exc,
                )
                page.failures.append(error)
                continue

            # cutting guide
            draw.rectangle(
                (left, top, round(x + cell_w), round(y + cell_h)),
                outline=SEPARATOR_COLOR,
                width=geometry.stroke_width,
            )
            page.cards.append(
                PlacedCard(
                    record_key=record.key,
                    col=col,
                    row=row,
                    box=(left, top, left + target[0], top + target[1]),
                    scale=scale,
                )
            )

        logger.info(
            f"📄 Page {number} done | placed={len(page.cards)} failed={len(page.failures)}"
        )
        return page
