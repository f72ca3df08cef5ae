import pytest
from PIL import Image

from app.errors import SurfaceCreationError
from app.models import RenderSettings
from app.rendering.compositor import CouponCompositor
from app.rendering.pages import (
    BatchPageLayout,
    PageGeometry,
    a4_pixels,
    fit_scale,
    grid_for,
    page_count,
)
from app.rendering.template_cache import TemplateImageCache
from conftest import (
    TEMPLATE_URL,
    FailingCompositor,
    FakeFetcher,
    make_record,
    make_template_bytes,
)

DPI = 40


@pytest.mark.parametrize("cards, grid", [(5, (1, 5)), (10, (2, 5)), (15, (3, 5)), (20, (4, 5))])
def test_grid_table(cards, grid):
    assert grid_for(cards) == grid


@pytest.mark.parametrize("cards", [0, 1, 7, 12, 25, 5.9, 20.5, "10.5", True, None, "abc"])
def test_unknown_density_falls_back_to_two_columns(cards):
    assert grid_for(cards) == (2, 5)


def test_string_density_is_accepted():
    assert grid_for("15") == (3, 5)
    assert grid_for(" 20 ") == (4, 5)


def test_integral_float_density_is_accepted():
    assert grid_for(15.0) == (3, 5)


@pytest.mark.parametrize("cards", [5, 10, 15, 20])
def test_page_count(cards):
    per_page = cards
    assert page_count(0, cards) == 0
    assert page_count(1, cards) == 1
    assert page_count(per_page - 1, cards) == 1
    assert page_count(per_page, cards) == 1
    assert page_count(per_page + 1, cards) == 2


def test_a4_at_600_dpi():
    assert a4_pixels(600) == (4962, 7014)


def test_row_major_positions():
    geometry = PageGeometry.for_density(10, 600)
    assert geometry.position(0) == (0, 0)
    assert geometry.position(1) == (1, 0)
    assert geometry.position(3) == (1, 1)
    assert geometry.position(9) == (1, 4)


def test_geometry_padding_follows_density():
    geometry = PageGeometry.for_density(10, 600)
    assert geometry.padding == pytest.approx(5 * 600 / 96)
    assert geometry.stroke_width == 6
    cell_w, cell_h = geometry.effective_cell
    assert cell_w == pytest.approx(4962 / 2 - 2 * 31.25)
    assert cell_h == pytest.approx(7014 / 5 - 2 * 31.25)


def test_fit_scale_is_uniform():
    scale = fit_scale((1048, 598), (400, 500))
    assert scale == pytest.approx(min(400 / 1048, 500 / 598))
    assert scale == pytest.approx(400 / 1048)


def test_no_records_no_pages(compositor):
    layout = BatchPageLayout(compositor, dpi=DPI)
    assert layout.render_pages([], RenderSettings(), TEMPLATE_URL, 10) == []


def test_pages_are_a4_and_partially_filled(compositor):
    records = [make_record(i) for i in range(11)]
    pages = BatchPageLayout(compositor, dpi=DPI).render_pages(
        records, RenderSettings(), TEMPLATE_URL, 10
    )

    assert len(pages) == 2
    assert [p.number for p in pages] == [1, 2]
    assert all(p.size == a4_pixels(DPI) for p in pages)
    assert len(pages[0].cards) == 10
    assert len(pages[1].cards) == 1
    assert pages[1].cards[0].record_key == "rec-10"
    assert (pages[1].cards[0].col, pages[1].cards[0].row) == (0, 0)


def test_cards_fill_row_major(compositor):
    records = [make_record(i) for i in range(10)]
    page = BatchPageLayout(compositor, dpi=DPI).render_pages(
        records, RenderSettings(), TEMPLATE_URL, 10
    )[0]

    card = page.cards[3]
    assert card.record_key == "rec-3"
    assert (card.col, card.row) == (1, 1)
    assert page.cards[2].box[1] == page.cards[3].box[1]
    assert page.cards[3].box[0] > page.cards[2].box[0]


def test_scaled_cards_keep_aspect_ratio(compositor):
    page = BatchPageLayout(compositor, dpi=DPI).render_pages(
        [make_record(1)], RenderSettings(), TEMPLATE_URL, 20
    )[0]

    left, top, right, bottom = page.cards[0].box
    assert (right - left) / (bottom - top) == pytest.approx(1048 / 598, rel=0.02)

    geometry = PageGeometry.for_density(20, DPI)
    cell_w, cell_h = geometry.effective_cell
    assert right - left <= round(cell_w) and bottom - top <= round(cell_h)


def test_template_is_loaded_once_per_batch(cache, fetcher):
    compositor = CouponCompositor(cache=cache)
    BatchPageLayout(compositor, dpi=DPI).render_pages(
        [make_record(i) for i in range(12)], RenderSettings(), TEMPLATE_URL, 5
    )
    assert fetcher.calls == [TEMPLATE_URL]


def test_failing_record_leaves_blank_cell(cache):
    compositor = FailingCompositor({"rec-4"}, cache=cache)
    records = [make_record(i) for i in range(10)]

    page = BatchPageLayout(compositor, dpi=DPI).render_pages(
        records, RenderSettings(), TEMPLATE_URL, 10
    )[0]

    assert len(page.cards) == 9
    assert "rec-4" not in {c.record_key for c in page.cards}
    assert [e.record_key for e in page.failures] == ["rec-4"]
    # records after the failing one still rendered
    assert compositor.drawn[-5:] == ["rec-5", "rec-6", "rec-7", "rec-8", "rec-9"]

    geometry = PageGeometry.for_density(10, DPI)
    x, y = geometry.cell_origin(*geometry.position(4))
    cell_w, cell_h = geometry.effective_cell
    blank = page.image.crop((round(x) + 2, round(y) + 2, round(x + cell_w) - 2, round(y + cell_h) - 2))
    assert blank.getcolors() == [(blank.width * blank.height, (255, 255, 255))]


def test_failures_do_not_abort_later_pages(cache):
    compositor = FailingCompositor({"rec-0", "rec-6"}, cache=cache)
    pages = BatchPageLayout(compositor, dpi=DPI).render_pages(
        [make_record(i) for i in range(7)], RenderSettings(), TEMPLATE_URL, 5
    )

    assert len(pages) == 2
    assert len(pages[0].cards) == 4
    assert len(pages[1].cards) == 1
    assert [e.record_key for p in pages for e in p.failures] == ["rec-0", "rec-6"]


def test_surface_errors_abort_the_batch(cache):
    compositor = FailingCompositor({"rec-1"}, exc_type=SurfaceCreationError, cache=cache)
    with pytest.raises(SurfaceCreationError):
        BatchPageLayout(compositor, dpi=DPI).render_pages(
            [make_record(i) for i in range(3)], RenderSettings(), TEMPLATE_URL, 10
        )


def test_missing_template_still_prints(record):
    compositor = CouponCompositor(cache=TemplateImageCache(fetcher=FakeFetcher()))
    pages = BatchPageLayout(compositor, dpi=DPI).render_pages(
        [record, make_record(2)], RenderSettings(), "https://cdn.example.com/gone.png", 10
    )

    assert len(pages) == 1
    assert len(pages[0].cards) == 2
    assert pages[0].failures == []


def test_oversized_template_still_prints(monkeypatch, record):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    compositor = CouponCompositor(
        cache=TemplateImageCache(fetcher=FakeFetcher({TEMPLATE_URL: make_template_bytes()}))
    )

    pages = BatchPageLayout(compositor, dpi=DPI).render_pages(
        [record, make_record(2)], RenderSettings(), TEMPLATE_URL, 10
    )

    assert len(pages) == 1
    assert [card.record_key for card in pages[0].cards] == [record.key, "rec-2"]
    assert pages[0].failures == []


def test_iter_pages_is_lazy(compositor):
    pages = BatchPageLayout(compositor, dpi=DPI).iter_pages(
        [make_record(i) for i in range(30)], RenderSettings(), TEMPLATE_URL, 10
    )
    first = next(pages)
    assert first.number == 1
    assert len(first.cards) == 10
