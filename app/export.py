import io
from typing import Sequence

from PIL import Image

from app.models import PrintPage


def image_to_png(image: Image.Image) -> bytes:
    out = io.BytesIO()
    image.save(out, "PNG")
    return out.getvalue()


def pages_to_pdf(pages: Sequence[PrintPage], dpi: int) -> bytes:
    """One PDF page per PrintPage, sized so the page prints at A4."""
    if not pages:
        raise ValueError("No pages to export")

    images = [page.image.convert("RGB") for page in pages]
    out = io.BytesIO()
    images[0].save(
        out,
        "PDF",
        save_all=True,
        append_images=images[1:],
        resolution=float(dpi),
    )
    return out.getvalue()
