import qrcode
from PIL import Image

from app.errors import QREncodeError


def encode_qr(text: str, pixel_size: int) -> Image.Image:
    """Square black-on-white QR raster of ``pixel_size`` pixels encoding ``text``."""
    if pixel_size <= 0:
        raise QREncodeError(f"Invalid QR size {pixel_size}")

    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=1,
        )
        qr.add_data(text)
        qr.make(fit=True)

        qr_img = qr.make_image(
            fill_color="black",
            back_color="white"
        ).convert("RGB")
    except Exception as exc:
        raise QREncodeError(f"QR generation failed for {text!r}: {exc}") from exc

    return qr_img.resize((pixel_size, pixel_size), Image.LANCZOS)
