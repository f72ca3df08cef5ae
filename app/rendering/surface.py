from PIL import Image

from app.errors import SurfaceCreationError


def new_surface(width: int, height: int, color="white", mode: str = "RGB") -> Image.Image:
    """Allocate a drawing surface, raising SurfaceCreationError when that is impossible."""
    if width <= 0 or height <= 0:
        raise SurfaceCreationError(f"Invalid surface size {width}x{height}")
    try:
        return Image.new(mode, (int(width), int(height)), color)
    except (MemoryError, ValueError, OSError) as exc:
        raise SurfaceCreationError(
            f"Could not allocate {width}x{height} {mode} surface: {exc}"
        ) from exc
