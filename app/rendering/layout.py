import logging

from PIL import ImageColor

from app.constants import DEFAULT_ELEMENTS, REFERENCE_WIDTH
from app.models import FieldId, RenderSettings, ResolvedField, ResolvedLayout

logger = logging.getLogger("coupon_layout")


def layout_scale(template_width: int | None) -> float:
    if not template_width or template_width <= 0:
        return 1.0
    return template_width / REFERENCE_WIDTH


def _valid_color(value: str | None) -> bool:
    if not value:
        return False
    try:
        ImageColor.getrgb(value)
    except ValueError:
        return False
    return True


def _value(override, attr: str, default):
    if override is None:
        return default
    value = getattr(override, attr)
    return default if value is None else value


def resolve_field(field_id: FieldId, settings: RenderSettings, scale: float) -> ResolvedField:
    default = DEFAULT_ELEMENTS[field_id.value]
    override = settings.override(field_id)

    color = _value(override, "color", default["color"])
    if not _valid_color(color):
        logger.warning(f"⚠️ Invalid colour {color!r} for '{field_id.value}', using default")
        color = default["color"]

    width = height = None
    if "width" in default:
        width = _value(override, "width", default["width"]) * scale
        height = _value(override, "height", default["height"]) * scale

    return ResolvedField(
        x=_value(override, "x", default["x"]) * scale,
        y=_value(override, "y", default["y"]) * scale,
        font_size=_value(override, "font_size", default["font_size"]) * scale,
        color=color,
        font_weight=_value(override, "font_weight", default["font_weight"]),
        width=width,
        height=height,
    )


def resolve_layout(settings: RenderSettings, template_width: int | None) -> ResolvedLayout:
    """
    Merge configured overrides with the built-in defaults and scale every
    position and size from the 1048px reference space to the template width.

    A missing template (width None) resolves at scale 1.
    """
    scale = layout_scale(template_width)
    return ResolvedLayout(
        scale=scale,
        fields={fid: resolve_field(fid, settings, scale) for fid in FieldId},
    )
