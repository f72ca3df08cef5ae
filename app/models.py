import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from PIL import Image

from app.errors import RecordRenderError

logger = logging.getLogger("coupon_models")


class FieldId(str, Enum):
    NAME = "name"
    EMP_ID = "empId"
    DATE = "date"
    SERIAL = "serial"
    AMOUNT = "amount"
    QR = "qr"


# -------------------------------------------------
# Payload helpers
# -------------------------------------------------
def _pick(data: Mapping, *keys, default=None):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return default


def _as_bool(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


def _as_number(value, label: str) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ Ignoring non-numeric {label}={value!r}")
        return None


# -------------------------------------------------
# Inputs
# -------------------------------------------------
@dataclass(frozen=True)
class CouponRecord:
    name: str
    emp_id: str
    issue_date: date | str | None
    serial_code: str
    amount: float | int | Decimal | str | None
    id: str | None = None

    @property
    def key(self) -> str:
        """Identifying key used in logs and failure reports."""
        return str(self.id or self.serial_code or self.emp_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CouponRecord":
        if not isinstance(data, Mapping):
            raise ValueError("record must be an object")

        record_id = _pick(data, "id")
        return cls(
            name=str(_pick(data, "name", default="")),
            emp_id=str(_pick(data, "empId", "emp_id", default="")),
            issue_date=_pick(data, "issueDate", "issue_date"),
            serial_code=str(_pick(data, "serialCode", "serial_code", default="")),
            amount=_pick(data, "amount"),
            id=str(record_id) if record_id is not None else None,
        )


@dataclass(frozen=True)
class TemplateElementOverride:
    field_id: FieldId
    x: float | None = None
    y: float | None = None
    font_size: float | None = None
    color: str | None = None
    font_weight: str | None = None
    width: float | None = None
    height: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemplateElementOverride":
        field_id = FieldId(data.get("id"))
        label = field_id.value
        color = data.get("color")
        weight = data.get("fontWeight", data.get("font_weight"))
        return cls(
            field_id=field_id,
            x=_as_number(data.get("x"), f"{label}.x"),
            y=_as_number(data.get("y"), f"{label}.y"),
            font_size=_as_number(
                _pick(data, "fontSize", "font_size"), f"{label}.fontSize"
            ),
            color=str(color) if color else None,
            font_weight=str(weight) if weight else None,
            width=_as_number(data.get("width"), f"{label}.width"),
            height=_as_number(data.get("height"), f"{label}.height"),
        )


def _parse_elements(raw) -> dict[FieldId, TemplateElementOverride]:
    # settings store keeps template_elements as a JSON string
    if isinstance(raw, str):
        if not raw.strip():
            return {}
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("⚠️ templateElements is not valid JSON, using defaults")
            return {}

    if isinstance(raw, Mapping):
        raw = [
            dict(value, id=key) for key, value in raw.items()
            if isinstance(value, Mapping)
        ]

    elements = {}
    for item in raw or []:
        if not isinstance(item, Mapping):
            continue
        try:
            override = TemplateElementOverride.from_dict(item)
        except ValueError:
            logger.debug(f"Skipping unknown template element {item.get('id')!r}")
            continue
        elements[override.field_id] = override
    return elements


@dataclass(frozen=True)
class RenderSettings:
    background_template: str | None = None
    template_elements: Mapping[FieldId, TemplateElementOverride] = field(
        default_factory=dict
    )
    qr_enabled: bool = False
    amount_visible: bool = True

    def override(self, field_id: FieldId) -> TemplateElementOverride | None:
        return self.template_elements.get(field_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "RenderSettings":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ValueError("settings must be an object")

        return cls(
            background_template=_pick(
                data, "backgroundTemplate", "background_template"
            ),
            template_elements=_parse_elements(
                _pick(data, "templateElements", "template_elements")
            ),
            qr_enabled=_as_bool(_pick(data, "qrEnabled", "qr_enabled"), False),
            amount_visible=_as_bool(
                _pick(data, "amountVisible", "amount_visible"), True
            ),
        )


# -------------------------------------------------
# Resolved layout
# -------------------------------------------------
@dataclass(frozen=True)
class ResolvedField:
    x: float
    y: float
    font_size: float
    color: str
    font_weight: str
    width: float | None = None
    height: float | None = None

    @property
    def bold(self) -> bool:
        return self.font_weight.strip().lower() in (
            "bold", "bolder", "600", "700", "800", "900"
        )


@dataclass(frozen=True)
class ResolvedLayout:
    scale: float
    fields: Mapping[FieldId, ResolvedField]

    def __getitem__(self, field_id: FieldId) -> ResolvedField:
        return self.fields[field_id]


# -------------------------------------------------
# Outputs
# -------------------------------------------------
Box = tuple[int, int, int, int]  # left, top, right, bottom


@dataclass
class RenderedCoupon:
    image: Image.Image
    template_url: str
    template_loaded: bool
    layout: ResolvedLayout
    qr_drawn: bool = False
    boxes: dict[FieldId, Box] = field(default_factory=dict)

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size


@dataclass(frozen=True)
class PlacedCard:
    record_key: str
    col: int
    row: int
    box: Box
    scale: float


@dataclass
class PrintPage:
    number: int
    image: Image.Image
    cards: list[PlacedCard] = field(default_factory=list)
    failures: list[RecordRenderError] = field(default_factory=list)

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size
