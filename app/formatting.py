import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_DMY_DATE = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")


def _build_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_issue_date(value) -> date | None:
    """
    Accepts date objects, YYYY-MM-DD (optionally with a time part),
    DD/MM/YYYY, DD-MM-YYYY and, when the day/month reading is impossible,
    MM/DD/YYYY.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None

    text = str(value).strip()

    m = _ISO_DATE.match(text)
    if m:
        year, month, day = (int(g) for g in m.groups())
        return _build_date(year, month, day)

    m = _DMY_DATE.match(text)
    if m:
        first, second, year = (int(g) for g in m.groups())
        return _build_date(year, second, first) or _build_date(year, first, second)

    return None


def format_date(value) -> str:
    if value is None or value == "":
        return ""

    parsed = parse_issue_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime("%d-%m-%Y")


def format_amount(value, symbol: str = "₹", decimals: int = 2) -> str:
    if value is None or value == "":
        return ""

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    if not amount.is_finite():
        return str(value)

    quantum = Decimal(1).scaleb(-decimals)
    return f"{symbol}{amount.quantize(quantum, rounding=ROUND_HALF_UP)}"
