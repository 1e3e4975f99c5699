"""Display formatting for prices, dates, slugs and WhatsApp deep links."""

import math
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from urllib.parse import quote

import re2 as re  # use google re2 not normal re

CONTACT_FOR_PRICE = "Hubungi untuk harga"
CURRENCY_PREFIX = "Rp\u00a0"  # id-ID renders a no-break space after the symbol

WHATSAPP_BASE_URL = "https://wa.me"
DEFAULT_WHATSAPP_MESSAGE = "Halo, saya tertarik dengan produk Anda."
COUNTRY_CODE = "62"

# characters encodeURIComponent leaves untouched besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"

# re2 \s is ascii only, pasted numbers often carry unicode spaces
_PHONE_SEPARATORS = (
    r"[\s\x{0b}\x{00a0}\x{1680}\x{2000}-\x{200a}\x{2028}\x{2029}"
    r"\x{202f}\x{205f}\x{3000}\x{feff}\-+()]"
)

_MONTHS_SHORT = (
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
)
_MONTHS_LONG = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)
_WEEKDAYS = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")


def format_currency(amount: float) -> str:
    """Format an amount as Indonesian Rupiah without decimals.

    Example: format_currency(25000000) -> "Rp 25.000.000"
    """
    if not math.isfinite(amount):
        return CONTACT_FOR_PRICE

    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,}".replace(",", ".")
    return f"{sign}{CURRENCY_PREFIX}{grouped}"


def format_currency_range(
    price_from: float | None,
    price_to: float | None,
    unit: str | None = None,
) -> str:
    """Format a from/to price pair with an optional ``/unit`` suffix."""
    if price_from is None and price_to is None:
        return CONTACT_FOR_PRICE

    suffix = f"/{unit}" if unit else ""
    if price_from is not None and price_to is not None:
        return f"{format_currency(price_from)} - {format_currency(price_to)}{suffix}"

    single = price_from if price_from is not None else price_to
    return f"{format_currency(single)}{suffix}"


def normalize_phone_number(phone_number: str) -> str:
    """Normalize a phone number to the international 62xxxx form."""
    clean_number = re.sub(_PHONE_SEPARATORS, "", phone_number)

    # local trunk prefix
    if clean_number.startswith("0"):
        clean_number = COUNTRY_CODE + clean_number[1:]

    # subscriber number without country code
    if clean_number.startswith("8"):
        clean_number = COUNTRY_CODE + clean_number

    return clean_number


def format_whatsapp_url(
    phone_number: str,
    message: str | None = None,
    *,
    include_ref: bool = False,
    user_id: str | int | None = None,
    product_id: str | int | None = None,
) -> str:
    """Build a wa.me deep link with a pre-filled message.

    Args:
        phone_number: Vendor number in any common local or international form
        message: Message to pre-fill, the default greeting when empty
        include_ref: Append a ``Ref:`` line with the supplied ids
        user_id: Buyer id for the referral line
        product_id: Product id for the referral line

    Returns:
        ``https://wa.me/<number>?text=<encoded message>``
    """
    number = normalize_phone_number(phone_number)
    final_message = message or DEFAULT_WHATSAPP_MESSAGE

    if include_ref:
        ref_parts = []
        if user_id:
            ref_parts.append(f"user:{user_id}")
        if product_id:
            ref_parts.append(f"product:{product_id}")

        if ref_parts:
            final_message += f"\n\nRef: {'|'.join(ref_parts)}"

    encoded_message = quote(final_message, safe=_URI_COMPONENT_SAFE)
    return f"{WHATSAPP_BASE_URL}/{number}?text={encoded_message}"


def _as_datetime(value: str | date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(value)


def _short_date(moment: datetime) -> str:
    return f"{moment.day:02d} {_MONTHS_SHORT[moment.month - 1]} {moment.year}"


def format_date(
    value: str | date | datetime,
    style: str = "short",
    now: datetime | None = None,
) -> str:
    """Format a date in Indonesian.

    Styles: ``short`` ("12 Jan 2024"), ``long`` ("Jumat, 12 Januari 2024")
    and ``relative`` ("Hari ini", "Kemarin", "3 hari yang lalu", ...),
    which falls back to ``short`` after a month.
    """
    moment = _as_datetime(value)

    if style == "short":
        return _short_date(moment)

    if style == "long":
        weekday = _WEEKDAYS[moment.weekday()]
        return (
            f"{weekday}, {moment.day} {_MONTHS_LONG[moment.month - 1]} {moment.year}"
        )

    if style != "relative":
        raise ValueError(f"Unsupported date style: {style}")

    if now is None:
        now = datetime.now(timezone.utc) if moment.tzinfo else datetime.now()
    diff_in_days = (now - moment).days

    if diff_in_days <= 0:
        return "Hari ini"
    if diff_in_days == 1:
        return "Kemarin"
    if diff_in_days < 7:
        return f"{diff_in_days} hari yang lalu"
    if diff_in_days < 30:
        return f"{diff_in_days // 7} minggu yang lalu"
    return _short_date(moment)


def format_datetime(value: str | datetime) -> str:
    """Format a timestamp as "12 Jan 2024, 14.30"."""
    moment = _as_datetime(value)
    return f"{_short_date(moment)}, {moment.hour:02d}.{moment.minute:02d}"


def generate_slug(name: str) -> str:
    """Build a URL slug from a product name."""
    slug = name.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-{2,}", "-", slug)
    return slug.strip()
