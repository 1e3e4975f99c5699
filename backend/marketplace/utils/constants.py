"""Fixed catalogue vocabularies shared by validation, queries and the API."""

from typing import Literal, get_args

CategoryCode = Literal[
    "venue", "photographer", "catering", "decoration",
    "dress", "makeup", "music", "invitation",
]
SortCode = Literal["newest", "featured", "price_low", "price_high"]
PriceUnit = Literal["paket", "per jam", "per orang", "custom"]
ProductStatus = Literal["pending", "approved", "rejected"]
ContactStatus = Literal["contacted", "replied", "booked", "cancelled"]

CATEGORY_CODES: tuple[str, ...] = get_args(CategoryCode)
PRICE_UNITS: tuple[str, ...] = get_args(PriceUnit)

DEFAULT_SORT = "newest"
DEFAULT_PRICE_UNIT = "paket"

CATEGORIES = (
    {"id": "venue", "name": "Venue", "icon": "🏛️"},
    {"id": "photographer", "name": "Fotografer", "icon": "📸"},
    {"id": "catering", "name": "Katering", "icon": "🍽️"},
    {"id": "decoration", "name": "Dekorasi", "icon": "🎨"},
    {"id": "dress", "name": "Gaun & Busana", "icon": "👗"},
    {"id": "makeup", "name": "Makeup Artist", "icon": "💄"},
    {"id": "music", "name": "Musik & Hiburan", "icon": "🎵"},
    {"id": "invitation", "name": "Undangan", "icon": "✉️"},
)

SORT_OPTIONS = (
    {"id": "newest", "label": "Terbaru"},
    {"id": "featured", "label": "Unggulan"},
    {"id": "price_low", "label": "Harga: Rendah ke Tinggi"},
    {"id": "price_high", "label": "Harga: Tinggi ke Rendah"},
)

# contact log lifecycle, keyed by current status
CONTACT_STATUS_TRANSITIONS: dict[str, set[str]] = {
    "contacted": {"replied", "cancelled"},
    "replied": {"booked", "cancelled"},
    "booked": set(),
    "cancelled": set(),
}


def category_name(code: str) -> str:
    """Return the display name of a category code, or the code itself."""
    for category in CATEGORIES:
        if category["id"] == code:
            return category["name"]
    return code
