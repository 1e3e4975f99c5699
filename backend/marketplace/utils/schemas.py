"""API response schemas."""

from datetime import datetime

from pydantic import BaseModel

from marketplace.utils.constants import ContactStatus, ProductStatus
from marketplace.utils.validation import FieldError


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    db_healthy: bool


class ValidationErrorResponse(BaseModel):
    """Field-scoped validation failures."""

    detail: list[FieldError]


class ProductResponse(BaseModel):
    """Product as shown to buyers."""

    id: int
    vendor_id: int
    name: str
    slug: str
    description: str
    category: str
    category_name: str
    location: str
    price_from: float | None = None
    price_to: float | None = None
    price_unit: str | None = None
    price_label: str
    status: ProductStatus
    is_featured: bool = False
    view_count: int = 0
    created_at: datetime


class ProductListResponse(BaseModel):
    """One page of the category listing."""

    items: list[ProductResponse]
    total: int
    page: int
    total_pages: int
    search: str | None = None
    category: str | None = None
    sort: str


class SearchResultResponse(BaseModel):
    """Compact quick-search hit."""

    id: int
    name: str
    slug: str
    category: str
    location: str
    price_label: str


class SearchResponse(BaseModel):
    """Quick search results."""

    results: list[SearchResultResponse]
    query: str


class ContactRequest(BaseModel):
    """Buyer details for starting a WhatsApp contact."""

    user_name: str
    user_whatsapp: str
    message: str | None = None


class ContactResponse(BaseModel):
    """Logged contact plus the deep link to open."""

    contact_id: int
    whatsapp_url: str


class ContactLogResponse(BaseModel):
    """Contact log entry for the vendor dashboard."""

    id: int
    user_id: int | None = None
    product_id: int
    product_name: str
    user_name: str
    user_whatsapp: str
    contact_method: str
    status: str
    notes: str | None = None
    contacted_at: datetime
    contacted_label: str


class ContactStatusUpdate(BaseModel):
    """Requested contact log status change."""

    status: ContactStatus
    notes: str | None = None


class FavoriteResponse(BaseModel):
    product_id: int
    favorited: bool


class ViewTrackResponse(BaseModel):
    product_id: int
    queued: bool


class CategoryOption(BaseModel):
    id: str
    name: str
    icon: str


class SortOption(BaseModel):
    id: str
    label: str


class CatalogueOptionsResponse(BaseModel):
    """Filter vocabularies for the listing page and the submission form."""

    categories: list[CategoryOption]
    sort_options: list[SortOption]
    price_units: list[str]
