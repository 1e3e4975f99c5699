"""Main FastAPI application with API routes."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import (Body, Depends, FastAPI, Header, HTTPException, Query,
                     Request, status)
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.orm import Session

from marketplace.services.catalog_service import (CatalogService,
                                                  to_product_response)
from marketplace.services.contact_service import ContactService
from marketplace.services.tracking_service import track_product_view
from marketplace.utils.constants import CATEGORIES, PRICE_UNITS, SORT_OPTIONS
from marketplace.utils.db import (FavoriteRepository, Profile,
                                  ProfileRepository, get_db, init_db)
from marketplace.utils.schemas import (CatalogueOptionsResponse,
                                       ContactLogResponse, ContactRequest,
                                       ContactResponse, ContactStatusUpdate,
                                       FavoriteResponse, HealthResponse,
                                       ProductListResponse, ProductResponse,
                                       SearchResponse, ValidationErrorResponse,
                                       ViewTrackResponse)
from marketplace.utils.settings import get_settings
from marketplace.utils.validation import (ValidationOutcome,
                                          validate_category_search,
                                          validate_product_submission)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

# https://slowapi.readthedocs.io/en/latest/
limiter = Limiter(key_func=get_remote_address)  # ip


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info("Starting application...")
    init_db()
    logger.info("Database initialized")

    yield  # above startup then pause FastAPI serves requests

    logger.info("Shutting down application...")


# /docs to see swagger
app = FastAPI(
    title=settings.app_name,
    description="Wedding vendor marketplace API: listings, search and WhatsApp contact",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["*"],
)


# --- Caller identity ---


def get_current_user_id(
    x_user_id: int | None = Header(default=None, description="Set by the auth gateway"),
) -> int | None:
    """Identity of the caller, resolved upstream by the auth provider."""
    return x_user_id


def require_user(
    user_id: int | None = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Profile:
    """Resolve the caller's profile or reject the request."""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    profile = ProfileRepository(db).get_by_id(user_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    return profile


def optional_user(
    user_id: int | None = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> Profile | None:
    """Resolve the caller's profile, None for anonymous or unknown callers."""
    if user_id is None:
        return None
    profile = ProfileRepository(db).get_by_id(user_id)
    if not profile:
        logger.warning(f"Ignoring unknown user id {user_id}")
    return profile


def raise_for_invalid(outcome: ValidationOutcome) -> None:
    """Surface field errors of a failed validation as a 422 response."""
    if not outcome.ok:
        raise HTTPException(
            status_code=422,
            detail=[error.model_dump() for error in outcome.errors],
        )


@app.get("/")
async def root():
    """Root endpoint redirect to docs."""
    return {"message": "Ok"}


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    """Check API health status including the database."""
    db_healthy = False
    try:
        db.execute(text("SELECT 1"))
        db_healthy = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="healthy" if db_healthy else "degraded",
        timestamp=datetime.now(),
        db_healthy=db_healthy,
    )


# --- Catalogue ---


@app.get("/api/v1/categories", response_model=CatalogueOptionsResponse, tags=["Products"])
async def catalogue_options() -> CatalogueOptionsResponse:
    """Categories, sort options and price units for filters and forms."""
    return CatalogueOptionsResponse(
        categories=list(CATEGORIES),
        sort_options=list(SORT_OPTIONS),
        price_units=list(PRICE_UNITS),
    )


@app.get(
    "/api/v1/products",
    response_model=ProductListResponse,
    tags=["Products"],
    responses={422: {"model": ValidationErrorResponse}},
)
async def list_products(
    request: Request,
    db: Session = Depends(get_db),
) -> ProductListResponse:
    """Listed products filtered by search, category and sort, paginated."""
    outcome = validate_category_search(request.query_params)
    raise_for_invalid(outcome)
    return CatalogService(db).list_products(outcome.data)


@app.get("/api/v1/search", response_model=SearchResponse, tags=["Search"])
@limiter.limit(lambda: settings.search_rate_limit)
async def search_products(
    request: Request,  # required for slowapi rate limiting
    q: str = Query(..., max_length=100),
    db: Session = Depends(get_db),
) -> SearchResponse:
    """Quick search over name, description, category and location."""
    return CatalogService(db).quick_search(q)


@app.post(
    "/api/v1/products",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Products"],
    responses={
        401: {"description": "Not signed in"},
        403: {"description": "Not a vendor"},
        422: {"model": ValidationErrorResponse},
    },
)
async def submit_product(
    payload: dict[str, Any] = Body(...),
    vendor: Profile = Depends(require_user),
    db: Session = Depends(get_db),
) -> ProductResponse:
    """Submit a product listing for moderation."""
    outcome = validate_product_submission(payload)
    raise_for_invalid(outcome)
    product = CatalogService(db).submit_product(vendor, outcome.data)
    return to_product_response(product)


@app.get("/api/v1/products/{product_id}", response_model=ProductResponse, tags=["Products"])
async def get_product(product_id: int, db: Session = Depends(get_db)) -> ProductResponse:
    """Get a listed product."""
    return to_product_response(CatalogService(db).get_product(product_id))


@app.get(
    "/api/v1/products/{product_id}/similar",
    response_model=list[ProductResponse],
    tags=["Products"],
)
async def similar_products(
    product_id: int,
    limit: int = Query(6, ge=1, le=24),
    db: Session = Depends(get_db),
) -> list[ProductResponse]:
    """Same-category recommendations, nearby ones first."""
    return CatalogService(db).similar_products(product_id, limit)


@app.post(
    "/api/v1/products/{product_id}/view",
    response_model=ViewTrackResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Products"],
)
async def track_view(
    product_id: int,
    viewer: Profile = Depends(require_user),
    db: Session = Depends(get_db),
) -> ViewTrackResponse:
    """Count a view of a product by a signed-in buyer, in the background."""
    product = CatalogService(db).get_product(product_id)
    if product.vendor_id == viewer.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vendor cannot view own product",
        )
    queued = track_product_view(product_id, viewer.id)
    return ViewTrackResponse(product_id=product_id, queued=queued)


# --- Contact & favorites ---


@app.post(
    "/api/v1/products/{product_id}/contact",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Contact"],
)
async def contact_vendor(
    product_id: int,
    contact: ContactRequest,
    buyer: Profile | None = Depends(optional_user),
    db: Session = Depends(get_db),
) -> ContactResponse:
    """Log a contact and return the WhatsApp link to the vendor."""
    buyer_id = buyer.id if buyer else None
    return ContactService(db).start_contact(product_id, contact, buyer_id=buyer_id)


@app.post(
    "/api/v1/products/{product_id}/favorite",
    response_model=FavoriteResponse,
    tags=["Favorites"],
)
async def toggle_favorite(
    product_id: int,
    user: Profile = Depends(require_user),
    db: Session = Depends(get_db),
) -> FavoriteResponse:
    """Add the product to the caller's favorites, or remove it."""
    CatalogService(db).get_product(product_id)
    favorited = FavoriteRepository(db).toggle(user.id, product_id)
    return FavoriteResponse(product_id=product_id, favorited=favorited)


@app.get(
    "/api/v1/vendors/{vendor_id}/contacts",
    response_model=list[ContactLogResponse],
    tags=["Contact"],
)
async def vendor_contacts(
    vendor_id: int,
    limit: int = Query(20, ge=1, le=100),
    user: Profile = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[ContactLogResponse]:
    """Contact logs of the calling vendor, most recent first."""
    if user.id != vendor_id or not user.is_vendor:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to view these contacts",
        )
    return ContactService(db).list_vendor_contacts(vendor_id, limit)


@app.patch(
    "/api/v1/contacts/{contact_id}",
    response_model=ContactLogResponse,
    tags=["Contact"],
    responses={409: {"description": "Status change not allowed"}},
)
async def update_contact_status(
    contact_id: int,
    update: ContactStatusUpdate,
    user: Profile = Depends(require_user),
    db: Session = Depends(get_db),
) -> ContactLogResponse:
    """Move a contact log along contacted -> replied -> booked | cancelled."""
    return ContactService(db).update_status(contact_id, update, actor_id=user.id)
