"""Business logic for browsing, searching and submitting products."""

import logging
import math

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from marketplace.utils.constants import category_name
from marketplace.utils.db import Product, ProductRepository, Profile
from marketplace.utils.formatting import format_currency_range, generate_slug
from marketplace.utils.schemas import (ProductListResponse, ProductResponse,
                                       SearchResponse, SearchResultResponse)
from marketplace.utils.settings import get_settings
from marketplace.utils.validation import CategorySearchParams, ProductSubmission

logger = logging.getLogger(__name__)

# shorter terms match nearly everything
MIN_SEARCH_LENGTH = 2


def to_product_response(product: Product) -> ProductResponse:
    """Serialize a product with its display labels."""
    return ProductResponse(
        id=product.id,
        vendor_id=product.vendor_id,
        name=product.name,
        slug=product.slug,
        description=product.description,
        category=product.category,
        category_name=category_name(product.category),
        location=product.location,
        price_from=product.price_from,
        price_to=product.price_to,
        price_unit=product.price_unit,
        price_label=format_currency_range(
            product.price_from, product.price_to, product.price_unit
        ),
        status=product.status,
        is_featured=product.is_featured,
        view_count=product.view_count,
        created_at=product.created_at,
    )


class CatalogService:
    """Service to orchestrate catalogue queries and product submissions."""

    def __init__(self, db: Session) -> None:
        self._settings = get_settings()
        self._repository = ProductRepository(db)

    def list_products(self, params: CategorySearchParams) -> ProductListResponse:
        """Return one page of listed products for validated search params."""
        page_size = self._settings.products_page_size
        products, total = self._repository.search(params, page_size)

        return ProductListResponse(
            items=[to_product_response(p) for p in products],
            total=total,
            page=params.page,
            total_pages=math.ceil(total / page_size) if total else 1,
            search=params.search,
            category=params.category,
            sort=params.sort,
        )

    def quick_search(self, query: str) -> SearchResponse:
        """Search listed products by name, description, category and location."""
        term = query.strip()
        if len(term) < MIN_SEARCH_LENGTH:
            return SearchResponse(results=[], query=term)

        products = self._repository.quick_search(term, self._settings.search_max_results)
        return SearchResponse(
            results=[
                SearchResultResponse(
                    id=p.id,
                    name=p.name,
                    slug=p.slug,
                    category=p.category,
                    location=p.location,
                    price_label=format_currency_range(p.price_from, p.price_to, p.price_unit),
                )
                for p in products
            ],
            query=term,
        )

    def get_product(self, product_id: int) -> Product:
        """Get a listed product.

        Raises:
            HTTPException: If the product is missing or not visible to buyers
        """
        product = self._repository.get_listed(product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not available",
            )
        return product

    def similar_products(self, product_id: int, limit: int = 6) -> list[ProductResponse]:
        product = self.get_product(product_id)
        return [to_product_response(p) for p in self._repository.similar(product, limit)]

    def submit_product(self, vendor: Profile, submission: ProductSubmission) -> Product:
        """Create a product from a validated submission, pending moderation.

        Raises:
            HTTPException: If the submitting profile is not a vendor
        """
        if not vendor.is_vendor:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only vendors can submit products",
            )

        product = self._repository.create(
            vendor_id=vendor.id,
            name=submission.name,
            slug=generate_slug(submission.name),
            description=submission.description,
            category=submission.category,
            location=submission.location,
            price_from=submission.price_from,
            price_to=submission.price_to,
            price_unit=submission.price_unit,
            status="pending",
        )
        logger.info(f"Vendor {vendor.id} submitted product {product.id}")
        return product
