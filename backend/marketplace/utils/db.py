"""Database models, session, and repositories."""

import logging
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import Sequence

from sqlalchemy import (Boolean, DateTime, Float, ForeignKey, Integer, String,
                        Text, UniqueConstraint, create_engine, func, select)
from sqlalchemy.orm import (DeclarativeBase, Mapped, Session, mapped_column,
                            relationship, sessionmaker)

from marketplace.utils.constants import (CONTACT_STATUS_TRANSITIONS,
                                         DEFAULT_PRICE_UNIT)
from marketplace.utils.safe_search import SEARCH_FIELDS, ilike_any
from marketplace.utils.settings import get_settings
from marketplace.utils.validation import CategorySearchParams

logger = logging.getLogger(__name__)
settings = get_settings()

# --- Engine & Session ---

_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if _is_sqlite else {},  # Required for SQLite
    echo=settings.debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Initialize database and create tables."""
    if _is_sqlite and ":memory:" not in settings.database_url:
        db_path = settings.database_url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class InvalidStatusTransition(ValueError):
    """Raised when a contact log is moved to a status its lifecycle forbids."""


# --- Models ---


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class Profile(Base):
    """Buyer or vendor profile, keyed by the auth provider's user id."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # stored in 628xxxx form
    whatsapp_number: Mapped[str] = mapped_column(String(20), nullable=False)
    is_vendor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name='{self.full_name}', vendor={self.is_vendor})>"


class Product(Base):
    """Vendor service listing."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    price_from: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_to: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_unit: Mapped[str | None] = mapped_column(
        String(20), default=DEFAULT_PRICE_UNIT, nullable=True
    )
    # pending, approved, rejected
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    vendor: Mapped[Profile] = relationship()

    def __repr__(self) -> str:
        return (
            f"<Product(id={self.id}, name='{self.name}', "
            f"category='{self.category}', status='{self.status}')>"
        )


class ContactLog(Base):
    """A buyer reaching out to a vendor about a product."""

    __tablename__ = "contact_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # null for anonymous buyers
    user_id: Mapped[int | None] = mapped_column(ForeignKey("profiles.id"), nullable=True)
    vendor_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    contact_method: Mapped[str] = mapped_column(
        String(20), default="whatsapp", nullable=False
    )
    user_name: Mapped[str] = mapped_column(String(100), nullable=False)
    user_whatsapp: Mapped[str] = mapped_column(String(20), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(100), nullable=False)
    # contacted -> replied -> booked | cancelled
    status: Mapped[str] = mapped_column(String(20), default="contacted", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    contacted_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<ContactLog(id={self.id}, product_id={self.product_id}, "
            f"status='{self.status}')>"
        )


class Favorite(Base):
    """Product bookmarked by a user."""

    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("user_id", "product_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("profiles.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, nullable=False
    )


# CRUD
class ProfileRepository:
    """Repository for profile lookups."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, full_name: str, whatsapp_number: str, is_vendor: bool = False) -> Profile:
        profile = Profile(
            full_name=full_name, whatsapp_number=whatsapp_number, is_vendor=is_vendor
        )
        self._db.add(profile)
        self._db.commit()
        self._db.refresh(profile)
        logger.info(f"Created profile: {profile.id} (vendor={is_vendor})")
        return profile

    def get_by_id(self, profile_id: int) -> Profile | None:
        stmt = select(Profile).where(Profile.id == profile_id)
        return self._db.execute(stmt).scalar_one_or_none()


_SEARCH_COLUMNS = [getattr(Product, name) for name in SEARCH_FIELDS]

_SORT_ORDERING = {
    "newest": (Product.created_at.desc(), Product.id.desc()),
    "featured": (Product.is_featured.desc(), Product.created_at.desc(), Product.id.desc()),
    "price_low": (Product.price_from.asc().nulls_last(), Product.id.desc()),
    "price_high": (Product.price_from.desc().nulls_last(), Product.id.desc()),
}


class ProductRepository:
    """Repository for product CRUD and catalogue queries."""

    def __init__(self, db: Session) -> None:
        """Initialize repository with a database session."""
        self._db = db

    @staticmethod
    def _listed():
        """Select approved, active products, the only ones buyers may see."""
        return select(Product).where(
            Product.status == "approved", Product.is_active.is_(True)
        )

    def create(
        self,
        vendor_id: int,
        name: str,
        slug: str,
        description: str,
        category: str,
        location: str,
        price_from: float | None = None,
        price_to: float | None = None,
        price_unit: str | None = DEFAULT_PRICE_UNIT,
        status: str = "pending",
        is_featured: bool = False,
    ) -> Product:
        """Create new product record."""
        product = Product(
            vendor_id=vendor_id,
            name=name,
            slug=slug,
            description=description,
            category=category,
            location=location,
            price_from=price_from,
            price_to=price_to,
            price_unit=price_unit,
            status=status,
            is_featured=is_featured,
        )
        self._db.add(product)
        self._db.commit()
        self._db.refresh(product)
        logger.info(f"Created product: {product.id} with status: {status}")
        return product

    def get_by_id(self, product_id: int) -> Product | None:
        stmt = select(Product).where(Product.id == product_id)
        return self._db.execute(stmt).scalar_one_or_none()

    def get_listed(self, product_id: int) -> Product | None:
        """Get product by ID if buyers are allowed to see it."""
        stmt = self._listed().where(Product.id == product_id)
        return self._db.execute(stmt).scalar_one_or_none()

    def search(
        self, params: CategorySearchParams, page_size: int = 12
    ) -> tuple[Sequence[Product], int]:
        """Filter, sort and paginate listed products.

        Returns:
            Tuple of (products on the requested page, total matching count)
        """
        stmt = self._listed()

        if params.search and len(params.search.strip()) >= 2:
            stmt = stmt.where(ilike_any(params.search, _SEARCH_COLUMNS))

        if params.category:
            stmt = stmt.where(Product.category == params.category)

        total = self._db.execute(
            select(func.count()).select_from(stmt.subquery())
        ).scalar_one()

        offset = (params.page - 1) * page_size
        stmt = stmt.order_by(*_SORT_ORDERING[params.sort]).offset(offset).limit(page_size)
        return self._db.execute(stmt).scalars().all(), total

    def quick_search(self, term: str, limit: int = 5) -> Sequence[Product]:
        """Newest listed products matching the term in any search field."""
        stmt = (
            self._listed()
            .where(ilike_any(term, _SEARCH_COLUMNS))
            .order_by(*_SORT_ORDERING["newest"])
            .limit(limit)
        )
        return self._db.execute(stmt).scalars().all()

    def similar(self, product: Product, limit: int = 6) -> list[Product]:
        """Same-category products, those in the same location first."""
        base = self._listed().where(
            Product.category == product.category, Product.id != product.id
        )
        same_location = list(
            self._db.execute(
                base.where(Product.location == product.location)
                .order_by(*_SORT_ORDERING["newest"])
                .limit(limit)
            ).scalars()
        )
        if len(same_location) >= limit:
            return same_location

        others = self._db.execute(
            base.where(Product.location != product.location)
            .order_by(*_SORT_ORDERING["newest"])
            .limit(limit - len(same_location))
        ).scalars()
        return same_location + list(others)

    def increment_view(self, product_id: int) -> int | None:
        """Bump the view counter, returning the new count."""
        product = self.get_by_id(product_id)
        if not product:
            return None
        product.view_count = (product.view_count or 0) + 1
        self._db.commit()
        logger.info(f"Product {product_id} view count now {product.view_count}")
        return product.view_count


class ContactLogRepository:
    """Repository for contact log CRUD operations."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def create(
        self,
        vendor_id: int,
        product_id: int,
        user_name: str,
        user_whatsapp: str,
        vendor_name: str,
        product_name: str,
        user_id: int | None = None,
        contact_method: str = "whatsapp",
    ) -> ContactLog:
        """Create a contact log in the ``contacted`` state."""
        log = ContactLog(
            user_id=user_id,
            vendor_id=vendor_id,
            product_id=product_id,
            contact_method=contact_method,
            user_name=user_name,
            user_whatsapp=user_whatsapp,
            vendor_name=vendor_name,
            product_name=product_name,
            status="contacted",
        )
        self._db.add(log)
        self._db.commit()
        self._db.refresh(log)
        logger.info(f"Logged contact {log.id} for product {product_id}")
        return log

    def get_by_id(self, log_id: int) -> ContactLog | None:
        stmt = select(ContactLog).where(ContactLog.id == log_id)
        return self._db.execute(stmt).scalar_one_or_none()

    def list_for_vendor(self, vendor_id: int, limit: int = 20) -> Sequence[ContactLog]:
        """Get a vendor's contact logs, most recent first."""
        stmt = (
            select(ContactLog)
            .where(ContactLog.vendor_id == vendor_id)
            .order_by(ContactLog.contacted_at.desc(), ContactLog.id.desc())
            .limit(limit)
        )
        return self._db.execute(stmt).scalars().all()

    def update_status(
        self, log_id: int, status: str, notes: str | None = None
    ) -> ContactLog | None:
        """Move a contact log along its lifecycle.

        Raises:
            InvalidStatusTransition: If the lifecycle does not allow the move
        """
        log = self.get_by_id(log_id)
        if not log:
            return None

        allowed = CONTACT_STATUS_TRANSITIONS.get(log.status, set())
        if status not in allowed:
            raise InvalidStatusTransition(
                f"Cannot move contact {log_id} from {log.status} to {status}"
            )

        log.status = status
        if notes is not None:
            log.notes = notes
        self._db.commit()
        self._db.refresh(log)
        logger.info(f"Updated contact {log_id} status to: {status}")
        return log


class FavoriteRepository:
    """Repository for user favorites."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _get(self, user_id: int, product_id: int) -> Favorite | None:
        stmt = select(Favorite).where(
            Favorite.user_id == user_id, Favorite.product_id == product_id
        )
        return self._db.execute(stmt).scalar_one_or_none()

    def is_favorited(self, user_id: int, product_id: int) -> bool:
        return self._get(user_id, product_id) is not None

    def toggle(self, user_id: int, product_id: int) -> bool:
        """Add or remove a favorite, returning whether it is now favorited."""
        existing = self._get(user_id, product_id)
        if existing:
            self._db.delete(existing)
            self._db.commit()
            return False

        self._db.add(Favorite(user_id=user_id, product_id=product_id))
        self._db.commit()
        return True

    def list_product_ids(self, user_id: int) -> list[int]:
        stmt = select(Favorite.product_id).where(Favorite.user_id == user_id)
        return list(self._db.execute(stmt).scalars())
