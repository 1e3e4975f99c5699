"""Input validation for URL search params and submitted forms.

Each form is a pydantic model. Callers go through ``validate`` (or one of the
named wrappers) which never raises: it returns a ``ValidationOutcome`` that
holds either the typed model or a list of field-scoped errors ready to be
shown next to the offending inputs.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Generic, TypeVar

from pydantic import (BaseModel, ConfigDict, EmailStr, Field, HttpUrl,
                      ValidationError, ValidationInfo, field_validator)
from pydantic_core import PydanticCustomError

from marketplace.utils.constants import (DEFAULT_PRICE_UNIT, DEFAULT_SORT,
                                         CategoryCode, PriceUnit, SortCode)

NON_FIELD = "__all__"

Price = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class FieldError(BaseModel):
    """A single validation failure scoped to one input field."""

    field: str
    message: str


class FormModel(BaseModel):
    """Base for validated forms, carrying per-field error messages."""

    model_config = ConfigDict(extra="ignore")

    # {field: {pydantic error type: message}}
    error_messages: ClassVar[dict[str, dict[str, str]]] = {}


ModelT = TypeVar("ModelT", bound=FormModel)


@dataclass
class ValidationOutcome(Generic[ModelT]):
    """Result of validating raw input: typed data or field errors."""

    data: ModelT | None = None
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.data is not None and not self.errors

    def errors_for(self, field_name: str) -> list[str]:
        return [e.message for e in self.errors if e.field == field_name]


def _blank_to_none(value: Any) -> Any:
    # empty form inputs arrive as "" rather than being omitted
    if isinstance(value, str) and not value.strip():
        return None
    return value


# --- Listing search ---


class CategorySearchParams(FormModel):
    """Validated query params of the category listing page."""

    search: str | None = Field(default=None, min_length=2, max_length=100)
    category: CategoryCode | None = None
    sort: SortCode = DEFAULT_SORT
    page: int = Field(default=1, ge=1)

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "search": {
            "string_too_short": "Kata kunci minimal 2 karakter",
            "string_too_long": "Kata kunci maksimal 100 karakter",
        },
        "category": {"literal_error": "Kategori tidak dikenal"},
        "sort": {"literal_error": "Urutan tidak dikenal"},
        "page": {
            "int_parsing": "Halaman harus berupa angka",
            "greater_than_equal": "Halaman minimal 1",
        },
    }

    blank_filters_to_none = field_validator("search", "category", mode="before")(
        _blank_to_none
    )


# --- Product submission ---


class ProductSubmission(FormModel):
    """Product listing submitted by a vendor."""

    name: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    category: CategoryCode
    location: str = Field(min_length=3, max_length=100)
    price_from: Price | None = None
    price_to: Price | None = None
    price_unit: PriceUnit = DEFAULT_PRICE_UNIT

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "name": {
            "missing": "Nama produk wajib diisi",
            "string_too_short": "Nama produk minimal 3 karakter",
            "string_too_long": "Nama produk maksimal 100 karakter",
        },
        "description": {
            "missing": "Deskripsi wajib diisi",
            "string_too_short": "Deskripsi minimal 20 karakter",
            "string_too_long": "Deskripsi maksimal 2000 karakter",
        },
        "category": {
            "missing": "Kategori wajib dipilih",
            "literal_error": "Kategori tidak dikenal",
        },
        "location": {
            "missing": "Lokasi wajib diisi",
            "string_too_short": "Lokasi minimal 3 karakter",
            "string_too_long": "Lokasi maksimal 100 karakter",
        },
        "price_from": {
            "greater_than_equal": "Harga minimal 0",
            "float_parsing": "Harga harus berupa angka",
            "finite_number": "Harga harus berupa angka",
        },
        "price_to": {
            "greater_than_equal": "Harga minimal 0",
            "float_parsing": "Harga harus berupa angka",
            "finite_number": "Harga harus berupa angka",
        },
        "price_unit": {"literal_error": "Satuan harga tidak dikenal"},
    }

    blank_prices_to_none = field_validator("price_from", "price_to", mode="before")(
        _blank_to_none
    )

    @field_validator("price_to")
    @classmethod
    def price_to_not_below_price_from(
        cls, value: float | None, info: ValidationInfo
    ) -> float | None:
        # the upper bound is always the one blamed for an inverted range
        price_from = info.data.get("price_from")
        if value is not None and price_from is not None and value < price_from:
            raise PydanticCustomError(
                "price_range",
                "Harga maksimal harus lebih besar dari harga minimal",
            )
        return value


# --- Auth forms ---


class LoginForm(FormModel):
    email: EmailStr
    password: str = Field(min_length=8)

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "email": {"missing": "Email wajib diisi", "value_error": "Format email tidak valid"},
        "password": {
            "missing": "Password wajib diisi",
            "string_too_short": "Password minimal 8 karakter",
        },
    }


class RegisterForm(FormModel):
    email: EmailStr
    password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=1)
    full_name: str = Field(min_length=3, max_length=100)
    # 628xxxx only, 08xxxx and +628xxxx are rejected
    whatsapp_number: str = Field(pattern=r"^628[1-9][0-9]{6,9}$")

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "email": {"missing": "Email wajib diisi", "value_error": "Format email tidak valid"},
        "password": {
            "missing": "Password wajib diisi",
            "string_too_short": "Password minimal 8 karakter",
        },
        "confirm_password": {
            "missing": "Konfirmasi password wajib diisi",
            "string_too_short": "Konfirmasi password wajib diisi",
        },
        "full_name": {
            "missing": "Nama lengkap wajib diisi",
            "string_too_short": "Nama minimal 3 karakter",
            "string_too_long": "Nama maksimal 100 karakter",
        },
        "whatsapp_number": {
            "missing": "Nomor WhatsApp wajib diisi",
            "string_pattern_mismatch": "Format harus 628xxxxxxxxxx (contoh: 6281234567890)",
        },
    }

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        has_lower = any(ch.islower() for ch in value)
        has_upper = any(ch.isupper() for ch in value)
        has_digit = any(ch.isdigit() for ch in value)
        if not (has_lower and has_upper and has_digit):
            raise PydanticCustomError(
                "password_strength",
                "Password harus mengandung huruf besar, huruf kecil, dan angka",
            )
        return value

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and value != password:
            raise PydanticCustomError("password_mismatch", "Password tidak sama")
        return value


# --- Vendor forms ---


class VendorProfileUpdate(FormModel):
    bio: str = Field(default="", max_length=500)
    avatar_url: HttpUrl | None = None
    business_name: str | None = Field(default=None, min_length=3, max_length=100)
    business_address: str | None = Field(default=None, max_length=200)
    website: HttpUrl | None = None
    instagram: str | None = Field(default=None, pattern=r"^[a-zA-Z0-9._]{1,30}$")
    experience_years: int = Field(default=0, ge=0, le=50)

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "bio": {"string_too_long": "Bio maksimal 500 karakter"},
        "avatar_url": {"url_parsing": "URL avatar tidak valid"},
        "business_name": {
            "string_too_short": "Nama usaha minimal 3 karakter",
            "string_too_long": "Nama usaha maksimal 100 karakter",
        },
        "business_address": {"string_too_long": "Alamat usaha maksimal 200 karakter"},
        "website": {"url_parsing": "URL website tidak valid"},
        "instagram": {"string_pattern_mismatch": "Username Instagram tidak valid"},
        "experience_years": {
            "greater_than_equal": "Tahun pengalaman minimal 0",
            "less_than_equal": "Tahun pengalaman maksimal 50",
        },
    }

    blank_urls_to_none = field_validator("avatar_url", "website", mode="before")(
        _blank_to_none
    )


class BecomeVendorRequest(FormModel):
    agree_terms: bool
    business_info: str = Field(min_length=20, max_length=500)

    error_messages: ClassVar[dict[str, dict[str, str]]] = {
        "business_info": {
            "string_too_short": "Deskripsi usaha minimal 20 karakter",
            "string_too_long": "Deskripsi usaha maksimal 500 karakter",
        },
    }

    @field_validator("agree_terms")
    @classmethod
    def terms_accepted(cls, value: bool) -> bool:
        if value is not True:
            raise PydanticCustomError(
                "terms_not_accepted", "Anda harus menyetujui syarat dan ketentuan"
            )
        return value


# --- Entry points ---


def _to_field_error(model: type[FormModel], error: dict[str, Any]) -> FieldError:
    """Map a pydantic error to a field-scoped error with a friendly message."""
    loc = error.get("loc") or ()
    field_name = ".".join(str(part) for part in loc) or NON_FIELD
    messages = model.error_messages.get(str(loc[0]) if loc else NON_FIELD, {})
    return FieldError(field=field_name, message=messages.get(error["type"], error["msg"]))


def validate(model: type[ModelT], raw: Mapping[str, Any]) -> ValidationOutcome[ModelT]:
    """Validate raw key/value input against a form model.

    Args:
        model: The form model class
        raw: Untyped input such as query params or submitted form fields

    Returns:
        Outcome holding the typed model, or the field errors when invalid
    """
    try:
        return ValidationOutcome(data=model.model_validate(dict(raw)))
    except ValidationError as exc:
        return ValidationOutcome(
            errors=[_to_field_error(model, err) for err in exc.errors()]
        )


def validate_category_search(
    raw: Mapping[str, Any],
) -> ValidationOutcome[CategorySearchParams]:
    return validate(CategorySearchParams, raw)


def validate_product_submission(
    raw: Mapping[str, Any],
) -> ValidationOutcome[ProductSubmission]:
    return validate(ProductSubmission, raw)
