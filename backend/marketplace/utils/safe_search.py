"""Safe pattern-match (ILIKE) search construction."""

from collections.abc import Sequence

from sqlalchemy import ColumnElement, or_
from sqlalchemy.orm import InstrumentedAttribute

# wildcard/escape characters of LIKE patterns
LIKE_METACHARS = frozenset("%_\\")
LIKE_ESCAPE = "\\"

SEARCH_FIELDS = ("name", "description", "category", "location")


def escape_like(term: str) -> str:
    """Escape LIKE metacharacters so they match literally.

    Args:
        term: Raw search text from untrusted user input

    Returns:
        The term with every ``%``, ``_`` and ``\\`` prefixed by a backslash
    """
    # one pass, so the backslashes we add are never escaped again
    return "".join(
        LIKE_ESCAPE + ch if ch in LIKE_METACHARS else ch for ch in term
    )


def contains_pattern(term: str) -> str:
    """Return the escaped term wrapped in ``%`` wildcards for substring matching."""
    return f"%{escape_like(term)}%"


def build_safe_ilike_query(term: str, fields: Sequence[str]) -> str:
    """Build an OR filter string of ILIKE conditions for the hosted query API.

    Example:
        >>> build_safe_ilike_query("50%", ["name", "location"])
        'name.ilike.%50\\\\%%,location.ilike.%50\\\\%%'
    """
    pattern = contains_pattern(term)
    return ",".join(f"{field}.ilike.{pattern}" for field in fields)


def ilike_any(
    term: str, columns: Sequence[InstrumentedAttribute]
) -> ColumnElement[bool]:
    """Build the same OR-of-ILIKE condition as a SQLAlchemy clause."""
    pattern = contains_pattern(term)
    return or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns))
