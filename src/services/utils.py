"""Shared helpers for the service layer."""
import re
import unicodedata

from sqlalchemy.exc import IntegrityError

_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s_-]+")


def slugify(value: str) -> str:
    """
    Convert text into a URL-safe slug.

    Accents are folded to ASCII, punctuation is dropped and runs of whitespace,
    underscores or hyphens become a single hyphen. Case is preserved, so
    "Hello World" becomes "Hello-World".
    """
    ascii_value = (
        unicodedata.normalize("NFKD", value)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    stripped = _SLUG_STRIP.sub("", ascii_value).strip()
    return _SLUG_SEPARATORS.sub("-", stripped).strip("-")


def is_unique_violation(error: IntegrityError, constraint_name: str) -> bool:
    """Check whether an IntegrityError was raised by the named unique/PK constraint."""
    return constraint_name in str(error.orig)
