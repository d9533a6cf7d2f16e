"""Normalization of supplier tax identifiers.

A domestic VAT number is a fixed-length numeric string. Documents and
historical registry rows carry it with separators, a country prefix, or
with its leading zeros lost; this module folds those variants together.
"""

import logging
import re

logger = logging.getLogger(__name__)

DEFAULT_VAT_LENGTH = 11
DEFAULT_COUNTRY = "IT"

_SEPARATORS_RE = re.compile(r"[\s\-.]")
_COUNTRY_PREFIX_RE = re.compile(r"^[A-Z]{2}")


def _clean(value: str) -> str:
    return _SEPARATORS_RE.sub("", value).upper()


def normalize_vat_number(
    value: str | int | None,
    *,
    length: int = DEFAULT_VAT_LENGTH,
    domestic_country: str = DEFAULT_COUNTRY,
) -> str:
    """Normalize a VAT number to its canonical fixed-length numeric form.

    Steps: strip whitespace, hyphens and periods; upper-case; drop the
    domestic country prefix; left-pad a short domestic number with zeros.
    A foreign-prefixed identifier keeps its prefix, so the same number is
    spelled identically on the parsed party and in the registry. Any other
    value that is not ``length`` digits is returned unchanged (trimmed).

    Args:
        value: Raw identifier
        length: Expected number of digits
        domestic_country: Prefix whose short numbers are zero-padded

    Returns:
        Canonical identifier, the trimmed input if it does not conform,
        or an empty string for missing input

    Example:
        >>> normalize_vat_number("IT 0123456789")
        '00123456789'
    """
    if value is None:
        return ""
    raw = str(value).strip()
    cleaned = _clean(raw)
    if not cleaned:
        return ""

    digits = cleaned
    if _COUNTRY_PREFIX_RE.match(cleaned):
        if cleaned[:2] != domestic_country.upper():
            return cleaned
        digits = cleaned[2:]

    if digits.isascii() and digits.isdigit():
        if len(digits) < length:
            digits = digits.zfill(length)
        if len(digits) == length:
            return digits

    logger.debug(f"VAT number with non-standard shape kept as is: {raw}")
    return raw


def is_canonical_vat_number(value: str, length: int = DEFAULT_VAT_LENGTH) -> bool:
    return len(value) == length and value.isascii() and value.isdigit()


def normalize_fiscal_code(value: str | None) -> str | None:
    """Strip separators from a fiscal code and upper-case it."""
    if not value:
        return None
    cleaned = _clean(value.strip())
    return cleaned or None


def vat_lookup_variants(
    value: str | None,
    *,
    length: int = DEFAULT_VAT_LENGTH,
    domestic_country: str = DEFAULT_COUNTRY,
) -> list[str]:
    """Identifier spellings to try against stored registry rows.

    Registry rows written before write-time normalization may hold the
    number without its leading zeros, so both forms are returned.

    Returns:
        Distinct non-empty variants, canonical form first
    """
    normalized = normalize_vat_number(value, length=length, domestic_country=domestic_country)
    if not normalized:
        return []

    variants = [normalized]
    stripped = normalized.lstrip("0")
    if stripped and stripped != normalized:
        variants.append(stripped)
    return variants
