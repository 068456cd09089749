"""Domain helpers for slug normalization and validation."""
from __future__ import annotations

import re
import unicodedata

SLUG_PATTERN = re.compile(r"[a-z0-9_]+(?:-[a-z0-9_]+)*")
_DISALLOWED = re.compile(r"[^a-z0-9_\s]")
_WHITESPACE = re.compile(r"\s+")
RESERVED_SLUGS = {
    "vcf",
    "q",
    "callable",
    "hooks",
    "admin",
    "healthz",
    "reserve-slug",
    "check-quota",
}


def normalize_base(value: str | None) -> str:
    """
    Turn a display name into a slug base: "Jane  Doe!" -> "jane-doe".

    Lower-cases, folds accents to ASCII ("José" -> "jose"), drops anything
    that is not a letter, digit, underscore or whitespace (hyphens included),
    then joins whitespace runs with a single hyphen.
    """
    text = unicodedata.normalize("NFKD", (value or "").strip().lower())
    text = text.encode("ascii", "ignore").decode("ascii")
    text = _DISALLOWED.sub("", text)
    return _WHITESPACE.sub("-", text.strip())


def join_name(*parts: str | None) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip())


def is_valid_slug(value: str | None) -> bool:
    """Return True when slug is URL safe and not reserved by a route."""
    if not value:
        return False
    return bool(SLUG_PATTERN.fullmatch(value)) and value not in RESERVED_SLUGS


def with_suffix(base: str, suffix: int) -> str:
    return f"{base}-{suffix}"


def clean_slug(value: str | None) -> str:
    """Light cleanup for slugs the user typed explicitly (hyphens are kept)."""
    return (value or "").strip().lower()
