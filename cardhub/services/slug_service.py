"""Slug allocation use cases (normalization, collision probing)."""

from __future__ import annotations

import logging
import random

from cardhub.core.errors import InvalidArgumentError
from cardhub.domain.slugs import clean_slug, is_valid_slug, normalize_base, with_suffix
from cardhub.repositories import CARDS, DocumentStore

logger = logging.getLogger(__name__)

RANDOM_SUFFIX_MAX = 999
RANDOM_SUFFIX_ATTEMPTS = 20


class SlugService:
    """Provides slug availability checks and collision-free allocation."""

    def __init__(self, store: DocumentStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng or random.SystemRandom()

    def slug_exists(self, slug: str) -> bool:
        return self.store.find_one(CARDS, {"slug": slug}) is not None

    def is_available(self, value: str | None) -> bool:
        candidate = clean_slug(value)
        if not is_valid_slug(candidate):
            return False
        return not self.slug_exists(candidate)

    def _require_base(self, base: str, source: str | None) -> str:
        if not base:
            raise InvalidArgumentError("A name with at least one letter or digit is required to build a slug", {"value": source or ""})
        return base

    def _first_free(self, base: str) -> str:
        # probe-then-create: nothing reserves the slug until the card is stored
        candidate = base
        counter = 1
        while not self.is_available(candidate):
            candidate = with_suffix(base, counter)
            counter += 1
        if candidate != base:
            logger.debug("Slug %s taken, allocated %s", base, candidate)
        return candidate

    def allocate(self, base_name: str | None) -> str:
        """Build a unique slug from a display name: jane-doe, jane-doe-1, jane-doe-2..."""
        return self._first_free(self._require_base(normalize_base(base_name), base_name))

    def allocate_explicit(self, slug: str | None) -> str:
        """Same probe for a slug typed by the user; hyphens are preserved."""
        candidate = clean_slug(slug)
        if not is_valid_slug(candidate):
            candidate = normalize_base(slug)
        return self._first_free(self._require_base(candidate, slug))

    def resolve_changed_slug(self, requested: str | None) -> str:
        """
        Slug for an update. A taken slug gets a random numeric suffix instead of
        failing the update. After RANDOM_SUFFIX_ATTEMPTS taken draws the
        sequential probe takes over.
        """
        candidate = clean_slug(requested)
        if not is_valid_slug(candidate):
            raise InvalidArgumentError("Invalid slug. Use lower-case letters, digits and single hyphens.", {"slug": requested or ""})
        if self.is_available(candidate):
            return candidate
        for _ in range(RANDOM_SUFFIX_ATTEMPTS):
            resolved = with_suffix(candidate, self.rng.randint(0, RANDOM_SUFFIX_MAX))
            if self.is_available(resolved):
                return resolved
        logger.info("No free random suffix for %s after %s draws", candidate, RANDOM_SUFFIX_ATTEMPTS)
        return self._first_free(candidate)
