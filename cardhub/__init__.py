"""cardhub: digital business card backend (cards, slugs, quotas, vCards)."""
