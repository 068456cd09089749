"""Pure domain rules (slug format, ownership/visibility) with no storage access."""
