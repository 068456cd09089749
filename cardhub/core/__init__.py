"""
Core utilities shared across the cardhub backend.

This package hosts configuration helpers, the error taxonomy, logging setup
and the in-process rate limiter. Services depend on these primitives instead
of reading os.environ or FastAPI objects directly.
"""
