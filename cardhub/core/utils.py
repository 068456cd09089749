"""
Utility helpers shared across routers/services.
"""

from typing import Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path or a bare slug into an absolute URL under PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def card_share_url(slug: str, base: Optional[str] = None) -> str:
    return absolute_url(f"/{slug}", base)
