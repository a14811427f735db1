"""Base URL of the public site, used for checkout redirects."""

from __future__ import annotations

DEFAULT_SITE_URL = "http://localhost:3000"


def build_site_url(site_url: str | None, vercel_url: str | None = None) -> str:
    """Return the site origin without a trailing slash.

    Explicit site URL wins over the deployment host; hosts given without a
    scheme are assumed to be served over https.
    """

    raw = (site_url or "").strip() or (vercel_url or "").strip() or DEFAULT_SITE_URL
    if "://" not in raw:
        raw = f"https://{raw}"
    return raw.rstrip("/")


__all__ = ["DEFAULT_SITE_URL", "build_site_url"]
