from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

import httpx
from jose import JWTError, jwk, jwt

from .config import settings
from .db import get_conn

logger = logging.getLogger(__name__)

_JWKS_CACHE_SECONDS = 300
_JWKS_CACHE: dict[str, Any] = {
    "url": None,
    "expires_at": 0.0,
    "keys": {},
}


class TokenVerificationError(Exception):
    pass


def _jwks_url() -> str | None:
    if settings.supabase_jwks_url:
        return str(settings.supabase_jwks_url)
    if settings.supabase_url is None:
        return None
    base = settings.supabase_url.unicode_string().rstrip("/")
    return f"{base}/auth/v1/.well-known/jwks.json"


def _jwt_issuer() -> str | None:
    if settings.supabase_jwt_issuer:
        return settings.supabase_jwt_issuer
    if settings.supabase_url is None:
        return None
    base = settings.supabase_url.unicode_string().rstrip("/")
    return f"{base}/auth/v1"


def _signing_keys(url: str, *, force_refresh: bool = False) -> dict[str, dict[str, Any]]:
    now = time.monotonic()
    if not force_refresh and _JWKS_CACHE["url"] == url and now < _JWKS_CACHE["expires_at"]:
        return _JWKS_CACHE["keys"]

    try:
        resp = httpx.get(url, timeout=5)
        resp.raise_for_status()
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        raise TokenVerificationError(f"Failed to fetch JWKS: {exc}") from exc
    if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
        raise TokenVerificationError("JWKS response missing keys")

    keys = {
        entry["kid"]: entry
        for entry in data["keys"]
        if isinstance(entry, dict) and entry.get("kid")
    }
    _JWKS_CACHE.update(url=url, keys=keys, expires_at=now + _JWKS_CACHE_SECONDS)
    return keys


def _decode_with_jwks(token: str, jwks_url: str) -> dict[str, Any]:
    try:
        header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise TokenVerificationError("Invalid token header") from exc

    alg = header.get("alg")
    if alg not in ("RS256", "ES256"):
        raise TokenVerificationError(f"Unsupported JWT alg: {alg}")
    kid = header.get("kid")
    if not kid:
        raise TokenVerificationError("JWT header missing kid")

    key_data = _signing_keys(jwks_url).get(kid)
    if not key_data:
        key_data = _signing_keys(jwks_url, force_refresh=True).get(kid)
    if not key_data:
        raise TokenVerificationError("JWT kid not found in JWKS")

    try:
        return jwt.decode(
            token,
            jwk.construct(key_data, alg),
            algorithms=[alg],
            issuer=_jwt_issuer(),
            options={"verify_aud": False},
        )
    except JWTError as exc:
        raise TokenVerificationError("JWT verification failed") from exc


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify a Supabase access token and return its claims.

    Tokens signed with the project's shared secret (HS256) are checked
    first; asymmetric tokens fall through to the project's JWKS.
    """
    secret = settings.supabase_jwt_secret
    if secret:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                options={"verify_aud": False, "verify_exp": False},
            )
        except JWTError as exc:
            jwks_url = _jwks_url()
            if not jwks_url:
                raise TokenVerificationError("JWT verification failed") from exc
            return _decode_with_jwks(token, jwks_url)

    jwks_url = _jwks_url()
    if not jwks_url:
        raise TokenVerificationError("No Supabase JWT secret or JWKS configured")
    return _decode_with_jwks(token, jwks_url)


def is_token_expired(payload: dict[str, Any], *, now: datetime | None = None) -> bool:
    exp = payload.get("exp")
    if exp is None:
        return False
    if not isinstance(exp, (int, float)):
        return True
    now = now or datetime.now(timezone.utc)
    return datetime.fromtimestamp(exp, tz=timezone.utc) <= now


async def _load_user(user_id: str) -> dict[str, Any] | None:
    async with get_conn() as cur:
        await cur.execute(
            """
            SELECT id,
                   email
              FROM auth.users
             WHERE id = %s
             LIMIT 1
            """,
            (user_id,),
        )
        row = await cur.fetchone()
    if not row:
        return None
    data = dict(row)
    data["id"] = str(data["id"])
    return data


async def resolve_user(token: str) -> dict[str, Any] | None:
    """Map an access token to its user row, or None when it does not resolve."""
    try:
        payload = decode_access_token(token)
    except TokenVerificationError as exc:
        logger.info("Rejected access token: %s", exc)
        return None

    if is_token_expired(payload):
        logger.info("Rejected expired access token")
        return None
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        logger.info("Access token has no subject")
        return None

    user = await _load_user(user_id)
    if user is None:
        logger.warning("Access token subject has no user row", extra={"subject": user_id})
    return user


__all__ = [
    "TokenVerificationError",
    "decode_access_token",
    "is_token_expired",
    "resolve_user",
]
