"""Verification of Clerk session tokens and profile lookups via the Clerk REST API."""
import logging
from typing import Any, Dict, Optional

import httpx
import jwt

from app.core.settings import settings


logger = logging.getLogger(__name__)


class ClerkError(Exception):
    pass


_jwks_client: Optional[jwt.PyJWKClient] = None


def _get_jwks_client() -> jwt.PyJWKClient:
    global _jwks_client
    if _jwks_client is None:
        _jwks_client = jwt.PyJWKClient(settings.clerk_jwks_url)
    return _jwks_client


def verify_session_token(token: str) -> Dict[str, Any]:
    """Return the verified claims of a Clerk session JWT."""
    if not settings.clerk_jwks_url:
        raise ClerkError("Clerk is not configured")
    try:
        signing_key = _get_jwks_client().get_signing_key_from_jwt(token)
        options = {"verify_aud": False}
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=settings.clerk_issuer or None,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise ClerkError("Clerk session expired. Please sign in again.") from exc
    except jwt.PyJWTError as exc:
        raise ClerkError(f"Invalid Clerk session token: {exc}") from exc
    if not claims.get("sub"):
        raise ClerkError("Invalid token payload")
    return claims


def _auth_provider(external_accounts) -> str:
    for account in external_accounts or []:
        provider = str(account.get("provider", ""))
        for name in ("google", "apple", "facebook"):
            if name in provider:
                return name
    return "clerk"


def get_user(clerk_user_id: str) -> Dict[str, Any]:
    """Fetch a Clerk user and flatten it into the profile fields used locally."""
    if not settings.clerk_secret_key:
        raise ClerkError("Clerk is not configured")
    try:
        response = httpx.get(
            f"{settings.clerk_api_url}/users/{clerk_user_id}",
            headers={"Authorization": f"Bearer {settings.clerk_secret_key}"},
            timeout=10.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ClerkError(f"Failed to fetch Clerk user: {exc}") from exc

    data = response.json()
    emails = data.get("email_addresses") or []
    phones = data.get("phone_numbers") or []
    return {
        "clerk_user_id": data.get("id", clerk_user_id),
        "email": emails[0].get("email_address") if emails else None,
        "first_name": data.get("first_name"),
        "last_name": data.get("last_name"),
        "image_url": data.get("image_url"),
        "phone": phones[0].get("phone_number") if phones else None,
        "auth_provider": _auth_provider(data.get("external_accounts")),
    }


def resolve_profile(token: str) -> Dict[str, Any]:
    """Verify the token and build the profile.

    The user API is only called when the claims lack an email or first
    name, or carry no ``external_accounts`` to map the provider from.
    """
    claims = verify_session_token(token)
    profile: Dict[str, Any] = {
        "clerk_user_id": claims["sub"],
        "email": claims.get("email"),
        "first_name": claims.get("first_name"),
        "last_name": claims.get("last_name"),
        "image_url": claims.get("image_url") or claims.get("avatar_url"),
        "phone": claims.get("phone_number"),
        "auth_provider": _auth_provider(claims.get("external_accounts")),
    }
    missing_fields = not profile["email"] or not profile["first_name"]
    if not missing_fields and "external_accounts" in claims:
        return profile

    try:
        remote = get_user(claims["sub"])
    except ClerkError as exc:
        logger.warning("Could not fetch full Clerk profile, using token claims only: %s", exc)
        return profile
    if "external_accounts" not in claims:
        profile["auth_provider"] = remote["auth_provider"]
    if missing_fields:
        for key, value in remote.items():
            if key != "auth_provider" and not profile.get(key):
                profile[key] = value
    return profile
