"""Access-token verification for tenant-scoped workspace requests.

Tokens are issued by Supabase Auth; this service only verifies them. The
company a user belongs to travels in the token's app_metadata, written there by
the provisioning workflow when the account was created.
"""

from __future__ import annotations

from jose import JWTError, jwt

from src.capacity.config import Settings
from src.capacity.core.exceptions import AuthenticationFailed


def verify_access_token(token: str, settings: Settings) -> dict:
    """Decode and validate a Supabase access token.

    Raises:
        AuthenticationFailed: the token is invalid, expired, for another
            audience, or has no subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError as e:
        raise AuthenticationFailed("Could not validate credentials", details=str(e)) from e
    if not payload.get("sub"):
        raise AuthenticationFailed("Could not validate credentials", details="token has no subject")
    return payload


def company_id_from_claims(payload: dict) -> str:
    """Read the caller's company id from app_metadata.

    user_metadata is writable by the user and is never consulted.
    """
    company_id = (payload.get("app_metadata") or {}).get("company_id")
    if company_id:
        return str(company_id)
    raise AuthenticationFailed("Token carries no company", details="company_id missing from token app_metadata")
