"""Async HTTP client for the Supabase Auth (GoTrue) admin API.

Identity is delegated: the service only creates and deletes accounts on
behalf of company admins and never stores credentials itself. Calls are not
retried; a failure surfaces to the provisioning workflow, which compensates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import httpx
import structlog

from src.capacity.core.exceptions import IdentityProviderError, UpstreamUnavailable

logger = structlog.get_logger(__name__)

# Upstream statuses that mean "the request itself was bad" (e.g. duplicate email)
_VALIDATION_STATUSES = {400, 409, 422}


@dataclass(frozen=True)
class IdentityUser:
    """Account created in the identity provider."""

    id: str
    email: str
    user_metadata: dict = field(default_factory=dict)
    app_metadata: dict = field(default_factory=dict)


class IdentityProvider(Protocol):
    async def create_user(
        self, email: str, password: str, user_metadata: dict, app_metadata: dict
    ) -> IdentityUser: ...

    async def delete_user(self, user_id: str) -> None: ...


class SupabaseIdentityProvider:
    """Supabase admin client authenticated with the service role key.

    Args:
        base_url: Project URL, e.g. https://xyz.supabase.co.
        service_role_key: Key granting access to /auth/v1/admin.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise UpstreamUnavailable("identity provider", str(e)) from e

        if response.is_error:
            message = _error_message(response)
            status_code = 400 if response.status_code in _VALIDATION_STATUSES else 500
            logger.warning(
                "identity.request_rejected",
                method=method,
                path=path,
                upstream_status=response.status_code,
                error=message,
            )
            raise IdentityProviderError(message, status_code=status_code, details=response.text or None)
        return response

    async def create_user(
        self, email: str, password: str, user_metadata: dict, app_metadata: dict
    ) -> IdentityUser:
        """Create an email-confirmed account.

        app_metadata can only be written with the service role key, so the
        company id and role go there; user_metadata is editable by the user.
        """
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": user_metadata,
                "app_metadata": app_metadata,
            },
        )
        data = response.json()
        # GoTrue answers either with the user object or {"user": {...}}
        user = data.get("user", data)
        logger.info("identity.user_created", user_id=user["id"], email=email)
        return IdentityUser(
            id=user["id"],
            email=user.get("email", email),
            user_metadata=user.get("user_metadata") or user_metadata,
            app_metadata=user.get("app_metadata") or app_metadata,
        )

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/auth/v1/admin/users/{user_id}")
        logger.info("identity.user_deleted", user_id=user_id)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Identity provider returned {response.status_code}"
    if isinstance(body, dict):
        for key in ("msg", "message", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return f"Identity provider returned {response.status_code}"


class UnconfiguredIdentityProvider:
    """Stand-in used when Supabase credentials are missing; every call fails."""

    async def create_user(
        self, email: str, password: str, user_metadata: dict, app_metadata: dict
    ) -> IdentityUser:
        raise UpstreamUnavailable("identity provider", "SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")

    async def delete_user(self, user_id: str) -> None:
        raise UpstreamUnavailable("identity provider", "SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
