"""
Client for the hosted identity provider (GoTrue-compatible REST API)
"""
from typing import Any, Dict, Optional

import httpx

from focuslane.core.config import get_settings
from focuslane.core.logging_config import LoggingConfig
from focuslane.models.user import User

logger = LoggingConfig.get_logger(__name__)


class IdentityError(Exception):
    """Raised when the identity provider cannot be reached or rejects a call"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class IdentityClient:
    """
    Thin wrapper over the provider's auth endpoints

    Only the calls the dashboard needs are exposed: sending a magic link,
    resolving an access token to a user, and revoking a token.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.identity_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.identity_api_key
        self.timeout = timeout or settings.identity_timeout_seconds
        self._transport = transport

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                return await client.request(
                    method,
                    path,
                    headers=self._headers(access_token),
                    json=json,
                    params=params,
                )
            except httpx.HTTPError as e:
                raise IdentityError(f"Identity provider unreachable: {e}") from e

    async def send_magic_link(self, email: str, redirect_to: Optional[str] = None) -> None:
        """
        Ask the provider to e-mail a one-time sign-in link

        Raises:
            IdentityError: On transport failure or a non-2xx answer
        """
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await self._request(
            "POST",
            "/auth/v1/otp",
            json={"email": email, "create_user": True},
            params=params,
        )
        if response.is_error:
            raise IdentityError(
                f"Magic link request rejected: {response.status_code}",
                status_code=response.status_code,
            )
        logger.info("Magic link requested", extra={"email_domain": email.rpartition("@")[2]})

    async def get_user(self, access_token: str) -> Optional[User]:
        """
        Resolve an access token to its user

        Returns:
            User if the token is valid, None if the provider rejects it

        Raises:
            IdentityError: On transport failure, server errors or a malformed payload
        """
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise IdentityError(
                f"User lookup failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return User.from_payload(response.json())
        except ValueError as e:
            raise IdentityError(f"Malformed user payload: {e}") from e

    async def sign_out(self, access_token: str) -> None:
        """Revoke an access token; an already invalid token is not an error"""
        response = await self._request("POST", "/auth/v1/logout", access_token=access_token)
        if response.is_error and response.status_code not in (401, 403, 404):
            raise IdentityError(
                f"Sign-out failed: {response.status_code}",
                status_code=response.status_code,
            )
