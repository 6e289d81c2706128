"""
Chat-completions API client used by the assistant relay
"""
import os
from typing import Any, Dict, List, Optional

import httpx

from focuslane.core.config import get_settings
from focuslane.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

API_KEY_ENV = "OPENAI_API_KEY"


class CompletionError(Exception):
    """Base error for upstream completion failures"""
    pass


class CompletionConfigError(CompletionError):
    """No credential available for the upstream API"""
    pass


class CompletionHTTPError(CompletionError):
    """Upstream answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Completion API returned {status_code}")
        self.status_code = status_code
        self.body = body


class CompletionTransportError(CompletionError):
    """Network failure or timeout talking to the upstream API"""
    pass


class CompletionResponseError(CompletionError):
    """Upstream answered 2xx but the body is not JSON"""
    pass


class CompletionClient:
    """
    Client for a chat-completions style HTTP API

    One call, one upstream request: no retries and no caching.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # Lazy load settings to avoid issues with module-level initialization
        self._settings = None
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._api_key = api_key
        self._transport = transport

    @property
    def settings(self):
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def base_url(self) -> str:
        return (self._base_url or self.settings.completion_base_url).rstrip("/")

    @property
    def model(self) -> str:
        return self._model or self.settings.completion_model

    @property
    def timeout(self) -> float:
        return self._timeout or self.settings.completion_timeout_seconds

    def resolve_api_key(self) -> str:
        """
        Read the credential at request time

        Order: explicit constructor value, process environment, settings.
        """
        key = self._api_key or os.environ.get(API_KEY_ENV) or self.settings.openai_api_key
        if not key:
            raise CompletionConfigError(f"{API_KEY_ENV} is not set")
        return key

    async def create_chat_completion(self, messages: List[Dict[str, str]]) -> Any:
        """
        Send role-tagged messages and return the decoded JSON body

        Args:
            messages: Ordered chat messages, e.g. system persona then user prompt

        Returns:
            Decoded response body (shape is not validated here)

        Raises:
            CompletionError: Any upstream failure, see subclasses
        """
        api_key = self.resolve_api_key()
        payload = {"model": self.model, "messages": messages}

        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    "/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                raise CompletionTransportError(
                    f"Completion API timed out after {self.timeout}s"
                ) from e
            except httpx.HTTPStatusError as e:
                raise CompletionHTTPError(
                    e.response.status_code, e.response.text[:500]
                ) from e
            except httpx.HTTPError as e:
                raise CompletionTransportError(f"Error calling completion API: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise CompletionResponseError("Completion API returned a non-JSON body") from e


_completion_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Get global completion client instance"""
    global _completion_client
    if _completion_client is None:
        _completion_client = CompletionClient()
    return _completion_client
