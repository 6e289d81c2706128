"""
How the dashboard reaches the assistant relay: in-process or over HTTP
"""
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from focuslane.core.config import get_settings
from focuslane.core.logging_config import LoggingConfig
from focuslane.services.assistant_relay import AssistantRelay

logger = LoggingConfig.get_logger(__name__)


class AssistantUnavailableError(Exception):
    """The relay could not be reached or answered outside its contract"""
    pass


class AssistantGateway(ABC):
    """Sends a composed prompt and returns the reply string"""

    @abstractmethod
    async def ask(self, prompt: str) -> str:
        ...


class LocalRelayGateway(AssistantGateway):
    """Calls the relay in the same process"""

    def __init__(self, relay: Optional[AssistantRelay] = None):
        self.relay = relay or AssistantRelay()

    async def ask(self, prompt: str) -> str:
        result = await self.relay.relay(prompt)
        return result.reply


class HttpRelayGateway(AssistantGateway):
    """Calls ``POST /api/focusbot`` on a remote relay"""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        # Give the relay room for its own upstream timeout
        self.timeout = timeout or get_settings().completion_timeout_seconds + 5
        self._transport = transport

    async def ask(self, prompt: str) -> str:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/api/focusbot", json={"prompt": prompt})
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Assistant relay at {self.base_url} failed: {e}")
                raise AssistantUnavailableError(str(e)) from e

        reply = data.get("reply") if isinstance(data, dict) else None
        if not isinstance(reply, str) or not reply:
            raise AssistantUnavailableError("Relay response has no reply")
        return reply


def get_assistant_gateway() -> AssistantGateway:
    """Pick the gateway from settings"""
    relay_url = get_settings().assistant_relay_url
    if relay_url:
        return HttpRelayGateway(relay_url)
    return LocalRelayGateway()
