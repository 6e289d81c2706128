"""
Assistant relay: forwards a prompt to the completion API and reshapes the answer
"""
from dataclasses import dataclass
from typing import Any, Optional

from focuslane.core.completion_client import (CompletionClient,
                                              CompletionConfigError,
                                              CompletionError,
                                              CompletionHTTPError,
                                              CompletionResponseError,
                                              get_completion_client)
from focuslane.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

FOCUSBOT_PERSONA = (
    "You are FocusBot, a quiet, executive-dysfunction-aware assistant. "
    "Keep it gentle. Never overwhelm. "
    "Offer one calm next step or simple encouragement."
)

FALLBACK_REPLY = "Hmm, something went wrong."


def extract_reply(payload: Any) -> Optional[str]:
    """
    Pull ``choices[0].message.content`` out of a completion response

    Returns:
        The reply text, or None when any piece is missing, mistyped or blank
    """
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        return None
    return content


@dataclass
class RelayResult:
    """Outcome of one relay call; ``reply`` is never empty"""
    reply: str
    upstream_ok: bool
    error: Optional[str] = None


class AssistantRelay:
    """Stateless relay between a prompt and the completion API"""

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or get_completion_client()

    @staticmethod
    def build_messages(prompt: str):
        return [
            {"role": "system", "content": FOCUSBOT_PERSONA},
            {"role": "user", "content": prompt},
        ]

    async def relay(self, prompt: str) -> RelayResult:
        """
        Forward ``prompt`` and return the model's reply or the fallback

        Upstream failures are logged here and never raised.
        """
        try:
            payload = await self.client.create_chat_completion(self.build_messages(prompt))
        except CompletionConfigError as e:
            logger.error(f"Assistant relay misconfigured: {e}")
            return RelayResult(reply=FALLBACK_REPLY, upstream_ok=False, error="config")
        except CompletionHTTPError as e:
            logger.error(
                "Completion API rejected relay request",
                extra={"status_code": e.status_code, "upstream_body": e.body},
            )
            return RelayResult(reply=FALLBACK_REPLY, upstream_ok=False, error="http")
        except CompletionResponseError as e:
            logger.warning(f"Completion API answered with an unreadable body: {e}")
            return RelayResult(reply=FALLBACK_REPLY, upstream_ok=True, error="malformed")
        except CompletionError as e:
            logger.error(f"Completion API call failed: {e}", extra={"error_type": type(e).__name__})
            return RelayResult(reply=FALLBACK_REPLY, upstream_ok=False, error="transport")

        reply = extract_reply(payload)
        if reply is None:
            logger.warning("Completion response had no usable content")
            return RelayResult(reply=FALLBACK_REPLY, upstream_ok=True, error="empty")

        return RelayResult(reply=reply, upstream_ok=True)


def get_assistant_relay() -> AssistantRelay:
    """FastAPI dependency"""
    return AssistantRelay()
