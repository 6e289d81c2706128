"""
Assistant relay endpoint
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from focuslane.core.logging_config import LoggingConfig
from focuslane.services.assistant_relay import (AssistantRelay,
                                                get_assistant_relay)

router = APIRouter(prefix="/api", tags=["focusbot"])
logger = LoggingConfig.get_logger(__name__)


class FocusBotRequest(BaseModel):
    """Relay request"""
    prompt: str = Field(..., description="Prompt forwarded verbatim to the model")


class FocusBotResponse(BaseModel):
    """Relay response; reply is the model's text or the fallback message"""
    reply: str


@router.post("/focusbot", response_model=FocusBotResponse)
async def focusbot(
    request: FocusBotRequest,
    relay: AssistantRelay = Depends(get_assistant_relay),
):
    """
    Forward a prompt to the completion API

    Always answers 200 with a non-empty reply; upstream failures are logged
    server-side and replaced by the fallback message.
    """
    result = await relay.relay(request.prompt)
    if not result.upstream_ok or result.error:
        logger.info("Relay answered with fallback", extra={"relay_error": result.error})
    return FocusBotResponse(reply=result.reply)
