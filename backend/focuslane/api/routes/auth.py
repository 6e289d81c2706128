"""
Authentication API routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field

from focuslane.core.auth import get_current_dashboard, get_session_token
from focuslane.core.config import get_settings
from focuslane.core.logging_config import LoggingConfig
from focuslane.services.auth_session import AuthSession, AuthSessionError
from focuslane.services.dashboard_controller import DashboardController
from focuslane.services.dashboard_sessions import (DashboardSessionManager,
                                                   get_dashboard_manager)

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class MagicLinkRequest(BaseModel):
    """Magic link request"""
    email: EmailStr


class SessionRequest(BaseModel):
    """Token handed back by the magic link redirect"""
    access_token: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """User response model"""
    id: str
    email: Optional[str] = None


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.session_max_age_seconds,
    )


@router.post("/magic-link", status_code=status.HTTP_202_ACCEPTED)
async def request_magic_link(
    request: MagicLinkRequest,
    manager: DashboardSessionManager = Depends(get_dashboard_manager),
):
    """Send a one-time sign-in link by e-mail"""
    auth = AuthSession(identity=manager.identity)
    try:
        await auth.sign_in_with_magic_link(request.email)
    except AuthSessionError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(e),
        )
    return {"status": "sent"}


@router.post("/session", response_model=UserResponse)
async def create_session(
    request: SessionRequest,
    response: Response,
    manager: DashboardSessionManager = Depends(get_dashboard_manager),
):
    """Adopt the magic-link token and start the dashboard session"""
    try:
        controller = await manager.open(request.access_token)
    except AuthSessionError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )

    _set_session_cookie(response, request.access_token)
    user = controller.state.user
    return UserResponse(id=user.id, email=user.email)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    controller: DashboardController = Depends(get_current_dashboard),
):
    """Get current user information"""
    user = controller.state.user
    return UserResponse(id=user.id, email=user.email)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    manager: DashboardSessionManager = Depends(get_dashboard_manager),
):
    """Sign out and drop the dashboard session"""
    if token:
        await manager.sign_out(token)
    response.delete_cookie(key=get_settings().session_cookie_name)
    return None
