"""
Authentication dependencies for API routes
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from focuslane.core.config import get_settings
from focuslane.core.logging_config import LoggingConfig
from focuslane.services.auth_session import AuthSessionError
from focuslane.services.dashboard_controller import DashboardController
from focuslane.services.dashboard_sessions import (DashboardSessionManager,
                                                   get_dashboard_manager)

logger = LoggingConfig.get_logger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Session token from the Authorization header, else from the session cookie"""
    if credentials:
        return credentials.credentials
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_dashboard(
    token: Optional[str] = Depends(get_session_token),
    manager: DashboardSessionManager = Depends(get_dashboard_manager),
) -> DashboardController:
    """
    Require authentication: return the caller's dashboard controller or raise 401
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        controller = await manager.open(token)
    except AuthSessionError as e:
        logger.info(f"Rejected dashboard session: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if controller.state.user is None:
        # Signed out while this request was in flight
        await manager.discard(token)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    LoggingConfig.set_context(user_id=controller.state.user.id)
    return controller
