"""
In-memory registry of dashboard controllers, one per browser session

Cached sessions re-check their token with the identity provider once
``revalidate_after`` seconds have passed, and sessions unused for
``idle_timeout`` seconds are closed and dropped.
"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from focuslane.core.config import get_settings
from focuslane.core.identity_client import IdentityClient, IdentityError
from focuslane.core.logging_config import LoggingConfig
from focuslane.services.assistant_gateway import (AssistantGateway,
                                                  get_assistant_gateway)
from focuslane.services.auth_session import AuthSession, AuthSessionError
from focuslane.services.dashboard_controller import DashboardController
from focuslane.services.entry_store import EntryStore

logger = LoggingConfig.get_logger(__name__)


@dataclass
class _Session:
    controller: DashboardController
    validated_at: float
    last_used: float


class DashboardSessionManager:
    """Creates, looks up and tears down controllers keyed by session token"""

    def __init__(
        self,
        identity: Optional[IdentityClient] = None,
        store: Optional[EntryStore] = None,
        assistant: Optional[AssistantGateway] = None,
        revalidate_after: Optional[float] = None,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self._identity = identity
        self._store = store
        self._assistant = assistant
        self.revalidate_after = (
            revalidate_after if revalidate_after is not None else settings.session_revalidate_seconds
        )
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.session_max_age_seconds
        self._clock = clock
        self._sessions: Dict[str, _Session] = {}
        # Per-token locks, kept while a session or a caller still needs them
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @property
    def identity(self) -> IdentityClient:
        if self._identity is None:
            self._identity = IdentityClient()
        return self._identity

    @property
    def store(self) -> EntryStore:
        if self._store is None:
            self._store = EntryStore()
        return self._store

    @property
    def assistant(self) -> AssistantGateway:
        if self._assistant is None:
            self._assistant = get_assistant_gateway()
        return self._assistant

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, access_token: str) -> Optional[DashboardController]:
        session = self._sessions.get(access_token)
        return session.controller if session is not None else None

    def _acquire_lock(self, access_token: str) -> asyncio.Lock:
        self._lock_users[access_token] = self._lock_users.get(access_token, 0) + 1
        return self._locks.setdefault(access_token, asyncio.Lock())

    def _release_lock(self, access_token: str) -> None:
        users = self._lock_users.pop(access_token, 1) - 1
        if users > 0:
            self._lock_users[access_token] = users
        elif access_token not in self._sessions:
            self._locks.pop(access_token, None)

    def _in_use(self, access_token: str) -> bool:
        return self._lock_users.get(access_token, 0) > 0

    async def evict_idle(self) -> int:
        """
        Close sessions that have not been used within ``idle_timeout``

        Returns:
            Number of sessions closed
        """
        now = self._clock()
        expired: List[str] = [
            token
            for token, session in self._sessions.items()
            if now - session.last_used >= self.idle_timeout
            and not self._in_use(token)
        ]
        for token in expired:
            await self.discard(token)
        if expired:
            logger.info(f"Evicted {len(expired)} idle dashboard session(s) ({len(self._sessions)} active)")
        return len(expired)

    async def _revalidate(self, access_token: str, session: _Session) -> None:
        """
        Ask the provider whether a cached token is still good

        Raises:
            AuthSessionError: If the token was rejected or could not be checked
        """
        try:
            user = await self.identity.get_user(access_token)
        except IdentityError as e:
            logger.warning(f"Session revalidation failed: {e}")
            raise AuthSessionError("Could not verify the session") from e

        current = session.controller.state.user
        if user is None or current is None or user.id != current.id:
            logger.info("Cached session token no longer accepted by the provider")
            await self.discard(access_token)
            raise AuthSessionError("Session token is invalid or expired")
        session.validated_at = self._clock()

    async def open(self, access_token: str) -> DashboardController:
        """
        Return the signed-in controller for a token, creating it on first use

        Raises:
            AuthSessionError: If the provider does not accept the token
        """
        await self.evict_idle()

        lock = self._acquire_lock(access_token)
        try:
            async with lock:
                session = self._sessions.get(access_token)
                if session is not None and session.controller.state.user is None:
                    await self.discard(access_token)
                    session = None

                if session is not None:
                    if self._clock() - session.validated_at >= self.revalidate_after:
                        await self._revalidate(access_token, session)
                    session.last_used = self._clock()
                    return session.controller

                controller = DashboardController(
                    auth=AuthSession(identity=self.identity),
                    store=self.store,
                    assistant=self.assistant,
                )
                await controller.start()
                try:
                    await controller.complete_sign_in(access_token)
                except AuthSessionError:
                    await controller.close()
                    raise

                now = self._clock()
                self._sessions[access_token] = _Session(controller, validated_at=now, last_used=now)
                logger.info(f"Opened dashboard session ({len(self._sessions)} active)")
                return controller
        finally:
            self._release_lock(access_token)

    async def discard(self, access_token: str) -> None:
        session = self._sessions.pop(access_token, None)
        if session is not None:
            await session.controller.close()
        if not self._in_use(access_token):
            self._locks.pop(access_token, None)

    async def sign_out(self, access_token: str) -> None:
        """Sign the session out at the provider and drop its controller"""
        controller = self.get(access_token)
        if controller is not None:
            await controller.sign_out()
        else:
            try:
                await self.identity.sign_out(access_token)
            except IdentityError as e:
                logger.warning(f"Provider sign-out failed: {e}")
        await self.discard(access_token)

    async def close_all(self) -> None:
        for token in list(self._sessions):
            await self.discard(token)


_dashboard_manager: Optional[DashboardSessionManager] = None


def get_dashboard_manager() -> DashboardSessionManager:
    """Get global dashboard session manager instance"""
    global _dashboard_manager
    if _dashboard_manager is None:
        _dashboard_manager = DashboardSessionManager()
    return _dashboard_manager
