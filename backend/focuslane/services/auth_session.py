"""
Authentication session over the hosted identity provider
"""
import inspect
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from focuslane.core.config import get_settings
from focuslane.core.identity_client import IdentityClient, IdentityError
from focuslane.core.logging_config import LoggingConfig
from focuslane.models.user import User

logger = LoggingConfig.get_logger(__name__)


class AuthEvent(str, Enum):
    """Session change notifications"""
    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


SessionListener = Callable[[AuthEvent, Optional[User]], Union[None, Awaitable[None]]]


class AuthSessionError(Exception):
    """Raised when a sign-in step fails"""
    pass


class Subscription:
    """Handle returned by ``AuthSession.on_session_change``; release it on teardown"""

    def __init__(self, session: "AuthSession", listener: SessionListener):
        self._session = session
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._session._remove_listener(self._listener)
            self._active = False

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unsubscribe()


class AuthSession:
    """
    Current-user state for one browser session

    The only state kept is the access token and the user it resolves to;
    everything else lives at the identity provider.
    """

    def __init__(self, identity: Optional[IdentityClient] = None, access_token: Optional[str] = None):
        self.identity = identity or IdentityClient()
        self._access_token = access_token
        self._user: Optional[User] = None
        self._listeners: List[SessionListener] = []

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def get_current_user(self) -> Optional[User]:
        """Currently authenticated user, without touching the network"""
        return self._user

    def on_session_change(self, callback: SessionListener) -> Subscription:
        """
        Register a listener for sign-in / sign-out

        The callback receives ``(event, user)`` and may be a coroutine function.
        """
        self._listeners.append(callback)
        return Subscription(self, callback)

    def _remove_listener(self, callback: SessionListener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    async def _notify(self, event: AuthEvent) -> None:
        user = self._user
        for listener in list(self._listeners):
            try:
                result = listener(event, user)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Session listener failed on {event.value}: {e}", exc_info=True)

    async def initialize(self) -> Optional[User]:
        """
        Initial session check: validate the held token, if any

        Provider outages leave the session signed out rather than failing.
        """
        user = None
        if self._access_token:
            try:
                user = await self.identity.get_user(self._access_token)
            except IdentityError as e:
                logger.warning(f"Initial session check failed: {e}")
            if user is None:
                self._access_token = None
        self._user = user
        await self._notify(AuthEvent.INITIAL_SESSION)
        return user

    async def sign_in_with_magic_link(self, email: str) -> None:
        """
        Trigger the out-of-band e-mail challenge

        Raises:
            AuthSessionError: If the provider could not send the link
        """
        if not email or "@" not in email:
            raise AuthSessionError("A valid e-mail address is required")
        try:
            await self.identity.send_magic_link(email, redirect_to=get_settings().magic_link_redirect_url)
        except IdentityError as e:
            logger.warning(f"Magic link request failed: {e}")
            raise AuthSessionError("Could not send the sign-in link") from e

    async def adopt_session(self, access_token: str) -> User:
        """
        Complete the magic-link round trip with the token it handed back

        Raises:
            AuthSessionError: If the token is invalid or cannot be checked
        """
        try:
            user = await self.identity.get_user(access_token)
        except IdentityError as e:
            raise AuthSessionError("Could not verify the session") from e
        if user is None:
            raise AuthSessionError("Session token is invalid or expired")

        self._access_token = access_token
        self._user = user
        logger.info(f"User {user.id} signed in")
        await self._notify(AuthEvent.SIGNED_IN)
        return user

    async def sign_out(self) -> None:
        """Revoke the token at the provider (best effort) and forget the user"""
        token = self._access_token
        if token:
            try:
                await self.identity.sign_out(token)
            except IdentityError as e:
                logger.warning(f"Provider sign-out failed, clearing local session anyway: {e}")
        was_signed_in = self._user is not None
        self._access_token = None
        self._user = None
        if was_signed_in:
            await self._notify(AuthEvent.SIGNED_OUT)
