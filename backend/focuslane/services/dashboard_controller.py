"""
Dashboard controller: owns the dashboard state and reacts to user actions

State changes happen only through the action methods below. Network and
store calls are the only suspension points; nothing here is shared across
controllers.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from focuslane.core.logging_config import LoggingConfig
from focuslane.models.focus_entry import FocusEntry
from focuslane.models.lane import find_lane
from focuslane.models.user import User
from focuslane.services.assistant_gateway import (AssistantGateway,
                                                  AssistantUnavailableError)
from focuslane.services.assistant_relay import FALLBACK_REPLY
from focuslane.services.auth_session import (AuthEvent, AuthSession,
                                             AuthSessionError, Subscription)
from focuslane.services.entry_store import (EntryDraft, EntryStore,
                                            EntryStoreError)

logger = LoggingConfig.get_logger(__name__)

PROMPT_TEMPLATE = (
    "You're FocusBot, a calm assistant for someone with executive dysfunction. "
    "The user is currently in the lane '{lane}'. "
    "Their next action is: '{next_action}'. "
    "Their last win was: '{last_win}'. "
    "Their brain junk is: '{brain_dump}'. "
    "Offer one gentle suggestion or break the task into a smaller piece."
)


class DashboardPhase(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    READY = "ready"
    AWAITING_REPLY = "awaiting_reply"


class NoticeLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass
class Notice:
    """Transient message shown to the user until dismissed or replaced"""
    level: NoticeLevel
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level.value, "message": self.message}


class ActionUnavailableError(Exception):
    """Action is not allowed in the current phase"""
    pass


@dataclass
class DashboardState:
    user: Optional[User] = None
    selected_lane: str = ""
    next_action: str = ""
    last_win: str = ""
    brain_dump: str = ""
    assistant_reply: str = ""
    last_prompt: str = ""
    notice: Optional[Notice] = None
    pending_replies: int = field(default=0)

    @property
    def phase(self) -> DashboardPhase:
        if self.user is None:
            return DashboardPhase.UNAUTHENTICATED
        if self.pending_replies > 0:
            return DashboardPhase.AWAITING_REPLY
        return DashboardPhase.READY

    def draft(self) -> EntryDraft:
        return EntryDraft(
            lane=self.selected_lane,
            next_action=self.next_action,
            last_win=self.last_win,
            brain_dump=self.brain_dump,
        )


class DashboardController:
    """Orchestrates AuthSession, EntryStore and the assistant for one user session"""

    def __init__(self, auth: AuthSession, store: EntryStore, assistant: AssistantGateway):
        self.auth = auth
        self.store = store
        self.assistant = assistant
        self.state = DashboardState()
        self._subscription: Optional[Subscription] = None
        # Bumped on every session change; work started under an older epoch is dropped
        self._epoch = 0
        self._ask_seq = 0

    async def __aenter__(self) -> "DashboardController":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Subscribe to session changes and run the initial session check"""
        if self._subscription is not None:
            return
        self._subscription = self.auth.on_session_change(self._on_session_change)
        await self.auth.initialize()

    async def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _on_session_change(self, event: AuthEvent, user: Optional[User]) -> None:
        self._epoch += 1
        if user is None:
            self.state = DashboardState()
            return
        self.state = DashboardState(user=user)
        logger.debug(f"Dashboard session {event.value} for user {user.id}")
        await self.reload()

    def _require_user(self) -> User:
        user = self.state.user
        if user is None:
            raise ActionUnavailableError("Sign in first")
        return user

    # Session actions

    async def sign_in(self, email: str) -> bool:
        """Request a magic link; the outcome is reported through the notice"""
        try:
            await self.auth.sign_in_with_magic_link(email)
        except AuthSessionError as e:
            self.state.notice = Notice(NoticeLevel.ERROR, str(e))
            return False
        self.state.notice = Notice(NoticeLevel.INFO, "Check your e-mail for a sign-in link.")
        return True

    async def complete_sign_in(self, access_token: str) -> User:
        """Adopt the token from the magic link; raises AuthSessionError if invalid"""
        return await self.auth.adopt_session(access_token)

    async def sign_out(self) -> None:
        await self.auth.sign_out()

    # Entry actions

    async def reload(self) -> Optional[FocusEntry]:
        """Fetch the newest saved entry into the editable fields"""
        user = self._require_user()
        epoch = self._epoch
        try:
            entry = self.store.load_latest(user.id)
        except EntryStoreError:
            if epoch == self._epoch:
                self.state.notice = Notice(NoticeLevel.ERROR, "Couldn't load your last entry.")
            return None
        if entry is not None and epoch == self._epoch:
            self.state.selected_lane = entry.lane or ""
            self.state.next_action = entry.next_action or ""
            self.state.last_win = entry.last_win or ""
            self.state.brain_dump = entry.brain_dump or ""
        return entry

    def select_lane(self, name: str) -> None:
        """Local change only; other fields and the store are untouched"""
        self._require_user()
        self.state.selected_lane = name

    def update_fields(
        self,
        next_action: Optional[str] = None,
        last_win: Optional[str] = None,
        brain_dump: Optional[str] = None,
    ) -> None:
        self._require_user()
        if next_action is not None:
            self.state.next_action = next_action
        if last_win is not None:
            self.state.last_win = last_win
        if brain_dump is not None:
            self.state.brain_dump = brain_dump

    async def save(self) -> Optional[FocusEntry]:
        """Append the current fields as a new entry"""
        user = self._require_user()
        try:
            entry = self.store.save(user.id, self.state.draft())
        except EntryStoreError:
            self.state.notice = Notice(NoticeLevel.ERROR, "Couldn't save. Your changes are still here.")
            return None
        self.state.notice = Notice(NoticeLevel.INFO, "Saved.")
        return entry

    # Assistant actions

    def compose_prompt(self) -> str:
        return PROMPT_TEMPLATE.format(
            lane=self.state.selected_lane,
            next_action=self.state.next_action,
            last_win=self.state.last_win,
            brain_dump=self.state.brain_dump,
        )

    async def ask_assistant(self) -> str:
        """
        Send the composed prompt and display the reply

        Every call goes out on its own. Only the reply to the most recent call
        is displayed; earlier replies are still returned to their callers.
        """
        self._require_user()
        prompt = self.compose_prompt()
        epoch = self._epoch
        self._ask_seq += 1
        seq = self._ask_seq
        self.state.last_prompt = prompt
        self.state.pending_replies += 1

        notice = None
        try:
            reply = await self.assistant.ask(prompt)
        except AssistantUnavailableError:
            reply = FALLBACK_REPLY
            notice = Notice(NoticeLevel.ERROR, "FocusBot is unreachable right now.")
        finally:
            if epoch == self._epoch:
                self.state.pending_replies -= 1

        if epoch == self._epoch and seq == self._ask_seq:
            self.state.assistant_reply = reply
            if notice is not None:
                self.state.notice = notice
        return reply

    def dismiss_notice(self) -> None:
        self.state.notice = None

    def snapshot(self) -> Dict[str, Any]:
        """JSON-ready view of the state"""
        state = self.state
        lane = find_lane(state.selected_lane)
        return {
            "phase": state.phase.value,
            "user": state.user.to_dict() if state.user else None,
            "selected_lane": state.selected_lane,
            "lane_glyph": lane.glyph if lane else None,
            "next_action": state.next_action,
            "last_win": state.last_win,
            "brain_dump": state.brain_dump,
            "assistant_reply": state.assistant_reply,
            "notice": state.notice.to_dict() if state.notice else None,
        }
