"""
Persistence of focus entries
"""
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from focuslane.core.database import get_session_local
from focuslane.core.logging_config import LoggingConfig
from focuslane.models.focus_entry import FocusEntry

logger = LoggingConfig.get_logger(__name__)


class EntryStoreError(Exception):
    """Raised when the store cannot read or write an entry"""
    pass


@dataclass
class EntryDraft:
    """Editable fields of a focus entry, before it is saved"""
    lane: str = ""
    next_action: str = ""
    last_win: str = ""
    brain_dump: str = ""


class EntryStore:
    """
    Read-latest / append-only access to ``focus_entries``

    Every operation opens its own short-lived session, so one store can be
    shared by long-lived dashboard controllers.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory or get_session_local()

    @staticmethod
    def _require_user_id(user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required")

    def load_latest(self, user_id: str) -> Optional[FocusEntry]:
        """
        Get the most recent entry for a user

        Args:
            user_id: Owner of the entries; results never cross this boundary

        Returns:
            Newest FocusEntry by created_at, or None if the user has none

        Raises:
            EntryStoreError: If the query fails
        """
        self._require_user_id(user_id)
        try:
            with self._session_factory() as db:
                return (
                    db.query(FocusEntry)
                    .filter(FocusEntry.user_id == user_id)
                    .order_by(FocusEntry.created_at.desc())
                    .limit(1)
                    .one_or_none()
                )
        except SQLAlchemyError as e:
            logger.error(f"Error loading latest entry for user {user_id}: {e}", exc_info=True)
            raise EntryStoreError("Could not load the latest entry") from e

    def save(self, user_id: str, draft: EntryDraft) -> FocusEntry:
        """
        Insert a new entry (existing rows are never updated)

        Raises:
            EntryStoreError: If the insert fails
        """
        self._require_user_id(user_id)
        entry = FocusEntry(
            user_id=user_id,
            lane=draft.lane,
            next_action=draft.next_action,
            last_win=draft.last_win,
            brain_dump=draft.brain_dump,
        )
        try:
            with self._session_factory() as db:
                try:
                    db.add(entry)
                    db.commit()
                    db.refresh(entry)
                except SQLAlchemyError:
                    db.rollback()
                    raise
        except SQLAlchemyError as e:
            logger.error(f"Error saving entry for user {user_id}: {e}", exc_info=True)
            raise EntryStoreError("Could not save the entry") from e

        logger.info(f"Saved focus entry {entry.id} for user {user_id}", extra={"lane": entry.lane})
        return entry
