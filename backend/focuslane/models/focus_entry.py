"""
Focus entry model: one saved snapshot of a user's dashboard
"""
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid

from focuslane.core.database import Base
from focuslane.utils.datetime_utils import isoformat_or_none, utc_now


class FocusEntry(Base):
    """Append-only focus snapshot; the dashboard only ever reads the newest one"""
    __tablename__ = "focus_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(String(255), nullable=False, index=True)
    lane = Column(String(255), nullable=False, default="")
    next_action = Column(Text, nullable=False, default="")
    last_win = Column(Text, nullable=False, default="")
    brain_dump = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_focus_entries_user_created", "user_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "lane": self.lane,
            "next_action": self.next_action,
            "last_win": self.last_win,
            "brain_dump": self.brain_dump,
            "created_at": isoformat_or_none(self.created_at),
        }

    def __repr__(self):
        return f"<FocusEntry(id={self.id}, user_id={self.user_id}, lane={self.lane})>"
