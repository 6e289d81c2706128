"""
Domain models
"""
from focuslane.core.database import Base
from focuslane.models.focus_entry import FocusEntry  # noqa: F401
from focuslane.models.lane import LANES, Lane, find_lane  # noqa: F401
from focuslane.models.user import User  # noqa: F401
