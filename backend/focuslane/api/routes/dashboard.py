"""
Dashboard API routes

Each route runs one controller action and returns the resulting snapshot.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from focuslane.core.auth import get_current_dashboard
from focuslane.core.logging_config import LoggingConfig
from focuslane.services.dashboard_controller import DashboardController

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class NoticeResponse(BaseModel):
    level: str
    message: str


class DashboardUser(BaseModel):
    id: str
    email: Optional[str] = None


class DashboardResponse(BaseModel):
    """Snapshot of the dashboard state"""
    phase: str
    user: Optional[DashboardUser] = None
    selected_lane: str
    lane_glyph: Optional[str] = None
    next_action: str
    last_win: str
    brain_dump: str
    assistant_reply: str
    notice: Optional[NoticeResponse] = None


class LaneSelection(BaseModel):
    lane: str = Field(..., max_length=255, description="Predefined lane name or free text")


class FieldsUpdate(BaseModel):
    """Partial update; omitted fields keep their value"""
    next_action: Optional[str] = None
    last_win: Optional[str] = None
    brain_dump: Optional[str] = None


@router.get("", response_model=DashboardResponse)
async def get_dashboard(controller: DashboardController = Depends(get_current_dashboard)):
    return controller.snapshot()


@router.post("/lane", response_model=DashboardResponse)
async def select_lane(
    selection: LaneSelection,
    controller: DashboardController = Depends(get_current_dashboard),
):
    controller.select_lane(selection.lane)
    return controller.snapshot()


@router.put("/fields", response_model=DashboardResponse)
async def update_fields(
    update: FieldsUpdate,
    controller: DashboardController = Depends(get_current_dashboard),
):
    controller.update_fields(
        next_action=update.next_action,
        last_win=update.last_win,
        brain_dump=update.brain_dump,
    )
    return controller.snapshot()


@router.post("/save", response_model=DashboardResponse)
async def save_entry(controller: DashboardController = Depends(get_current_dashboard)):
    """Persist the current fields; the notice reports success or failure"""
    await controller.save()
    return controller.snapshot()


@router.post("/reload", response_model=DashboardResponse)
async def reload_entry(controller: DashboardController = Depends(get_current_dashboard)):
    await controller.reload()
    return controller.snapshot()


@router.post("/ask", response_model=DashboardResponse)
async def ask_focusbot(controller: DashboardController = Depends(get_current_dashboard)):
    """Ask FocusBot about the current fields"""
    await controller.ask_assistant()
    return controller.snapshot()


@router.delete("/notice", response_model=DashboardResponse)
async def dismiss_notice(controller: DashboardController = Depends(get_current_dashboard)):
    controller.dismiss_notice()
    return controller.snapshot()
