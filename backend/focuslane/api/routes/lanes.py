"""
Lane catalogue
"""
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from focuslane.models.lane import LANES

router = APIRouter(prefix="/api", tags=["lanes"])


class LaneResponse(BaseModel):
    name: str
    glyph: str


@router.get("/lanes", response_model=List[LaneResponse])
async def list_lanes():
    """The fixed lane set, in display order"""
    return [LaneResponse(**lane.to_dict()) for lane in LANES]
