import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import BaseModel, field_validator

from backend.live.registry import InvalidArgument, LiveLocationRegistry
from .auth import require_role

logger = logging.getLogger(__name__)

router = APIRouter()

get_driver_user = require_role("driver", detail="Only drivers can update location")


class UpdateLocation(BaseModel):
    busId: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("busId", mode="before")
    @classmethod
    def bus_id_as_text(cls, value):
        # numeric bus ids are used as keys like any other
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


def get_registry(request: Request) -> LiveLocationRegistry:
    return request.app.state.registry


@router.post("/update", tags=["Driver"])
async def update_location(
    location: UpdateLocation,
    current_user: Dict[str, Any] = Depends(get_driver_user),
    registry: LiveLocationRegistry = Depends(get_registry),
):
    if not location.busId or location.lat is None or location.lng is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bus ID, lat, and lng are required")

    try:
        position = registry.report(location.busId, location.lat, location.lng, current_user["id"])
    except InvalidArgument as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    logger.debug("Driver %s reported %s at (%s, %s)", current_user["id"], position.vehicle_id, position.latitude, position.longitude)
    return {"message": "Location updated successfully", "location": position.as_event()}
