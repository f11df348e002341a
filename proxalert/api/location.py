"""Location API: updates, friends' positions and meeting history."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from proxalert.core.deps import get_current_user, get_engine
from proxalert.core.errors import InvalidCoordinates
from proxalert.models.user import User
from proxalert.schemas.location import (
    ContactProximityResponse,
    FriendLocation,
    LocationUpdate,
    LocationUpdateResponse,
)
from proxalert.schemas.meeting import MeetingResponse
from proxalert.services.engine import ProximityEngine
from proxalert.services.types import LocationSample

router = APIRouter(prefix="/location", tags=["location"])


@router.post("", response_model=LocationUpdateResponse)
def update_location(
    data: LocationUpdate,
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Record the caller's position and run proximity checks against their contacts."""
    sample = LocationSample(
        owner_id=current_user.id,
        latitude=data.latitude,
        longitude=data.longitude,
        accuracy=data.accuracy,
        altitude=data.altitude,
        speed=data.speed,
        observed_at=data.observed_at,
    )
    try:
        report = engine.process_location_update(current_user.id, sample)
    except InvalidCoordinates as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LocationUpdateResponse(
        recorded_at=report.evaluated_at,
        contacts=[
            ContactProximityResponse(
                contact_id=c.contact_id,
                distance_m=round(c.distance_m, 1),
                classification=c.classification.value,
            )
            for c in report.contacts
        ],
        alerted=report.alerted,
    )


@router.get("/friends", response_model=list[FriendLocation])
def friends_locations(
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Latest positions of contacts who are not in ghost mode."""
    return [
        FriendLocation(
            user_id=profile.id,
            display_name=profile.display_name,
            latitude=sample.latitude,
            longitude=sample.longitude,
            accuracy=sample.accuracy,
            battery_level=profile.battery_level,
            recorded_at=sample.recorded_at,
        )
        for profile, sample in engine.friend_locations(current_user.id)
    ]


@router.get("/history", response_model=list[MeetingResponse])
def meeting_history(
    limit: int = Query(default=50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Meetings the caller took part in, newest first."""
    result = []
    for record in engine.meeting_history_of(current_user.id, limit):
        a, b = record.participants
        other_id = b if a == current_user.id else a
        result.append(
            MeetingResponse(
                id=record.id,
                other_user_id=other_id,
                other_name=engine.graph.display_name(other_id),
                started_at=record.started_at,
                duration_ms=record.duration_ms,
                latitude=record.latitude,
                longitude=record.longitude,
                created_at=record.created_at,
            )
        )
    return result
