"""SOS alerts API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from proxalert.core.deps import get_current_user, get_engine
from proxalert.core.errors import AlertNotFound, Unauthorized
from proxalert.models.user import User
from proxalert.schemas.sos import SosAlertResponse, SosRecipientResponse, SosSendRequest
from proxalert.services.engine import ProximityEngine
from proxalert.services.types import EmergencyAlert

router = APIRouter(prefix="/sos", tags=["sos"])


def _to_response(alert: EmergencyAlert, engine: ProximityEngine) -> SosAlertResponse:
    return SosAlertResponse(
        id=alert.id,
        sender_id=alert.sender_id,
        sender_name=engine.graph.display_name(alert.sender_id),
        latitude=alert.latitude,
        longitude=alert.longitude,
        message=alert.message,
        battery_level=alert.battery_level,
        status=alert.status.value,
        created_at=alert.created_at,
        resolved_at=alert.resolved_at,
        recipients=[
            SosRecipientResponse(
                recipient_id=rid,
                delivery_status=alert.deliveries[rid].value if rid in alert.deliveries else None,
            )
            for rid in alert.recipient_ids
        ],
    )


def _visible_alert(engine: ProximityEngine, alert_id: int, user_id: int) -> EmergencyAlert:
    alert = engine.get_alert(alert_id)
    if not alert or (alert.sender_id != user_id and user_id not in alert.recipient_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SOS not found")
    return alert


@router.post("", response_model=SosAlertResponse)
def send_sos(
    data: SosSendRequest,
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Broadcast an SOS to every accepted contact, ghost mode included."""
    try:
        alert_id = engine.send_emergency(
            current_user.id,
            data.latitude,
            data.longitude,
            message=data.message,
            battery_level=data.battery_level,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _to_response(engine.get_alert(alert_id), engine)


@router.get("/active", response_model=list[SosAlertResponse])
def list_active(
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Active alerts the caller sent or received, newest first."""
    return [_to_response(a, engine) for a in engine.active_alerts_visible_to(current_user.id)]


@router.get("/{alert_id}", response_model=SosAlertResponse)
def get_sos(
    alert_id: int,
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    return _to_response(_visible_alert(engine, alert_id, current_user.id), engine)


@router.post("/{alert_id}/resolve", response_model=SosAlertResponse)
def resolve_sos(
    alert_id: int,
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Sender marks themselves safe. Resolving twice is a no-op."""
    try:
        engine.resolve_emergency(alert_id, current_user.id)
    except AlertNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="SOS not found")
    except Unauthorized as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return _to_response(engine.get_alert(alert_id), engine)
