"""User provisioning and profile API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from proxalert.core.deps import get_current_user, get_engine
from proxalert.core.security import create_access_token
from proxalert.db.session import get_db
from proxalert.models.user import User
from proxalert.schemas.user import (
    BatteryUpdate,
    GhostModeUpdate,
    UserCreate,
    UserProvisioned,
    UserResponse,
)
from proxalert.services.engine import ProximityEngine
from proxalert.services.user_service import (
    create_user,
    delete_account,
    set_battery_level,
    set_ghost_mode,
)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserProvisioned, status_code=status.HTTP_201_CREATED)
def provision(data: UserCreate, db: Session = Depends(get_db)):
    """Provision a user for a new identity and hand back its bearer token."""
    user = create_user(db, data.display_name)
    return UserProvisioned(
        id=user.id,
        display_name=user.display_name,
        ghost_mode=user.ghost_mode,
        battery_level=user.battery_level,
        created_at=user.created_at,
        access_token=create_access_token(user.id),
    )


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me/ghost-mode", response_model=UserResponse)
def update_ghost_mode(
    data: GhostModeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Hide (or reveal) the user from contacts' proximity checks. SOS still reaches them."""
    user = set_ghost_mode(db, current_user, data.enabled)
    if data.enabled:
        engine.reset_pairs_of(user.id)
    return user


@router.put("/me/battery", response_model=UserResponse)
def update_battery(
    data: BatteryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return set_battery_level(db, current_user, data.battery_level)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Delete the account: location data, contact edges, then the profile."""
    engine.forget_user(current_user.id)
    delete_account(db, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
