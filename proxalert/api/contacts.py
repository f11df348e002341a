"""Contacts API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from proxalert.core.deps import get_current_user, get_engine
from proxalert.db.session import get_db
from proxalert.models.user import User
from proxalert.schemas.contact import (
    ContactLinkResponse,
    ContactRequest,
    ContactWithUser,
    MeetingPointResponse,
)
from proxalert.services.contact_service import (
    accept_request,
    block_contact,
    get_contacts_for_user,
    reject_request,
    remove_contact,
    request_contact,
)
from proxalert.services.engine import ProximityEngine

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("", response_model=list[ContactWithUser])
def list_contacts(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Pending and accepted contacts, newest first."""
    result = []
    for link in get_contacts_for_user(db, current_user.id):
        other = db.get(User, link.contact_id)
        item = ContactWithUser.model_validate(link)
        item.contact_name = other.display_name if other else ""
        result.append(item)
    return result


@router.post("/request", response_model=ContactLinkResponse)
def send_request(
    data: ContactRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return request_contact(db, current_user.id, data.contact_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{requester_id}/accept", response_model=ContactLinkResponse)
def accept(
    requester_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Only the invited user can accept."""
    try:
        return accept_request(db, current_user.id, requester_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{requester_id}/reject", response_model=ContactLinkResponse)
def reject(
    requester_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return reject_request(db, current_user.id, requester_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{contact_id}", response_model=ContactLinkResponse)
def remove(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    try:
        link = remove_contact(db, current_user.id, contact_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    engine.reset_pair(current_user.id, contact_id)
    return link


@router.post("/{contact_id}/block", response_model=ContactLinkResponse)
def block(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    try:
        link = block_contact(db, current_user.id, contact_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    engine.reset_pair(current_user.id, contact_id)
    return link


@router.get("/{contact_id}/meeting-point", response_model=MeetingPointResponse)
def meeting_point(
    contact_id: int,
    current_user: User = Depends(get_current_user),
    engine: ProximityEngine = Depends(get_engine),
):
    """Midpoint between the caller and a contact."""
    try:
        latitude, longitude = engine.meeting_point(current_user.id, contact_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return MeetingPointResponse(contact_id=contact_id, latitude=latitude, longitude=longitude)
