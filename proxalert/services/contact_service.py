"""Contact management service (requests, acceptance, removal, blocking)."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from proxalert.models.contact_link import ContactLink
from proxalert.models.user import User


def _get_link(db: Session, owner_id: int, contact_id: int) -> ContactLink | None:
    return db.execute(
        select(ContactLink).where(ContactLink.owner_id == owner_id, ContactLink.contact_id == contact_id)
    ).scalar_one_or_none()


def _pair(db: Session, user_id: int, contact_id: int) -> tuple[ContactLink | None, ContactLink | None]:
    """Both directed rows: (user -> contact, contact -> user)."""
    return _get_link(db, user_id, contact_id), _get_link(db, contact_id, user_id)


def _set_both(
    db: Session, user_id: int, contact_id: int, status: str, requested_by: int
) -> tuple[ContactLink, ContactLink]:
    mine, theirs = _pair(db, user_id, contact_id)
    if mine is None:
        mine = ContactLink(owner_id=user_id, contact_id=contact_id)
        db.add(mine)
    if theirs is None:
        theirs = ContactLink(owner_id=contact_id, contact_id=user_id)
        db.add(theirs)
    for link in (mine, theirs):
        link.status = status
        link.requested_by = requested_by
    return mine, theirs


def request_contact(db: Session, requester_id: int, contact_id: int) -> ContactLink:
    """Send a contact request. Returns the requester's side of the edge."""
    if requester_id == contact_id:
        raise ValueError("Cannot add yourself")
    contact = db.get(User, contact_id)
    if not contact or contact.is_deleted:
        raise ValueError("User not found")

    mine, theirs = _pair(db, requester_id, contact_id)
    statuses = {link.status for link in (mine, theirs) if link}
    if "blocked" in statuses:
        raise ValueError("This connection has been blocked")
    if "accepted" in statuses:
        raise ValueError("Already connected with this user")
    if "pending" in statuses:
        raise ValueError("Request already pending")

    # Rejected or removed relationships can be requested again
    mine, _ = _set_both(db, requester_id, contact_id, "pending", requested_by=requester_id)
    db.commit()
    db.refresh(mine)
    return mine


def _pending_request_to(db: Session, user_id: int, requester_id: int) -> tuple[ContactLink, ContactLink]:
    mine, theirs = _pair(db, user_id, requester_id)
    if not mine or not theirs or mine.status != "pending":
        raise ValueError("Request not found")
    if mine.requested_by != requester_id:
        raise ValueError("Only the invited user can answer a request")
    return mine, theirs


def accept_request(db: Session, user_id: int, requester_id: int) -> ContactLink:
    """The invited user accepts; both directions become accepted."""
    mine, theirs = _pending_request_to(db, user_id, requester_id)
    mine.status = theirs.status = "accepted"
    db.commit()
    db.refresh(mine)
    return mine


def reject_request(db: Session, user_id: int, requester_id: int) -> ContactLink:
    mine, theirs = _pending_request_to(db, user_id, requester_id)
    mine.status = theirs.status = "rejected"
    db.commit()
    db.refresh(mine)
    return mine


def remove_contact(db: Session, user_id: int, contact_id: int) -> ContactLink:
    """Unfriend (or withdraw a pending request)."""
    mine, theirs = _pair(db, user_id, contact_id)
    if not mine or mine.status not in ("accepted", "pending"):
        raise ValueError("Contact not found")
    mine.status = "removed"
    if theirs:
        theirs.status = "removed"
    db.commit()
    db.refresh(mine)
    return mine


def block_contact(db: Session, user_id: int, contact_id: int) -> ContactLink:
    """Block a user. The other side is removed so neither sees the other."""
    if user_id == contact_id:
        raise ValueError("Cannot block yourself")
    if not db.get(User, contact_id):
        raise ValueError("User not found")
    mine, _ = _set_both(db, user_id, contact_id, "removed", requested_by=user_id)
    mine.status = "blocked"
    db.commit()
    db.refresh(mine)
    return mine


def get_contacts_for_user(db: Session, user_id: int) -> list[ContactLink]:
    """All pending and accepted edges owned by a user (for display)."""
    result = db.execute(
        select(ContactLink)
        .where(ContactLink.owner_id == user_id)
        .where(ContactLink.status.in_(["pending", "accepted"]))
        .order_by(ContactLink.created_at.desc(), ContactLink.id.desc())
    )
    return list(result.scalars().all())


def delete_links_for_user(db: Session, user_id: int) -> int:
    """Remove every edge touching a user (account deletion). Returns rows deleted."""
    links = db.execute(
        select(ContactLink).where(or_(ContactLink.owner_id == user_id, ContactLink.contact_id == user_id))
    ).scalars().all()
    for link in links:
        db.delete(link)
    db.commit()
    return len(links)
