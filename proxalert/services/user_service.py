"""User provisioning and profile service."""

from __future__ import annotations

from sqlalchemy.orm import Session

from proxalert.models.user import User
from proxalert.services.contact_service import delete_links_for_user


def create_user(db: Session, display_name: str) -> User:
    """Provision a user for an identity that signed up."""
    user = User(display_name=display_name.strip() or "User", ghost_mode=False)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_active_user(db: Session, user_id: int) -> User | None:
    user = db.get(User, user_id)
    if not user or user.is_deleted:
        return None
    return user


def set_ghost_mode(db: Session, user: User, enabled: bool) -> User:
    user.ghost_mode = enabled
    db.commit()
    db.refresh(user)
    return user


def set_battery_level(db: Session, user: User, battery_level: int) -> User:
    if not 0 <= battery_level <= 100:
        raise ValueError("Battery level must be between 0 and 100")
    user.battery_level = battery_level
    db.commit()
    db.refresh(user)
    return user


def delete_account(db: Session, user: User) -> None:
    """Flag the user deleted and drop their contact edges.

    Location data is purged by the engine (`forget_user`) before this runs.
    """
    delete_links_for_user(db, user.id)
    user.is_deleted = True
    user.ghost_mode = True
    db.commit()
