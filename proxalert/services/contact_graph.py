"""Contact graph: who matters to a user."""

from __future__ import annotations

from proxalert.services.stores import ContactDirectory
from proxalert.services.types import ContactStatus, UserProfile


class ContactGraph:
    """Read-only view over the contact directory.

    Privacy rules live here and nowhere else:
      - both directed edges must be ACCEPTED (a block or removal on either side
        breaks the relationship),
      - self and deleted users are never contacts,
      - ghost-mode contacts are hidden from proximity, but not from SOS.
    """

    def __init__(self, directory: ContactDirectory) -> None:
        self._directory = directory

    def _mutual_contacts(self, user_id: int) -> set[int]:
        result: set[int] = set()
        for contact_id, status in self._directory.edges_from(user_id).items():
            if contact_id == user_id or status != ContactStatus.accepted:
                continue
            back = self._directory.edges_from(contact_id).get(user_id)
            if back != ContactStatus.accepted:
                continue
            contact = self._directory.get_user(contact_id)
            if contact is None or contact.is_deleted:
                continue
            result.add(contact_id)
        return result

    def visible_contacts_of(self, user_id: int) -> set[int]:
        """Mutual accepted contacts that are not in ghost mode."""
        return {cid for cid in self._mutual_contacts(user_id) if not self.is_ghost(cid)}

    def emergency_contacts_of(self, user_id: int) -> set[int]:
        """Mutual accepted contacts, ghost mode included."""
        return self._mutual_contacts(user_id)

    def linked_ids(self, user_id: int) -> set[int]:
        """Everyone with an edge from `user_id`, whatever its status."""
        return set(self._directory.edges_from(user_id)) - {user_id}

    def profile(self, user_id: int) -> UserProfile | None:
        return self._directory.get_user(user_id)

    def is_ghost(self, user_id: int) -> bool:
        user = self.profile(user_id)
        return bool(user and user.ghost_mode)

    def display_name(self, user_id: int) -> str:
        user = self.profile(user_id)
        return user.display_name if user else "Friend"
