"""Contact graph privacy rules."""

from proxalert.services.contact_graph import ContactGraph
from proxalert.services.types import ContactStatus


def _graph(directory):
    for uid, name in [(1, "Ana"), (2, "Ben"), (3, "Cy"), (4, "Di")]:
        directory.add_user(uid, name)
    return ContactGraph(directory)


def test_only_mutually_accepted_contacts_are_visible(directory):
    graph = _graph(directory)
    directory.link(1, 2)
    directory.link(1, 3, ContactStatus.pending)
    assert graph.visible_contacts_of(1) == {2}
    assert graph.visible_contacts_of(2) == {1}
    assert graph.visible_contacts_of(3) == set()


def test_one_sided_block_breaks_the_relationship(directory):
    graph = _graph(directory)
    directory.link(1, 2)
    directory.set_edge(2, 1, ContactStatus.blocked)
    assert graph.visible_contacts_of(1) == set()
    assert graph.emergency_contacts_of(1) == set()


def test_ghost_contacts_hidden_from_proximity_but_not_sos(directory):
    graph = _graph(directory)
    directory.link(1, 2)
    directory.link(1, 3)
    directory.set_ghost_mode(3, True)
    assert graph.visible_contacts_of(1) == {2}
    assert graph.emergency_contacts_of(1) == {2, 3}


def test_self_and_deleted_users_are_never_contacts(directory):
    graph = _graph(directory)
    directory.set_edge(1, 1, ContactStatus.accepted)
    directory.link(1, 4)
    directory.mark_deleted(4)
    assert graph.visible_contacts_of(1) == set()


def test_linked_ids_include_every_status(directory):
    graph = _graph(directory)
    directory.link(1, 2)
    directory.link(1, 3, ContactStatus.removed)
    assert graph.linked_ids(1) == {2, 3}


def test_display_name_falls_back(directory):
    graph = _graph(directory)
    assert graph.display_name(2) == "Ben"
    assert graph.display_name(99) == "Friend"
