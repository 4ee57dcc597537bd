# tests/test_policy.py

import pytest

from backoffice.services.policy import Capability, can, capabilities, is_staff
from backoffice.services.ticket import next_status


def test_client_capabilities():
    assert capabilities("client") == {Capability.READ, Capability.WRITE}
    assert not can("client", Capability.TRIAGE)
    assert not is_staff("client")


def test_support_cannot_delete_or_manage():
    assert can("support", Capability.ASSIGN, Capability.CLOSE, Capability.TRIAGE)
    assert not can("support", Capability.DELETE)
    assert not can("support", Capability.MANAGE)
    assert is_staff("support")


def test_admin_has_everything():
    assert can("admin", *Capability)


def test_unknown_role_has_nothing():
    assert capabilities("guest") == frozenset()
    assert not can("guest", Capability.READ)


@pytest.mark.parametrize("current", ["new", "in_progress", "waiting_client", "waiting_support"])
def test_client_message_waits_for_support(current):
    assert next_status(current, "client", False) == "waiting_support"
    # флаг is_internal от клиента игнорируется
    assert next_status(current, "client", True) == "waiting_support"


@pytest.mark.parametrize("role", ["admin", "support"])
def test_staff_reply_waits_for_client(role):
    assert next_status("new", role, False) == "waiting_client"
    assert next_status("waiting_support", role, False) == "waiting_client"


@pytest.mark.parametrize("current", ["new", "in_progress", "waiting_support"])
def test_internal_note_keeps_status(current):
    assert next_status(current, "support", True) == current


@pytest.mark.parametrize("role, internal", [("client", False), ("support", False), ("admin", True)])
def test_closed_ticket_stays_closed(role, internal):
    assert next_status("closed", role, internal) == "closed"


@pytest.mark.parametrize("role", [None, ""])
def test_missing_role_has_nothing(role):
    assert capabilities(role) == frozenset()
    assert not can(role, Capability.READ)
    assert not is_staff(role)
