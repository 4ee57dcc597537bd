# tests/test_tickets.py

import asyncio
import os
from datetime import timedelta

import httpx
from sqlalchemy import event, update

from conftest import ADMIN, count_rows, create_user, login, run_db

from backoffice.models.notification import AdminNotification
from backoffice.models.ticket import Ticket, TicketAttachment, TicketMessage
from backoffice.utils.database import utcnow


def new_ticket(client, subject="No carga la web", priority="medium", **extra):
    response = client.post("/api/tickets", json={"subject": subject, "message": "Detalle", "priority": priority, **extra})
    assert response.status_code == 200, response.text
    return response.json()["ticket_id"]


def test_create_requires_subject_and_message(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    response = client.post("/api/tickets", json={"subject": "  ", "message": "x"})
    assert response.status_code == 400
    assert response.json()["error"] == "missing_fields"


def test_create_ticket_with_first_message(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client, category="improvement")

    data = client.get(f"/api/tickets/{ticket_id}").json()
    assert data["ticket"]["status"] == "new"
    assert data["ticket"]["improvement_status"] == "pending"
    assert data["ticket"]["client_name"] == "Ana"
    assert [m["message"] for m in data["messages"]] == ["Detalle"]
    assert count_rows(client, AdminNotification, AdminNotification.type == "ticket_new") == 1


def test_invalid_priority_is_rejected(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    response = client.post("/api/tickets", json={"subject": "x", "message": "y", "priority": "blocker"})
    assert response.status_code == 400


def test_status_follows_message_author(client):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")

    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    login(client, "sofia", "secret-pass")
    reply = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Revisando"}).json()
    assert reply["status"] == "waiting_client"

    note = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Nota", "is_internal": True}).json()
    assert note["status"] == "waiting_client"
    assert note["message"]["is_internal"] is True

    # первый ответ персонала назначает тикет автору
    ticket = client.get(f"/api/tickets/{ticket_id}").json()["ticket"]
    assert ticket["assigned_name"] == "Sofia"

    login(client, "ana", "secret-pass")
    answer = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Gracias", "is_internal": True}).json()
    assert answer["status"] == "waiting_support"
    assert answer["message"]["is_internal"] is False

    # клиент не видит внутреннюю заметку
    messages = client.get(f"/api/tickets/{ticket_id}").json()["messages"]
    assert [m["message"] for m in messages] == ["Detalle", "Revisando", "Gracias"]


def test_reply_to_closed_ticket_keeps_it_closed(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    login(client, *ADMIN)
    closed = client.post(f"/api/tickets/{ticket_id}/close").json()
    assert closed["status"] == "closed"
    assert closed["closed_at"] is not None

    login(client, "ana", "secret-pass")
    response = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Sigue fallando"})
    assert response.json()["status"] == "closed"

    # явное переоткрытие через PUT очищает closed_at
    login(client, *ADMIN)
    reopened = client.put(f"/api/tickets/{ticket_id}", json={"status": "in_progress"}).json()
    assert reopened["status"] == "in_progress"
    assert reopened["closed_at"] is None


def test_double_claim_conflict(client):
    create_user(client, "ana")
    first = create_user(client, "sofia", role="support")
    create_user(client, "tomas", role="support")

    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    login(client, "sofia", "secret-pass")
    claimed = client.post(f"/api/tickets/{ticket_id}/assign-me")
    assert claimed.status_code == 200
    assert claimed.json() == {"ok": True, "assigned_to": first, "status": "in_progress"}

    login(client, "tomas", "secret-pass")
    second = client.post(f"/api/tickets/{ticket_id}/assign-me")
    assert second.status_code == 409
    assert second.json() == {"ok": False, "error": "already_assigned", "assigned_to": first}

    login(client, *ADMIN)
    ticket = client.get(f"/api/tickets/{ticket_id}").json()["ticket"]
    assert ticket["assigned_to"] == first


def test_simultaneous_claims_have_one_winner(client):
    create_user(client, "ana")
    ids = {name: create_user(client, name, role="support") for name in ("sofia", "tomas")}

    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    tokens = {}
    for name in ids:
        login(client, name, "secret-pass")
        tokens[name] = client.cookies.get("sid")

    async def claim_both():
        transport = httpx.ASGITransport(app=client.app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            return await asyncio.gather(*(
                http.post(f"/api/tickets/{ticket_id}/assign-me", headers={"Cookie": f"sid={tokens[name]}"})
                for name in ids
            ))

    responses = client.portal.call(claim_both)
    assert sorted(r.status_code for r in responses) == [200, 409]

    winner = next(r for r in responses if r.status_code == 200).json()["assigned_to"]
    loser = next(r for r in responses if r.status_code == 409).json()
    assert winner in ids.values()
    assert loser == {"ok": False, "error": "already_assigned", "assigned_to": winner}

    login(client, *ADMIN)
    assert client.get(f"/api/tickets/{ticket_id}").json()["ticket"]["assigned_to"] == winner


def test_closed_tickets_fade_from_client_list(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    old = new_ticket(client, "viejo")
    recent = new_ticket(client, "reciente")

    login(client, *ADMIN)
    for ticket_id in (old, recent):
        assert client.post(f"/api/tickets/{ticket_id}/close").status_code == 200

    async def age(session):
        for ticket_id, days in ((old, 8), (recent, 6)):
            await session.execute(
                update(Ticket).where(Ticket.id == ticket_id).values(closed_at=utcnow() - timedelta(days=days))
            )
        await session.commit()

    run_db(client, age)

    login(client, "ana", "secret-pass")
    assert [t["id"] for t in client.get("/api/tickets").json()["tickets"]] == [recent]

    login(client, *ADMIN)
    assert {t["id"] for t in client.get("/api/tickets").json()["tickets"]} == {old, recent}


def test_broken_notification_does_not_break_reply(client):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")
    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    def fail(mapper, connection, target):
        raise RuntimeError("notifications table unavailable")

    event.listen(AdminNotification, "before_insert", fail)
    try:
        login(client, "sofia", "secret-pass")
        reply = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Revisando"})
        assert reply.status_code == 200, reply.text
        assert reply.json()["status"] == "waiting_client"

        login(client, "ana", "secret-pass")
        answer = client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Gracias"})
        assert answer.status_code == 200, answer.text
        assert answer.json()["status"] == "waiting_support"
    finally:
        event.remove(AdminNotification, "before_insert", fail)

    assert count_rows(client, TicketMessage, TicketMessage.ticket_id == ticket_id) == 3
    assert count_rows(client, AdminNotification, AdminNotification.type == "ticket_message") == 0



def test_clients_cannot_assign_or_see_others(client):
    create_user(client, "ana")
    create_user(client, "beto")

    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)
    assert client.post(f"/api/tickets/{ticket_id}/assign-me").status_code == 403

    login(client, "beto", "secret-pass")
    assert client.get(f"/api/tickets/{ticket_id}").status_code == 403
    assert client.get("/api/tickets").json()["tickets"] == []
    assert client.get("/api/tickets/999").status_code == 404


def test_list_ordering_by_priority_then_newest(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")

    low = new_ticket(client, "a", "low")
    urgent_old = new_ticket(client, "b", "urgent")
    medium = new_ticket(client, "c", "medium")
    high = new_ticket(client, "d", "high")
    urgent_new = new_ticket(client, "e", "urgent")

    tickets = client.get("/api/tickets").json()["tickets"]
    assert [t["id"] for t in tickets] == [urgent_new, urgent_old, high, medium, low]

    login(client, *ADMIN)
    tickets = client.get("/api/tickets").json()["tickets"]
    assert [t["id"] for t in tickets] == [urgent_new, urgent_old, high, medium, low]


def test_support_sees_unassigned_and_own(client):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")
    create_user(client, "tomas", role="support")

    login(client, "ana", "secret-pass")
    mine = new_ticket(client, "mine")
    theirs = new_ticket(client, "theirs")
    free = new_ticket(client, "free")

    login(client, "sofia", "secret-pass")
    client.post(f"/api/tickets/{mine}/assign-me")
    login(client, "tomas", "secret-pass")
    client.post(f"/api/tickets/{theirs}/assign-me")

    login(client, "sofia", "secret-pass")
    ids = {t["id"] for t in client.get("/api/tickets").json()["tickets"]}
    assert ids == {mine, free}

    stats = client.get("/api/tickets/stats").json()["stats"]
    assert stats["total"] == 2
    assert stats["in_progress"] == 1
    assert stats["new"] == 1


def test_support_cannot_delete(client):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")
    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    login(client, "sofia", "secret-pass")
    assert client.delete(f"/api/tickets/{ticket_id}").status_code == 403


def test_delete_cascade(client, app):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")

    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)
    upload = client.post(
        f"/api/tickets/{ticket_id}/attachments",
        files={"file": ("captura.png", b"\x89PNG fake image", "image/png")},
    )
    assert upload.status_code == 200, upload.text
    file_url = upload.json()["attachment"]["file_path"]
    disk_path = os.path.join(app.state.settings.UPLOADS_DIR, file_url[len("/uploads/"):])
    assert os.path.isfile(disk_path)

    login(client, "sofia", "secret-pass")
    client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Hola"})
    login(client, "ana", "secret-pass")
    client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Sigue igual"})

    ticket_notifications = (AdminNotification.ref_id == ticket_id, AdminNotification.type.like("ticket%"))
    assert count_rows(client, AdminNotification, *ticket_notifications) >= 3

    login(client, *ADMIN)
    assert client.delete(f"/api/tickets/{ticket_id}").json() == {"ok": True}

    assert client.get(f"/api/tickets/{ticket_id}").status_code == 404
    assert count_rows(client, TicketMessage, TicketMessage.ticket_id == ticket_id) == 0
    assert count_rows(client, TicketAttachment, TicketAttachment.ticket_id == ticket_id) == 0
    assert count_rows(client, AdminNotification, *ticket_notifications) == 0
    assert not os.path.exists(disk_path)


def test_attachment_rules(client, monkeypatch):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    ticket_id = new_ticket(client)

    bad_type = client.post(f"/api/tickets/{ticket_id}/attachments", files={"file": ("virus.exe", b"MZ", "application/octet-stream")})
    assert bad_type.status_code == 400
    assert bad_type.json()["error"] == "file_type_not_allowed"

    monkeypatch.setattr(client.app.state.settings, "UPLOAD_MAX_BYTES", 10)
    too_big = client.post(f"/api/tickets/{ticket_id}/attachments", files={"file": ("notes.txt", b"x" * 100, "text/plain")})
    assert too_big.status_code == 413
    assert too_big.json()["error"] == "file_too_large"
    assert count_rows(client, TicketAttachment) == 0


def test_directories(client):
    create_user(client, "ana")
    create_user(client, "zoe", role="support")
    create_user(client, "bruno", role="support")

    login(client, *ADMIN)
    staff = [u["display_name"] for u in client.get("/api/support-staff").json()["staff"]]
    assert staff == sorted(staff, key=str.lower)
    assert {"Zoe", "Bruno"} <= set(staff)

    clients = client.get("/api/clients").json()["clients"]
    assert [c["username"] for c in clients] == ["ana"]
