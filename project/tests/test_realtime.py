# tests/test_realtime.py

import asyncio

import pytest
from fastapi import WebSocketDisconnect

from conftest import create_user, login

from backoffice.services.realtime import TicketRooms


class FakeSocket:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("closed")
        self.sent.append(data)


def test_rooms_skip_clients_for_staff_only_events():
    rooms = TicketRooms()
    client_ws, staff_ws = FakeSocket(), FakeSocket()
    rooms.join(1, client_ws, "client")
    rooms.join(1, staff_ws, "support")

    delivered = asyncio.run(rooms.broadcast(1, "new-message", {"id": 1}, staff_only=True))
    assert delivered == 1
    assert client_ws.sent == []
    assert staff_ws.sent == [{"event": "new-message", "data": {"id": 1}}]

    assert asyncio.run(rooms.broadcast(1, "new-message", {"id": 2})) == 2
    assert asyncio.run(rooms.broadcast(2, "new-message", {"id": 3})) == 0


def test_rooms_drop_closed_sockets():
    rooms = TicketRooms()
    dead, alive = FakeSocket(fail=True), FakeSocket()
    rooms.join(1, dead, "admin")
    rooms.join(1, alive, "client")
    rooms.join(2, dead, "admin")

    assert asyncio.run(rooms.broadcast(1, "new-message", {})) == 1
    assert rooms.members(1) == 1
    assert rooms.members(2) == 0

    rooms.leave(1, alive)
    assert rooms.rooms == {}


def test_socket_requires_session(client):
    client.cookies.clear()
    with client.websocket_connect("/ws") as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    assert exc.value.code == 4401


def test_live_messages_in_ticket_room(client):
    create_user(client, "ana")
    create_user(client, "beto")
    create_user(client, "sofia", role="support")

    login(client, "ana", "secret-pass")
    ticket_id = client.post("/api/tickets", json={"subject": "Correo", "message": "No llega"}).json()["ticket_id"]

    login(client, "beto", "secret-pass")
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join-ticket", "ticket_id": ticket_id})
        assert ws.receive_json() == {"event": "error", "data": {"error": "forbidden", "ticket_id": ticket_id}}

    login(client, "ana", "secret-pass")
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"action": "join-ticket", "ticket_id": ticket_id})
        assert ws.receive_json() == {"event": "joined", "data": {"ticket_id": ticket_id}}
        assert client.app.state.rooms.members(ticket_id) == 1

        # HTTP-запросы того же клиента идут уже от имени сотрудника
        login(client, "sofia", "secret-pass")
        client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Nota interna", "is_internal": True})
        client.post(f"/api/tickets/{ticket_id}/messages", json={"message": "Ya está resuelto"})

        event = ws.receive_json()
        assert event["event"] == "new-message"
        assert event["data"]["message"] == "Ya está resuelto"
        assert event["data"]["display_name"] == "Sofia"

        ws.send_json({"action": "leave-ticket", "ticket_id": ticket_id})
        assert ws.receive_json() == {"event": "left", "data": {"ticket_id": ticket_id}}

        ws.send_text("not json")
        assert ws.receive_json()["data"] == {"error": "bad_frame"}

    assert client.app.state.rooms.members(ticket_id) == 0
