# tests/test_notifications.py

from conftest import ADMIN, create_user, login


def submit_lead(client, name="Lucía"):
    response = client.post("/api/contact", json={"name": name, "email": "lucia@example.com", "message": "Hola"})
    assert response.status_code == 200


def test_broadcast_visible_to_staff_only(client):
    create_user(client, "ana")
    create_user(client, "sofia", role="support")
    client.cookies.clear()
    submit_lead(client)

    login(client, *ADMIN)
    data = client.get("/api/notifications").json()
    assert data["unread"] == 1
    assert [n["type"] for n in data["notifications"]] == ["lead"]

    login(client, "sofia", "secret-pass")
    assert client.get("/api/notifications").json()["unread"] == 1

    login(client, "ana", "secret-pass")
    data = client.get("/api/notifications").json()
    assert data == {"ok": True, "notifications": [], "unread": 0}


def test_client_cannot_touch_broadcast(client):
    create_user(client, "ana")
    client.cookies.clear()
    submit_lead(client)

    login(client, *ADMIN)
    notification_id = client.get("/api/notifications").json()["notifications"][0]["id"]

    login(client, "ana", "secret-pass")
    assert client.post(f"/api/notifications/{notification_id}/read").status_code == 404
    assert client.delete(f"/api/notifications/{notification_id}").status_code == 404


def test_read_and_clear(client):
    client.cookies.clear()
    submit_lead(client, "Uno")
    submit_lead(client, "Dos")

    login(client, *ADMIN)
    notifications = client.get("/api/notifications").json()["notifications"]
    assert len(notifications) == 2

    assert client.post(f"/api/notifications/{notifications[0]['id']}/read").json() == {"ok": True}
    assert client.get("/api/notifications").json()["unread"] == 1

    assert client.post("/api/notifications/read-all").json() == {"ok": True, "updated": 1}
    assert client.get("/api/notifications").json()["unread"] == 0

    assert client.delete(f"/api/notifications/{notifications[1]['id']}").json() == {"ok": True}
    assert client.delete("/api/notifications").json() == {"ok": True, "deleted": 1}
    assert client.get("/api/notifications").json()["notifications"] == []


def test_requires_session(client):
    client.cookies.clear()
    response = client.get("/api/notifications")
    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "not_authenticated"}
