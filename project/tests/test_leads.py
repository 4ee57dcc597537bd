# tests/test_leads.py

from conftest import ADMIN, count_rows, create_user, login

from backoffice.models.email import EmailLog
from backoffice.models.lead import Lead
from backoffice.models.notification import AdminNotification
from backoffice.services.mailer import Mailer

CONTACT = {
    "name": "  Ana Perez ",
    "email": "ana@example.com",
    "phone": "   ",
    "project_type": "Landing Page",
    "message": "Necesito una pagina web",
}


def test_contact_stores_lead_even_when_email_fails(client):
    response = client.post("/api/contact", json=CONTACT)
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True

    login(client, *ADMIN)
    lead = client.get(f"/api/leads/{body['id']}").json()["lead"]
    assert lead["status"] == "new"
    assert lead["name"] == "Ana Perez"
    assert lead["phone"] is None

    # SMTP не настроен: обе попытки записаны как failed
    assert count_rows(client, EmailLog, EmailLog.status == "failed") == 2
    assert count_rows(client, AdminNotification, AdminNotification.type == "lead") == 1


def test_contact_with_working_smtp(client, monkeypatch):
    sent = []
    monkeypatch.setattr(client.app.state.settings, "SMTP_HOST", "smtp.example.com")
    monkeypatch.setattr(Mailer, "_deliver", lambda self, to, subject, html: sent.append((to, subject)))

    assert client.post("/api/contact", json=CONTACT).status_code == 200
    assert [to for to, _ in sent] == ["ana@example.com", "admin@example.com"]
    assert count_rows(client, EmailLog, EmailLog.status == "sent") == 2


def test_contact_missing_message(client):
    response = client.post("/api/contact", json={**CONTACT, "message": "   "})
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "missing_fields"}
    assert count_rows(client, Lead) == 0

    response = client.post("/api/contact", json={"name": "Ana", "email": "ana@example.com"})
    assert response.status_code == 400
    assert count_rows(client, Lead) == 0


def test_triage_flow(client):
    first = client.post("/api/contact", json=CONTACT).json()["id"]
    second = client.post("/api/contact", json={**CONTACT, "name": "Luis"}).json()["id"]

    create_user(client, "sofia", role="support")
    login(client, "sofia", "secret-pass")

    # новые первыми
    leads = client.get("/api/leads").json()["leads"]
    assert [l["id"] for l in leads] == [second, first]

    # важные первыми
    assert client.post(f"/api/leads/{first}/important").json()["is_important"] is True
    leads = client.get("/api/leads").json()["leads"]
    assert [l["id"] for l in leads] == [first, second]

    bad = client.post(f"/api/leads/{first}/status", json={"status": "archived"})
    assert bad.status_code == 400
    assert bad.json()["error"] == "bad_status"

    assert client.post(f"/api/leads/{first}/status", json={"status": "replied"}).status_code == 200
    assert client.post(f"/api/leads/{first}/notes", json={"notes": "Llamar el lunes"}).status_code == 200

    lead = client.get(f"/api/leads/{first}").json()["lead"]
    assert lead["status"] == "replied"
    assert lead["internal_notes"] == "Llamar el lunes"

    summary = client.get("/api/leads/summary").json()["summary"]
    assert summary == {"new": 1, "replied": 1, "closed": 0}

    assert client.delete(f"/api/leads/{second}").status_code == 200
    assert client.get(f"/api/leads/{second}").status_code == 404
