# tests/test_content.py

import os

from conftest import ADMIN, count_rows, create_user, login

from backoffice.models.user import User


# ────────────── Блог ──────────────
def test_post_slug_and_comment_moderation(client):
    login(client, *ADMIN)
    category = client.post("/api/blog/manage/categories", json={"name": "Diseño Web"}).json()["category"]
    assert category["slug"] == "diseno-web"

    created = client.post("/api/blog/manage/posts", json={
        "title": "¿Qué es un CMS?",
        "content": "Texto",
        "category_id": category["id"],
        "is_published": True,
    }).json()
    assert created["slug"] == "que-es-un-cms"

    duplicate = client.post("/api/blog/manage/posts", json={"title": "Otro", "slug": "que-es-un-cms"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "slug_taken"

    client.cookies.clear()
    post = client.get("/api/blog/posts/que-es-un-cms").json()["post"]
    assert post["category_name"] == "Diseño Web"

    missing = client.post("/api/blog/posts/que-es-un-cms/comments", json={"author_name": "Eva", "comment": "  "})
    assert missing.status_code == 400
    assert missing.json()["error"] == "name_and_comment_required"

    comment = client.post("/api/blog/posts/que-es-un-cms/comments", json={"author_name": "Eva", "comment": "x" * 3000}).json()
    assert comment["pending"] is True
    assert client.get("/api/blog/posts/que-es-un-cms/comments").json()["comments"] == []

    login(client, *ADMIN)
    pending = client.get("/api/blog/manage/comments", params={"pending": True}).json()["comments"]
    assert len(pending) == 1
    assert len(pending[0]["comment"]) == 2000
    client.post(f"/api/blog/manage/comments/{comment['id']}/approve")

    client.cookies.clear()
    assert len(client.get("/api/blog/posts/que-es-un-cms/comments").json()["comments"]) == 1
    categories = client.get("/api/blog/categories").json()["categories"]
    assert categories[0]["post_count"] == 1


def test_draft_posts_are_hidden(client):
    login(client, *ADMIN)
    client.post("/api/blog/manage/posts", json={"title": "Borrador"})
    client.cookies.clear()
    assert client.get("/api/blog/posts").json()["posts"] == []
    assert client.get("/api/blog/posts/borrador").status_code == 404


# ────────────── FAQ ──────────────
def test_faq_answer_is_rendered_and_sanitized(client):
    login(client, *ADMIN)
    created = client.post("/api/faq", json={
        "question": "¿Incluye correo?",
        "answer": "**Sí**, incluye correo.\n\n<script>alert(1)</script>",
        "category": "hosting",
    })
    assert created.status_code == 200, created.text
    html = created.json()["faq"]["answer_html"]
    assert "<strong>Sí</strong>" in html
    assert "<script>" not in html

    client.post("/api/faq", json={"question": "Oculta", "answer": "x", "is_published": False})

    client.cookies.clear()
    faq = client.get("/api/faq").json()["faq"]
    assert [f["question"] for f in faq] == ["¿Incluye correo?"]
    assert client.get("/api/faq/categories").json()["categories"] == ["hosting"]


# ────────────── Проекты ──────────────
def test_project_technologies_are_replaced(client):
    login(client, *ADMIN)
    created = client.post("/api/projects", json={
        "title": "Tienda Online",
        "is_published": True,
        "technologies": [{"tech_name": "Node.js"}, {"tech_name": "MySQL"}],
    }).json()
    assert created["slug"] == "tienda-online"

    client.put(f"/api/projects/{created['id']}", json={"technologies": [{"tech_name": "Python"}]})

    project = client.get("/api/projects/tienda-online").json()["project"]
    assert [t["tech_name"] for t in project["technologies"]] == ["Python"]

    image = client.post(
        f"/api/projects/{created['id']}/images",
        files={"file": ("portada.png", b"\x89PNG", "image/png")},
        data={"caption": "Portada"},
    )
    assert image.status_code == 200, image.text
    assert image.json()["image"]["caption"] == "Portada"

    rejected = client.post(f"/api/projects/{created['id']}/images", files={"file": ("doc.pdf", b"%PDF", "application/pdf")})
    assert rejected.status_code == 400

    assert client.delete(f"/api/projects/{created['id']}").json() == {"ok": True}
    assert client.get("/api/projects/tienda-online").status_code == 404


# ────────────── Требования ──────────────
def test_requirement_conversion(client):
    login(client, *ADMIN)
    created = client.post("/api/requirements", json={
        "contact_name": "Marta Ruiz",
        "contact_email": "Marta.Ruiz@example.com",
        "company_name": "Ruiz SL",
        "sections": ["inicio", "contacto"],
    })
    assert created.status_code == 200, created.text
    requirement_id = created.json()["requirement_id"]

    assert client.put(f"/api/requirements/{requirement_id}", json={
        "contact_name": "Marta Ruiz", "contact_email": "Marta.Ruiz@example.com", "status": "unknown",
    }).status_code == 400

    converted = client.post(f"/api/requirements/{requirement_id}/convert")
    assert converted.status_code == 200, converted.text
    data = converted.json()
    assert data["username"] == "martaruiz"
    assert len(data["temp_password"]) >= 8

    again = client.post(f"/api/requirements/{requirement_id}/convert")
    assert again.status_code == 400
    assert again.json()["error"] == "already_converted"
    assert count_rows(client, User, User.username == "martaruiz") == 1

    requirement = client.get(f"/api/requirements/{requirement_id}").json()["requirement"]
    assert requirement["status"] == "converted"
    assert requirement["converted_to_client_id"] == data["user_id"]

    # новый клиент входит временным паролем и обязан его сменить
    session = login(client, "martaruiz", data["temp_password"])
    assert session["must_change_password"] is True


def test_requirements_forbidden_for_clients(client):
    create_user(client, "ana")
    login(client, "ana", "secret-pass")
    assert client.get("/api/requirements").status_code == 403


# ────────────── Обслуживание ──────────────
def test_maintenance_notice_with_bulk_email(client):
    create_user(client, "ana")
    create_user(client, "beto")
    login(client, *ADMIN)

    created = client.post("/api/maintenance", json={
        "title": "Mantenimiento",
        "message": "Servidor en mantenimiento",
        "start_at": "2020-01-01T00:00:00",
        "send_email": True,
    })
    assert created.status_code == 200, created.text
    emails = created.json()["emails"]
    assert sorted(e["email"] for e in emails) == ["ana@example.com", "beto@example.com"]
    assert all(e["ok"] is False for e in emails)

    bad = client.post("/api/maintenance", json={
        "title": "x", "message": "y", "start_at": "2020-01-02T00:00:00", "end_at": "2020-01-01T00:00:00",
    })
    assert bad.json()["error"] == "bad_window"

    login(client, "ana", "secret-pass")
    notices = client.get("/api/maintenance/active").json()["notices"]
    assert [n["title"] for n in notices] == ["Mantenimiento"]


# ────────────── Страницы ──────────────
def test_pages_redirect_without_session(client):
    client.cookies.clear()
    response = client.get("/admin/dashboard", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/portal-admin"

    response = client.get("/cliente/", follow_redirects=False)
    assert response.headers["location"] == "/portal-cliente"


def test_pages_route_by_role(client, app):
    views = app.state.settings.VIEWS_DIR
    os.makedirs(os.path.join(views, "admin"))
    with open(os.path.join(views, "admin", "dashboard.html"), "w") as f:
        f.write("<h1>Panel</h1>")

    login(client, *ADMIN)
    assert client.get("/admin/dashboard").text == "<h1>Panel</h1>"
    assert client.get("/cliente/", follow_redirects=False).headers["location"] == "/admin/dashboard"

    password = client.post("/api/users", json={"username": "otro", "role": "client"}).json()["temp_password"]
    login(client, "otro", password)
    assert client.get("/cliente/", follow_redirects=False).headers["location"] == "/cliente/change-password"
    assert client.get("/admin/dashboard", follow_redirects=False).headers["location"] == "/cliente/"
