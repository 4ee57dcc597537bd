# tests/test_email_templates.py

import pytest

from backoffice.services import email_templates


def test_render_substitutes_and_escapes_body():
    subject, html = email_templates.render("lead-received", {"name": "<b>Ana</b>", "message": "Hola"})
    assert subject == "Recibimos tu mensaje - Cerberus Dev"
    assert "&lt;b&gt;Ana&lt;/b&gt;" in html
    assert "<b>Ana</b>" not in html
    assert "Hola" in html


def test_subject_is_not_escaped():
    subject, _ = email_templates.render("ticket-created", {"ticketId": 7, "subject": "Fallo & error"})
    assert subject == "Ticket #7 creado: Fallo & error"


def test_missing_variable_renders_empty():
    subject, _ = email_templates.render("new-lead", {})
    assert subject == "Nuevo contacto: "


def test_override_replaces_subject_and_body():
    override = {"subject": "Hola {{name}}", "html_content": "<p>Custom {{name}}</p>"}
    subject, html = email_templates.render("user-created", {"name": "Ana"}, override)
    assert subject == "Hola Ana"
    assert "<p>Custom Ana</p>" in html


def test_unknown_template():
    with pytest.raises(KeyError):
        email_templates.render("does-not-exist", {})


def test_every_storage_status_has_template():
    for status in ("warning", "danger", "critical"):
        assert f"storage-{status}" in email_templates.TEMPLATES_BY_CODE
