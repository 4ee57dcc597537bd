# backoffice/services/email_templates.py

"""
Встроенные шаблоны писем. Сохранённая в БД версия (EmailTemplate)
заменяет subject и тело, если она активна.
Подстановка: {{имя}} → значение из data (HTML-экранируется).
"""

import html
import re
from datetime import datetime

BRAND = "Cerberus Dev"

DEFAULT_TEMPLATES = [
    {
        "code": "user-created",
        "name": "Bienvenida - Usuario Creado",
        "subject": "Bienvenido a Cerberus Dev",
        "variables": ["name", "username", "password", "loginUrl"],
        "description": "Se envía cuando se crea un nuevo usuario",
        "body": (
            "<h2>Bienvenido, {{name}}!</h2>"
            "<p>Tu cuenta ha sido creada. Usuario: <strong>{{username}}</strong>, "
            "contrasena temporal: <strong>{{password}}</strong>.</p>"
            "<p>Deberas cambiar tu contrasena en tu primer inicio de sesion.</p>"
            '<p><a class="button" href="{{loginUrl}}">Iniciar sesion</a></p>'
        ),
    },
    {
        "code": "ticket-created",
        "name": "Ticket Creado",
        "subject": "Ticket #{{ticketId}} creado: {{subject}}",
        "variables": ["ticketId", "subject", "category", "priority", "message", "ticketUrl"],
        "description": "Se envía al crear un nuevo ticket",
        "body": (
            "<h2>Nuevo ticket #{{ticketId}}</h2>"
            "<p><strong>{{subject}}</strong> ({{category}}, prioridad {{priority}})</p>"
            "<p>{{message}}</p>"
            '<p><a class="button" href="{{ticketUrl}}">Ver ticket</a></p>'
        ),
    },
    {
        "code": "ticket-response",
        "name": "Respuesta en Ticket",
        "subject": "Respuesta en Ticket #{{ticketId}}: {{subject}}",
        "variables": ["ticketId", "subject", "responderName", "message", "ticketUrl"],
        "description": "Se envía cuando hay una nueva respuesta",
        "body": (
            "<h2>{{responderName}} respondio en el ticket #{{ticketId}}</h2>"
            "<p>{{message}}</p>"
            '<p><a class="button" href="{{ticketUrl}}">Ver ticket</a></p>'
        ),
    },
    {
        "code": "ticket-closed",
        "name": "Ticket Cerrado",
        "subject": "Ticket #{{ticketId}} cerrado",
        "variables": ["ticketId", "subject", "ticketUrl"],
        "description": "Se envía cuando se cierra un ticket",
        "body": (
            "<h2>Ticket #{{ticketId}} cerrado</h2>"
            "<p>El ticket <strong>{{subject}}</strong> ha sido cerrado.</p>"
            '<p><a class="button" href="{{ticketUrl}}">Ver ticket</a></p>'
        ),
    },
    {
        "code": "storage-warning",
        "name": "Alerta de Almacenamiento (80%)",
        "subject": "Aviso: Tu almacenamiento está al {{percentage}}%",
        "variables": ["clientName", "serviceName", "percentage", "usedMb", "limitMb", "portalUrl"],
        "description": "Alerta cuando el storage llega al 80%",
        "body": (
            '<div class="alert-box alert-warning"><p>Hola {{clientName}}, {{serviceName}} usa '
            "{{usedMb}} MB de {{limitMb}} MB ({{percentage}}%).</p></div>"
            '<p><a class="button" href="{{portalUrl}}">Ir al portal</a></p>'
        ),
    },
    {
        "code": "storage-danger",
        "name": "Alerta de Almacenamiento (90%)",
        "subject": "Urgente: Tu almacenamiento está al {{percentage}}%",
        "variables": ["clientName", "serviceName", "percentage", "usedMb", "limitMb", "portalUrl"],
        "description": "Alerta urgente cuando el storage llega al 90%",
        "body": (
            '<div class="alert-box alert-danger"><p>Hola {{clientName}}, {{serviceName}} usa '
            "{{usedMb}} MB de {{limitMb}} MB ({{percentage}}%).</p></div>"
            '<p><a class="button" href="{{portalUrl}}">Ir al portal</a></p>'
        ),
    },
    {
        "code": "storage-critical",
        "name": "Almacenamiento Crítico (95%+)",
        "subject": "CRÍTICO: Tu almacenamiento está al {{percentage}}%",
        "variables": ["clientName", "serviceName", "percentage", "usedMb", "limitMb", "portalUrl"],
        "description": "Alerta crítica cuando el storage supera el 95%",
        "body": (
            '<div class="alert-box alert-danger"><p><strong>{{serviceName}}</strong> esta al '
            "{{percentage}}% ({{usedMb}} MB de {{limitMb}} MB). Contacta a soporte para ampliar "
            "tu plan.</p></div>"
            '<p><a class="button" href="{{portalUrl}}">Ir al portal</a></p>'
        ),
    },
    {
        "code": "maintenance-notice",
        "name": "Aviso de Mantenimiento",
        "subject": "Aviso de Mantenimiento: {{title}}",
        "variables": ["title", "message", "startAt", "endAt"],
        "description": "Notificación de mantenimiento programado",
        "body": (
            "<h2>{{title}}</h2><p>{{message}}</p>"
            "<table><tr><th>Inicio</th><td>{{startAt}}</td></tr>"
            "<tr><th>Fin</th><td>{{endAt}}</td></tr></table>"
        ),
    },
    {
        "code": "password-reset",
        "name": "Restablecer Contraseña",
        "subject": "Restablece tu contraseña - Cerberus Dev",
        "variables": ["name", "resetUrl", "expiresIn"],
        "description": "Email para restablecer contraseña (con link)",
        "body": (
            "<p>Hola {{name}}, usa este enlace en las proximas {{expiresIn}}:</p>"
            '<p><a class="button" href="{{resetUrl}}">Restablecer</a></p>'
        ),
    },
    {
        "code": "password-recovery",
        "name": "Recuperación de Contraseña",
        "subject": "Recuperacion de Contrasena - Cerberus Dev",
        "variables": ["name", "username", "password", "loginUrl"],
        "description": "Se envía al cliente con nueva contraseña temporal",
        "body": (
            "<p>Hola {{name}}, tu nueva contrasena temporal para <strong>{{username}}</strong> "
            "es <strong>{{password}}</strong>.</p>"
            '<p><a class="button" href="{{loginUrl}}">Iniciar sesion</a></p>'
        ),
    },
    {
        "code": "ticket-client-confirmation",
        "name": "Confirmación de Ticket (Cliente)",
        "subject": "Tu ticket #{{ticketId}} ha sido creado",
        "variables": ["ticketId", "subject", "category", "priority", "message", "ticketUrl", "clientName"],
        "description": "Confirmación enviada al cliente cuando crea un ticket",
        "body": (
            "<h2>Hola {{clientName}}</h2>"
            "<p>Recibimos tu ticket #{{ticketId}}: <strong>{{subject}}</strong>.</p>"
            "<p>{{message}}</p>"
            '<p><a class="button" href="{{ticketUrl}}">Ver ticket</a></p>'
        ),
    },
    {
        "code": "lead-received",
        "name": "Contacto Recibido",
        "subject": "Recibimos tu mensaje - Cerberus Dev",
        "variables": ["name", "message"],
        "description": "Respuesta automatica al formulario de contacto",
        "body": (
            "<h2>Gracias, {{name}}</h2>"
            "<p>Recibimos tu mensaje y te responderemos pronto.</p>"
            "<blockquote>{{message}}</blockquote>"
        ),
    },
    {
        "code": "new-lead",
        "name": "Nuevo Lead",
        "subject": "Nuevo contacto: {{name}}",
        "variables": ["name", "email", "phone", "projectType", "message", "leadUrl"],
        "description": "Aviso al administrador de un nuevo contacto",
        "body": (
            "<h2>Nuevo contacto</h2>"
            "<table><tr><th>Nombre</th><td>{{name}}</td></tr>"
            "<tr><th>Email</th><td>{{email}}</td></tr>"
            "<tr><th>Telefono</th><td>{{phone}}</td></tr>"
            "<tr><th>Proyecto</th><td>{{projectType}}</td></tr></table>"
            "<p>{{message}}</p>"
            '<p><a class="button" href="{{leadUrl}}">Abrir lead</a></p>'
        ),
    },
    {
        "code": "notification",
        "name": "Notificación Genérica",
        "subject": "{{subject}}",
        "variables": ["subject", "title", "message", "actionUrl", "actionText"],
        "description": "Notificación libre",
        "body": "<h2>{{title}}</h2><p>{{message}}</p>",
    },
]

TEMPLATES_BY_CODE = {t["code"]: t for t in DEFAULT_TEMPLATES}

# Данные для тестовой отправки из админки
SAMPLE_DATA = {
    "name": "Usuario de Prueba",
    "username": "usuario_test",
    "password": "Password123!",
    "loginUrl": "https://cerberusdev.pro/login",
    "ticketId": "12345",
    "subject": "Asunto de prueba",
    "category": "support",
    "priority": "medium",
    "message": "Este es un mensaje de prueba para verificar el template.",
    "ticketUrl": "https://cerberusdev.pro/ticket/12345",
    "responderName": "Soporte Cerberus",
    "clientName": "Cliente de Prueba",
    "serviceName": "Hosting Premium",
    "percentage": 85,
    "usedMb": 850,
    "limitMb": 1000,
    "portalUrl": "https://cerberusdev.pro/portal",
    "title": "Mantenimiento Programado",
    "startAt": "01/01/2026 10:00",
    "endAt": "01/01/2026 11:00",
    "resetUrl": "https://cerberusdev.pro/reset?token=abc123",
    "expiresIn": "24 horas",
    "email": "cliente@example.com",
    "phone": "",
    "projectType": "Landing Page",
    "leadUrl": "https://cerberusdev.pro/admin/lead?id=1",
}

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def substitute(text: str, data: dict, escape: bool) -> str:
    def replace(match):
        value = data.get(match.group(1))
        if value is None:
            return ""
        value = str(value)
        return html.escape(value) if escape else value
    return PLACEHOLDER.sub(replace, text)


def wrap_html(content: str, title: str) -> str:
    """Общий каркас письма."""
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title></head>"
        "<body style=\"font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto;\">"
        f"<div class=\"header\"><h1>{BRAND}</h1></div>"
        f"<div class=\"content\">{content}</div>"
        f"<div class=\"footer\"><p>&copy; {datetime.now().year} {BRAND}.</p>"
        "<p>Este es un correo automatico, por favor no responda directamente.</p></div>"
        "</body></html>"
    )


def render(code: str, data: dict, override: dict | None = None) -> tuple[str, str]:
    """
    Возвращает (subject, html). override: активная версия из БД
    с ключами subject и html_content.
    """
    template = TEMPLATES_BY_CODE.get(code)
    if template is None:
        raise KeyError(f"Unknown template: {code}")

    subject_src = template["subject"]
    body_src = template["body"]
    if override:
        subject_src = override.get("subject") or subject_src
        body_src = override.get("html_content") or body_src

    subject = substitute(subject_src, data, escape=False)
    body = substitute(body_src, data, escape=True)
    return subject, wrap_html(body, subject)
