# Overview: Service-layer operations for the public contact form.

from __future__ import annotations

from html import escape

from flask import current_app

from ..gateways import render_template
from ..validation import Field, Schema, validate_payload
from . import settings_service


CONTACT_THANKS_MESSAGE = "Thank you for contacting us! We will get back to you soon."

CONTACT_EMAIL_HTML = """\
<h2>New contact form submission</h2>
<p><strong>Name:</strong> {{NAME}}</p>
<p><strong>Email:</strong> {{EMAIL}}</p>
<p><strong>Phone:</strong> {{PHONE}}</p>
<p><strong>Subject:</strong> {{SUBJECT}}</p>
<p>{{MESSAGE}}</p>
"""

CONTACT_SCHEMA = Schema(
    fields=(
        Field("name", "name", required=True, max_length=120),
        Field("email", "email", required=True, message="Invalid email address"),
        Field("phone", max_length=32),
        Field("subject", "name", required=True, max_length=255, label="Subject"),
        Field("message", "text", required=True, max_length=5000),
    ),
    required_message="Name, email, subject, and message are required",
)


def _admin_recipient() -> str | None:
    configured = current_app.config.get("ADMIN_EMAIL")
    if configured:
        return configured
    smtp = settings_service.active_smtp_settings()
    return smtp.from_email if smtp else None


def submit(payload: dict) -> str:
    """
    Forward a contact form submission to the shop's inbox.

    Nothing is stored; a mail failure is logged and the visitor still gets
    the thank-you reply.
    """
    data = validate_payload(payload, CONTACT_SCHEMA)

    recipient = _admin_recipient()
    if recipient is None:
        current_app.logger.warning("Contact form from %s dropped: no admin inbox configured", data["email"])
        return CONTACT_THANKS_MESSAGE

    html = render_template(CONTACT_EMAIL_HTML, {
        "NAME": escape(data["name"]),
        "EMAIL": escape(data["email"]),
        "PHONE": escape(data.get("phone") or "Not provided"),
        "SUBJECT": escape(data["subject"]),
        "MESSAGE": escape(data["message"]).replace("\n", "<br>"),
    })
    if not settings_service.send_mail(recipient, f"Contact Form: {data['subject']}", html):
        current_app.logger.warning("Contact form email from %s was not sent", data["email"])

    return CONTACT_THANKS_MESSAGE
