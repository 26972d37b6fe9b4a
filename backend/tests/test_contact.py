"""
Contact form tests: validation and forwarding to the shop inbox.
"""

import pytest

from storefront.models import SmtpConfig


CONTACT = {
    "name": "Lakshmi",
    "email": "lakshmi@example.com",
    "subject": "Bulk gifting",
    "message": "Do you ship <b>abroad</b>?\nThanks",
}


@pytest.fixture
def smtp_config(db_session):
    db_session.add(SmtpConfig(
        host="smtp.example.com",
        username="mailer",
        password="mail-pass",
        from_email="shop@example.com",
    ))
    db_session.commit()


class TestContact:
    def test_forwards_to_shop_inbox(self, client, fakes, smtp_config):
        resp = client.post("/api/contact", json=CONTACT)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["message"] == "Thank you for contacting us! We will get back to you soon."

        [mail] = fakes.mail.sent
        assert mail["to"] == "shop@example.com"
        assert mail["subject"] == "Contact Form: Bulk gifting"
        assert "Not provided" in mail["html"]
        assert "&lt;b&gt;abroad&lt;/b&gt;?<br>Thanks" in mail["html"]

    def test_admin_email_setting_wins(self, app, client, fakes, smtp_config, monkeypatch):
        monkeypatch.setitem(app.config, "ADMIN_EMAIL", "owner@example.com")
        client.post("/api/contact", json=CONTACT)
        assert [m["to"] for m in fakes.mail.sent] == ["owner@example.com"]

    def test_mail_failure_still_thanks_visitor(self, client, fakes, smtp_config):
        fakes.mail.succeed = False
        resp = client.post("/api/contact", json=CONTACT)
        assert resp.status_code == 200
        assert len(fakes.mail.sent) == 1

    def test_no_mail_configured(self, client, fakes):
        resp = client.post("/api/contact", json=CONTACT)
        assert resp.status_code == 200
        assert fakes.mail.sent == []

    @pytest.mark.parametrize(
        "patch,message",
        [
            ({"message": ""}, "Name, email, subject, and message are required"),
            ({"email": "not-an-email"}, "Invalid email address"),
            ({"subject": "Hi\r\nBcc: x@example.com"}, "Subject contains invalid characters"),
        ],
    )
    def test_rejects(self, client, fakes, patch, message):
        resp = client.post("/api/contact", json={**CONTACT, **patch})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == message
        assert fakes.mail.sent == []
