from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


DEFAULT_PREFERENCES = ["offers"]


class NewsletterSubscriber(db.Model):
    """Subscribers are soft-deactivated (is_active=False), never deleted."""
    __tablename__ = "newsletter_subscribers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=True)
    preferences = db.Column(db.JSON, nullable=False, default=lambda: list(DEFAULT_PREFERENCES))
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    subscribed_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    unsubscribed_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "preferences": list(self.preferences or []),
            "is_active": self.is_active,
            "subscribed_at": to_utc_z(self.subscribed_at),
            "unsubscribed_at": to_utc_z(self.unsubscribed_at),
        }


class NewsletterTemplate(db.Model):
    __tablename__ = "newsletter_templates"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    subject = db.Column(db.String(255), nullable=False)
    html = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subject": self.subject,
            "html": self.html,
            "created_at": to_utc_z(self.created_at),
        }


class NewsletterCampaign(db.Model):
    __tablename__ = "newsletter_campaigns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    subject = db.Column(db.String(255), nullable=False)
    template_id = db.Column(db.Integer, db.ForeignKey("newsletter_templates.id"), nullable=True)
    html = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="draft")  # draft, sent, failed
    recipient_count = db.Column(db.Integer, nullable=False, default=0)
    sent_count = db.Column(db.Integer, nullable=False, default=0)
    failed_count = db.Column(db.Integer, nullable=False, default=0)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subject": self.subject,
            "template_id": self.template_id,
            "status": self.status,
            "recipient_count": self.recipient_count,
            "sent_count": self.sent_count,
            "failed_count": self.failed_count,
            "sent_at": to_utc_z(self.sent_at),
            "created_at": to_utc_z(self.created_at),
        }
