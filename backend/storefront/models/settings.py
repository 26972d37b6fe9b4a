from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


SMS_TYPES = ("quick", "dlt")


def mask_secret(value: str | None) -> str | None:
    """Keep the last 4 characters visible, star out the rest (same length)."""
    if not value:
        return None
    visible = value[-4:]
    return "*" * (len(value) - len(visible)) + visible


class PaymentConfig(db.Model):
    """Singleton: the gateway credentials used for checkout."""
    __tablename__ = "payment_config"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    razorpay_key_id = db.Column(db.String(128), nullable=False)
    razorpay_key_secret = db.Column(db.String(255), nullable=False)
    is_test_mode = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "razorpay_key_id": self.razorpay_key_id,
            "razorpay_key_secret": mask_secret(self.razorpay_key_secret),
            "is_test_mode": self.is_test_mode,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SmsConfig(db.Model):
    """Singleton: Fast2SMS credentials and DLT registration details."""
    __tablename__ = "sms_config"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(32), nullable=False, default="fast2sms")
    api_key = db.Column(db.String(255), nullable=False)
    sms_type = db.Column(db.String(16), nullable=False, default="quick")
    dlt_sender_id = db.Column(db.String(16), nullable=True)
    dlt_template_id = db.Column(db.String(64), nullable=True)
    dlt_entity_id = db.Column(db.String(64), nullable=True)
    dlt_message_id = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "provider": self.provider,
            "api_key": mask_secret(self.api_key),
            "sms_type": self.sms_type,
            "dlt_sender_id": self.dlt_sender_id,
            "dlt_template_id": self.dlt_template_id,
            "dlt_entity_id": self.dlt_entity_id,
            "dlt_message_id": self.dlt_message_id,
            "is_active": self.is_active,
        }


class SmtpConfig(db.Model):
    """Singleton: outgoing mail server. The password is never serialized."""
    __tablename__ = "smtp_config"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    host = db.Column(db.String(255), nullable=False)
    port = db.Column(db.Integer, nullable=False, default=587)
    secure = db.Column(db.Boolean, nullable=False, default=False)
    username = db.Column(db.String(255), nullable=False)
    password = db.Column(db.String(255), nullable=False)
    from_email = db.Column(db.String(255), nullable=False)
    from_name = db.Column(db.String(120), nullable=False, default="Storefront")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "host": self.host,
            "port": self.port,
            "secure": self.secure,
            "username": self.username,
            "from_email": self.from_email,
            "from_name": self.from_name,
            "is_active": self.is_active,
            "updated_at": to_utc_z(self.updated_at),
        }


DEFAULT_SITE_SETTINGS = {
    "header_logo_url": "/placeholder-logo.svg",
    "hero_section_image_url": "/hero.jpg",
    "about_section_image_url": "/homepage-about-section.jpg",
}


class SiteSettings(db.Model):
    """Singleton: storefront imagery shown on the public pages."""
    __tablename__ = "site_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    header_logo_url = db.Column(db.String(500), nullable=False)
    hero_section_image_url = db.Column(db.String(500), nullable=False)
    about_section_image_url = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "header_logo_url": self.header_logo_url,
            "hero_section_image_url": self.hero_section_image_url,
            "about_section_image_url": self.about_section_image_url,
            "updated_at": to_utc_z(self.updated_at),
        }
