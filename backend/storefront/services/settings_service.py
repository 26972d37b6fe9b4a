# Overview: Service-layer operations for the global singleton configs (payment, SMS, SMTP, site settings).

from __future__ import annotations

from ..errors import InvalidInput, NotFound, UpstreamFailure
from ..gateways import SmsSettings, SmtpSettings, get_gateway
from ..models import PaymentConfig, SiteSettings, SmsConfig, SmtpConfig
from ..models.settings import DEFAULT_SITE_SETTINGS, SMS_TYPES
from ..validation import Field, Schema, validate_payload
from .default_flag_service import delete_singleton, get_singleton, upsert_singleton
from .transactions import atomic


def _is_masked(value) -> bool:
    """A masked secret echoed back by the admin UI; keep the stored one."""
    return isinstance(value, str) and value.startswith("*") and len(value.strip("*")) <= 4


def _keep_masked_secret(payload: dict, key: str, model) -> dict:
    if not isinstance(payload, dict) or not _is_masked(payload.get(key)):
        return payload
    existing = get_singleton(model)
    if existing is None:
        return payload
    merged = dict(payload)
    merged[key] = getattr(existing, key)
    return merged


# ---------------------------------------------------------------------------
# Payment gateway
# ---------------------------------------------------------------------------

PAYMENT_CONFIG_SCHEMA = Schema(
    fields=(
        Field("razorpay_key_id", required=True, max_length=128),
        Field("razorpay_key_secret", required=True, max_length=255),
        Field("is_test_mode", "bool", default=True),
    ),
    required_message="Razorpay Key ID and Key Secret are required",
)


def get_payment_config() -> PaymentConfig | None:
    return get_singleton(PaymentConfig)


def save_payment_config(payload: dict) -> PaymentConfig:
    payload = _keep_masked_secret(payload, "razorpay_key_secret", PaymentConfig)
    values = validate_payload(payload, PAYMENT_CONFIG_SCHEMA)
    row, _created = atomic(upsert_singleton, PaymentConfig, values)
    return row


def delete_payment_config() -> int:
    return atomic(delete_singleton, PaymentConfig)


def resolve_gateway_keys(app_config) -> tuple[str, str] | None:
    """
    (key_id, key_secret) for checkout: the stored config wins, the
    environment is the fallback. None when neither is complete.
    """
    stored = get_payment_config()
    if stored and stored.razorpay_key_id and stored.razorpay_key_secret:
        return stored.razorpay_key_id, stored.razorpay_key_secret

    key_id = app_config.get("RAZORPAY_KEY_ID")
    key_secret = app_config.get("RAZORPAY_KEY_SECRET")
    if key_id and key_secret:
        return key_id, key_secret
    return None


def public_payment_config(app_config) -> dict:
    """Checkout needs the key id only; the secret never leaves the server."""
    stored = get_payment_config()
    if stored:
        return {"razorpay_key_id": stored.razorpay_key_id, "is_test_mode": stored.is_test_mode}
    return {
        "razorpay_key_id": app_config.get("RAZORPAY_KEY_ID"),
        "is_test_mode": True,
    }


# ---------------------------------------------------------------------------
# SMS
# ---------------------------------------------------------------------------

def _require_dlt_sender(record: dict) -> None:
    if record.get("sms_type") == "dlt" and not record.get("dlt_sender_id"):
        raise InvalidInput("DLT Sender ID is required for DLT SMS")


SMS_CONFIG_SCHEMA = Schema(
    fields=(
        Field("api_key", required=True, label="API Key", max_length=255),
        Field("sms_type", choices=SMS_TYPES, default="quick", label="SMS type"),
        Field("dlt_sender_id", max_length=16),
        Field("dlt_template_id", max_length=64),
        Field("dlt_entity_id", max_length=64),
        Field("dlt_message_id", max_length=64),
        Field("is_active", "bool", default=True),
    ),
    checks=(_require_dlt_sender,),
)


def get_sms_config() -> SmsConfig | None:
    return get_singleton(SmsConfig)


def save_sms_config(payload: dict) -> SmsConfig:
    payload = _keep_masked_secret(payload, "api_key", SmsConfig)
    values = validate_payload(payload, SMS_CONFIG_SCHEMA)
    values.setdefault("dlt_sender_id", None)
    values.setdefault("dlt_template_id", None)
    values.setdefault("dlt_entity_id", None)
    values.setdefault("dlt_message_id", None)
    values["provider"] = "fast2sms"
    row, _created = atomic(upsert_singleton, SmsConfig, values)
    return row


def active_sms_settings() -> SmsSettings | None:
    config = get_sms_config()
    if config is None or not config.is_active or not config.api_key:
        return None
    return SmsSettings(
        api_key=config.api_key,
        sms_type=config.sms_type,
        is_active=config.is_active,
        dlt_sender_id=config.dlt_sender_id,
        dlt_template_id=config.dlt_template_id,
        dlt_entity_id=config.dlt_entity_id,
        dlt_message_id=config.dlt_message_id,
    )


def sms_wallet_balance() -> float:
    config = get_sms_config()
    if config is None or not config.api_key:
        raise NotFound("SMS configuration not found. Please configure SMS settings first.")

    balance = get_gateway("sms").check_balance(config.api_key)
    if balance is None:
        raise UpstreamFailure("Failed to fetch wallet balance. Please check your API key.")
    return balance


# ---------------------------------------------------------------------------
# SMTP
# ---------------------------------------------------------------------------

SMTP_CONFIG_SCHEMA = Schema(
    fields=(
        Field("host", required=True, max_length=255),
        Field("port", "int", default=587, min_value=1, max_value=65535, inclusive_min=True),
        Field("secure", "bool", default=False),
        Field("username", required=True, max_length=255),
        Field("password", required=True, max_length=255),
        Field("from_email", "email", required=True),
        Field("from_name", default="Storefront", max_length=120),
        Field("is_active", "bool", default=True),
    ),
    required_message="Missing required fields",
)


def get_smtp_config() -> SmtpConfig | None:
    return get_singleton(SmtpConfig)


def save_smtp_config(payload: dict) -> SmtpConfig:
    payload = _keep_masked_secret(payload, "password", SmtpConfig)
    values = validate_payload(payload, SMTP_CONFIG_SCHEMA)
    row, _created = atomic(upsert_singleton, SmtpConfig, values)
    return row


def active_smtp_settings() -> SmtpSettings | None:
    config = get_smtp_config()
    if config is None or not config.is_active:
        return None
    return SmtpSettings(
        host=config.host,
        port=config.port,
        username=config.username,
        password=config.password,
        from_email=config.from_email,
        from_name=config.from_name or "",
        secure=config.secure,
    )


def send_mail(to: str, subject: str, html: str, text: str | None = None) -> bool:
    """Send through the active SMTP config; False when none is configured."""
    settings = active_smtp_settings()
    if settings is None:
        return False
    return get_gateway("mail").send_email(settings, to, subject, html, text)


# ---------------------------------------------------------------------------
# Site settings
# ---------------------------------------------------------------------------

SITE_SETTINGS_SCHEMA = Schema(
    fields=(
        Field("header_logo_url", max_length=500, label="Header logo URL"),
        Field("hero_section_image_url", max_length=500, label="Hero section image URL"),
        Field("about_section_image_url", max_length=500, label="About section image URL"),
    ),
)


def get_site_settings() -> SiteSettings:
    """The single settings row; created with defaults on first read."""
    row = get_singleton(SiteSettings)
    if row is not None:
        return row
    row, _created = atomic(upsert_singleton, SiteSettings, dict(DEFAULT_SITE_SETTINGS))
    return row


def save_site_settings(payload: dict) -> SiteSettings:
    # Blank values keep the stored URL
    data = {
        key: value
        for key, value in validate_payload(payload, SITE_SETTINGS_SCHEMA, partial=True).items()
        if value is not None
    }

    def _op():
        values = data if get_singleton(SiteSettings) else {**DEFAULT_SITE_SETTINGS, **data}
        row, _created = upsert_singleton(SiteSettings, values)
        return row

    return atomic(_op)
