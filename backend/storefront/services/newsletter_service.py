# Overview: Service-layer operations for the newsletter (subscribers, templates, campaigns, analytics).

from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..errors import Conflict, InvalidInput, NotFound, UpstreamFailure
from ..extensions import db
from ..gateways import render_template
from ..models import NewsletterCampaign, NewsletterSubscriber, NewsletterTemplate
from ..models.newsletter import DEFAULT_PREFERENCES
from ..validation import Field, Schema, paginate, validate_payload
from . import settings_service
from .transactions import atomic
from storefront.time_utils import utcnow


UNSUBSCRIBED_MESSAGE = "You have been unsubscribed from the newsletter"


SUBSCRIBE_SCHEMA = Schema(
    fields=(
        Field("email", "email", required=True),
        Field("name", "name", max_length=120),
        Field("preferences", "list"),
    ),
    required_message="Email is required",
)


def subscribe(payload: dict) -> tuple[NewsletterSubscriber, bool]:
    """
    Upsert by email. An inactive subscriber is re-activated.

    Returns (subscriber, created).
    """
    data = validate_payload(payload, SUBSCRIBE_SCHEMA)

    def _op():
        subscriber = db.session.query(NewsletterSubscriber).filter_by(email=data["email"]).first()
        created = subscriber is None
        if created:
            subscriber = NewsletterSubscriber(
                email=data["email"],
                name=data.get("name"),
                preferences=data.get("preferences") or list(DEFAULT_PREFERENCES),
            )
            db.session.add(subscriber)
        else:
            if not subscriber.is_active:
                subscriber.is_active = True
                subscriber.subscribed_at = utcnow()
                subscriber.unsubscribed_at = None
            if data.get("name"):
                subscriber.name = data["name"]
            if data.get("preferences"):
                subscriber.preferences = data["preferences"]
        return subscriber, created

    return atomic(_op)


def unsubscribe(payload: dict) -> str:
    """Soft-deactivate; the reply is the same whether or not the email is known."""
    data = validate_payload(
        payload,
        Schema(fields=(Field("email", "email", required=True),), required_message="Email is required"),
    )

    def _op():
        subscriber = db.session.query(NewsletterSubscriber).filter_by(email=data["email"]).first()
        if subscriber is not None and subscriber.is_active:
            subscriber.is_active = False
            subscriber.unsubscribed_at = utcnow()

    atomic(_op)
    return UNSUBSCRIBED_MESSAGE


def list_subscribers(args, pagination) -> tuple[list[NewsletterSubscriber], dict]:
    query = db.session.query(NewsletterSubscriber)

    status = args.get("status")
    if status == "active":
        query = query.filter(NewsletterSubscriber.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(NewsletterSubscriber.is_active.is_(False))
    elif status:
        raise InvalidInput("Invalid status")

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            db.or_(NewsletterSubscriber.email.ilike(pattern), NewsletterSubscriber.name.ilike(pattern))
        )

    query = query.order_by(NewsletterSubscriber.subscribed_at.desc(), NewsletterSubscriber.id.desc())
    return paginate(query, pagination)


def _get_subscriber(subscriber_id: int) -> NewsletterSubscriber:
    subscriber = db.session.get(NewsletterSubscriber, subscriber_id)
    if subscriber is None:
        raise NotFound("Subscriber not found")
    return subscriber


SUBSCRIBER_UPDATE_SCHEMA = Schema(
    fields=(
        Field("name", "name", max_length=120),
        Field("preferences", "list"),
        Field("is_active", "bool"),
    ),
)


def update_subscriber(subscriber_id: int, payload: dict) -> NewsletterSubscriber:
    patch = validate_payload(payload, SUBSCRIBER_UPDATE_SCHEMA, partial=True)

    def _op():
        subscriber = _get_subscriber(subscriber_id)
        if "name" in patch:
            subscriber.name = patch["name"]
        if "preferences" in patch:
            subscriber.preferences = patch["preferences"] or []
        if "is_active" in patch and patch["is_active"] != subscriber.is_active:
            subscriber.is_active = patch["is_active"]
            if patch["is_active"]:
                subscriber.subscribed_at = utcnow()
                subscriber.unsubscribed_at = None
            else:
                subscriber.unsubscribed_at = utcnow()
        return subscriber

    return atomic(_op)


def deactivate_subscriber(subscriber_id: int) -> NewsletterSubscriber:
    return update_subscriber(subscriber_id, {"is_active": False})


# ---------------------------------------------------------------------------
# Templates & campaigns
# ---------------------------------------------------------------------------

TEMPLATE_SCHEMA = Schema(
    fields=(
        Field("name", required=True, max_length=120),
        Field("subject", "name", required=True, max_length=255),
        Field("html", "text", required=True),
    ),
    required_message="Name, subject, and html are required",
)


def list_templates() -> list[NewsletterTemplate]:
    return db.session.query(NewsletterTemplate).order_by(NewsletterTemplate.created_at.desc()).all()


def create_template(payload: dict) -> NewsletterTemplate:
    data = validate_payload(payload, TEMPLATE_SCHEMA)

    def _op():
        if db.session.query(NewsletterTemplate).filter_by(name=data["name"]).first():
            raise Conflict("Template name already exists")
        template = NewsletterTemplate(**data)
        db.session.add(template)
        return template

    return atomic(_op)


CAMPAIGN_SCHEMA = Schema(
    fields=(
        Field("subject", "name", max_length=255),
        Field("template_id", "int", label="Template ID"),
        Field("html", "text"),
    ),
)


def list_campaigns() -> list[NewsletterCampaign]:
    return db.session.query(NewsletterCampaign).order_by(NewsletterCampaign.created_at.desc()).all()


def send_campaign(created_by_user_id: int, payload: dict) -> NewsletterCampaign:
    """
    Render the template per subscriber ({{NAME}}, {{EMAIL}}) and mail every
    active subscriber. Individual failures are counted, not raised.
    """
    data = validate_payload(payload, CAMPAIGN_SCHEMA)

    template = None
    if data.get("template_id") is not None:
        template = db.session.get(NewsletterTemplate, data["template_id"])
        if template is None:
            raise NotFound("Template not found")

    html = data.get("html") or (template.html if template else None)
    subject = data.get("subject") or (template.subject if template else None)
    if not html or not subject:
        raise InvalidInput("Subject and a template or html body are required")

    if settings_service.active_smtp_settings() is None:
        raise UpstreamFailure("Email service is not configured", status_code=503)

    recipients = (
        db.session.query(NewsletterSubscriber)
        .filter(NewsletterSubscriber.is_active.is_(True))
        .order_by(NewsletterSubscriber.id)
        .all()
    )

    def _create():
        campaign = NewsletterCampaign(
            subject=subject,
            template_id=template.id if template else None,
            html=html,
            status="draft",
            recipient_count=len(recipients),
            created_by_user_id=created_by_user_id,
        )
        db.session.add(campaign)
        return campaign

    campaign = atomic(_create)

    sent = failed = 0
    for subscriber in recipients:
        values = {"NAME": subscriber.name or "", "EMAIL": subscriber.email}
        ok = settings_service.send_mail(
            subscriber.email,
            render_template(subject, values),
            render_template(html, values),
        )
        if ok:
            sent += 1
        else:
            failed += 1

    def _finish():
        campaign.sent_count = sent
        campaign.failed_count = failed
        campaign.status = "failed" if recipients and sent == 0 else "sent"
        campaign.sent_at = utcnow()
        return campaign

    atomic(_finish)
    current_app.logger.info(
        "Campaign %s sent: %d delivered, %d failed", campaign.id, sent, failed
    )
    return campaign


def analytics(recent: int = 5) -> dict:
    """Subscriber and delivery totals plus the most recent campaigns."""
    active = db.session.query(func.count(NewsletterSubscriber.id)).filter(
        NewsletterSubscriber.is_active.is_(True)
    ).scalar()
    inactive = db.session.query(func.count(NewsletterSubscriber.id)).filter(
        NewsletterSubscriber.is_active.is_(False)
    ).scalar()
    campaigns, sent, failed = db.session.query(
        func.count(NewsletterCampaign.id),
        func.coalesce(func.sum(NewsletterCampaign.sent_count), 0),
        func.coalesce(func.sum(NewsletterCampaign.failed_count), 0),
    ).one()

    attempted = sent + failed
    latest = (
        db.session.query(NewsletterCampaign)
        .order_by(NewsletterCampaign.created_at.desc(), NewsletterCampaign.id.desc())
        .limit(recent)
        .all()
    )
    return {
        "total_subscribers": active,
        "inactive_subscribers": inactive,
        "total_campaigns": campaigns,
        "sent_emails": sent,
        "failed_emails": failed,
        "delivery_rate": round(sent * 100 / attempted) if attempted else 0,
        "recent_campaigns": [c.to_dict() for c in latest],
    }
