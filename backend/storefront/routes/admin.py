# Overview: Flask API routes for the admin back-office (payments, coupons, support, newsletter, settings, reviews, customers).

from flask import Blueprint, g, request

from ..decorators import require_admin
from ..responses import api_created, api_response
from ..services import (
    coupon_service,
    customer_service,
    newsletter_service,
    payment_service,
    product_service,
    settings_service,
    support_service,
)
from ..validation import parse_pagination
from .helpers import json_body, page_response


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

@admin_bp.get("/payments")
@require_admin
def list_payments_route():
    rows, meta = payment_service.list_online_payments(request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@admin_bp.get("/payment-config")
@require_admin
def get_payment_config_route():
    config = settings_service.get_payment_config()
    return api_response(config.to_dict() if config else None)


@admin_bp.post("/payment-config")
@require_admin
def save_payment_config_route():
    config = settings_service.save_payment_config(json_body())
    return api_response({"config": config.to_dict(), "message": "Payment configuration saved successfully"})


@admin_bp.delete("/payment-config")
@require_admin
def delete_payment_config_route():
    settings_service.delete_payment_config()
    return api_response({"message": "Payment configuration deleted successfully"})


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------

@admin_bp.get("/coupons")
@require_admin
def list_coupons_route():
    rows, meta = coupon_service.list_coupons(request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@admin_bp.post("/coupons")
@require_admin
def create_coupon_route():
    return api_created(coupon_service.create_coupon(json_body()).to_dict())


@admin_bp.get("/coupons/<int:coupon_id>")
@require_admin
def get_coupon_route(coupon_id: int):
    return api_response(coupon_service.get_coupon(coupon_id).to_dict())


@admin_bp.put("/coupons/<int:coupon_id>")
@require_admin
def update_coupon_route(coupon_id: int):
    return api_response(coupon_service.update_coupon(coupon_id, json_body()).to_dict())


@admin_bp.delete("/coupons/<int:coupon_id>")
@require_admin
def delete_coupon_route(coupon_id: int):
    coupon_service.delete_coupon(coupon_id)
    return api_response({"message": "Coupon deleted successfully"})


# ---------------------------------------------------------------------------
# Support
# ---------------------------------------------------------------------------

@admin_bp.get("/support")
@require_admin
def list_support_route():
    rows, meta = support_service.list_tickets(
        g.principal, request.args, parse_pagination(request.args)
    )
    return api_response(page_response(rows, meta, lambda t: t.to_dict(include_messages=False)))


@admin_bp.get("/support/<int:ticket_id>")
@require_admin
def get_support_ticket_route(ticket_id: int):
    return api_response(support_service.get_ticket(g.principal, ticket_id).to_dict())


@admin_bp.post("/support/<int:ticket_id>")
@require_admin
def reply_support_ticket_route(ticket_id: int):
    message = support_service.add_ticket_message(g.principal, ticket_id, json_body(), as_admin=True)
    return api_created(message.to_dict())


@admin_bp.patch("/support/<int:ticket_id>")
@require_admin
def update_support_ticket_route(ticket_id: int):
    ticket = support_service.update_ticket(g.principal, ticket_id, json_body(), as_admin=True)
    return api_response(ticket.to_dict())


# ---------------------------------------------------------------------------
# Newsletter
# ---------------------------------------------------------------------------

@admin_bp.get("/newsletter-subscribers")
@require_admin
def list_subscribers_route():
    rows, meta = newsletter_service.list_subscribers(request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@admin_bp.put("/newsletter-subscribers/<int:subscriber_id>")
@require_admin
def update_subscriber_route(subscriber_id: int):
    return api_response(newsletter_service.update_subscriber(subscriber_id, json_body()).to_dict())


@admin_bp.delete("/newsletter-subscribers/<int:subscriber_id>")
@require_admin
def deactivate_subscriber_route(subscriber_id: int):
    subscriber = newsletter_service.deactivate_subscriber(subscriber_id)
    return api_response({"subscriber": subscriber.to_dict(), "message": "Subscriber deactivated"})


@admin_bp.get("/newsletter-analytics")
@require_admin
def newsletter_analytics_route():
    return api_response(newsletter_service.analytics())


@admin_bp.get("/newsletter-templates")
@require_admin
def list_templates_route():
    return api_response([t.to_dict() for t in newsletter_service.list_templates()])


@admin_bp.post("/newsletter-templates")
@require_admin
def create_template_route():
    return api_created(newsletter_service.create_template(json_body()).to_dict())


@admin_bp.get("/newsletter-campaigns")
@require_admin
def list_campaigns_route():
    return api_response([c.to_dict() for c in newsletter_service.list_campaigns()])


@admin_bp.post("/newsletter-campaigns")
@require_admin
def send_campaign_route():
    campaign = newsletter_service.send_campaign(g.principal.id, json_body())
    return api_created(campaign.to_dict())


# ---------------------------------------------------------------------------
# Provider settings
# ---------------------------------------------------------------------------

@admin_bp.get("/sms-config")
@require_admin
def get_sms_config_route():
    config = settings_service.get_sms_config()
    return api_response({"config": config.to_dict() if config else None})


@admin_bp.post("/sms-config")
@require_admin
def save_sms_config_route():
    config = settings_service.save_sms_config(json_body())
    return api_response({"config": config.to_dict(), "message": "SMS configuration saved successfully"})


@admin_bp.post("/sms-config/balance")
@require_admin
def sms_balance_route():
    return api_response({"balance": settings_service.sms_wallet_balance()})


@admin_bp.get("/smtp-config")
@require_admin
def get_smtp_config_route():
    config = settings_service.get_smtp_config()
    return api_response(config.to_dict() if config else None)


@admin_bp.post("/smtp-config")
@require_admin
def save_smtp_config_route():
    config = settings_service.save_smtp_config(json_body())
    return api_response({"config": config.to_dict(), "message": "SMTP configuration saved successfully"})


# ---------------------------------------------------------------------------
# Site settings
# ---------------------------------------------------------------------------

# Public read: the storefront pages render these images
@admin_bp.get("/settings")
def get_site_settings_route():
    return api_response({"settings": settings_service.get_site_settings().to_dict()})


@admin_bp.put("/settings")
@require_admin
def save_site_settings_route():
    settings = settings_service.save_site_settings(json_body())
    return api_response({"settings": settings.to_dict(), "message": "Settings updated successfully"})


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------

@admin_bp.get("/customers")
@require_admin
def list_customers_route():
    rows, meta = customer_service.list_customers(request.args, parse_pagination(request.args))
    return api_response({"items": rows, "pagination": meta})


@admin_bp.patch("/customers/<int:customer_id>")
@require_admin
def update_customer_route(customer_id: int):
    return api_response(customer_service.set_active(customer_id, json_body()).to_dict())


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

@admin_bp.get("/reviews")
@require_admin
def list_reviews_route():
    return api_response([r.to_dict(include_product=True) for r in product_service.list_all_reviews()])
