# backend/storefront/__init__.py
from flask import Flask, request

from .config import Config
from .errors import register_error_handlers
from .extensions import db, migrate
from .gateways import init_gateways


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Payment gateway, SMS, mail and file storage clients
    init_gateways(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp, profile_bp
    from .routes.products import products_bp
    from .routes.cart import cart_bp
    from .routes.addresses import addresses_bp
    from .routes.orders import orders_bp
    from .routes.payments import payment_bp
    from .routes.coupons import coupons_bp
    from .routes.support import support_bp, chats_bp
    from .routes.newsletter import newsletter_bp
    from .routes.bulk_orders import bulk_orders_bp
    from .routes.uploads import uploads_bp
    from .routes.contact import contact_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(addresses_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payment_bp)
    app.register_blueprint(coupons_bp)
    app.register_blueprint(support_bp)
    app.register_blueprint(chats_bp)
    app.register_blueprint(newsletter_bp)
    app.register_blueprint(bulk_orders_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(contact_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
