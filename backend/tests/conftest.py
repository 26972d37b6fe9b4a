"""
Pytest fixtures for storefront backend tests.

Provides the app against in-memory SQLite, a clean database per test,
customer/admin accounts with bearer headers, and fake collaborators
(payment gateway, SMS, mail) installed in app.extensions.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.gateways import GatewayOrder, SmsResult
from storefront.models import Address, Coupon, Product, User
from storefront.services import session_service
from storefront.services.auth_service import hash_password
from storefront.time_utils import utcnow


PASSWORD = "Password123"


@dataclass
class FakePaymentGateway:
    orders: list = field(default_factory=list)
    fail_with: Exception | None = None

    def create_order(self, key_id, key_secret, amount_minor_units, currency, receipt_id):
        if self.fail_with is not None:
            raise self.fail_with
        gateway_order = GatewayOrder(
            gateway_order_id=f"order_test_{len(self.orders) + 1}",
            amount=amount_minor_units,
            currency=currency,
            status="created",
        )
        self.orders.append((key_id, key_secret, gateway_order, receipt_id))
        return gateway_order


@dataclass
class FakeSmsProvider:
    sent: list = field(default_factory=list)
    succeed: bool = True
    balance: float | None = 125.5

    def send_otp(self, phone, otp, settings):
        self.sent.append((phone, otp))
        if self.succeed:
            return SmsResult(True, "SMS sent", request_id="req-1")
        return SmsResult(False, "Invalid API key")

    def check_balance(self, api_key):
        return self.balance


@dataclass
class FakeMailer:
    sent: list = field(default_factory=list)
    succeed: bool = True

    def send_email(self, settings, to, subject, html, text=None):
        self.sent.append({"to": to, "subject": subject, "html": html})
        return self.succeed


@dataclass
class Fakes:
    payments: FakePaymentGateway
    sms: FakeSmsProvider
    mail: FakeMailer


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RAZORPAY_KEY_ID': None,
        'RAZORPAY_KEY_SECRET': None,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
        'CORS_ALLOWED_ORIGINS': ('http://localhost:3000',),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.remove()


@pytest.fixture(scope='function')
def fakes(app, db_session):
    """Fresh fake collaborators for every test."""
    installed = Fakes(FakePaymentGateway(), FakeSmsProvider(), FakeMailer())
    app.extensions["storefront.payments"] = installed.payments
    app.extensions["storefront.sms"] = installed.sms
    app.extensions["storefront.mail"] = installed.mail
    return installed


@pytest.fixture(scope='session')
def password_hash():
    """Shared bcrypt hash (cost 12) for every fixture user."""
    return hash_password(PASSWORD)


def _make_user(email, name, password_hash, role="customer", phone=None):
    user = User(email=email, name=name, phone=phone, password_hash=password_hash, role=role)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture(scope='function')
def customer(db_session, fakes, password_hash):
    return _make_user("asha@example.com", "Asha", password_hash, phone="9876543210")


@pytest.fixture(scope='function')
def other_customer(db_session, fakes, password_hash):
    return _make_user("ravi@example.com", "Ravi", password_hash)


@pytest.fixture(scope='function')
def admin(db_session, fakes, password_hash):
    return _make_user("admin@example.com", "Admin", password_hash, role="admin")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def token_for(user) -> str:
    _session, token = session_service.create_session(user)
    return token


@pytest.fixture(scope='function')
def customer_headers(customer):
    return auth_headers(token_for(customer))


@pytest.fixture(scope='function')
def other_headers(other_customer):
    return auth_headers(token_for(other_customer))


@pytest.fixture(scope='function')
def admin_headers(admin):
    return auth_headers(token_for(admin))


@pytest.fixture(scope='function')
def product(db_session):
    item = Product(name="Mango Pickle", price=Decimal("120.00"), category="pickles", in_stock=True)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def pricey_product(db_session):
    item = Product(name="Gift Hamper", price=Decimal("450.00"), category="gifts", in_stock=True)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def address(db_session, customer):
    row = Address(
        user_id=customer.id,
        name="Asha",
        phone="9876543210",
        street="12 MG Road",
        city="Kochi",
        state="Kerala",
        pincode="682001",
        is_default=True,
    )
    db_session.add(row)
    db_session.commit()
    return row


@pytest.fixture(scope='function')
def make_coupon(db_session):
    def _make(code="SAVE10", **overrides):
        values = dict(
            code=code,
            discount_type="percentage",
            discount_value=Decimal("10"),
            valid_from=utcnow() - timedelta(days=1),
            valid_to=utcnow() + timedelta(days=30),
            is_active=True,
        )
        values.update(overrides)
        coupon = Coupon(**values)
        db_session.add(coupon)
        db_session.commit()
        return coupon

    return _make
