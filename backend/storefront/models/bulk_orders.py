from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


BULK_ORDER_STATUSES = ("pending", "contacted", "quoted", "completed", "cancelled")
BULK_ORDER_MIN_QUANTITY = 10


class BulkOrder(db.Model):
    """Wholesale enquiry submitted from the public site."""
    __tablename__ = "bulk_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    company = db.Column(db.String(255), nullable=True)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "message": self.message,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
