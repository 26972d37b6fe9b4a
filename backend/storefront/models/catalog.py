from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


def money(value) -> float | None:
    return float(value) if value is not None else None


class Product(db.Model):
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)
    original_price = db.Column(db.Numeric(10, 2), nullable=True)

    # Legacy single-image field; ProductImage rows carry the gallery
    image = db.Column(db.String(500), nullable=True)
    category = db.Column(db.String(120), nullable=False, index=True)

    in_stock = db.Column(db.Boolean, nullable=False, default=True)
    featured = db.Column(db.Boolean, nullable=False, default=False)

    weight = db.Column(db.String(64), nullable=True)
    ingredients = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    images = db.relationship(
        "ProductImage",
        backref="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.display_order",
    )
    reviews = db.relationship("Review", backref="product", cascade="all, delete-orphan")

    def to_dict(self, include_images: bool = True) -> dict:
        ratings = [r.rating for r in self.reviews]
        average = round(sum(ratings) / len(ratings), 1) if ratings else 0
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": money(self.price),
            "original_price": money(self.original_price),
            "image": self.image,
            "category": self.category,
            "in_stock": self.in_stock,
            "featured": self.featured,
            "weight": self.weight,
            "ingredients": self.ingredients,
            "average_rating": average,
            "review_count": len(ratings),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_images:
            result["images"] = [img.to_dict() for img in self.images]
        return result

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "price": money(self.price),
            "in_stock": self.in_stock,
        }


class ProductImage(db.Model):
    """Gallery image. At most one image per product has is_primary set."""
    __tablename__ = "product_images"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    url = db.Column(db.String(500), nullable=False)
    alt_text = db.Column(db.String(255), nullable=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "alt_text": self.alt_text,
            "is_primary": self.is_primary,
            "display_order": self.display_order,
        }


class Review(db.Model):
    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("product_id", "user_id", name="uq_reviews_product_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "rating": self.rating,
            "comment": self.comment,
            "user": {"id": self.user.id, "name": self.user.name} if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }
        if include_product:
            data["product"] = {"name": self.product.name, "image": self.product.image}
        return data
