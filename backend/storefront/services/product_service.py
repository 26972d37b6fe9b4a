# Overview: Service-layer operations for the catalog (products, gallery images, reviews).

from __future__ import annotations

from decimal import Decimal

from ..errors import Conflict, InvalidInput, NotFound
from ..extensions import db
from ..models import CartItem, OrderItem, Product, ProductImage, Review
from ..validation import Field, Schema, paginate, parse_bool_arg, validate_payload
from .default_flag_service import mark_default, set_as_default
from .transactions import atomic


PRODUCT_FIELDS = (
    Field("name", required=True, max_length=255, label="Name"),
    Field("description", "text"),
    Field("price", "number", required=True, min_value=Decimal("0"), label="Price"),
    Field("original_price", "number", min_value=Decimal("0"), label="Original price"),
    Field("image", max_length=500),
    Field("category", required=True, max_length=120, label="Category"),
    Field("in_stock", "bool", default=True),
    Field("featured", "bool", default=False),
    Field("weight", max_length=64),
    Field("ingredients", "text"),
    Field("images", "list"),
)

PRODUCT_SCHEMA = Schema(fields=PRODUCT_FIELDS)

PRODUCT_COLUMNS = (
    "name", "description", "price", "original_price", "image",
    "category", "in_stock", "featured", "weight", "ingredients",
)


def list_products(args, pagination) -> tuple[list[Product], dict]:
    query = db.session.query(Product)

    category = args.get("category")
    if category:
        query = query.filter(Product.category == category)

    featured = parse_bool_arg(args, "featured")
    if featured is not None:
        query = query.filter(Product.featured.is_(featured))

    in_stock = parse_bool_arg(args, "in_stock")
    if in_stock is not None:
        query = query.filter(Product.in_stock.is_(in_stock))

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            db.or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )

    query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return paginate(query, pagination)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


def _replace_images(product: Product, urls: list[str]) -> None:
    product.images.clear()
    db.session.flush()
    for position, url in enumerate(urls):
        product.images.append(ProductImage(url=url, display_order=position))
    db.session.flush()
    if product.images:
        mark_default("product_image", product.images[0])
        if not product.image:
            product.image = urls[0]


def create_product(payload: dict) -> Product:
    data = validate_payload(payload, PRODUCT_SCHEMA)

    def _op():
        product = Product(**{k: data.get(k) for k in PRODUCT_COLUMNS if k in data})
        db.session.add(product)
        db.session.flush()
        if data.get("images"):
            _replace_images(product, data["images"])
        return product

    return atomic(_op)


def update_product(product_id: int, payload: dict) -> Product:
    patch = validate_payload(payload, PRODUCT_SCHEMA, partial=True)
    for required in ("name", "price", "category"):
        if required in patch and patch[required] is None:
            raise InvalidInput(f"{required.capitalize()} is required")

    def _op():
        product = get_product(product_id)
        for key in PRODUCT_COLUMNS:
            if key in patch:
                setattr(product, key, patch[key])
        if "images" in patch:
            _replace_images(product, patch["images"] or [])
        return product

    return atomic(_op)


def delete_product(product_id: int) -> None:
    def _op():
        product = get_product(product_id)
        if db.session.query(OrderItem).filter_by(product_id=product.id).first():
            raise Conflict("Product has existing orders and cannot be deleted")
        db.session.query(CartItem).filter_by(product_id=product.id).delete(
            synchronize_session=False
        )
        db.session.delete(product)

    atomic(_op)


def set_primary_image(product_id: int, image_id: int) -> Product:
    get_product(product_id)
    image = set_as_default(product_id, image_id, "product_image")

    def _sync_legacy_image():
        product = db.session.get(Product, product_id)
        product.image = image.url
        return product

    return atomic(_sync_legacy_image)


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

REVIEW_SCHEMA = Schema(
    fields=(
        Field("rating", "int", required=True, min_value=1, max_value=5, inclusive_min=True,
              message="Rating must be between 1 and 5", label="Rating"),
        Field("comment", "text", max_length=2000),
    ),
)


def list_reviews(product_id: int) -> list[Review]:
    get_product(product_id)
    return (
        db.session.query(Review)
        .filter_by(product_id=product_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


def create_review(product_id: int, user_id: int, payload: dict) -> Review:
    data = validate_payload(payload, REVIEW_SCHEMA)

    def _op():
        get_product(product_id)
        existing = db.session.query(Review).filter_by(
            product_id=product_id, user_id=user_id
        ).first()
        if existing:
            raise Conflict("You have already reviewed this product")
        review = Review(product_id=product_id, user_id=user_id, **data)
        db.session.add(review)
        return review

    return atomic(_op)


def list_all_reviews() -> list[Review]:
    """Every review, newest first, for moderation."""
    return (
        db.session.query(Review)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )
