# Overview: Keeps "at most one default/active row per owner" true for flagged entities.

"""
Default-flag invariant management.

Some records carry a boolean that may be true on at most one row per owner
(a user's default address, a product's primary image). Setting the flag is
always clear-siblings-then-set inside the caller's transaction, with the
sibling rows locked so concurrent calls for the same owner serialize.

Global configuration tables (payment, SMS, SMTP) are the degenerate case
with a single implicit owner: upsert_singleton updates the one existing row
instead of inserting a second.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..errors import NotFound
from ..extensions import db
from ..models import Address, ProductImage
from .transactions import atomic, lock_for_update


@dataclass(frozen=True)
class FlaggedKind:
    model: Any
    owner_attr: str
    flag_attr: str
    label: str


FLAGGED_KINDS: dict[str, FlaggedKind] = {
    "address": FlaggedKind(Address, "user_id", "is_default", "Address"),
    "product_image": FlaggedKind(ProductImage, "product_id", "is_primary", "Image"),
}


def _kind(entity_kind: str) -> FlaggedKind:
    try:
        return FLAGGED_KINDS[entity_kind]
    except KeyError:
        raise ValueError(f"Unknown flagged entity kind: {entity_kind}")


def clear_siblings(entity_kind: str, owner_id: int, except_id: int | None = None) -> int:
    """Unset the flag on every row of the owner except except_id. No commit."""
    kind = _kind(entity_kind)
    model = kind.model
    query = db.session.query(model).filter(
        getattr(model, kind.owner_attr) == owner_id,
        getattr(model, kind.flag_attr).is_(True),
    )
    if except_id is not None:
        query = query.filter(model.id != except_id)

    siblings = lock_for_update(query).all()
    for sibling in siblings:
        setattr(sibling, kind.flag_attr, False)
    return len(siblings)


def mark_default(entity_kind: str, instance: Any) -> Any:
    """
    Make instance the owner's single flagged row. No commit.

    Used inside a larger transaction (create/update with the flag set).
    """
    kind = _kind(entity_kind)
    if instance.id is None:
        db.session.add(instance)
        db.session.flush()
    clear_siblings(entity_kind, getattr(instance, kind.owner_attr), except_id=instance.id)
    setattr(instance, kind.flag_attr, True)
    return instance


def set_as_default(owner_id: int, entity_id: int, entity_kind: str) -> Any:
    """
    Atomically make entity_id the owner's default.

    Raises NotFound, without touching siblings, when the entity does not
    exist under that owner.
    """
    kind = _kind(entity_kind)
    model = kind.model

    def _op():
        target = lock_for_update(
            db.session.query(model).filter(
                model.id == entity_id,
                getattr(model, kind.owner_attr) == owner_id,
            )
        ).first()
        if target is None:
            raise NotFound(f"{kind.label} not found")
        return mark_default(entity_kind, target)

    return atomic(_op)


def get_singleton(model) -> Any | None:
    return db.session.query(model).order_by(model.id).first()


def upsert_singleton(model, values: dict) -> tuple[Any, bool]:
    """
    Update the single config row, or create it when absent. No commit.

    Returns (row, created).
    """
    row = lock_for_update(db.session.query(model).order_by(model.id)).first()
    created = row is None
    if created:
        row = model(**values)
        db.session.add(row)
    else:
        for key, value in values.items():
            setattr(row, key, value)
    return row, created


def delete_singleton(model) -> int:
    return db.session.query(model).delete()
