# Overview: Service-layer operations for support tickets and chats (parent + ordered messages).

"""
Tickets and chats are both "thread" aggregates: a parent row owning an
ordered list of messages.

Opening a thread writes the parent and its first message in one
transaction, so a parent never exists without its seed message. Posting a
message bumps the parent's updated_at in the same transaction.
"""

from __future__ import annotations

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Chat, ChatMessage, Order, SupportMessage, SupportTicket
from ..models.support import CHAT_STATUSES, TICKET_PRIORITIES, TICKET_STATUSES
from ..validation import Field, Schema, paginate, validate_payload
from .transactions import atomic, run_in_transaction
from storefront.time_utils import utcnow


MESSAGE_SCHEMA = Schema(
    fields=(Field("message", "text", required=True, max_length=5000),),
    required_message="Message is required",
)


def _owned_order_step(user_id: int, order_id: int | None, required: bool):
    def _step(ctx):
        ctx["order"] = None
        if order_id is None:
            if required:
                raise InvalidInput("Order ID is required")
            return
        order = db.session.query(Order).filter_by(id=order_id, user_id=user_id).first()
        if order is None:
            raise NotFound("Order not found")
        ctx["order"] = order
    return _step


def _append(parent, message_model, parent_attr: str, **fields):
    message = message_model(**fields)
    getattr(parent, parent_attr).append(message)
    parent.updated_at = utcnow()
    return message


# ---------------------------------------------------------------------------
# Support tickets
# ---------------------------------------------------------------------------

TICKET_SCHEMA = Schema(
    fields=(
        Field("order_id", "int", required=True, label="Order ID"),
        Field("subject", required=True, max_length=255),
        Field("message", "text", required=True, max_length=5000),
        Field("priority", choices=TICKET_PRIORITIES, default="medium", message="Invalid priority"),
    ),
    required_message="Order ID, subject, and message are required",
)


def open_ticket(user_id: int, payload: dict) -> SupportTicket:
    data = validate_payload(payload, TICKET_SCHEMA)

    def create_ticket(ctx):
        ticket = SupportTicket(
            user_id=user_id,
            order_id=ctx["order"].id,
            subject=data["subject"],
            priority=data["priority"],
            status="open",
        )
        db.session.add(ticket)
        ctx["ticket"] = ticket

    def seed_message(ctx):
        _append(ctx["ticket"], SupportMessage, "messages",
                user_id=user_id, message=data["message"], is_admin_reply=False)
        return ctx["ticket"]

    return run_in_transaction(
        _owned_order_step(user_id, data["order_id"], required=True),
        create_ticket,
        seed_message,
    )


def list_tickets(principal, args, pagination, own_only: bool = False) -> tuple[list[SupportTicket], dict]:
    query = db.session.query(SupportTicket)
    if own_only or not principal.is_admin:
        query = query.filter(SupportTicket.user_id == principal.id)

    status = args.get("status")
    if status:
        query = query.filter(SupportTicket.status == status)
    priority = args.get("priority")
    if priority:
        query = query.filter(SupportTicket.priority == priority)

    query = query.order_by(SupportTicket.updated_at.desc(), SupportTicket.id.desc())
    return paginate(query, pagination)


def get_ticket(principal, ticket_id: int, own_only: bool = False) -> SupportTicket:
    query = db.session.query(SupportTicket).filter(SupportTicket.id == ticket_id)
    if own_only or not principal.is_admin:
        query = query.filter(SupportTicket.user_id == principal.id)
    ticket = query.first()
    if ticket is None:
        raise NotFound("Support ticket not found")
    return ticket


def add_ticket_message(principal, ticket_id: int, payload: dict, as_admin: bool = False) -> SupportMessage:
    data = validate_payload(payload, MESSAGE_SCHEMA)

    def _op():
        ticket = get_ticket(principal, ticket_id, own_only=not as_admin)
        return _append(ticket, SupportMessage, "messages",
                       user_id=principal.id, message=data["message"], is_admin_reply=as_admin)

    return atomic(_op)


CUSTOMER_TICKET_UPDATE = Schema(
    fields=(Field("status", choices=TICKET_STATUSES, message="Invalid status"),),
)

ADMIN_TICKET_UPDATE = Schema(
    fields=(
        Field("status", choices=TICKET_STATUSES, message="Invalid status"),
        Field("priority", choices=TICKET_PRIORITIES, message="Invalid priority"),
    ),
)


def update_ticket(principal, ticket_id: int, payload: dict, as_admin: bool = False) -> SupportTicket:
    schema = ADMIN_TICKET_UPDATE if as_admin else CUSTOMER_TICKET_UPDATE
    patch = {k: v for k, v in validate_payload(payload, schema, partial=True).items() if v is not None}
    if not patch:
        raise InvalidInput("Invalid status")

    def _op():
        ticket = get_ticket(principal, ticket_id, own_only=not as_admin)
        for key, value in patch.items():
            setattr(ticket, key, value)
        return ticket

    return atomic(_op)


# ---------------------------------------------------------------------------
# Chats
# ---------------------------------------------------------------------------

CHAT_SCHEMA = Schema(
    fields=(
        Field("subject", required=True, max_length=255),
        Field("message", "text", required=True, max_length=5000),
        Field("order_id", "int", label="Order ID"),
    ),
    required_message="Subject and message are required",
)


def open_chat(principal, payload: dict) -> Chat:
    data = validate_payload(payload, CHAT_SCHEMA)

    def create_chat(ctx):
        chat = Chat(
            user_id=principal.id,
            order_id=ctx["order"].id if ctx["order"] else None,
            subject=data["subject"],
            status="open",
        )
        db.session.add(chat)
        ctx["chat"] = chat

    def seed_message(ctx):
        _append(ctx["chat"], ChatMessage, "messages",
                user_id=principal.id, message=data["message"], is_admin=principal.is_admin)
        return ctx["chat"]

    return run_in_transaction(
        _owned_order_step(principal.id, data.get("order_id"), required=False),
        create_chat,
        seed_message,
    )


def list_chats(principal, args, pagination) -> tuple[list[Chat], dict]:
    query = db.session.query(Chat)
    if not principal.is_admin:
        query = query.filter(Chat.user_id == principal.id)
    status = args.get("status")
    if status:
        query = query.filter(Chat.status == status)
    return paginate(query.order_by(Chat.updated_at.desc(), Chat.id.desc()), pagination)


def get_chat(principal, chat_id: int) -> Chat:
    query = db.session.query(Chat).filter(Chat.id == chat_id)
    if not principal.is_admin:
        query = query.filter(Chat.user_id == principal.id)
    chat = query.first()
    if chat is None:
        raise NotFound("Chat not found")
    return chat


def add_chat_message(principal, chat_id: int, payload: dict) -> ChatMessage:
    data = validate_payload(payload, MESSAGE_SCHEMA)

    def _op():
        chat = get_chat(principal, chat_id)
        if chat.status == "closed" and not principal.is_admin:
            raise InvalidInput("Chat is closed")
        return _append(chat, ChatMessage, "messages",
                       user_id=principal.id, message=data["message"], is_admin=principal.is_admin)

    return atomic(_op)


CHAT_UPDATE_SCHEMA = Schema(
    fields=(Field("status", required=True, choices=CHAT_STATUSES, message="Invalid status"),),
    required_message="Invalid status",
)


def update_chat(principal, chat_id: int, payload: dict) -> Chat:
    data = validate_payload(payload, CHAT_UPDATE_SCHEMA)

    def _op():
        chat = get_chat(principal, chat_id)
        chat.status = data["status"]
        return chat

    return atomic(_op)
