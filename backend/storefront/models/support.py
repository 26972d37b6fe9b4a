from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


TICKET_STATUSES = ("open", "closed", "resolved")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")
CHAT_STATUSES = ("open", "closed")


class SupportTicket(db.Model):
    """
    Support ticket raised against an order.

    A ticket is never persisted without its first message: both rows are
    written in the same transaction.
    """
    __tablename__ = "support_tickets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    subject = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="open", index=True)
    priority = db.Column(db.String(16), nullable=False, default="medium")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User")
    order = db.relationship("Order")
    messages = db.relationship(
        "SupportMessage",
        backref="ticket",
        cascade="all, delete-orphan",
        order_by="SupportMessage.id",
    )

    def to_dict(self, include_messages: bool = True) -> dict:
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "subject": self.subject,
            "status": self.status,
            "priority": self.priority,
            "order": self.order.to_summary() if self.order else None,
            "user": self.user.to_summary() if self.user else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_messages:
            result["messages"] = [m.to_dict() for m in self.messages]
        return result


class SupportMessage(db.Model):
    __tablename__ = "support_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    ticket_id = db.Column(db.Integer, db.ForeignKey("support_tickets.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_admin_reply = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ticket_id": self.ticket_id,
            "message": self.message,
            "is_admin_reply": self.is_admin_reply,
            "user": {"name": self.user.name, "role": self.user.role} if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }


class Chat(db.Model):
    """Free-form conversation with support, optionally tied to an order."""
    __tablename__ = "chats"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    subject = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="open")
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship("User")
    order = db.relationship("Order")
    messages = db.relationship(
        "ChatMessage",
        backref="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    def to_dict(self, include_messages: bool = False) -> dict:
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "order_id": self.order_id,
            "subject": self.subject,
            "status": self.status,
            "order": self.order.to_summary() if self.order else None,
            "user": self.user.to_summary() if self.user else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_messages:
            result["messages"] = [m.to_dict() for m in self.messages]
        return result


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    chat_id = db.Column(db.Integer, db.ForeignKey("chats.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "message": self.message,
            "is_admin": self.is_admin,
            "user": {"name": self.user.name, "role": self.user.role} if self.user else None,
            "created_at": to_utc_z(self.created_at),
        }
