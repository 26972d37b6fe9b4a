# Overview: Flask API routes for customer support tickets and chats.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..responses import api_created, api_response
from ..services import support_service
from ..validation import parse_pagination
from .helpers import json_body, page_response


support_bp = Blueprint("support", __name__, url_prefix="/api/support")
chats_bp = Blueprint("chats", __name__, url_prefix="/api/chats")


@support_bp.get("")
@require_auth
def list_tickets_route():
    rows, meta = support_service.list_tickets(
        g.principal, request.args, parse_pagination(request.args), own_only=True
    )
    return api_response(page_response(rows, meta, lambda t: t.to_dict(include_messages=False)))


@support_bp.post("")
@require_auth
def open_ticket_route():
    return api_created(support_service.open_ticket(g.principal.id, json_body()).to_dict())


@support_bp.get("/<int:ticket_id>")
@require_auth
def get_ticket_route(ticket_id: int):
    return api_response(support_service.get_ticket(g.principal, ticket_id, own_only=True).to_dict())


@support_bp.post("/<int:ticket_id>")
@require_auth
def add_ticket_message_route(ticket_id: int):
    message = support_service.add_ticket_message(g.principal, ticket_id, json_body())
    return api_created(message.to_dict())


@support_bp.patch("/<int:ticket_id>")
@require_auth
def update_ticket_route(ticket_id: int):
    ticket = support_service.update_ticket(g.principal, ticket_id, json_body())
    return api_response(ticket.to_dict())


@chats_bp.get("")
@require_auth
def list_chats_route():
    """Admins see every chat; customers their own."""
    rows, meta = support_service.list_chats(g.principal, request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@chats_bp.post("")
@require_auth
def open_chat_route():
    chat = support_service.open_chat(g.principal, json_body())
    return api_created(chat.to_dict(include_messages=True))


@chats_bp.get("/<int:chat_id>")
@require_auth
def get_chat_route(chat_id: int):
    return api_response(support_service.get_chat(g.principal, chat_id).to_dict(include_messages=True))


@chats_bp.patch("/<int:chat_id>")
@require_auth
def update_chat_route(chat_id: int):
    return api_response(support_service.update_chat(g.principal, chat_id, json_body()).to_dict())


@chats_bp.get("/<int:chat_id>/messages")
@require_auth
def list_chat_messages_route(chat_id: int):
    chat = support_service.get_chat(g.principal, chat_id)
    return api_response([m.to_dict() for m in chat.messages])


@chats_bp.post("/<int:chat_id>/messages")
@require_auth
def add_chat_message_route(chat_id: int):
    message = support_service.add_chat_message(g.principal, chat_id, json_body())
    return api_created(message.to_dict())
