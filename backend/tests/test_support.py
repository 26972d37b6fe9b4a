"""
Support tests: tickets and chats as parent + ordered messages.
"""

import pytest

from storefront.extensions import db
from storefront.models import SupportMessage, SupportTicket


@pytest.fixture
def order_id(client, product, address, customer_headers):
    resp = client.post(
        "/api/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "address_id": address.id,
            "payment_method": "cod",
        },
        headers=customer_headers,
    )
    return resp.get_json()["data"]["order"]["id"]


@pytest.fixture
def ticket(client, order_id, customer_headers):
    resp = client.post(
        "/api/support",
        json={"order_id": order_id, "subject": "Late delivery", "message": "Where is my order?"},
        headers=customer_headers,
    )
    assert resp.status_code == 201
    return resp.get_json()["data"]


# =============================================================================
# TICKETS
# =============================================================================


class TestTickets:
    def test_open_writes_parent_and_first_message(self, ticket):
        assert ticket["status"] == "open"
        assert ticket["priority"] == "medium"
        assert [m["message"] for m in ticket["messages"]] == ["Where is my order?"]

    def test_foreign_order_creates_nothing(self, client, order_id, other_headers):
        resp = client.post(
            "/api/support",
            json={"order_id": order_id, "subject": "Not mine", "message": "hello"},
            headers=other_headers,
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Order not found"
        assert db.session.query(SupportTicket).count() == 0
        assert db.session.query(SupportMessage).count() == 0

    def test_missing_fields(self, client, customer_headers):
        resp = client.post("/api/support", json={"subject": "x"}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Order ID, subject, and message are required"

    def test_messages_in_order(self, client, ticket, customer_headers, admin_headers):
        client.post(f"/api/support/{ticket['id']}", json={"message": "Any update?"}, headers=customer_headers)
        reply = client.post(
            f"/api/admin/support/{ticket['id']}", json={"message": "Shipped today"}, headers=admin_headers
        )
        assert reply.status_code == 201
        assert reply.get_json()["data"]["is_admin_reply"] is True

        data = client.get(f"/api/support/{ticket['id']}", headers=customer_headers).get_json()["data"]
        assert [m["message"] for m in data["messages"]] == [
            "Where is my order?", "Any update?", "Shipped today",
        ]

    def test_empty_message_rejected(self, client, ticket, customer_headers):
        resp = client.post(f"/api/support/{ticket['id']}", json={"message": "  "}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Message is required"

    def test_other_customer_cannot_see(self, client, ticket, other_headers):
        assert client.get(f"/api/support/{ticket['id']}", headers=other_headers).status_code == 404
        listed = client.get("/api/support", headers=other_headers).get_json()["data"]
        assert listed["items"] == []

    def test_customer_cannot_set_priority(self, client, ticket, customer_headers):
        resp = client.patch(f"/api/support/{ticket['id']}", json={"priority": "urgent"}, headers=customer_headers)
        assert resp.status_code == 400

    def test_admin_updates_status_and_priority(self, client, ticket, admin_headers):
        resp = client.patch(
            f"/api/admin/support/{ticket['id']}",
            json={"status": "resolved", "priority": "high"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert (data["status"], data["priority"]) == ("resolved", "high")

    def test_admin_list_filters(self, client, ticket, admin_headers):
        open_items = client.get("/api/admin/support?status=open", headers=admin_headers).get_json()["data"]
        assert [t["id"] for t in open_items["items"]] == [ticket["id"]]
        closed = client.get("/api/admin/support?status=closed", headers=admin_headers).get_json()["data"]
        assert closed["items"] == []


# =============================================================================
# CHATS
# =============================================================================


class TestChats:
    def test_open_chat_without_order(self, client, customer_headers):
        resp = client.post(
            "/api/chats", json={"subject": "Question", "message": "Do you ship abroad?"},
            headers=customer_headers,
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["order_id"] is None
        assert len(data["messages"]) == 1

    def test_missing_subject(self, client, customer_headers):
        resp = client.post("/api/chats", json={"message": "hi"}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Subject and message are required"

    def test_closed_chat_rejects_customer_messages(self, client, customer_headers, admin_headers):
        chat_id = client.post(
            "/api/chats", json={"subject": "Q", "message": "first"}, headers=customer_headers
        ).get_json()["data"]["id"]

        client.patch(f"/api/chats/{chat_id}", json={"status": "closed"}, headers=admin_headers)

        resp = client.post(f"/api/chats/{chat_id}/messages", json={"message": "again"}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Chat is closed"

        admin_msg = client.post(f"/api/chats/{chat_id}/messages", json={"message": "noted"}, headers=admin_headers)
        assert admin_msg.status_code == 201

        messages = client.get(f"/api/chats/{chat_id}/messages", headers=customer_headers).get_json()["data"]
        assert [m["message"] for m in messages] == ["first", "noted"]

    def test_visibility(self, client, customer_headers, other_headers, admin_headers):
        chat_id = client.post(
            "/api/chats", json={"subject": "Q", "message": "m"}, headers=customer_headers
        ).get_json()["data"]["id"]
        assert client.get(f"/api/chats/{chat_id}", headers=other_headers).status_code == 404
        assert client.get("/api/chats", headers=admin_headers).get_json()["data"]["pagination"]["total"] == 1
