# Overview: Payment gateway client (Razorpay Orders API).

"""
Only order creation goes through the network. Signature verification is a
local HMAC check and lives in payment_service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from storefront.errors import UpstreamFailure


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    gateway_order_id: str
    amount: int
    currency: str
    status: str


class RazorpayClient:
    def __init__(self, api_base: str, timeout: float = 10.0):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def create_order(
        self,
        key_id: str,
        key_secret: str,
        amount_minor_units: int,
        currency: str,
        receipt_id: str,
    ) -> GatewayOrder:
        """
        Create a gateway order for amount_minor_units (paise for INR).

        Raises UpstreamFailure when the gateway is unreachable or rejects the
        request; the gateway's own description is passed through because it
        never contains credentials.
        """
        payload = {
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt_id,
        }
        try:
            response = httpx.post(
                f"{self.api_base}/orders",
                json=payload,
                auth=(key_id, key_secret),
                timeout=self.timeout,
            )
        except httpx.TimeoutException:
            logger.warning("[RAZORPAY] create_order timeout for receipt %s", receipt_id)
            raise UpstreamFailure("Payment gateway timed out")
        except httpx.RequestError as exc:
            logger.warning("[RAZORPAY] create_order request error: %s", exc)
            raise UpstreamFailure("Payment gateway is unreachable")

        if response.status_code >= 400:
            description = None
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                pass
            logger.warning(
                "[RAZORPAY] create_order rejected (%s): %s", response.status_code, description
            )
            raise UpstreamFailure(description or "Failed to create payment order")

        body = response.json()
        return GatewayOrder(
            gateway_order_id=body["id"],
            amount=int(body.get("amount", amount_minor_units)),
            currency=body.get("currency", currency),
            status=body.get("status", "created"),
        )
