# Overview: SMS provider client (Fast2SMS quick and DLT routes).

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx


logger = logging.getLogger(__name__)

OTP_MESSAGE = "Your OTP is {otp}. Valid for 10 minutes. Do not share this code."


@dataclass(frozen=True)
class SmsSettings:
    """Provider credentials, detached from the SmsConfig row."""
    api_key: str
    sms_type: str = "quick"
    is_active: bool = True
    dlt_sender_id: Optional[str] = None
    dlt_template_id: Optional[str] = None
    dlt_entity_id: Optional[str] = None
    dlt_message_id: Optional[str] = None


@dataclass(frozen=True)
class SmsResult:
    success: bool
    message: str
    request_id: Optional[str] = None


class Fast2SmsClient:
    """
    Provider failures are reported through SmsResult, never raised, so the
    caller decides which failures reach the client.
    """

    def __init__(self, api_base: str, timeout: float = 10.0):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    def send_otp(self, phone: str, otp: str, settings: SmsSettings) -> SmsResult:
        if not settings.is_active or not settings.api_key:
            return SmsResult(False, "SMS service is not configured")

        message = OTP_MESSAGE.format(otp=otp)

        if settings.sms_type == "quick":
            return self._send_quick(phone, message, settings.api_key)
        if settings.sms_type == "dlt":
            return self._send_dlt(phone, message, settings)
        return SmsResult(False, "Invalid SMS type")

    def check_balance(self, api_key: str) -> float | None:
        """Wallet balance, or None when the provider rejects the key or fails."""
        try:
            response = httpx.get(
                f"{self.api_base}/wallet",
                params={"authorization": api_key},
                timeout=self.timeout,
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[FAST2SMS] wallet request failed: %s", exc)
            return None

        if body.get("return") is True:
            return float(body.get("wallet_balance") or 0)
        logger.warning("[FAST2SMS] wallet API error: %s", body.get("message"))
        return None

    def _send_quick(self, phone: str, message: str, api_key: str) -> SmsResult:
        params = {
            "authorization": api_key,
            "route": "q",
            "numbers": phone,
            "message": message,
            "flash": 0,
        }
        return self._call("GET", params=params)

    def _send_dlt(self, phone: str, message: str, settings: SmsSettings) -> SmsResult:
        if not settings.dlt_sender_id:
            return SmsResult(False, "DLT Sender ID not configured")

        # dlt_manual sends free text against a registered template/entity
        if settings.dlt_template_id or settings.dlt_entity_id:
            payload = {
                "sender_id": settings.dlt_sender_id,
                "message": message,
                "route": "dlt_manual",
                "numbers": phone,
                "flash": 0,
            }
            if settings.dlt_template_id:
                payload["template_id"] = settings.dlt_template_id
            if settings.dlt_entity_id:
                payload["entity_id"] = settings.dlt_entity_id
        elif settings.dlt_message_id:
            payload = {
                "sender_id": settings.dlt_sender_id,
                "message": settings.dlt_message_id,
                "variables_values": message,
                "route": "dlt",
                "numbers": phone,
                "flash": 0,
            }
        else:
            return SmsResult(
                False,
                "DLT configuration incomplete. Please configure Sender ID and "
                "Template/Entity IDs or Message ID",
            )

        return self._call("POST", json=payload, headers={"authorization": settings.api_key})

    def _call(self, method: str, **kwargs) -> SmsResult:
        try:
            response = httpx.request(
                method, f"{self.api_base}/bulkV2", timeout=self.timeout, **kwargs
            )
            body = response.json()
        except httpx.TimeoutException:
            logger.warning("[FAST2SMS] send timeout")
            return SmsResult(False, "SMS provider timed out")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[FAST2SMS] send failed: %s", exc)
            return SmsResult(False, "Failed to send SMS")

        if body.get("return") is True:
            return SmsResult(True, "SMS sent", request_id=body.get("request_id"))

        provider_message = body.get("message")
        if isinstance(provider_message, list):
            provider_message = "; ".join(str(m) for m in provider_message)
        return SmsResult(False, provider_message or "Failed to send SMS")
