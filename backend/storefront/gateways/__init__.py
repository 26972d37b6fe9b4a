# Overview: Clients for the external collaborators (payment gateway, SMS, mail, file storage).

"""
Each client is constructed once per application in create_app and stored in
app.extensions["storefront.<name>"]. Services fetch them through get_gateway,
so tests can swap any of them for a fake without patching module globals.
"""

from flask import current_app

from .file_storage import LocalFileStorage, StoredFile
from .mail_client import SmtpMailClient, SmtpSettings, render_template
from .razorpay_client import GatewayOrder, RazorpayClient
from .sms_client import Fast2SmsClient, SmsResult, SmsSettings


EXTENSION_PREFIX = "storefront."


def init_gateways(app) -> None:
    timeout = app.config["HTTP_TIMEOUT_SECONDS"]
    app.extensions.setdefault(
        EXTENSION_PREFIX + "payments",
        RazorpayClient(app.config["RAZORPAY_API_BASE"], timeout=timeout),
    )
    app.extensions.setdefault(
        EXTENSION_PREFIX + "sms",
        Fast2SmsClient(app.config["FAST2SMS_API_BASE"], timeout=timeout),
    )
    app.extensions.setdefault(EXTENSION_PREFIX + "mail", SmtpMailClient(timeout=timeout))
    app.extensions.setdefault(
        EXTENSION_PREFIX + "storage",
        LocalFileStorage(app.config["UPLOAD_FOLDER"], app.config["UPLOAD_URL_PREFIX"]),
    )


def get_gateway(name: str):
    return current_app.extensions[EXTENSION_PREFIX + name]


__all__ = [
    "Fast2SmsClient",
    "GatewayOrder",
    "LocalFileStorage",
    "RazorpayClient",
    "SmsResult",
    "SmsSettings",
    "SmtpMailClient",
    "SmtpSettings",
    "StoredFile",
    "get_gateway",
    "init_gateways",
    "render_template",
]
