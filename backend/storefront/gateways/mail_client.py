# Overview: SMTP mail client and {{KEY}} template rendering.

from __future__ import annotations

import logging
import re
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Mapping, Optional


logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def render_template(template: str, values: Mapping[str, object]) -> str:
    """
    Replace {{KEY}} placeholders with values[KEY].

    Unknown placeholders are left untouched so a missing value is visible in
    the rendered output instead of silently disappearing.
    """
    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_replace, template)


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int
    username: str
    password: str
    from_email: str
    from_name: str = ""
    secure: bool = False


class SmtpMailClient:
    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout

    def send_email(
        self,
        settings: SmtpSettings,
        to: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> bool:
        """Send one message. Returns False (and logs) on any SMTP failure."""
        try:
            # Header values with CR/LF raise ValueError while building
            message = EmailMessage()
            message["From"] = formataddr((settings.from_name, settings.from_email))
            message["To"] = to
            message["Subject"] = subject
            message.set_content(text or "")
            message.add_alternative(html, subtype="html")

            if settings.secure:
                server = smtplib.SMTP_SSL(
                    settings.host, settings.port, timeout=self.timeout,
                    context=ssl.create_default_context(),
                )
            else:
                server = smtplib.SMTP(settings.host, settings.port, timeout=self.timeout)
            with server:
                if not settings.secure:
                    server.starttls(context=ssl.create_default_context())
                if settings.username:
                    server.login(settings.username, settings.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            logger.warning("[MAIL] send to %s failed: %s", to, exc)
            return False

        return True
