"""Utility helpers for sending transactional emails."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage

from penwwws.config.settings import settings

logger = logging.getLogger(__name__)


class EmailServiceError(RuntimeError):
    """Raised when the email service cannot deliver a message."""


async def send_email(
    *,
    recipient: str,
    subject: str,
    body: str,
    html: str | None = None,
) -> None:
    """Send an email (plain text with an optional HTML part) over SMTP."""

    mail_settings = settings.mail
    if not mail_settings.is_configured():
        raise EmailServiceError("SMTP settings are not configured.")

    message = EmailMessage()
    message["From"] = mail_settings.sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body)
    if html is not None:
        message.add_alternative(html, subtype="html")

    password = (
        mail_settings.password.get_secret_value()
        if mail_settings.password is not None
        else None
    )

    def _send_sync() -> None:
        context = ssl.create_default_context()
        if mail_settings.use_ssl:
            with smtplib.SMTP_SSL(
                mail_settings.host,
                mail_settings.port,
                context=context,
            ) as client:
                if mail_settings.username and password:
                    client.login(mail_settings.username, password)
                client.send_message(message)
            return

        with smtplib.SMTP(mail_settings.host, mail_settings.port) as client:
            if mail_settings.use_tls:
                client.starttls(context=context)
            if mail_settings.username and password:
                client.login(mail_settings.username, password)
            client.send_message(message)

    try:
        await asyncio.to_thread(_send_sync)
    except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - network errors
        raise EmailServiceError("Failed to send email.") from exc


def frontend_link(path: str) -> str:
    """Return an absolute link into the web client."""

    return f"{settings.frontend_url.rstrip('/')}/{path.lstrip('/')}"


async def send_link_email(
    *,
    recipient: str,
    subject: str,
    heading: str,
    button_label: str,
    link: str,
    footer: str | None = None,
) -> None:
    """Send a single call-to-action email pointing at ``link``."""

    body = f"{heading}\n\n{button_label}: {link}\n"
    if footer:
        body += f"\n{footer}\n"
    html = (
        "<div>"
        f"<h1 style=\"font-size: 24px; font-weight: 600;\">{heading}</h1>"
        f"<a href=\"{link}\" target=\"_blank\">{button_label}</a>"
        f"<p>If you can't see the button, use this link instead: {link}</p>"
        + (f"<p>{footer}</p>" if footer else "")
        + "</div>"
    )
    await send_email(recipient=recipient, subject=subject, body=body, html=html)


async def try_send_link_email(**kwargs) -> bool:
    """Like :func:`send_link_email` but logs delivery failures instead of raising."""

    try:
        await send_link_email(**kwargs)
    except EmailServiceError as exc:
        logger.warning(
            "Could not send '%s' to %s: %s",
            kwargs.get("subject"),
            kwargs.get("recipient"),
            exc,
        )
        return False
    return True


__all__ = [
    "EmailServiceError",
    "send_email",
    "send_link_email",
    "try_send_link_email",
    "frontend_link",
]
