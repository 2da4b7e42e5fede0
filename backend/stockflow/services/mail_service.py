# Overview: Outbound email through the Brevo HTTP API or an SMTP relay.

"""
Mailer

Two transports, selected by MAIL_TRANSPORT:
- "brevo": Brevo transactional email API over HTTPS (requests)
- "smtp":  any SMTP relay through Flask-Mail (defaults to smtp-relay.brevo.com)

Both raise MailError on failure. Callers decide whether a failure matters:
the sale pipeline logs and continues, password reset lets it propagate.
"""

from __future__ import annotations

import base64
import smtplib

import requests
from flask import current_app
from flask_mail import BadHeaderError, Message

from ..extensions import mail


TRANSPORT_BREVO = "brevo"
TRANSPORT_SMTP = "smtp"

RECEIPT_SUBJECT = "Your Purchase Receipt - StockFlow ERP"
RESET_SUBJECT = "Password Reset Request"


class MailError(Exception):
    """Raised when an email could not be handed to the provider."""
    pass


def _sender() -> tuple[str, str]:
    cfg = current_app.config
    return cfg["MAIL_SENDER_NAME"], cfg["MAIL_DEFAULT_SENDER"]


def _send_via_brevo(
    to: str,
    subject: str,
    text: str | None,
    html: str | None,
    attachment: bytes | None,
    attachment_name: str,
) -> str | None:
    cfg = current_app.config
    api_key = cfg.get("BREVO_API_KEY")
    if not api_key:
        raise MailError("BREVO_API_KEY is not configured")

    name, email = _sender()
    payload: dict = {
        "sender": {"name": name, "email": email},
        "to": [{"email": to}],
        "subject": subject,
    }
    if text:
        payload["textContent"] = text
    if html:
        payload["htmlContent"] = html
    if attachment:
        payload["attachment"] = [{
            "name": attachment_name,
            "content": base64.b64encode(attachment).decode("ascii"),
        }]

    try:
        response = requests.post(
            cfg["BREVO_API_URL"],
            json=payload,
            headers={
                "api-key": api_key,
                "accept": "application/json",
                "content-type": "application/json",
            },
            timeout=cfg["MAIL_TIMEOUT_SECONDS"],
        )
        response.raise_for_status()
    except requests.RequestException as e:
        raise MailError(f"Brevo API error: {e}") from e

    try:
        return response.json().get("messageId")
    except ValueError:
        return None


def _send_via_smtp(
    to: str,
    subject: str,
    text: str | None,
    html: str | None,
    attachment: bytes | None,
    attachment_name: str,
) -> str | None:
    msg = Message(
        subject=subject,
        recipients=[to],
        body=text,
        html=html,
        sender=_sender(),
    )
    if attachment:
        msg.attach(attachment_name, "application/pdf", attachment)

    try:
        mail.send(msg)
    except BadHeaderError as e:
        raise MailError(f"Rejected mail headers for {to!r}") from e
    except (smtplib.SMTPException, OSError, UnicodeError) as e:
        raise MailError(f"SMTP error: {e}") from e
    return msg.msgId


def send_email(
    to: str,
    subject: str,
    text: str | None = None,
    attachment: bytes | None = None,
    attachment_name: str = "bill.pdf",
    html: str | None = None,
) -> str | None:
    """
    Send one email. Returns the provider message id when known.

    Raises MailError.
    """
    if not to:
        raise MailError("Recipient address is required")

    transport = current_app.config["MAIL_TRANSPORT"]
    if transport == TRANSPORT_BREVO:
        message_id = _send_via_brevo(to, subject, text, html, attachment, attachment_name)
    elif transport == TRANSPORT_SMTP:
        message_id = _send_via_smtp(to, subject, text, html, attachment, attachment_name)
    else:
        raise MailError(f"Unknown MAIL_TRANSPORT {transport!r}")

    current_app.logger.info("Email %r sent to %s via %s", subject, to, transport)
    return message_id


def send_sale_receipt(customer: str, customermail: str, pdf_bytes: bytes) -> str | None:
    body = (
        f"Dear {customer},\n\n"
        "Thank you for your purchase!\n\n"
        "Please find your bill attached to this email.\n\n"
        "If you have any questions, please don't hesitate to contact us.\n\n"
        "Best regards,\n"
        "StockFlow ERP"
    )
    return send_email(customermail, RECEIPT_SUBJECT, body, attachment=pdf_bytes)


def send_password_reset_email(email: str, reset_link: str) -> str | None:
    html = f"""
    <div style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
      <h2 style="color: #007bff;">Password Reset Request</h2>
      <p style="color: #333;">You requested a password reset.</p>
      <p style="color: #333;">Click the button below to reset your password:</p>
      <p style="text-align: center;">
        <a href="{reset_link}" style="background-color: #007bff; color: #fff; padding: 10px 20px; text-decoration: none; border-radius: 5px; display: inline-block;">Reset Password</a>
      </p>
      <p style="color: #333;">If you didn't request this reset, you can ignore this email.</p>
    </div>
    """
    text = f"You requested a password reset. Open this link to choose a new password:\n{reset_link}"
    return send_email(email, RESET_SUBJECT, text, html=html)
