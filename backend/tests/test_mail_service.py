# Overview: Pytest coverage for the Brevo and SMTP mail transports.

import base64

import pytest
import requests

from stockflow.extensions import mail
from stockflow.services import mail_service
from stockflow.services.mail_service import MailError, RECEIPT_SUBJECT, send_email, send_sale_receipt


class _FakeResponse:
    def __init__(self, status_code=201, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {"messageId": "<abc@smtp-relay.brevo.com>"}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        return self._payload


@pytest.fixture
def brevo(app, monkeypatch):
    monkeypatch.setitem(app.config, "MAIL_TRANSPORT", "brevo")
    monkeypatch.setitem(app.config, "BREVO_API_KEY", "xkeysib-test")
    sent = []

    def _fake_post(url, json=None, headers=None, timeout=None):
        sent.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return _FakeResponse()

    monkeypatch.setattr(mail_service.requests, "post", _fake_post)
    return sent


class TestBrevoTransport:

    def test_receipt_payload(self, app, brevo):
        message_id = send_sale_receipt("Asha Rao", "asha@example.com", b"%PDF-bytes")

        assert message_id == "<abc@smtp-relay.brevo.com>"
        request = brevo[0]
        assert request["url"] == app.config["BREVO_API_URL"]
        assert request["headers"]["api-key"] == "xkeysib-test"
        body = request["json"]
        assert body["to"] == [{"email": "asha@example.com"}]
        assert body["subject"] == RECEIPT_SUBJECT
        assert body["sender"] == {"name": "StockFlow ERP", "email": "billing@stockflow.test"}
        assert "Dear Asha Rao" in body["textContent"]
        assert body["attachment"] == [{
            "name": "bill.pdf",
            "content": base64.b64encode(b"%PDF-bytes").decode("ascii"),
        }]

    def test_http_error_becomes_mail_error(self, app, brevo, monkeypatch):
        monkeypatch.setattr(mail_service.requests, "post", lambda *a, **kw: _FakeResponse(status_code=401))
        with pytest.raises(MailError, match="Brevo API error"):
            send_email("asha@example.com", "Hello", "text")

    def test_missing_api_key(self, app, brevo, monkeypatch):
        monkeypatch.setitem(app.config, "BREVO_API_KEY", None)
        with pytest.raises(MailError, match="BREVO_API_KEY"):
            send_email("asha@example.com", "Hello", "text")


class TestSmtpTransport:

    def test_message_recorded_with_attachment(self, app):
        with mail.record_messages() as outbox:
            send_email("asha@example.com", "Hello", "plain text", attachment=b"%PDF", attachment_name="invoice.pdf")

        assert len(outbox) == 1
        message = outbox[0]
        assert message.recipients == ["asha@example.com"]
        assert message.body == "plain text"
        assert message.attachments[0].filename == "invoice.pdf"
        assert message.attachments[0].data == b"%PDF"

    def test_header_injection_becomes_mail_error(self, app):
        with mail.record_messages() as outbox:
            with pytest.raises(MailError, match="Rejected mail headers"):
                send_email("asha@example.com\nBcc: spy@example.com", "Hello", "text")

        assert outbox == []


class TestGuards:

    def test_recipient_required(self, app):
        with pytest.raises(MailError, match="Recipient"):
            send_email("", "Hello", "text")

    def test_unknown_transport(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "MAIL_TRANSPORT", "pigeon")
        with pytest.raises(MailError, match="Unknown MAIL_TRANSPORT"):
            send_email("asha@example.com", "Hello", "text")
