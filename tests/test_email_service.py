"""Tests for the notification email service.

Covers:
- Rupiah formatting
- SMTP transport (success, missing credentials, failure)
- Resend transport (request shape, failure)
- Unknown transport
"""

from unittest.mock import MagicMock, patch

import requests

from storefront.services import email_service
from storefront.services.email_service import format_rupiah


class TestFormatRupiah:

    def test_thousands_separator(self):
        assert format_rupiah(50000) == "Rp 50.000"

    def test_millions(self):
        assert format_rupiah(1250000) == "Rp 1.250.000"

    def test_small_amounts(self):
        assert format_rupiah(500) == "Rp 500"

    def test_none_is_zero(self):
        assert format_rupiah(None) == "Rp 0"

    def test_template_filter_registered(self, app):
        assert app.jinja_env.filters["rupiah"](75000) == "Rp 75.000"


class TestSmtpTransport:

    @patch("storefront.services.email_service.smtplib.SMTP")
    def test_send_email_returns_true(self, mock_smtp, app):
        """Rendered HTML goes out over STARTTLS with the configured login."""
        ok = email_service.send_email(
            to="buyer@example.com",
            subject="Hello",
            template="emails/purchase_invoice.html",
            context={
                "buyer_name": "Budi",
                "buyer_email": "buyer@example.com",
                "product_title": "Python Ebook",
                "amount": "Rp 50.000",
                "download_url": "http://localhost:5000/download/abc",
                "link_ttl_days": 7,
                "support_email": "shop@test.local",
            },
        )
        assert ok is True

        server = mock_smtp.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("shop@test.local", "mail_password_test")
        msg = server.send_message.call_args.args[0]
        assert msg["To"] == "buyer@example.com"
        assert msg["From"] == "Storefront <shop@test.local>"

    @patch("storefront.services.email_service.smtplib.SMTP")
    def test_smtp_failure_returns_false(self, mock_smtp, app):
        mock_smtp.side_effect = OSError("connection refused")
        ok = email_service.send_text_email(
            to="owner@test.local",
            subject="Alert",
            template="emails/sale_alert.txt",
            context={"product_title": "X", "buyer_email": "b@example.com",
                     "amount": "Rp 1", "transaction_id": "t", "sold_at": "now"},
        )
        assert ok is False

    @patch("storefront.services.email_service.smtplib.SMTP")
    def test_missing_credentials_returns_false(self, mock_smtp, app):
        original = app.config["MAIL_PASSWORD"]
        app.config["MAIL_PASSWORD"] = None
        try:
            ok = email_service.send_text_email(
                to="owner@test.local",
                subject="Alert",
                template="emails/sale_alert.txt",
                context={},
            )
        finally:
            app.config["MAIL_PASSWORD"] = original
        assert ok is False
        mock_smtp.assert_not_called()

    def test_missing_template_returns_false(self, app):
        assert email_service.send_email(
            to="a@example.com", subject="x", template="emails/nope.html"
        ) is False


class TestResendTransport:

    @patch("storefront.services.email_service.requests.post")
    def test_posts_to_resend(self, mock_post, app):
        """MAIL_TRANSPORT=resend -> one authenticated POST to the Resend API."""
        mock_post.return_value = MagicMock(status_code=200)
        app.config["MAIL_TRANSPORT"] = "resend"
        try:
            ok = email_service.send_text_email(
                to="owner@test.local",
                subject="New Sale: X",
                template="emails/sale_alert.txt",
                context={"product_title": "X", "buyer_email": "b@example.com",
                         "amount": "Rp 1", "transaction_id": "t", "sold_at": "now"},
            )
        finally:
            app.config["MAIL_TRANSPORT"] = "smtp"
        assert ok is True

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.resend.com/emails"
        assert kwargs["headers"]["Authorization"] == "Bearer re_test_fake"
        assert kwargs["json"]["to"] == ["owner@test.local"]
        assert kwargs["json"]["subject"] == "New Sale: X"
        assert "New product sale" in kwargs["json"]["text"]
        assert "html" not in kwargs["json"]

    @patch("storefront.services.email_service.requests.post")
    def test_resend_error_returns_false(self, mock_post, app):
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError("422")
        mock_post.return_value = resp
        app.config["MAIL_TRANSPORT"] = "resend"
        try:
            ok = email_service.send_text_email(
                to="owner@test.local", subject="x",
                template="emails/sale_alert.txt", context={},
            )
        finally:
            app.config["MAIL_TRANSPORT"] = "smtp"
        assert ok is False


class TestUnknownTransport:

    @patch("storefront.services.email_service.smtplib.SMTP")
    def test_unknown_transport_returns_false(self, mock_smtp, app):
        app.config["MAIL_TRANSPORT"] = "carrier-pigeon"
        try:
            ok = email_service.send_text_email(
                to="owner@test.local", subject="x",
                template="emails/sale_alert.txt", context={},
            )
        finally:
            app.config["MAIL_TRANSPORT"] = "smtp"
        assert ok is False
        mock_smtp.assert_not_called()
