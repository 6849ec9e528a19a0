"""
Tests for email body normalization.
"""

from unittest.mock import patch

from mail_sorter.inbox.body import (
    MAX_HTML_INPUT_LENGTH,
    MAX_TEXT_LENGTH,
    clean_text,
    email_to_text,
    html_to_text,
    normalize_body,
)
from mail_sorter.inbox.models import EmailBody
from tests.factories import GraphAPITestFactory


class TestNormalizeBody:
    """Plain text, HTML and preview fallback."""

    def test_missing_body_returns_preview(self):
        assert normalize_body(None, "Preview text") == "Preview text"

    def test_empty_content_returns_preview(self):
        assert normalize_body(EmailBody("html", ""), "Preview text") == "Preview text"

    def test_missing_body_and_preview_returns_empty_string(self):
        assert normalize_body(None, None) == ""

    def test_plain_text_is_truncated_verbatim(self):
        content = "line one\n\n\n\nline two " + "x" * 3000
        result = normalize_body(EmailBody("text", content), "preview")

        assert len(result) == MAX_TEXT_LENGTH
        assert result.startswith("line one\n\n\n\nline two")

    def test_html_strips_tags_and_collapses_whitespace(self):
        html = """
        <html><head><style>p {color: red}</style><title>ignored</title></head>
        <body>
          <script>alert('x')</script>
          <p>Your   order</p>
          <div>has shipped<br>today</div>
          <img src="logo.png" alt="logo">
        </body></html>
        """
        result = normalize_body(EmailBody("html", html), "preview")

        assert result == "Your order has shipped today"

    def test_html_content_type_is_case_insensitive(self):
        result = normalize_body(EmailBody("HTML", "<p>Hello</p>"), "preview")

        assert result == "Hello"

    def test_html_output_is_bounded(self):
        html = "<p>" + "word " * 2000 + "</p>"
        result = normalize_body(EmailBody("html", html), "preview")

        assert len(result) <= MAX_TEXT_LENGTH

    def test_conversion_failure_falls_back_to_preview(self):
        with patch("mail_sorter.inbox.body.html_to_text", side_effect=RuntimeError("boom")):
            result = normalize_body(EmailBody("html", "<p>x</p>"), "Preview text", "AAMk-12345678")

        assert result == "Preview text"

    def test_email_to_text_uses_snapshot_fields(self):
        email = GraphAPITestFactory.create_email(content="<p>Invoice attached</p>")

        assert email_to_text(email) == "Invoice attached"


class TestHtmlToText:
    """Markup stripping details."""

    def test_oversized_input_is_cut_before_parsing(self):
        html = "<p>start</p>" + "<p>" + "a" * (MAX_HTML_INPUT_LENGTH * 2) + "</p><p>TAIL</p>"

        assert "TAIL" not in html_to_text(html)

    def test_entities_are_decoded(self):
        assert clean_text(html_to_text("<p>Prix &amp; livraison&nbsp;offerte</p>")) == "Prix & livraison offerte"


class TestCleanText:
    def test_collapses_runs(self):
        assert clean_text("  a \n\n\n\n b\t\tc  ") == "a b c"

    def test_empty(self):
        assert clean_text("") == ""
