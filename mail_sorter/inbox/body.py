"""
Email body normalization.

Turns a Graph message body (HTML or plain text) into bounded plain text
for the classifier.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from .models import Email, EmailBody


logger = logging.getLogger(__name__)


MAX_TEXT_LENGTH = 2000
MAX_HTML_INPUT_LENGTH = 16384  # ~16KB, very long newsletters are cut before parsing

# Elements that carry nothing useful for classification
SKIPPED_TAGS = ["img", "style", "script", "meta", "head"]

# Elements that end a line of text
BLOCK_TAGS = [
    "p", "div", "li", "tr", "table", "section", "article", "blockquote",
    "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "pre", "hr",
]


def html_to_text(html: str) -> str:
    """
    Strip markup from an HTML body.

    Drops images, styles, scripts, meta and head; keeps link text but not
    the href targets.

    Args:
        html: Raw HTML content

    Returns:
        Plain text with block elements on their own lines
    """
    soup = BeautifulSoup(html[:MAX_HTML_INPUT_LENGTH], "html.parser")

    for tag in soup.find_all(SKIPPED_TAGS):
        # Children of an already removed <head>
        if not tag.decomposed:
            tag.decompose()

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for tag in soup.find_all(BLOCK_TAGS):
        tag.insert_after("\n")

    return soup.get_text()


def clean_text(text: str) -> str:
    """Collapse blank lines and whitespace runs, then trim."""
    text = re.sub(r"\n\s*\n\s*\n", "\n\n", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def normalize_body(body: Optional[EmailBody], preview: Optional[str], email_id: str = "") -> str:
    """
    Convert a message body to plain text of at most MAX_TEXT_LENGTH characters.

    Args:
        body: Message body (None or empty content falls back to preview)
        preview: Graph bodyPreview, returned verbatim when there is no body
        email_id: Message id, only used in log lines

    Returns:
        Plain text (empty string at minimum)
    """
    preview = preview or ""

    if body is None or not body.content:
        return preview

    if not body.is_html:
        return body.content[:MAX_TEXT_LENGTH]

    try:
        return clean_text(html_to_text(body.content))[:MAX_TEXT_LENGTH]
    except Exception as e:
        logger.warning(f"Error converting HTML->text for {email_id[-8:]}, using preview: {e}")
        return preview


def email_to_text(email: Email) -> str:
    """Normalized body text for an Email snapshot."""
    return normalize_body(email.body, email.preview, email.id)
