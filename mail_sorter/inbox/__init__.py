"""
Inbox Module

Message and folder snapshots plus body normalization:
- Email / EmailBody / Folder built from Graph payloads
- HTML to plain-text conversion for classification
"""

from .body import email_to_text, normalize_body
from .models import Email, EmailBody, Folder

__all__ = [
    "Email",
    "EmailBody",
    "Folder",
    "email_to_text",
    "normalize_body",
]
