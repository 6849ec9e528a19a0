"""Outlook Mail Sorter - AI classification and filing of Outlook.com inbox emails."""

__version__ = "1.0.0"
