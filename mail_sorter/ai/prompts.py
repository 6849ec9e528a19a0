"""
Email classification prompt.

The model must answer with a single JSON object:
category, action, folder and confidence.
"""

CATEGORIES = ["Orders", "Hotels and Travel", "Advertisement", "Bills", "Personal", "Tech"]

DEFAULT_CATEGORY = "Advertisement"

ACTIONS = ["move", "mark_read", "archive", "ignore"]

DEFAULT_ACTION = "ignore"


CLASSIFICATION_PROMPT = """You are a French email classifier. Return ONLY strict JSON:

{{
  "category": "ONE_VALUE_AMONG: {category_list}",
  "action": "move",
  "folder": "SAME_VALUE_AS_CATEGORY",
  "confidence": 0.85
}}

Strict rules - return EXACTLY ONE category:
- "Orders" = Amazon, e-commerce, purchase confirmations, deliveries
- "Hotels and Travel" = Booking, SNCF, airlines, Airbnb, travel
- "Advertisement" = Commercial newsletters, promotions, marketing, offers
- "Bills" = Bank, EDF, taxes, insurance, invoices, payments
- "Personal" = Friends, family, non-commercial personal emails
- "Tech" = GitHub, Stack Overflow, tech training, IT news, Azure, development

Reply ONLY the JSON, NO text before/after.

Email:
From: {sender}
Subject: {subject}
Content: {content}"""


def build_classification_prompt(sender: str, subject: str, content: str) -> str:
    """Fill the classification prompt for one email."""
    return CLASSIFICATION_PROMPT.format(
        category_list="|".join(CATEGORIES),
        sender=sender,
        subject=subject,
        content=content,
    )
