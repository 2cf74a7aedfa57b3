"""
Categories Module

Keyword-based classification of expense descriptions.

Functions:
    classify_expense: Pick a category for a free-text description.
"""

import re

# Checked in declaration order; first match wins
EXPENSE_CATEGORIES = {
    "Food & Dining": ["food", "restaurant", "dinner", "lunch", "breakfast", "cafe", "pizza", "swiggy", "zomato", "coffee"],
    "Groceries": ["grocery", "market", "vegetables", "fruits", "milk", "eggs"],
    "Travel": ["flight", "train", "bus", "taxi", "uber", "ola", "hotel", "airbnb", "travel", "trip"],
    "Utilities": ["bill", "electricity", "water", "internet", "rent", "gas", "phone", "recharge"],
    "Entertainment": ["movie", "concert", "tickets", "show", "game", "party", "netflix", "spotify"],
    "Shopping": ["clothes", "electronics", "mall", "amazon", "flipkart", "shopping", "apparel"],
    "Health & Wellness": ["doctor", "pharmacy", "medicine", "gym", "hospital", "wellness"],
    "Other": [],
}

CATEGORY_LIST = list(EXPENSE_CATEGORIES)

DEFAULT_CATEGORY = "Other"

_PATTERNS = {
    category: [re.compile(rf"\b{re.escape(keyword)}\b") for keyword in keywords]
    for category, keywords in EXPENSE_CATEGORIES.items()
}


def classify_expense(description: str) -> str:
    """
    Classify an expense description into a category.

    Keywords match whole words only, so "rental" does not count as "rent".

    Args:
        description: Free-text expense description.

    Returns:
        str: The first matching category, or "Other".
    """
    if not description:
        return DEFAULT_CATEGORY

    text = description.lower()
    for category, patterns in _PATTERNS.items():
        if any(pattern.search(text) for pattern in patterns):
            return category

    return DEFAULT_CATEGORY
