"""
Settings Module

Environment-driven configuration for the group expense splitter.

Values are read once at import time, after loading a local .env file if one
is present.

Keys:
    FIREBASE_CREDENTIALS: path to a service-account JSON file (optional)
    FIREBASE_PROJECT_ID: Firestore project ID (optional)
    LOG_LEVEL: logging level name (default: INFO)
    CURRENCY_SYMBOL: display symbol for amounts (default: ₹)
    CURRENCY_CODE: ISO currency code (default: INR)
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Firebase
    FIREBASE_CREDENTIALS = os.environ.get("FIREBASE_CREDENTIALS")
    FIREBASE_PROJECT_ID = os.environ.get("FIREBASE_PROJECT_ID")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Display
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "₹")
    CURRENCY_CODE = os.environ.get("CURRENCY_CODE", "INR")


settings = Settings()
