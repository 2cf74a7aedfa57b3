"""
Firebase Config Module

Lazily initialises the Firebase Admin SDK and hands out a Firestore client.

Functions:
    get_db: Return the shared Firestore client, or None if Firebase cannot
            be initialised (missing credentials, offline development).
"""

import logging

import firebase_admin
from firebase_admin import credentials, firestore
from google.auth.exceptions import DefaultCredentialsError

from config.settings import settings

logger = logging.getLogger("groupsplit.firebase")

_db = None


def _initialize_app() -> None:
    """Initialise the default Firebase app once."""
    if firebase_admin._apps:
        return

    options = {}
    if settings.FIREBASE_PROJECT_ID:
        options["projectId"] = settings.FIREBASE_PROJECT_ID

    if settings.FIREBASE_CREDENTIALS:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS)
    else:
        # Falls back to GOOGLE_APPLICATION_CREDENTIALS / metadata server
        cred = credentials.ApplicationDefault()

    firebase_admin.initialize_app(cred, options or None)


def get_db():
    """
    Get the Firestore client.

    Returns:
        google.cloud.firestore.Client | None: The client, or None when
        Firebase could not be initialised.
    """
    global _db
    if _db is not None:
        return _db

    try:
        _initialize_app()
        _db = firestore.client()
    except (ValueError, OSError, DefaultCredentialsError) as e:
        logger.warning("Firestore unavailable: %s", e)
        return None

    return _db
