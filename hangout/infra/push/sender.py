"""Push notification sender via FCM (Firebase Cloud Messaging)."""
import logging
import os
from typing import Any

import firebase_admin
from firebase_admin import credentials, messaging
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.infra.db.repositories.device_repo import DeviceRepository
from hangout.settings import settings

logger = logging.getLogger(__name__)

_firebase_app = None


def _get_firebase_app():
    """Lazy-init Firebase default app. Returns None if push disabled or no credentials."""
    global _firebase_app
    if _firebase_app is not None:
        return _firebase_app
    if not settings.push_enabled:
        return None
    cred_path = settings.google_application_credentials or os.environ.get(
        "GOOGLE_APPLICATION_CREDENTIALS", ""
    )
    if not cred_path:
        logger.debug("Push disabled: no GOOGLE_APPLICATION_CREDENTIALS")
        return None
    try:
        _firebase_app = firebase_admin.initialize_app(credentials.Certificate(cred_path))
    except (ValueError, OSError) as e:
        logger.warning("Firebase init failed (push disabled): %s", e)
        return None
    return _firebase_app


async def send_push_to_user(
    session: AsyncSession,
    user_id: str,
    title: str,
    body: str,
    data: dict[str, Any],
) -> int:
    """Send a push to every device of the user. Returns the number of devices reached.

    FCM data values must be strings, so data is stringified.
    """
    app = _get_firebase_app()
    if app is None:
        return 0
    tokens_rows = await DeviceRepository(session).list_tokens_by_user(user_id)
    if not tokens_rows:
        logger.debug("No push tokens for user %s", user_id)
        return 0
    data_str = {k: str(v) for k, v in data.items()}
    sent = 0
    for push_token, _platform in tokens_rows:
        try:
            messaging.send(
                messaging.Message(
                    notification=messaging.Notification(title=title, body=body),
                    data=data_str,
                    token=push_token,
                ),
                app=app,
            )
            sent += 1
        except Exception as e:
            logger.warning("Push send failed for token %s...: %s", push_token[:20], e)
    return sent
