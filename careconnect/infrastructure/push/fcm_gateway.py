from typing import Dict, Optional
import logging

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from ...core.config import settings
from ...application.ports.push import PushGateway
from ...exceptions import PushDeliveryError

logger = logging.getLogger(__name__)


def _init_firebase_app() -> Optional["firebase_admin.App"]:
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return list(firebase_admin._apps.values())[0]
    if not settings.firebase_configured:
        logger.warning("Firebase credentials are not configured; skipping initialization")
        return None
    cred = credentials.Certificate({
        "type": "service_account",
        "project_id": settings.FIREBASE_PROJECT_ID,
        "private_key_id": "dummy",
        "private_key": settings.FIREBASE_PRIVATE_KEY,
        "client_email": settings.FIREBASE_CLIENT_EMAIL,
        "client_id": "dummy",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
        "client_x509_cert_url": f"https://www.googleapis.com/robot/v1/metadata/x509/{settings.FIREBASE_CLIENT_EMAIL}",
    })
    app = firebase_admin.initialize_app(cred, {
        "projectId": settings.FIREBASE_PROJECT_ID,
        # Per-request timeout so one stuck recipient cannot stall a batch
        "httpTimeout": settings.PUSH_HTTP_TIMEOUT_SECONDS,
    })
    logger.info("Firebase app initialized")
    return app


class FcmPushGateway(PushGateway):
    """Sends push notifications through Firebase Cloud Messaging."""

    def __init__(self, app: Optional["firebase_admin.App"] = None) -> None:
        self._app = app or _init_firebase_app()
        if self._app is None:
            raise RuntimeError("Firebase is not configured")

    def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data={k: str(v) for k, v in data.items()},
        )
        try:
            return messaging.send(message, app=self._app)
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError, firebase_exceptions.InvalidArgumentError) as e:
            raise PushDeliveryError(f"token rejected: {e}", permanent=True) from e
        except firebase_exceptions.FirebaseError as e:
            raise PushDeliveryError(f"FCM send failed: {e}") from e
