from fastapi import APIRouter, Depends
import logging

from ..application.ports.policy import Actor
from ..application.ports.push import NotificationPreferences
from ..container import Services
from ..schemas.common.common import MessageResponse
from ..schemas.notifications.notification import (
    NotificationPreferencesSchema,
    NotificationPreferencesUpdate,
    PushTokenRequest,
)
from .deps import get_current_actor, get_services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Notifications"])


def _to_schema(prefs: NotificationPreferences) -> NotificationPreferencesSchema:
    return NotificationPreferencesSchema(
        enabled=prefs.enabled,
        confirmations=prefs.confirmations,
        reminders=prefs.reminders,
        cancellations=prefs.cancellations,
        completions=prefs.completions,
    )


@router.put("/push-tokens", response_model=MessageResponse)
def register_push_token(
    body: PushTokenRequest,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    services.tokens.register(actor.user_id, body.token, body.device_id, body.platform)
    logger.info(f"Registered push token for {actor.role} {actor.user_id} ({body.platform})")
    return MessageResponse(message="Push token registered")


@router.get("/notifications/preferences", response_model=NotificationPreferencesSchema)
def get_preferences(
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    return _to_schema(services.preferences.get(actor.user_id))


@router.put("/notifications/preferences", response_model=NotificationPreferencesSchema)
def update_preferences(
    body: NotificationPreferencesUpdate,
    actor: Actor = Depends(get_current_actor),
    services: Services = Depends(get_services),
):
    prefs = services.preferences.get(actor.user_id)
    for name, value in body.model_dump(exclude_none=True).items():
        setattr(prefs, name, value)
    return _to_schema(services.preferences.save(prefs))
