from typing import Callable, Optional
import logging
import time

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..application.ports.policy import Actor
from ..container import Services, build_services
from ..core.config import get_settings
from ..database import get_session, session_scope
from ..exceptions import PermissionDenied
from ..infrastructure.auth.jwt_provider import JwtAuthProvider
from ..infrastructure.policy.role_policy import RolePolicyEngine

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)

_policy = RolePolicyEngine()

TriggerDispatch = Callable[[str], None]


def get_auth_provider(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme)) -> JwtAuthProvider:
    token = None
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        # Fallback to cookie
        token = request.cookies.get("access_token")
    return JwtAuthProvider(token)


def get_current_actor(auth: JwtAuthProvider = Depends(get_auth_provider)) -> Actor:
    user_id = auth.current_user_id()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return Actor(user_id=user_id, role=auth.current_role() or "patient")


def get_services(session: Session = Depends(get_session)) -> Services:
    return build_services(session)


def authorize(actor: Actor, action: str, resource) -> None:
    if not _policy.authorize(actor, action, resource):
        logger.warning(f"{actor.role} {actor.user_id} denied {action}")
        raise PermissionDenied("You are not allowed to perform this action")


def dispatch_appointment_triggers(appointment_id: str) -> None:
    """Best-effort delivery of an appointment's fresh triggers; the poller catches anything left."""
    settings = get_settings()
    try:
        with session_scope() as session:
            services = build_services(session)
            for trigger in services.triggers.list_for_appointment(appointment_id):
                if trigger.processed:
                    continue
                deadline = time.monotonic() + settings.DISPATCH_TIMEOUT_SECONDS
                services.dispatcher.process(trigger.id, deadline=deadline)
    except Exception:
        logger.exception(f"Background dispatch for appointment {appointment_id} failed")


def get_trigger_dispatch() -> TriggerDispatch:
    return dispatch_appointment_triggers
