from dataclasses import dataclass
from typing import Dict, Optional, Protocol


class PushTokenRegistry(Protocol):
    def get_token(self, user_id: str) -> Optional[str]:
        ...

    def register(self, user_id: str, token: str, device_id: str = "", platform: str = "android") -> None:
        ...


class PushGateway(Protocol):
    def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        """Deliver one push message and return the delivery id; raises PushDeliveryError."""
        ...


@dataclass
class NotificationPreferences:
    user_id: str
    enabled: bool = True
    confirmations: bool = True
    reminders: bool = True
    cancellations: bool = True
    completions: bool = True

    def allows(self, notification_type: str) -> bool:
        if not self.enabled:
            return False
        if notification_type == "CONFIRM":
            return self.confirmations
        if notification_type == "CANCELED":
            return self.cancellations
        if notification_type == "COMPLETED":
            return self.completions
        if notification_type == "REMINDER":
            return self.reminders
        return True


class PreferencesRepository(Protocol):
    def get(self, user_id: str) -> NotificationPreferences:
        ...

    def save(self, preferences: NotificationPreferences) -> NotificationPreferences:
        ...
