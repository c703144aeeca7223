from datetime import datetime
from typing import Optional
from sqlmodel import Session, select

from .....db.models import PushToken
from .....application.ports.push import PushTokenRegistry


class SqlPushTokenRegistry(PushTokenRegistry):
    def __init__(self, session: Session):
        self.session = session

    def get_token(self, user_id: str) -> Optional[str]:
        row = self.session.exec(select(PushToken).where(PushToken.user_id == user_id)).first()
        return row.token if row and row.token else None

    def register(self, user_id: str, token: str, device_id: str = "", platform: str = "android") -> None:
        try:
            row = self.session.exec(select(PushToken).where(PushToken.user_id == user_id)).first()
            if row is None:
                row = PushToken(user_id=user_id, token=token)
            row.token = token
            row.device_id = device_id
            row.platform = platform
            row.updated_at = datetime.utcnow()
            self.session.add(row)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
