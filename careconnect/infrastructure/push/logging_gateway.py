import json
import logging
import uuid
from typing import Dict

from ...application.ports.push import PushGateway


class LoggingPushGateway(PushGateway):
    """Development gateway: records the push instead of delivering it."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        delivery_id = f"log-{uuid.uuid4()}"
        entry = {
            "delivery_id": delivery_id,
            "token_suffix": token[-6:],
            "title": title,
            "body": body,
            "data": data,
        }
        self._logger.info(f"PUSH: {json.dumps(entry)}")
        return delivery_id
