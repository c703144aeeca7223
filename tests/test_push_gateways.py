import logging

import pytest
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from careconnect.exceptions import PushDeliveryError
from careconnect.infrastructure.push import fcm_gateway
from careconnect.infrastructure.push.fcm_gateway import FcmPushGateway
from careconnect.infrastructure.push.logging_gateway import LoggingPushGateway

DATA = {"type": "CONFIRM", "appointmentId": "a1"}


def _gateway_raising(monkeypatch, error):
    def fake_send(message, app=None):
        if error is not None:
            raise error
        assert message.token == "tok-1"
        assert message.data == DATA
        return "projects/demo/messages/1"

    monkeypatch.setattr(fcm_gateway.messaging, "send", fake_send)
    return FcmPushGateway(app=object())


def test_fcm_send_returns_message_id(monkeypatch):
    gateway = _gateway_raising(monkeypatch, None)
    assert gateway.send("tok-1", "Title", "Body", DATA) == "projects/demo/messages/1"


def test_fcm_rejected_token_is_permanent(monkeypatch):
    gateway = _gateway_raising(monkeypatch, messaging.UnregisteredError("token not registered"))
    with pytest.raises(PushDeliveryError) as exc:
        gateway.send("tok-1", "Title", "Body", DATA)
    assert exc.value.permanent


def test_fcm_outage_is_transient(monkeypatch):
    gateway = _gateway_raising(monkeypatch, firebase_exceptions.UnavailableError("backend down"))
    with pytest.raises(PushDeliveryError) as exc:
        gateway.send("tok-1", "Title", "Body", DATA)
    assert not exc.value.permanent


def test_logging_gateway_records_push(caplog):
    with caplog.at_level(logging.INFO):
        delivery_id = LoggingPushGateway().send("abcdef-token", "Title", "Body", DATA)
    assert delivery_id.startswith("log-")
    assert "PUSH:" in caplog.text
    assert "abcdef-token" not in caplog.text
