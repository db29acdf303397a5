"""
Push delivery through Firebase Cloud Messaging, plus an in-memory sender.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from firebase_admin import messaging

from shared.notifications import PushNotification


class PushSender(Protocol):
    def send(self, notification: PushNotification) -> str:
        ...


def to_message(notification: PushNotification) -> messaging.Message:
    return messaging.Message(
        notification=messaging.Notification(
            title=notification.title,
            body=notification.body,
        ),
        token=notification.token,
    )


class FirebasePushSender:
    """Sends one message per call and returns the FCM message id."""

    def __init__(self, app=None):
        self._app = app

    def send(self, notification: PushNotification) -> str:
        return messaging.send(to_message(notification), app=self._app)


@dataclass
class InMemoryPushSender:
    sent: list[PushNotification] = field(default_factory=list)

    def send(self, notification: PushNotification) -> str:
        self.sent.append(notification)
        return f"in-memory/{len(self.sent)}"
