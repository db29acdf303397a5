"""
Daily "log your coffee" reminders.

A user's preference lives on their profile document as `reminder`
({hour, minute}, UTC). The scheduled function runs every
REMINDER_WINDOW_MINUTES minutes and calls `send_due_reminders`, which pushes
the reminder to everyone whose time falls in the current window.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from backend.auth_manager import AuthManager
from backend.messaging import PushSender
from backend.store import DocumentStore
from shared.constants import (
    DAILY_REMINDER_BODY,
    DAILY_REMINDER_TITLE,
    DEFAULT_REMINDER_HOUR,
    DEFAULT_REMINDER_MINUTE,
    REMINDER_WINDOW_MINUTES,
)
from shared.firebase_constants import USERS_COLLECTION
from shared.notifications import PushNotification
from shared.types import ReminderPreference

logger = logging.getLogger(__name__)


class NotificationManager:
    def __init__(
        self,
        store: DocumentStore,
        sender: Optional[PushSender] = None,
        auth_manager: Optional[AuthManager] = None,
    ):
        self._store = store
        self._sender = sender
        self._auth_manager = auth_manager

    def _uid(self) -> Optional[str]:
        return self._auth_manager.current_uid if self._auth_manager else None

    def schedule_daily_coffee_reminder(
        self, hour: int = DEFAULT_REMINDER_HOUR, minute: int = DEFAULT_REMINDER_MINUTE
    ) -> Optional[ReminderPreference]:
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {hour}")
        if not 0 <= minute <= 59:
            raise ValueError(f"minute must be between 0 and 59, got {minute}")
        uid = self._uid()
        if not uid:
            return None
        reminder = ReminderPreference(hour=hour, minute=minute)
        try:
            self._store.set(
                USERS_COLLECTION,
                uid,
                {"reminder": {"hour": hour, "minute": minute}},
                merge=True,
            )
        except Exception as e:
            logger.error(f"Error scheduling daily coffee reminder: {e}")
            return None
        logger.info("Scheduled daily coffee reminder at %d:%02d for %s", hour, minute, uid)
        return reminder

    def cancel_daily_coffee_reminder(self) -> None:
        uid = self._uid()
        if not uid:
            return
        try:
            self._store.set(USERS_COLLECTION, uid, {"reminder": None}, merge=True)
        except Exception as e:
            logger.error(f"Error cancelling daily coffee reminder: {e}")

    def is_reminder_scheduled(self) -> bool:
        uid = self._uid()
        if not uid:
            return False
        data = self._store.get(USERS_COLLECTION, uid) or {}
        return bool(data.get("reminder"))

    def send_due_reminders(self, now: datetime) -> int:
        """
        Sends the reminder to every user whose reminder time falls in the
        window that starts at `now`, rounded down to REMINDER_WINDOW_MINUTES.

        Users without a push token and soft-deleted users are skipped. A
        failed send is logged and does not stop the rest. Returns the number
        of reminders sent.
        """
        if self._sender is None:
            raise RuntimeError("No push sender configured")
        users = self._store.query(
            USERS_COLLECTION, filters=[("reminder.hour", "==", now.hour)]
        )
        window_start = now.minute - now.minute % REMINDER_WINDOW_MINUTES
        sent = 0
        for uid, data in users:
            minute = (data.get("reminder") or {}).get("minute") or 0
            if not window_start <= minute < window_start + REMINDER_WINDOW_MINUTES:
                continue
            token = data.get("fcmToken")
            if not token or data.get("isDeleted"):
                continue
            notification = PushNotification(
                token=token, title=DAILY_REMINDER_TITLE, body=DAILY_REMINDER_BODY
            )
            try:
                self._sender.send(notification)
                sent += 1
            except Exception as e:
                logger.error(f"Error sending daily reminder to {uid}: {e}")
        return sent
