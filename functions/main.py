# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# Cloud functions for the BeanBook backend - favorite notifications and daily
# coffee reminders.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
from datetime import datetime, timezone

# Third-party library imports
from firebase_admin import initialize_app, firestore, messaging
from firebase_functions import logger, scheduler_fn
from firebase_functions.firestore_fn import (
    on_document_updated,
    Event,
    Change,
    DocumentSnapshot,
)

# Local application imports
from backend.messaging import FirebasePushSender, to_message
from backend.notification_manager import NotificationManager
from backend.store import FirestoreDocumentStore
from shared.constants import REMINDER_WINDOW_MINUTES
from shared.firebase_constants import COFFEE_BREWS_COLLECTION, USERS_COLLECTION
from shared.notifications import build_favorite_notification, should_notify

initialize_app()


@on_document_updated(document=COFFEE_BREWS_COLLECTION + "/{brewId}")
def notify_brew_owner_on_favorite(event: Event[Change[DocumentSnapshot]]) -> None:
    """
    Pushes a notification to a brew's creator when its saveCount goes up.
    Triggered by any update to a brew document.

    A failed send is logged and not retried. Redelivered events can send the
    same notification twice.
    """
    if not event.data:
        logger.log("No data in event.")
        return

    before_data = event.data.before.to_dict() if event.data.before else None
    after_data = event.data.after.to_dict() if event.data.after else None
    _notify_creator(before_data, after_data, event.params.get("brewId"))


def _notify_creator(before_data, after_data, brew_id=None) -> None:
    if before_data is None or after_data is None:
        logger.log("Document data is missing or malformed.")
        return

    if not should_notify(before_data, after_data):
        return

    creator_id = after_data.get("creatorId")
    if not creator_id:
        logger.log("Brew has no creatorId:", brew_id)
        return

    db = firestore.client()
    user_doc = db.collection(USERS_COLLECTION).document(creator_id).get()
    if not user_doc.exists:
        logger.log("User not found for creatorId:", creator_id)
        return

    notification = build_favorite_notification(
        after_data.get("title", ""), user_doc.to_dict()
    )
    if notification is None:
        logger.log("User does not have an fcmToken.")
        return

    try:
        messaging.send(to_message(notification))
        logger.log("Notification sent to user:", creator_id)
    except Exception as e:
        logger.error("Error sending FCM:", e)


@scheduler_fn.on_schedule(schedule=f"*/{REMINDER_WINDOW_MINUTES} * * * *")
def send_daily_coffee_reminders(event: scheduler_fn.ScheduledEvent) -> None:
    """
    Runs every REMINDER_WINDOW_MINUTES minutes and reminds every user whose
    reminder time falls in the current window to log their coffee.
    """
    now = datetime.now(timezone.utc)
    manager = NotificationManager(
        FirestoreDocumentStore(firestore.client()), FirebasePushSender()
    )
    sent = manager.send_due_reminders(now)
    logger.info(f"Sent {sent} daily coffee reminders at {now:%H:%M}")
