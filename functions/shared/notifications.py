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

from dataclasses import dataclass
from typing import Optional

from shared.constants import (
    FAVORITE_NOTIFICATION_BODY_TEMPLATE,
    FAVORITE_NOTIFICATION_TITLE,
)


@dataclass
class PushNotification:
    """A single push message addressed to one device token."""

    token: str
    title: str
    body: str


def save_count_increase(before: Optional[dict], after: Optional[dict]) -> int:
    """
    Returns how much `saveCount` grew between two brew documents.

    A missing field counts as 0. An empty document is still a document;
    only an absent snapshot (None) yields no increase.
    """
    if before is None or after is None:
        return 0
    return (after.get("saveCount") or 0) - (before.get("saveCount") or 0)


def should_notify(before: Optional[dict], after: Optional[dict]) -> bool:
    return save_count_increase(before, after) > 0


def build_favorite_notification(
    brew_title: str, user_data: Optional[dict]
) -> Optional[PushNotification]:
    """
    Builds the notification for a brew's creator, or None when the creator
    has no push token.
    """
    token = (user_data or {}).get("fcmToken")
    if not token:
        return None
    return PushNotification(
        token=token,
        title=FAVORITE_NOTIFICATION_TITLE,
        body=FAVORITE_NOTIFICATION_BODY_TEMPLATE.format(title=brew_title),
    )
