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

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, List, Optional


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BrewMethod(StrEnum):
    ESPRESSO = "espresso"
    POUR_OVER = "pourOver"
    FRENCH_PRESS = "frenchPress"
    COLD_BREW = "coldBrew"

    @property
    def label(self) -> str:
        """The stored form, e.g. "Pourover"."""
        return self.value.capitalize()


class GrindSize(StrEnum):
    FINE = "fine"
    MEDIUM = "medium"
    COARSE = "coarse"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class RoastLevel(StrEnum):
    LIGHT = "light"
    MEDIUM = "medium"
    DARK = "dark"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass
class ReminderPreference:
    """Hour and minute (UTC) at which the daily reminder is sent."""

    hour: int
    minute: int = 0


@dataclass
class UserProfile:
    """The document stored at users/{uid}."""

    email: str = ""
    display_name: Optional[str] = ""
    photo_url: Optional[str] = ""
    bio: Optional[str] = ""
    created_at: Any = field(default_factory=_utc_now)
    updated_at: Any = None
    favorites: List[str] = field(default_factory=list)
    fcm_token: Optional[str] = None
    is_deleted: bool = False
    reminder: Optional[ReminderPreference] = None


@dataclass
class CoffeeBrew:
    """A user-logged coffee preparation, stored in coffeeBrews."""

    title: str
    method: str
    coffee_amount: str
    water_amount: str
    brew_time: str
    grind_size: str
    creator_id: str
    creator_name: Optional[str] = None
    created_at: Any = field(default_factory=_utc_now)
    notes: Optional[str] = None
    image_url: Optional[str] = None
    save_count: int = 0
    bag_id: Optional[str] = None
    # Document id; never written as a field.
    id: Optional[str] = None


@dataclass
class CoffeeBag:
    """A user-logged coffee product, stored in coffeeBags."""

    brand_name: str
    roast_level: str
    origin: str
    location: Optional[str] = ""
    user_id: str = ""
    user_name: str = ""
    image_url: Optional[str] = None
    created_at: Any = field(default_factory=_utc_now)
    id: Optional[str] = None
