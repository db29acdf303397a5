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

"""
Aggregation behind the profile's brew calendar: one cell per day, rows by
weekday (Monday first) and one column per week.
"""

from collections import Counter
from datetime import date, datetime
from typing import Iterable, List

from shared.types import CoffeeBrew


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def weekday_index(value) -> int:
    """Monday is 1, Sunday is 7."""
    return _as_date(value).isoweekday()


def daily_brew_counts(brews: Iterable[CoffeeBrew]) -> dict[date, int]:
    return dict(Counter(_as_date(brew.created_at) for brew in brews))


def weeks_spanned(brews: List[CoffeeBrew]) -> int:
    """
    Number of calendar weeks between the earliest and latest brew, inclusive.
    An empty list spans one week so the calendar still renders a column.
    """
    if not brews:
        return 1
    days = sorted(_as_date(brew.created_at) for brew in brews)
    first_monday = days[0].toordinal() - (days[0].isoweekday() - 1)
    last_monday = days[-1].toordinal() - (days[-1].isoweekday() - 1)
    return (last_monday - first_monday) // 7 + 1


def aspect_ratio(brews: List[CoffeeBrew]) -> float:
    if not brews:
        return 1.0
    return weeks_spanned(brews) / 7
