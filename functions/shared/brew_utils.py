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

"""Formatting for the brew form's numeric inputs."""

import re

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def format_brew_time(seconds: int) -> str:
    return f"{int(seconds)}s"


def format_coffee_amount(grams: float) -> str:
    return f"{grams:.1f}g"


def format_water_amount(grams: float) -> str:
    return f"{int(grams)}g"


def parse_amount(value: str | None, default: float = 0.0) -> float:
    """
    Reads the leading number back out of a stored amount such as "18.0g" or
    "150s". Returns `default` when no number is present.
    """
    if not value:
        return default
    match = _NUMBER.search(value)
    if not match:
        return default
    return float(match.group(0))
