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

import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Keys whose camelCase form is not a plain title-casing of the snake_case one.
_SNAKE_TO_CAMEL_OVERRIDES = {
    "photo_url": "photoURL",
    "image_url": "imageURL",
}
_CAMEL_TO_SNAKE_OVERRIDES = {v: k for k, v in _SNAKE_TO_CAMEL_OVERRIDES.items()}


def snake_to_camel(key: str) -> str:
    if key in _SNAKE_TO_CAMEL_OVERRIDES:
        return _SNAKE_TO_CAMEL_OVERRIDES[key]
    first, *rest = key.split("_")
    return first + "".join(part[:1].upper() + part[1:] for part in rest)


def camel_to_snake(key: str) -> str:
    if key in _CAMEL_TO_SNAKE_OVERRIDES:
        return _CAMEL_TO_SNAKE_OVERRIDES[key]
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def convert_keys(data: Any, mode: str) -> Any:
    """
    Recursively converts dictionary keys between snake_case and camelCase.

    Args:
        data: A dict, list, or scalar value.
        mode: Either "snake_to_camel" or "camel_to_snake".

    Returns:
        A copy of `data` with converted keys. Values that are not dicts or
        lists are returned as-is, so Firestore sentinels and timestamps pass
        through untouched.
    """
    if mode == "snake_to_camel":
        convert = snake_to_camel
    elif mode == "camel_to_snake":
        convert = camel_to_snake
    else:
        raise ValueError(f"Unknown conversion mode: {mode}")

    if isinstance(data, dict):
        return {convert(k): convert_keys(v, mode) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, mode) for item in data]
    return data
