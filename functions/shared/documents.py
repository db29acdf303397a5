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
Conversion between record dataclasses and Firestore documents.

Documents use camelCase keys. Optional fields that are None are omitted so
merge writes never clear fields the caller did not set.
"""

from dataclasses import asdict
from typing import Optional, Type, TypeVar

from dacite import Config, from_dict

from shared.json_utils import convert_keys
from shared.types import CoffeeBag

T = TypeVar("T")

# Per-type renames from the camelCase attribute name to the stored field name.
_FIELD_ALIASES = {
    CoffeeBag: {"createdAt": "dateAdded"},
}


def to_document(record) -> dict:
    data = {k: v for k, v in asdict(record).items() if v is not None}
    data.pop("id", None)
    doc = convert_keys(data, "snake_to_camel")
    for attr_name, field_name in _FIELD_ALIASES.get(type(record), {}).items():
        if attr_name in doc:
            doc[field_name] = doc.pop(attr_name)
    return doc


def from_document(data_class: Type[T], data: dict, doc_id: Optional[str] = None) -> T:
    doc = dict(data)
    for attr_name, field_name in _FIELD_ALIASES.get(data_class, {}).items():
        if field_name in doc:
            doc[attr_name] = doc.pop(field_name)
    # Explicit nulls in the store fall back to the dataclass defaults.
    doc = {k: v for k, v in doc.items() if v is not None}
    fields = convert_keys(doc, "camel_to_snake")
    if doc_id is not None and "id" in data_class.__dataclass_fields__:
        fields["id"] = doc_id
    return from_dict(
        data_class=data_class,
        data=fields,
        config=Config(check_types=False),
    )
