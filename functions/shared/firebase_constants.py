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

# Firestore collection names.
USERS_COLLECTION = "users"
COFFEE_BREWS_COLLECTION = "coffeeBrews"
COFFEE_BAGS_COLLECTION = "coffeeBags"

# Cloud Storage folders.
USER_UPLOADS_FOLDER = "users"
STOCK_PROFILE_PICTURES_FOLDER = "stock_profile_pictures"
