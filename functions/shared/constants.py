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

# Favorite notifications
FAVORITE_NOTIFICATION_TITLE = "Someone favorited your brew!"
FAVORITE_NOTIFICATION_BODY_TEMPLATE = 'Your brew "{title}" got a new favorite.'

# Daily reminders
DAILY_REMINDER_TITLE = "Time to Log Your Coffee"
DAILY_REMINDER_BODY = "Don't forget to track your morning brew in BeanBook!"
DEFAULT_REMINDER_HOUR = 8
DEFAULT_REMINDER_MINUTE = 0
# The reminder job runs at the start of each window; a reminder goes out in
# the window containing its minute.
REMINDER_WINDOW_MINUTES = 15

# Firestore caps the number of values in an "in" filter.
MAX_IN_QUERY_VALUES = 10

UNKNOWN_CREATOR_NAME = "Unknown"
ANONYMOUS_USER_NAME = "Anonymous"

MAX_BREW_TITLE_LENGTH = 120
MAX_NOTES_LENGTH = 2000
MAX_BIO_LENGTH = 500
