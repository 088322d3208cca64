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

# Token written in place of a blocklisted word.
REPLACEMENT = "***"

# Fields of a seki document that are sanitized on write.
SANITIZED_FIELDS = ("deviceName", "note")

HANDLE_MAX_LENGTH = 12
HANDLE_FALLBACK = "u"
HANDLE_SUFFIX_LENGTH = 5

# Firestore allows at most 500 writes in a single batch.
MAX_BATCH_OPS = 500
# Each migrated user stages two writes: users/{uid} and handles/{handle}.
OPS_PER_USER = 2

DEFAULT_MAX_INSTANCES = 10
