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
from typing import List, Optional


@dataclass
class UserRecord:
    """The subset of a `users` document the handle migration reads."""

    id: str
    email: Optional[str] = None
    handle: Optional[str] = None


@dataclass
class HandleAssignment:
    user_id: str
    handle: str


@dataclass
class MigrationResult:
    """Counts reported by the handle migration."""

    migrated: int
    total: int


@dataclass
class MethodCallResult:
    """Outcome of a platform channel method call.

    Exactly one of `value`, `error_code` or `not_implemented` is meaningful.
    """

    value: Optional[List[str]] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    not_implemented: bool = False
