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
Configuration and settings for the Kien cloud functions.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.constants import (
    DEFAULT_MAX_INSTANCES,
    MAX_BATCH_OPS,
    OPS_PER_USER,
    REPLACEMENT,
)


class Settings(BaseSettings):
    """Environment-backed settings, read from KIEN_* variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="KIEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Content sanitization
    blocklist_file: Optional[str] = Field(default=None)
    replacement: str = Field(default=REPLACEMENT)

    # Handle migration
    max_batch_ops: int = Field(default=MAX_BATCH_OPS, ge=OPS_PER_USER, le=MAX_BATCH_OPS)
    migration_token: Optional[str] = Field(default=None)

    # Cloud Functions global options
    max_instances: int = Field(default=DEFAULT_MAX_INSTANCES, ge=1)

    @field_validator("max_batch_ops")
    @classmethod
    def _whole_users_per_batch(cls, value: int) -> int:
        if value % OPS_PER_USER:
            raise ValueError(
                f"max_batch_ops must be a multiple of {OPS_PER_USER}, got {value}"
            )
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
