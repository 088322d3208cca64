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
One-time migration assigning a unique handle to every user that lacks one.

For each such user a handle is derived from the email local part, checked
once against the `handles` index, and written twice: onto the user document
and as a `handles/{handle}` document pointing back at the user. Writes are
committed in Firestore batches of at most MAX_BATCH_OPS operations, so a
failed run leaves earlier batches in place and can simply be re-run.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Collection, Iterator, Optional

from dacite import Config, from_dict
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from shared.constants import (
    HANDLE_FALLBACK,
    HANDLE_MAX_LENGTH,
    HANDLE_SUFFIX_LENGTH,
    MAX_BATCH_OPS,
    OPS_PER_USER,
)
from shared.firebase_constants import HANDLES_COLLECTION, USERS_COLLECTION
from shared.types import HandleAssignment, MigrationResult, UserRecord

logger = logging.getLogger(__name__)

_HANDLE_DISALLOWED = re.compile(r"[^a-z0-9_]")


def generate_handle_from_email(email: Any) -> str:
    """
    Lower-cased email local part with everything outside [a-z0-9_] removed,
    truncated to HANDLE_MAX_LENGTH. Falls back to HANDLE_FALLBACK when empty.
    """
    local_part = email.split("@", 1)[0] if isinstance(email, str) else ""
    handle = _HANDLE_DISALLOWED.sub("", local_part.lower())[:HANDLE_MAX_LENGTH]
    return handle or HANDLE_FALLBACK


def needs_handle(handle: Any) -> bool:
    return not isinstance(handle, str) or not handle.strip()


def disambiguate_handle(base: str, user_id: str) -> str:
    return f"{base}_{user_id[-HANDLE_SUFFIX_LENGTH:]}"


def resolve_handle(
    db, base: str, user_id: str, claimed: Collection[str] = ()
) -> str:
    """
    Returns `base` if nobody holds it yet, otherwise the user-id suffixed
    variant. Handles staged earlier in the same run count as held.

    The suffixed candidate is not probed again: two users whose base handles
    and id suffixes both collide will fail when the second `handles` document
    is created.
    """
    if base in claimed:
        return disambiguate_handle(base, user_id)
    if db.collection(HANDLES_COLLECTION).document(base).get().exists:
        return disambiguate_handle(base, user_id)
    return base


def _to_user_record(snapshot) -> UserRecord:
    return from_dict(
        data_class=UserRecord,
        data={**(snapshot.to_dict() or {}), "id": snapshot.id},
        config=Config(check_types=False),
    )


def iter_users(db) -> Iterator[UserRecord]:
    for snapshot in db.collection(USERS_COLLECTION).stream():
        yield _to_user_record(snapshot)


class HandleBatchWriter:
    """Stages paired user/handle writes, committing every `max_ops` writes."""

    def __init__(self, db, max_ops: int = MAX_BATCH_OPS):
        if max_ops < OPS_PER_USER:
            raise ValueError(f"max_ops must be at least {OPS_PER_USER}")
        self.db = db
        self.max_ops = max_ops
        self.commits = 0
        self._batch = db.batch()
        self._ops = 0

    def stage(self, assignment: HandleAssignment) -> None:
        if self._ops + OPS_PER_USER > self.max_ops:
            self._commit()

        user_ref = self.db.collection(USERS_COLLECTION).document(assignment.user_id)
        handle_ref = self.db.collection(HANDLES_COLLECTION).document(
            assignment.handle
        )
        self._batch.update(user_ref, {"handle": assignment.handle})
        # create() fails the batch instead of overwriting an existing handle.
        self._batch.create(
            handle_ref,
            {"uid": assignment.user_id, "createdTimestamp": SERVER_TIMESTAMP},
        )
        self._ops += OPS_PER_USER

        if self._ops >= self.max_ops:
            self._commit()

    def flush(self) -> None:
        if self._ops:
            self._commit()

    def _commit(self) -> None:
        self._batch.commit()
        self.commits += 1
        logger.info("Committed handle batch %d (%d writes)", self.commits, self._ops)
        self._batch = self.db.batch()
        self._ops = 0


def migrate_user_handles(
    db, max_batch_ops: int = MAX_BATCH_OPS, dry_run: bool = False
) -> MigrationResult:
    """
    Assigns handles to all users without one.

    Returns the number of users migrated and the number of user documents
    examined. Errors propagate; batches committed before the error stay
    written.
    """
    writer: Optional[HandleBatchWriter] = (
        None if dry_run else HandleBatchWriter(db, max_batch_ops)
    )
    claimed: set[str] = set()
    migrated = 0
    total = 0

    for user in iter_users(db):
        total += 1
        if not needs_handle(user.handle):
            continue
        base = generate_handle_from_email(user.email)
        handle = resolve_handle(db, base, user.id, claimed)
        claimed.add(handle)
        migrated += 1
        if writer is not None:
            writer.stage(HandleAssignment(user_id=user.id, handle=handle))

    if writer is not None:
        writer.flush()

    logger.info(
        "Handle migration %s: %d of %d users",
        "planned" if dry_run else "done",
        migrated,
        total,
    )
    return MigrationResult(migrated=migrated, total=total)
