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

# Cloud functions for the Kien backend - content sanitization + handle migration.
#
# This file containing Python cloud functions must be named main.py.
# See https://cloud.google.com/run/docs/write-functions#python for more info.

# Standard library imports
import json
import secrets
from dataclasses import asdict

# Third-party library imports
from firebase_admin import initialize_app, firestore
from firebase_functions import https_fn, logger, options
from firebase_functions.firestore_fn import (
    on_document_written,
    Event,
    Change,
    DocumentSnapshot,
)

# Local application imports
from migrations import handles
from moderation import sanitizer
from shared.config import get_settings
from shared.firebase_constants import SEKI_COLLECTION

MIGRATION_FUNCTION_TIMEOUT = 540

options.set_global_options(max_instances=get_settings().max_instances)

initialize_app()


def _json_response(payload: dict, status: int = 200) -> https_fn.Response:
    return https_fn.Response(
        json.dumps(payload), status=status, mimetype="application/json"
    )


@on_document_written(document=SEKI_COLLECTION + "/{docId}")
def sanitize_seki_content(event: Event[Change[DocumentSnapshot]]) -> None:
    """
    On create/update of a seki doc, sanitize deviceName and note.
    Only changed fields are written back, so the update does not re-trigger
    this function forever. Deletions are ignored.
    """
    if event.data is None or not event.data.after:
        return
    sanitizer.sanitize_seki_snapshot(event.params["docId"], event.data.after)


def _is_authorized(req: https_fn.Request) -> bool:
    token = get_settings().migration_token
    if not token:
        return True
    header = req.headers.get("Authorization", "")
    return secrets.compare_digest(header.encode(), f"Bearer {token}".encode())


@https_fn.on_request(
    timeout_sec=MIGRATION_FUNCTION_TIMEOUT, memory=options.MemoryOption.MB_512
)
def migrate_user_handles(req: https_fn.Request) -> https_fn.Response:
    """
    Assigns a handle to every user that has none and records it in the
    handles collection. Safe to re-run.

    Returns:
        JSON `{"migrated": int, "total": int}`.
    """
    if not _is_authorized(req):
        return _json_response({"error": "Forbidden"}, status=403)

    db = firestore.client()
    try:
        result = handles.migrate_user_handles(
            db, max_batch_ops=get_settings().max_batch_ops
        )
    except Exception as e:
        logger.error(f"Handle migration failed: {e}")
        return _json_response({"error": str(e)}, status=500)

    logger.info(
        "Handle migration complete", migrated=result.migrated, total=result.total
    )
    return _json_response(asdict(result))
