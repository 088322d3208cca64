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

"""In-memory Firestore stand-ins and fixtures shared by the function tests."""

from typing import Dict, List, Optional

from google.api_core import exceptions


class FakeDocumentSnapshot:
    def __init__(self, reference: "FakeDocumentReference", data: Optional[dict]):
        self.reference = reference
        self.id = reference.id
        self._data = None if data is None else dict(data)

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return None if self._data is None else dict(self._data)


class FakeDocumentReference:
    def __init__(self, db: "FakeFirestore", collection: str, doc_id: str):
        self.db = db
        self.collection_name = collection
        self.id = doc_id

    @property
    def _docs(self) -> Dict[str, dict]:
        return self.db.data.get(self.collection_name, {})

    def get(self) -> FakeDocumentSnapshot:
        self.db.reads.append((self.collection_name, self.id))
        return FakeDocumentSnapshot(self, self._docs.get(self.id))

    def set(self, data: dict) -> None:
        self.db.data.setdefault(self.collection_name, {})[self.id] = dict(data)

    def create(self, data: dict) -> None:
        if self.id in self._docs:
            raise exceptions.Conflict(
                f"Document already exists: {self.collection_name}/{self.id}"
            )
        self.db.data.setdefault(self.collection_name, {})[self.id] = dict(data)

    def update(self, data: dict) -> None:
        if self.id not in self._docs:
            raise exceptions.NotFound(
                f"No document to update: {self.collection_name}/{self.id}"
            )
        self.db.updates.append((self.collection_name, self.id, dict(data)))
        self._docs[self.id].update(data)


class FakeCollection:
    def __init__(self, db: "FakeFirestore", name: str):
        self.db = db
        self.name = name

    def document(self, doc_id: str) -> FakeDocumentReference:
        return FakeDocumentReference(self.db, self.name, doc_id)

    def stream(self):
        docs = self.db.data.get(self.name, {})
        for doc_id in list(docs):
            yield FakeDocumentSnapshot(self.document(doc_id), docs[doc_id])


class FakeWriteBatch:
    """Applies staged writes on commit; a failing write aborts the whole batch."""

    def __init__(self, db: "FakeFirestore"):
        self.db = db
        self.ops: List[tuple] = []

    def update(self, ref: FakeDocumentReference, data: dict) -> None:
        self.ops.append(("update", ref, data))

    def create(self, ref: FakeDocumentReference, data: dict) -> None:
        self.ops.append(("create", ref, data))

    def set(self, ref: FakeDocumentReference, data: dict) -> None:
        self.ops.append(("set", ref, data))

    def commit(self) -> None:
        if self.db.fail_on_commit is not None and (
            len(self.db.commits) == self.db.fail_on_commit
        ):
            raise exceptions.ServiceUnavailable("Simulated commit failure")
        for op, ref, _ in self.ops:
            if op == "create" and ref.id in ref._docs:
                raise exceptions.Conflict(
                    f"Document already exists: {ref.collection_name}/{ref.id}"
                )
            if op == "update" and ref.id not in ref._docs:
                raise exceptions.NotFound(
                    f"No document to update: {ref.collection_name}/{ref.id}"
                )
        for op, ref, data in self.ops:
            getattr(ref, op)(data)
        self.db.commits.append(len(self.ops))


class FakeFirestore:
    """A minimal firestore.Client replacement backed by nested dicts."""

    def __init__(self, data: Optional[Dict[str, Dict[str, dict]]] = None):
        self.data: Dict[str, Dict[str, dict]] = {
            name: {doc_id: dict(doc) for doc_id, doc in docs.items()}
            for name, docs in (data or {}).items()
        }
        self.commits: List[int] = []
        self.updates: List[tuple] = []
        self.reads: List[tuple] = []
        # Index of the commit that should raise, if any.
        self.fail_on_commit: Optional[int] = None

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def batch(self) -> FakeWriteBatch:
        return FakeWriteBatch(self)


def create_mock_users(count: int, with_handle: int = 0) -> Dict[str, dict]:
    """
    Builds `count` users with distinct emails; the first `with_handle` of them
    already carry a handle.
    """
    users = {}
    for i in range(count):
        user = {"email": f"user{i}@example.com"}
        if i < with_handle:
            user["handle"] = f"user{i}"
        users[f"uid{i:06d}"] = user
    return users


def create_mock_seki_snapshot(
    doc_id: str = "seki1", data: Optional[dict] = None
) -> FakeDocumentSnapshot:
    db = FakeFirestore({"seki": {doc_id: data}} if data is not None else None)
    return db.collection("seki").document(doc_id).get()
