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

import unittest

from google.api_core import exceptions

from migrations import handles
from shared.types import HandleAssignment
import main_testing_utils
from main_testing_utils import FakeFirestore


class GenerateHandleTest(unittest.TestCase):

    def test_generate_handle_from_email(self):
        self.assertEqual(
            handles.generate_handle_from_email("John.Doe123@example.com"), "johndoe123"
        )

    def test_keeps_underscores(self):
        self.assertEqual(
            handles.generate_handle_from_email("Under_Score@example.com"), "under_score"
        )

    def test_truncates_to_twelve_characters(self):
        self.assertEqual(
            handles.generate_handle_from_email("averyveryverylongname@example.com"),
            "averyveryver",
        )

    def test_truncates_after_stripping(self):
        self.assertEqual(
            handles.generate_handle_from_email("a.b.c.d.e.f.g.h.i.j.k.l.m.n@x.io"),
            "abcdefghijkl",
        )

    def test_only_local_part_is_used(self):
        self.assertEqual(handles.generate_handle_from_email("kien@kiseki.app"), "kien")
        self.assertEqual(handles.generate_handle_from_email("no-at-sign"), "noatsign")

    def test_falls_back_when_empty(self):
        for email in ["!!!@example.com", "@example.com", "", None, 12]:
            with self.subTest(email=email):
                self.assertEqual(handles.generate_handle_from_email(email), "u")


class NeedsHandleTest(unittest.TestCase):

    def test_missing_or_blank_handle(self):
        for value in [None, "", "   ", 5]:
            with self.subTest(value=value):
                self.assertTrue(handles.needs_handle(value))

    def test_existing_handle(self):
        self.assertFalse(handles.needs_handle("kien"))


class ResolveHandleTest(unittest.TestCase):

    def test_disambiguate_uses_last_five_id_characters(self):
        self.assertEqual(
            handles.disambiguate_handle("johndoe123", "abcdEFGHij12345"),
            "johndoe123_12345",
        )

    def test_disambiguate_short_id_uses_whole_id(self):
        self.assertEqual(handles.disambiguate_handle("john", "ab"), "john_ab")

    def test_unclaimed_base_is_used(self):
        db = FakeFirestore()
        self.assertEqual(
            handles.resolve_handle(db, "johndoe123", "abcdEFGHij12345"), "johndoe123"
        )
        self.assertEqual(db.reads, [("handles", "johndoe123")])

    def test_claimed_base_is_suffixed(self):
        db = FakeFirestore({"handles": {"johndoe123": {"uid": "someoneElse"}}})
        self.assertEqual(
            handles.resolve_handle(db, "johndoe123", "abcdEFGHij12345"),
            "johndoe123_12345",
        )

    def test_suffixed_candidate_is_not_probed(self):
        db = FakeFirestore({"handles": {"john": {"uid": "a"}}})
        handles.resolve_handle(db, "john", "abcdEFGHij12345")
        self.assertEqual(db.reads, [("handles", "john")])

    def test_handle_claimed_in_same_run_is_suffixed(self):
        db = FakeFirestore()
        self.assertEqual(
            handles.resolve_handle(db, "john", "uid22222", claimed={"john"}),
            "john_22222",
        )
        self.assertEqual(db.reads, [])


class HandleBatchWriterTest(unittest.TestCase):

    def test_rejects_batch_smaller_than_one_user(self):
        with self.assertRaises(ValueError):
            handles.HandleBatchWriter(FakeFirestore(), max_ops=1)

    def test_commits_when_cap_is_reached(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(3)})
        writer = handles.HandleBatchWriter(db, max_ops=4)

        for i in range(3):
            writer.stage(HandleAssignment(user_id=f"uid{i:06d}", handle=f"h{i}"))
        self.assertEqual(db.commits, [4])

        writer.flush()
        self.assertEqual(db.commits, [4, 2])
        self.assertEqual(writer.commits, 2)

    def test_flush_without_staged_writes_is_noop(self):
        db = FakeFirestore()
        writer = handles.HandleBatchWriter(db)
        writer.flush()
        self.assertEqual(db.commits, [])


class MigrateUserHandlesTest(unittest.TestCase):

    def test_assigns_handles_to_users_without_one(self):
        db = FakeFirestore(
            {
                "users": {
                    "abcdEFGHij12345": {"email": "John.Doe123@example.com"},
                    "uid2": {"email": "kien@kiseki.app", "handle": "kien"},
                    "uid3": {"email": "blank@kiseki.app", "handle": "  "},
                }
            }
        )

        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 2)
        self.assertEqual(result.total, 3)
        users = db.data["users"]
        self.assertEqual(users["abcdEFGHij12345"]["handle"], "johndoe123")
        self.assertEqual(users["uid2"]["handle"], "kien")
        self.assertEqual(users["uid3"]["handle"], "blank")
        self.assertEqual(db.data["handles"]["johndoe123"]["uid"], "abcdEFGHij12345")
        self.assertEqual(db.data["handles"]["blank"]["uid"], "uid3")
        self.assertNotIn("kien", db.data["handles"])
        self.assertEqual(db.commits, [4])

    def test_collision_with_existing_handle(self):
        db = FakeFirestore(
            {
                "users": {"abcdEFGHij12345": {"email": "John.Doe123@example.com"}},
                "handles": {"johndoe123": {"uid": "someoneElse"}},
            }
        )

        handles.migrate_user_handles(db)

        self.assertEqual(
            db.data["users"]["abcdEFGHij12345"]["handle"], "johndoe123_12345"
        )
        self.assertEqual(db.data["handles"]["johndoe123"], {"uid": "someoneElse"})
        self.assertEqual(
            db.data["handles"]["johndoe123_12345"]["uid"], "abcdEFGHij12345"
        )

    def test_collision_within_one_run(self):
        db = FakeFirestore(
            {
                "users": {
                    "uidAAAAA11111": {"email": "john@a.com"},
                    "uidBBBBB22222": {"email": "john@b.com"},
                }
            }
        )

        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 2)
        self.assertEqual(db.data["users"]["uidAAAAA11111"]["handle"], "john")
        self.assertEqual(db.data["users"]["uidBBBBB22222"]["handle"], "john_22222")

    def test_existing_suffixed_handle_is_never_overwritten(self):
        db = FakeFirestore(
            {
                "users": {"abcdEFGHij12345": {"email": "john@example.com"}},
                "handles": {
                    "john": {"uid": "first"},
                    "john_12345": {"uid": "second"},
                },
            }
        )

        with self.assertRaises(exceptions.Conflict):
            handles.migrate_user_handles(db)

        self.assertEqual(db.data["handles"]["john_12345"], {"uid": "second"})
        self.assertNotIn("handle", db.data["users"]["abcdEFGHij12345"])

    def test_full_batch_is_committed_once(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(250)})
        handles.migrate_user_handles(db)
        self.assertEqual(db.commits, [500])

    def test_one_user_past_the_cap_starts_a_new_batch(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(251)})
        handles.migrate_user_handles(db)
        self.assertEqual(db.commits, [500, 2])

    def test_batches_are_bounded(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(600)})

        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 600)
        self.assertEqual(db.commits, [500, 500, 200])
        self.assertEqual(len(db.data["handles"]), 600)

    def test_custom_batch_size(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(5)})
        handles.migrate_user_handles(db, max_batch_ops=4)
        self.assertEqual(db.commits, [4, 4, 2])

    def test_rerun_migrates_nobody(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(600)})
        handles.migrate_user_handles(db)

        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 0)
        self.assertEqual(result.total, 600)
        self.assertEqual(db.commits, [500, 500, 200])

    def test_rerun_after_failure_continues(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(600)})
        db.fail_on_commit = 1

        with self.assertRaises(exceptions.ServiceUnavailable):
            handles.migrate_user_handles(db)
        self.assertEqual(len(db.data["handles"]), 250)

        db.fail_on_commit = None
        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 350)
        self.assertEqual(result.total, 600)
        self.assertEqual(len(db.data["handles"]), 600)
        self.assertEqual(db.data["users"]["uid000599"]["handle"], "user599")

    def test_users_with_handles_are_skipped(self):
        users = main_testing_utils.create_mock_users(10, with_handle=4)
        db = FakeFirestore({"users": users})

        result = handles.migrate_user_handles(db)

        self.assertEqual(result.migrated, 6)
        self.assertEqual(result.total, 10)
        self.assertEqual(db.commits, [12])

    def test_dry_run_writes_nothing(self):
        db = FakeFirestore({"users": main_testing_utils.create_mock_users(3)})

        result = handles.migrate_user_handles(db, dry_run=True)

        self.assertEqual(result.migrated, 3)
        self.assertEqual(db.commits, [])
        self.assertNotIn("handles", db.data)

    def test_empty_collection(self):
        result = handles.migrate_user_handles(FakeFirestore())
        self.assertEqual((result.migrated, result.total), (0, 0))


if __name__ == "__main__":
    unittest.main()
