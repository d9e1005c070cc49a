"""
Tests for the entity module workflow (list / form / detail).

All tests run against MemoryStore, so "persisted" means: the serialized
value under the collection's key changed and save_count went up.
"""

import json
import unittest
from concurrent.futures import Future, ThreadPoolExecutor

from workload.kinds import COURSE, STAFF, TASK
from workload.model import NotificationKind, View
from workload.module import REQUIRED_FIELDS_MESSAGE, EntityModule, PICTURE_FIELD, Session
from workload.permissions import Role
from workload.storage import MemoryStore
from workload.uploads import PendingUpload, UploadedFile

PNG = UploadedFile("me.png", "image/png", b"\x89PNG\r\n\x1a\n" + b"\x01" * 16)


def _staff_store(*ids: int) -> MemoryStore:
    rows = [{"id": i, "name": f"Person {i}", "email": f"p{i}@x.edu", "department": "Physics"} for i in ids]
    return MemoryStore({"staffMembers": json.dumps(rows)})


def _module(kind=STAFF, store=None, role=Role.ADMINISTRATOR, identity=None) -> EntityModule:
    mod = EntityModule(kind, store if store is not None else MemoryStore(), role=role, identity=identity)
    mod.activate()
    return mod


class TestActivation(unittest.TestCase):
    def test_empty_store_is_seeded_and_persisted(self) -> None:
        store = MemoryStore()
        mod = _module(store=store)

        self.assertEqual(len(mod.records), 5)
        self.assertEqual([r.secondary_id for r in mod.records], [f"STAFF00{i}" for i in range(1, 6)])
        self.assertEqual(store.save_count, 1)
        stored = json.loads(store.get_raw("staffMembers"))
        self.assertEqual([d["staffId"] for d in stored], [f"STAFF00{i}" for i in range(1, 6)])

    def test_existing_collection_is_not_reseeded(self) -> None:
        store = _staff_store(1, 3, 5)
        mod = _module(store=store)
        self.assertEqual([r.id for r in mod.records], [1, 3, 5])
        self.assertEqual(store.save_count, 0)

    def test_stored_empty_array_stays_empty(self) -> None:
        store = MemoryStore({"tasks": "[]"})
        mod = _module(TASK, store=store)
        self.assertEqual(mod.records, [])
        self.assertEqual(store.save_count, 0)

    def test_malformed_value_reseeds(self) -> None:
        store = MemoryStore()
        store.set_raw("staffMembers", "{not json")
        with self.assertLogs("workload", level="WARNING"):
            mod = _module(store=store)
        self.assertEqual(len(mod.records), 5)
        self.assertEqual(len(json.loads(store.get_raw("staffMembers"))), 5)

    def test_duplicate_ids_reseed(self) -> None:
        rows = [{"id": 1, "name": "A", "email": "a@x"}, {"id": 1, "name": "B", "email": "b@x"}]
        store = MemoryStore({"staffMembers": json.dumps(rows)})
        with self.assertLogs("workload.module", level="WARNING"):
            mod = _module(store=store)
        self.assertEqual([r.id for r in mod.records], [1, 2, 3, 4, 5])

    def test_course_secondary_ids_are_derived(self) -> None:
        mod = _module(COURSE)
        self.assertEqual(mod.records[0].secondary_id, "COURSE001")
        self.assertEqual(mod.records[-1].secondary_id, "COURSE008")

    def test_save_of_fresh_load_is_idempotent(self) -> None:
        store = MemoryStore()
        _module(store=store)
        loaded = store.load("staffMembers")
        store.save("staffMembers", loaded)
        self.assertEqual(store.load("staffMembers"), loaded)

        again = _module(store=store)
        raw = store.get_raw("staffMembers")
        again._persist(again.records)
        self.assertEqual(store.get_raw("staffMembers"), raw)


class TestCreate(unittest.TestCase):
    def test_new_id_is_max_plus_one(self) -> None:
        mod = _module(store=_staff_store(1, 3, 5))
        before = [r.id for r in mod.records]
        record = mod.create({"name": "New", "email": "new@x.edu"})

        self.assertEqual(record.id, 6)
        self.assertEqual(record.secondary_id, "STAFF006")
        self.assertEqual(len(mod.records), len(before) + 1)
        self.assertTrue(all(record.id > i for i in before))
        self.assertEqual(mod.notifier.current.text, "Staff member added successfully!")

    def test_course_and_task_ids(self) -> None:
        course = _module(COURSE).create(
            {"courseCode": "BIO101", "courseName": "Biology I", "requiredQualification": "PhD"}
        )
        self.assertEqual((course.id, course.secondary_id), (9, "COURSE009"))

        task = _module(TASK).create({"taskName": "Invigilate", "description": "Final exams"})
        self.assertEqual((task.id, task.secondary_id), (4, "T004"))

    def test_explicit_secondary_id_is_kept(self) -> None:
        mod = _module()
        record = mod.create({"staffId": "STAFF042", "name": "N", "email": "n@x", "id": 999})
        self.assertEqual(record.id, 6)
        self.assertEqual(record.secondary_id, "STAFF042")
        self.assertEqual(mod.draft_defaults(), {"staffId": "STAFF043"})

    def test_missing_required_field_keeps_form_open(self) -> None:
        store = MemoryStore()
        mod = _module(store=store)
        self.assertTrue(mod.start_add())
        result = mod.submit({"name": "  ", "email": "a@x.edu"})

        self.assertIsNone(result)
        self.assertIs(mod.view, View.FORM)
        self.assertEqual(len(mod.records), 5)
        self.assertEqual(store.save_count, 1)
        self.assertEqual(mod.notifier.current.text, REQUIRED_FIELDS_MESSAGE)
        self.assertIs(mod.notifier.current.kind, NotificationKind.ERROR)

    def test_submit_returns_to_list(self) -> None:
        mod = _module()
        mod.start_add()
        mod.submit({"name": "N", "email": "n@x"})
        self.assertIs(mod.view, View.LIST)

    def test_id_is_reused_after_deleting_the_highest(self) -> None:
        mod = _module()
        mod.delete(5, confirm=lambda r: True)
        record = mod.create({"name": "Again", "email": "again@x"})
        self.assertEqual(record.id, 5)
        self.assertEqual(record.secondary_id, "STAFF005")


class TestUpdate(unittest.TestCase):
    def test_edit_department(self) -> None:
        store = MemoryStore()
        mod = _module(store=store)
        before = {r.id: r.to_dict(STAFF) for r in mod.records}

        self.assertTrue(mod.start_edit(2))
        self.assertEqual(mod.form_values()["staffId"], "STAFF002")
        updated = mod.submit({"department": "Physics"})

        self.assertEqual(updated.id, 2)
        self.assertEqual([r.id for r in mod.records if r.id == 2], [2])
        self.assertEqual(mod.find(2).get("department"), "Physics")
        self.assertEqual(mod.find(2).get("name"), "Dr. Sarah Johnson")
        for r in mod.records:
            if r.id != 2:
                self.assertEqual(r.to_dict(STAFF), before[r.id])
        self.assertIs(mod.notifier.current.kind, NotificationKind.SUCCESS)
        self.assertEqual(mod.notifier.current.text, "Staff record updated")
        self.assertEqual(json.loads(store.get_raw("staffMembers"))[1]["department"], "Physics")

    def test_id_never_changes(self) -> None:
        mod = _module()
        updated = mod.update(3, {"id": 77, "name": "Renamed"})
        self.assertEqual(updated.id, 3)
        self.assertEqual(updated.secondary_id, "STAFF003")
        self.assertIsNone(mod.find(77))

    def test_blanking_a_required_field_fails(self) -> None:
        mod = _module()
        self.assertIsNone(mod.update(1, {"email": ""}))
        self.assertEqual(mod.find(1).get("email"), "john.smith@university.edu")
        self.assertEqual(mod.notifier.current.text, REQUIRED_FIELDS_MESSAGE)

    def test_unknown_record(self) -> None:
        mod = _module()
        self.assertFalse(mod.start_edit(42))
        self.assertEqual(mod.notifier.current.text, "Staff member 42 not found.")

    def test_selected_record_is_refreshed(self) -> None:
        mod = _module()
        mod.view_record(4)
        mod.update(4, {"position": "Professor"})
        self.assertEqual(mod.selected.get("position"), "Professor")


class TestDelete(unittest.TestCase):
    def test_delete_removes_exactly_one_record(self) -> None:
        store = MemoryStore()
        mod = _module(store=store)
        before = [r.to_dict(STAFF) for r in mod.records]

        token = mod.request_delete(3)
        self.assertIsNotNone(token)
        self.assertEqual(len(mod.records), 5)
        self.assertIsNone(mod.notifier.current)

        self.assertTrue(mod.confirm_delete(token))
        expected = [d for d in before if d["id"] != 3]
        self.assertEqual([r.to_dict(STAFF) for r in mod.records], expected)
        self.assertEqual(json.loads(store.get_raw("staffMembers")), expected)
        self.assertIs(mod.notifier.current.kind, NotificationKind.DELETE)
        self.assertEqual(mod.notifier.current.text, "Record deleted")

    def test_token_is_single_use(self) -> None:
        mod = _module(TASK)
        token = mod.request_delete(1)
        self.assertTrue(mod.confirm_delete(token))
        self.assertFalse(mod.confirm_delete(token))
        self.assertEqual(mod.notifier.current.text, "This delete request is no longer valid.")

    def test_cancelled_request_deletes_nothing(self) -> None:
        store = MemoryStore()
        mod = _module(COURSE, store=store)
        token = mod.request_delete(2)
        mod.cancel_delete(token)
        self.assertFalse(mod.confirm_delete(token))
        self.assertEqual(len(mod.records), 8)
        self.assertEqual(store.save_count, 1)

    def test_declined_confirmation(self) -> None:
        mod = _module()
        self.assertFalse(mod.delete(2, confirm=lambda r: False))
        self.assertIsNotNone(mod.find(2))
        self.assertIsNone(mod.notifier.current)

    def test_deleting_the_viewed_record_returns_to_list(self) -> None:
        mod = _module()
        mod.view_record(2)
        self.assertIs(mod.view, View.DETAIL)
        mod.delete(2, confirm=lambda r: True)
        self.assertIsNone(mod.selected)
        self.assertIs(mod.view, View.LIST)

    def test_missing_record(self) -> None:
        mod = _module()
        self.assertIsNone(mod.request_delete(99))
        self.assertIs(mod.notifier.current.kind, NotificationKind.ERROR)


class TestStaffRole(unittest.TestCase):
    def setUp(self) -> None:
        self.store = _staff_store(1, 2, 3)
        self.mod = _module(store=self.store, role=Role.STAFF, identity="p2@x.edu")
        self.raw = self.store.get_raw("staffMembers")

    def _assert_denied(self, verb: str) -> None:
        note = self.mod.notifier.current
        self.assertIs(note.kind, NotificationKind.ERROR)
        self.assertEqual(note.text, f"You do not have permission to {verb} staff members.")
        self.assertEqual(self.store.get_raw("staffMembers"), self.raw)
        self.assertEqual(self.store.save_count, 0)
        self.assertEqual([r.id for r in self.mod.records], [1, 2, 3])

    def test_create_denied(self) -> None:
        self.assertFalse(self.mod.start_add())
        self.assertIsNone(self.mod.create({"name": "X", "email": "x@x"}))
        self._assert_denied("add")

    def test_update_denied(self) -> None:
        self.assertFalse(self.mod.start_edit(2))
        self.assertIsNone(self.mod.update(2, {"department": "Mathematics"}))
        self._assert_denied("edit")

    def test_delete_denied(self) -> None:
        self.assertIsNone(self.mod.request_delete(2))
        self.assertFalse(self.mod.delete(2, confirm=lambda r: True))
        self._assert_denied("delete")

    def test_view_allowed(self) -> None:
        self.assertEqual(self.mod.view_record(3).id, 3)

    def test_own_record_is_preselected(self) -> None:
        self.assertEqual(self.mod.selected.id, 2)

    def test_other_modules_deny_too(self) -> None:
        courses = _module(COURSE, role=Role.STAFF)
        self.assertIsNone(courses.create({"courseCode": "X", "courseName": "Y", "requiredQualification": "Z"}))
        self.assertEqual(courses.notifier.current.text, "You do not have permission to add courses.")


class TestProfilePicture(unittest.TestCase):
    def test_staff_fallback_to_first_record_and_upload(self) -> None:
        mod = _module(role=Role.STAFF, identity="a@x.edu")
        own = mod.own_record()
        self.assertEqual(own.id, 1)
        self.assertEqual(mod.selected.id, 1)

        record = mod.upload_picture(own.id, PNG)
        self.assertTrue(record.get(PICTURE_FIELD).startswith("data:image/png;base64,"))
        self.assertEqual(mod.find(1).get(PICTURE_FIELD), record.get(PICTURE_FIELD))
        self.assertEqual(mod.selected.get(PICTURE_FIELD), record.get(PICTURE_FIELD))
        self.assertEqual(mod.notifier.current.text, "Profile picture updated successfully!")

    def test_staff_cannot_upload_for_someone_else(self) -> None:
        mod = _module(role=Role.STAFF, identity="emily.brown@university.edu")
        self.assertIsNone(mod.upload_picture(1, PNG))
        self.assertEqual(mod.notifier.current.text, "You can only upload your own profile picture.")
        self.assertIsNotNone(mod.upload_picture(4, PNG))

    def test_oversize_upload(self) -> None:
        store = MemoryStore()
        mod = _module(store=store)
        big = UploadedFile("big.jpg", "image/jpeg", b"x" * (6 * 1024 * 1024))

        self.assertIsNone(mod.upload_picture(1, big))
        self.assertIn("5MB", mod.notifier.current.text)
        self.assertIsNone(mod.find(1).get(PICTURE_FIELD))
        self.assertEqual(store.save_count, 1)

    def test_non_image_upload(self) -> None:
        mod = _module()
        self.assertIsNone(mod.upload_picture(1, UploadedFile("a.txt", "text/plain", b"hi")))
        self.assertEqual(mod.notifier.current.text, "Please select a valid image file.")

    def test_last_completion_wins(self) -> None:
        mod = _module()
        first = UploadedFile("one.png", "image/png", b"one")
        second = UploadedFile("two.gif", "image/gif", b"two")
        with ThreadPoolExecutor(max_workers=2) as pool:
            p1 = mod.begin_upload(2, first, executor=pool)
            p2 = mod.begin_upload(2, second, executor=pool)
            mod.complete_upload(p2)
            mod.complete_upload(p1)
        self.assertTrue(mod.find(2).get(PICTURE_FIELD).startswith("data:image/png;"))

    def test_failed_conversion(self) -> None:
        mod = _module()
        fut: Future = Future()
        fut.set_exception(OSError("boom"))
        self.assertIsNone(mod.complete_upload(PendingUpload(record_id=1, upload=PNG, future=fut)))
        self.assertEqual(mod.notifier.current.text, "Could not read image: boom")

    def test_only_staff_records_take_pictures(self) -> None:
        mod = _module(COURSE)
        self.assertIsNone(mod.begin_upload(1, PNG))
        self.assertIs(mod.notifier.current.kind, NotificationKind.ERROR)


class TestFiltering(unittest.TestCase):
    def test_all_department_returns_collection(self) -> None:
        mod = _module()
        mod.set_filter("department", "All")
        self.assertEqual(mod.visible, mod.records)
        mod.set_query("emily")
        self.assertEqual([r.id for r in mod.visible], [4])

    def test_course_filters_combine(self) -> None:
        mod = _module(COURSE)
        mod.set_filter("semester", "Semester 1")
        mod.set_filter("department", "Computer Science")
        self.assertEqual([r.get("courseCode") for r in mod.visible], ["CS101", "CS401"])
        mod.clear_filters()
        self.assertEqual(len(mod.visible), 8)

    def test_visible_follows_mutations(self) -> None:
        mod = _module(TASK)
        mod.set_filter("category", "research")
        self.assertEqual(mod.visible, [])
        mod.create({"taskName": "Grant", "description": "Write proposal", "category": "research"})
        self.assertEqual(len(mod.visible), 1)

    def test_unknown_filter_field(self) -> None:
        with self.assertRaises(ValueError):
            _module().set_filter("semester", "Semester 1")

    def test_filter_options(self) -> None:
        self.assertEqual(_module(COURSE).filter_options("semester"), ["All", "Semester 1", "Semester 2"])


class TestSession(unittest.TestCase):
    def test_modules_are_cached_and_share_the_store(self) -> None:
        store = MemoryStore()
        session = Session(store, role="admin", notification_ms=500)
        staff = session.module("staff")
        self.assertIs(session.module(STAFF), staff)
        self.assertEqual(staff.notifier.duration_ms, 500)

        session.module("task")
        self.assertIsNotNone(store.get_raw("tasks"))
        self.assertIsNone(store.get_raw("courses"))
        session.close()


if __name__ == "__main__":
    unittest.main()
