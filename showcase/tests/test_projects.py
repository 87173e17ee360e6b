import unittest

from showcase import projects
from showcase.app_settings import DEFAULT_FILTER_IDS
from showcase.errors import ProjectNotFoundError, SafetyLockError, ValidationError
from showcase.records import ImagePreviewMode, ProjectStatus
from showcase.storage import InMemoryBlobStorageClient
from showcase.store import SafeStore

BLOB = "project-data.json"


def _project(project_id, **overrides):
    project = {
        "id": project_id,
        "name": f"Project {project_id}",
        "description": "Something worth showing",
        "visibility": {"description": True},
    }
    project.update(overrides)
    return project


class ProjectOperationTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryBlobStorageClient()
        self.store = SafeStore(self.storage, BLOB)

    def _seed(self, *records, settings=None, passwords=None):
        self.store.save(
            {
                "projects": list(records),
                "passwords": passwords or [],
                "settings": settings or {"theme": "light"},
                "metadata": {"version": "2.0.0"},
            }
        )

    def test_create_applies_settings_defaults(self):
        self._seed(
            _project("p1", sortOrder=4),
            settings={
                "defaultProjectVisibility": {"path": True, "github": False},
                "defaultStatus": "long-term",
                "defaultImagePreviewMode": "single",
            },
        )
        record = projects.create_project(
            self.store, {"name": "New", "description": "Fresh project"}
        )
        self.assertTrue(record.id)
        self.assertTrue(record.visibility["path"])
        self.assertFalse(record.visibility["github"])
        self.assertEqual(record.status, ProjectStatus.LONG_TERM)
        self.assertEqual(record.image_preview_mode, ImagePreviewMode.SINGLE)
        self.assertEqual(record.sort_order, 5)
        self.assertGreater(record.created_at, 0)
        self.assertEqual(len(self.store.load().projects), 2)

    def test_create_on_empty_store(self):
        record = projects.create_project(
            self.store, {"id": "first", "name": "First", "description": "d"}
        )
        self.assertEqual(record.sort_order, 0)
        self.assertEqual(self.store.load().find("first").name, "First")

    def test_create_rejects_duplicate_id(self):
        self._seed(_project("p1"))
        with self.assertRaises(ValidationError):
            projects.create_project(self.store, _project("p1"))

    def test_create_rejects_incomplete_record(self):
        self._seed(_project("p1"))
        with self.assertRaises(ValidationError):
            projects.create_project(self.store, {"name": "No description"})

    def test_update_keeps_identity(self):
        self._seed(_project("p1", createdAt=100, updatedAt=100))
        record = projects.update_project(
            self.store,
            "p1",
            {"id": "hijack", "createdAt": 5, "status": "completed", "visibility": {"path": True}},
        )
        self.assertEqual(record.id, "p1")
        self.assertEqual(record.created_at, 100)
        self.assertGreater(record.updated_at, 100)
        self.assertEqual(record.status, ProjectStatus.COMPLETED)
        self.assertTrue(record.visibility["path"])
        self.assertTrue(record.visibility["description"])

    def test_update_ignores_non_mapping_visibility(self):
        self._seed(_project("p1", visibility={"description": True, "path": True}))
        record = projects.update_project(self.store, "p1", {"visibility": None, "name": "Renamed"})
        self.assertEqual(record.name, "Renamed")
        self.assertTrue(record.visibility["description"])
        self.assertTrue(record.visibility["path"])

    def test_unknown_project(self):
        self._seed(_project("p1"))
        with self.assertRaises(ProjectNotFoundError):
            projects.get_project(self.store, "ghost")
        with self.assertRaises(ProjectNotFoundError):
            projects.update_project(self.store, "ghost", {"name": "x"})
        with self.assertRaises(ProjectNotFoundError):
            projects.delete_project(self.store, "ghost")

    def test_delete_project(self):
        self._seed(_project("p1"), _project("p2"))
        removed = projects.delete_project(self.store, "p1")
        self.assertEqual(removed.id, "p1")
        self.assertEqual([p.id for p in self.store.load().projects], ["p2"])

    def test_deleting_last_project_needs_force(self):
        self._seed(_project("p1"))
        with self.assertRaises(SafetyLockError):
            projects.delete_project(self.store, "p1")
        projects.delete_project(self.store, "p1", force=True)
        self.assertEqual(self.store.load().projects, [])

    def test_reorder(self):
        self._seed(_project("a", sortOrder=0), _project("b", sortOrder=1), _project("c", sortOrder=2))
        ordered = projects.reorder_projects(
            self.store, [{"id": "c", "sortOrder": 0}, {"id": "a", "sortOrder": 2}, {"id": "b", "sortOrder": 1}]
        )
        self.assertEqual([p.id for p in ordered], ["c", "b", "a"])
        self.assertEqual([p.id for p in self.store.load().projects], ["c", "b", "a"])

    def test_reorder_unknown_id_writes_nothing(self):
        self._seed(_project("a"))
        revision = self.store.load().revision
        with self.assertRaises(ProjectNotFoundError):
            projects.reorder_projects(self.store, [{"id": "ghost", "sortOrder": 1}])
        self.assertEqual(self.store.load().revision, revision)

    def test_reorder_rejects_bad_entries(self):
        self._seed(_project("a"))
        with self.assertRaises(ValidationError):
            projects.reorder_projects(self.store, [{"id": "a", "sortOrder": "first"}])

    def test_import_merges_without_overwriting(self):
        self._seed(_project("keep", name="Original", sortOrder=3))
        result = projects.import_projects(
            self.store,
            [
                _project("keep", name="Imported copy"),
                _project("new-1"),
                {"dateAndFileName": "Legacy import", "description": "old", "category": "completed"},
            ],
        )
        self.assertEqual(result.skipped, ["keep"])
        self.assertEqual(len(result.imported), 2)

        collection = self.store.load()
        self.assertEqual(collection.find("keep").name, "Original")
        new = collection.find("new-1")
        self.assertEqual(new.sort_order, 4)
        legacy = collection.find(result.imported[1])
        self.assertEqual(legacy.name, "Legacy import")
        self.assertEqual(legacy.status, ProjectStatus.COMPLETED)

    def test_public_projects(self):
        self._seed(
            _project("shown", sortOrder=2, developerNote="secret", path="/srv/app"),
            _project("hidden", hidden=True),
            _project("private", visibility={"description": False}),
            _project("dropped", status="discarded"),
            _project("first", sortOrder=0, visibility={"description": True, "path": True}, path="/pub"),
        )
        visible = projects.public_projects(self.store.load())
        self.assertEqual([p["id"] for p in visible], ["first", "shown"])
        shown = visible[1]
        self.assertEqual(shown["developerNote"], "")
        self.assertEqual(shown["path"], "")
        self.assertEqual(visible[0]["path"], "/pub")

    def test_ui_display_update_and_reset(self):
        self._seed(_project("p1"))
        updated = projects.update_ui_display(
            self.store,
            {"filters": [{"id": "all", "enabled": False, "order": 0}], "statistics": []},
        )
        filters = {item.id: item for item in updated.filters}
        self.assertFalse(filters["all"].enabled)
        self.assertEqual(set(filters), set(DEFAULT_FILTER_IDS))
        stored = self.store.load().settings.ui_display
        self.assertFalse(next(f for f in stored.filters if f.id == "all").enabled)

        reset = projects.reset_ui_display(self.store)
        self.assertTrue(next(f for f in reset.filters if f.id == "all").enabled)

    def test_ui_display_rejects_bad_payload(self):
        self._seed(_project("p1"))
        with self.assertRaises(ValidationError):
            projects.update_ui_display(self.store, {"filters": "nope"})


if __name__ == "__main__":
    unittest.main()
