import json
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from showcase.app import create_app
from showcase.config import Settings, get_settings
from showcase.dependencies import get_reference_tracker, get_safe_store
from showcase.errors import StorageError
from showcase.references import ReferenceTracker
from showcase.storage import InMemoryBlobStorageClient
from showcase.store import SafeStore

ADMIN = {"x-admin-password": "letmein"}


def _project(project_id, **overrides):
    project = {
        "id": project_id,
        "name": f"Project {project_id}",
        "description": "Something worth showing",
        "visibility": {"description": True},
    }
    project.update(overrides)
    return project


def _document(projects):
    return {
        "projects": projects,
        "passwords": [],
        "settings": {"theme": "light"},
        "metadata": {"version": "2.0.0"},
    }


class ShowcaseApiTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryBlobStorageClient()
        self.store = SafeStore(self.storage, "project-data.json")
        self.tracker = ReferenceTracker(self.storage, self.store, "project-images/")
        self.settings = Settings(
            admin_password="letmein", use_in_memory_backends=True, _env_file=None
        )

        app = create_app()
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_safe_store] = lambda: self.store
        app.dependency_overrides[get_reference_tracker] = lambda: self.tracker
        self.client = TestClient(app)

    def test_public_projects(self):
        self.store.save(
            _document(
                [
                    _project("shown", developerNote="secret"),
                    _project("hidden", hidden=True),
                    _project("dropped", status="discarded"),
                ]
            )
        )
        response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual([p["id"] for p in payload["projects"]], ["shown"])
        self.assertEqual(payload["projects"][0]["developerNote"], "")
        self.assertIn("filters", payload["settings"]["uiDisplay"])

    def test_public_project_detail(self):
        self.store.save(_document([_project("shown"), _project("hidden", hidden=True)]))
        self.assertEqual(self.client.get("/api/projects/shown").status_code, 200)
        self.assertEqual(self.client.get("/api/projects/hidden").status_code, 404)
        self.assertEqual(self.client.get("/api/projects/ghost").status_code, 404)

    def test_admin_routes_require_password(self):
        response = self.client.post("/api/projects", json=_project("p1"))
        self.assertEqual(response.status_code, 401)
        response = self.client.post(
            "/api/projects", json=_project("p1"), headers={"x-admin-password": "wrong"}
        )
        self.assertEqual(response.status_code, 401)

    def test_admin_routes_closed_without_configured_password(self):
        self.settings.admin_password = None
        response = self.client.get("/api/admin/data", headers=ADMIN)
        self.assertEqual(response.status_code, 401)

    def test_create_update_delete_project(self):
        self.store.save(_document([_project("existing")]))
        response = self.client.post(
            "/api/projects", json={"name": "New", "description": "d"}, headers=ADMIN
        )
        self.assertEqual(response.status_code, 201)
        project_id = response.json()["id"]

        response = self.client.put(
            f"/api/projects/{project_id}", json={"status": "completed"}, headers=ADMIN
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "completed")

        response = self.client.delete(f"/api/projects/{project_id}", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([p.id for p in self.store.load().projects], ["existing"])

    def test_invalid_project_maps_to_400(self):
        self.store.save(_document([_project("existing")]))
        response = self.client.post("/api/projects", json={"name": "x"}, headers=ADMIN)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["errors"], ["Project 2 is missing required fields: description"]
        )

    def test_reorder(self):
        self.store.save(_document([_project("a", sortOrder=0), _project("b", sortOrder=1)]))
        response = self.client.post(
            "/api/projects/reorder",
            json={"items": [{"id": "a", "sortOrder": 1}, {"id": "b", "sortOrder": 0}]},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["order"], ["b", "a"])

    def test_document_round_trip_with_revision(self):
        self.store.save(_document([_project("a")]))
        response = self.client.get("/api/admin/data", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["source"], "blob")

        data = payload["data"]
        data["projects"].append(_project("b"))
        response = self.client.put(
            "/api/admin/data",
            json={"data": data, "expected_revision": payload["revision"]},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["metadata"]["totalProjects"], 2)

        response = self.client.put(
            "/api/admin/data",
            json={"data": data, "expected_revision": payload["revision"]},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["expected"], payload["revision"])

    def test_empty_overwrite_maps_to_409(self):
        self.store.save(_document([_project("a")]))
        before = self.storage.objects["project-data.json"]
        response = self.client.put(
            "/api/admin/data",
            json={"data": {"projects": [], "passwords": []}},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.storage.objects["project-data.json"], before)

        response = self.client.put(
            "/api/admin/data",
            json={"data": {"projects": [], "passwords": []}, "force_write": True},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["safetyCheck"], "FORCED")

    def test_validate_endpoint(self):
        response = self.client.post(
            "/api/admin/data/validate",
            json={"projects": [{"id": "x"}], "passwords": []},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertFalse(payload["valid"])
        self.assertIn("settings are missing", payload["errors"])
        self.assertIn("Project 1 is missing required fields: name, description", payload["errors"])

    def test_storage_failure_maps_to_503(self):
        self.store.save(_document([_project("a")]))
        with patch.object(self.storage, "put", side_effect=StorageError("bucket offline")):
            response = self.client.post(
                "/api/projects", json={"name": "New", "description": "d"}, headers=ADMIN
            )
        self.assertEqual(response.status_code, 503)

    def test_public_read_survives_storage_failure(self):
        with patch.object(self.storage, "list", side_effect=StorageError("down")):
            response = self.client.get("/api/projects")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["projects"], [])

    def test_ui_display_settings(self):
        self.store.save(_document([_project("a")]))
        response = self.client.put(
            "/api/settings/ui-display",
            json={"filters": [{"id": "all", "enabled": False}], "statistics": []},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 200)
        public = self.client.get("/api/settings/ui-display").json()
        self.assertFalse(next(f for f in public["filters"] if f["id"] == "all")["enabled"])

        response = self.client.post("/api/settings/reset-ui", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(next(f for f in response.json()["filters"] if f["id"] == "all")["enabled"])

    def test_image_reference_guard(self):
        self.storage.put("project-images/a.png", b"img", "image/png")
        self.store.save(
            _document(
                [
                    _project("p1", imagePreviews=[{"src": "a.png"}]),
                    _project("p2", imagePreviews=[{"src": "/project-images/a.png"}]),
                ]
            )
        )
        response = self.client.get("/api/images/a.png/references", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["canDelete"])

        response = self.client.delete("/api/images/a.png", headers=ADMIN)
        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            sorted(ref["recordId"] for ref in response.json()["references"]), ["p1", "p2"]
        )

        response = self.client.delete("/api/images/a.png?force=true", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("project-images/a.png", self.storage.objects)

    def test_batch_delete_conflicts(self):
        self.storage.put("project-images/a.png", b"img", "image/png")
        self.storage.put("project-images/b.png", b"img", "image/png")
        self.store.save(_document([_project("p1", imagePreviews=[{"src": "a.png"}])]))
        response = self.client.post(
            "/api/images/delete", json={"ids": ["a.png", "b.png"]}, headers=ADMIN
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(list(response.json()["conflicts"]), ["a.png"])
        self.assertIn("project-images/b.png", self.storage.objects)

    def test_rename_image(self):
        self.storage.put("project-images/a.png", b"img", "image/png")
        self.store.save(_document([_project("p1", imagePreviews=[{"src": "a.png"}])]))
        response = self.client.post(
            "/api/images/rename", json={"oldId": "a.png", "newId": "b.png"}, headers=ADMIN
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["updatedCount"], 1)

        response = self.client.post(
            "/api/images/rename", json={"old_id": "a.png", "new_id": "c.png"}, headers=ADMIN
        )
        self.assertEqual(response.status_code, 404)

    def test_upload_and_list_images(self):
        response = self.client.post(
            "/api/images",
            files={"file": ("shot.png", b"png-bytes", "image/png")},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 201)
        asset_id = response.json()["id"]

        response = self.client.post(
            "/api/images",
            files={"file": ("shot.png", b"png-bytes", "image/png")},
            headers=ADMIN,
        )
        self.assertEqual(response.status_code, 409)

        images = self.client.get("/api/images", headers=ADMIN).json()["images"]
        self.assertEqual([image["id"] for image in images], [asset_id])
        self.assertEqual(images[0]["referenceCount"], 0)

    def test_seed_and_diagnose(self):
        response = self.client.post("/api/admin/seed", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["seeded"])
        self.assertFalse(self.client.post("/api/admin/seed", headers=ADMIN).json()["seeded"])

        response = self.client.get("/api/admin/diagnose", headers=ADMIN)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["diagnostics"]["document"]["status"], "ok")
        self.assertEqual(payload["diagnostics"]["document"]["projects"], 4)
        self.assertIn("Projects: 4", payload["report"])

    def test_diagnose_reports_corrupt_document(self):
        self.storage.put("project-data.json", json.dumps([1]).encode(), "application/json")
        payload = self.client.get("/api/admin/diagnose", headers=ADMIN).json()
        self.assertEqual(payload["diagnostics"]["document"]["status"], "unreadable")

    def test_diagnose_reports_stored_violations(self):
        document = _document([_project("a", name="")])
        self.storage.put("project-data.json", json.dumps(document).encode(), "application/json")
        payload = self.client.get("/api/admin/diagnose", headers=ADMIN).json()
        diagnostics = payload["diagnostics"]["document"]
        self.assertEqual(diagnostics["status"], "invalid")
        self.assertFalse(diagnostics["validation"]["valid"])
        self.assertEqual(
            diagnostics["validation"]["errors"], ["Project 1 is missing required fields: name"]
        )
        self.assertEqual(diagnostics["projects"], 1)


if __name__ == "__main__":
    unittest.main()
