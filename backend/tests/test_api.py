import os
import tempfile
import unittest

from fakes import FakeResumeServer, ListRecordSource, SwitchableStoreFactory, UPLOAD_KEY, make_token

from fastapi import Depends
from fastapi.testclient import TestClient

from labportal.config import get_settings
from labportal.main import app
from labportal.routers.profile import get_profile_store
from labportal.routers.recommendations import get_exporter
from labportal.services.auth import get_current_session
from labportal.services.errors import NotFoundError
from labportal.services.profile_store import ProfileStore, UserSession
from labportal.services.record_store import UserRecordSource
from labportal.services.recommendation_export import RecommendationExporter


class MissingTableSource(UserRecordSource):
    async def scan(self):
        raise NotFoundError("User table not found")


class ProfileApiTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.server = FakeResumeServer()
        cache_dir = os.path.join(self.tmp.name, "cache")

        # Primary store offline: reads come from the local cache, writes reach the REST fallback
        def profile_store(session: UserSession = Depends(get_current_session)):
            return ProfileStore(
                session,
                record_store_factory=SwitchableStoreFactory(available=False),
                api=self.server.api(session.id_token),
                cache_dir=cache_dir,
            )

        app.dependency_overrides[get_profile_store] = profile_store
        self.client = TestClient(app)
        self.auth = {"Authorization": f"Bearer {make_token('student-1', ['Student'], 's1@example.edu')}"}

    def tearDown(self):
        app.dependency_overrides.clear()
        self.tmp.cleanup()

    def test_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/profile/resume").status_code, 401)
        response = self.client.get("/api/profile/resume", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(response.status_code, 401)

    def test_new_user_gets_default_resume(self):
        response = self.client.get("/api/profile/resume", headers=self.auth)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["skills"], [""])
        self.assertEqual(body["education"][0]["institution"], "")
        self.assertIn("personalLinks", body)
        self.assertEqual(response.headers["Cache-Control"], "no-cache, no-store, must-revalidate")

    def test_save_then_load(self):
        response = self.client.put(
            "/api/profile/resume",
            json={"skills": ["Python", "SQL"], "education": [{"institution": "X"}]},
            headers=self.auth,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(len(self.server.calls("/updateUserResume")), 1)

        body = self.client.get("/api/profile/resume", headers=self.auth).json()
        self.assertEqual(body["skills"], ["Python", "SQL"])
        self.assertEqual(body["education"][0]["institution"], "X")

    def test_sync(self):
        self.assertEqual(
            self.client.post("/api/profile/resume/sync", headers=self.auth).json(),
            {"success": False},
        )
        self.client.put("/api/profile/resume", json={"skills": ["Go"]}, headers=self.auth)

        response = self.client.post("/api/profile/resume/sync", headers=self.auth)

        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(len(self.server.calls("/updateUserResume")), 2)

    def test_completeness(self):
        response = self.client.get("/api/profile/completeness", headers=self.auth)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["overallScore"], 0)
        self.assertEqual(body["label"], "Needs Attention")
        self.assertFalse(body["isComplete"])

    def test_upload_rejects_bad_type(self):
        response = self.client.post(
            "/api/profile/upload-resume",
            files={"file": ("setup.exe", b"MZ", "application/octet-stream")},
            headers=self.auth,
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid file type", response.json()["detail"])
        self.assertEqual(self.server.requests, [])

    def test_upload_returns_key(self):
        response = self.client.post(
            "/api/profile/upload-resume",
            files={"file": ("resume.pdf", b"%PDF-1.4", "application/pdf")},
            headers=self.auth,
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"fileKey": UPLOAD_KEY})

    def test_upload_reports_record_failure(self):
        self.server.failing.update({"/confirm", "/updateUserResume"})

        response = self.client.post(
            "/api/profile/upload-resume",
            files={"file": ("resume.pdf", b"%PDF-1.4", "application/pdf")},
            headers=self.auth,
        )

        self.assertEqual(response.status_code, 502)

    def test_resume_url(self):
        response = self.client.get(
            "/api/profile/resume-url", params={"key": "public/resumes/cv.pdf"}, headers=self.auth
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["key"], "resumes/cv.pdf")
        self.assertEqual(body["disposition"], "inline")
        self.assertEqual(body["url"], self.server.read_url)

    def test_resume_url_backend_failure(self):
        self.server.failing.add("/getResumeUrl")

        response = self.client.get(
            "/api/profile/resume-url", params={"key": "resumes/cv.pdf"}, headers=self.auth
        )

        self.assertEqual(response.status_code, 502)


class RecommendationApiTests(unittest.TestCase):
    def setUp(self):
        self.source = ListRecordSource([
            {"id": "s1", "email": "s1@example.edu", "roles": ["Student"], "profileComplete": True},
            {"id": "s2", "roles": ["Student"], "profileComplete": False},
            {"id": "a1", "roles": ["Admin"], "profileComplete": True},
        ])
        app.dependency_overrides[get_exporter] = lambda: RecommendationExporter(self.source)
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def _auth(self, groups):
        return {"Authorization": f"Bearer {make_token('prof-1', groups)}"}

    def test_professor_gets_complete_students(self):
        response = self.client.get("/api/recommendations/profiles", headers=self._auth(["Professor"]))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["profiles"][0]["userId"], "s1")
        self.assertEqual(body["metadata"]["requestedBy"], "prof-1")

    def test_group_claim_as_string(self):
        response = self.client.get(
            "/api/recommendations/profiles",
            params={"includeIncomplete": "true"},
            headers=self._auth("Student,LabAssistant"),
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 2)

    def test_student_is_forbidden(self):
        response = self.client.get("/api/recommendations/profiles", headers=self._auth(["Student"]))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json(), {
            "error": "Unauthorized. You need Admin, Professor, or LabAssistant role to access this resource.",
            "yourRoles": ["Student"],
            "requiredRoles": ["Admin", "Professor", "LabAssistant"],
        })
        self.assertEqual(self.source.scans, 0)

    def test_unauthenticated_request(self):
        self.assertEqual(self.client.get("/api/recommendations/profiles").status_code, 401)

    def _with_api_key(self, key, headers):
        settings = get_settings()
        settings.export_api_key = key
        try:
            return self.client.get("/api/recommendations/profiles", headers=headers)
        finally:
            settings.export_api_key = ""

    def test_api_key_rejected_when_none_configured(self):
        response = self.client.get("/api/recommendations/profiles", headers={"X-API-Key": "any"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.source.scans, 0)

    def test_configured_api_key(self):
        accepted = self._with_api_key("export-key", {"X-API-Key": "export-key"})
        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(accepted.json()["count"], 1)

        rejected = self._with_api_key("export-key", {"X-API-Key": "wrong"})
        self.assertEqual(rejected.status_code, 401)

    def test_wrong_api_key_falls_through_to_bearer_token(self):
        headers = {"X-API-Key": "wrong", **self._auth(["Admin"])}
        self.assertEqual(self._with_api_key("export-key", headers).status_code, 200)
        self.assertEqual(self._with_api_key("", headers).status_code, 200)

    def test_csv(self):
        response = self.client.get(
            "/api/recommendations/profiles",
            params={"format": "csv"},
            headers=self._auth(["Admin"]),
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertEqual(
            response.headers["content-disposition"],
            'attachment; filename="student-profiles.csv"',
        )
        self.assertTrue(response.text.startswith("userId,email,education,"))

    def test_missing_table_is_internal_error(self):
        app.dependency_overrides[get_exporter] = lambda: RecommendationExporter(MissingTableSource())

        response = self.client.get("/api/recommendations/profiles", headers=self._auth(["Admin"]))

        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertEqual(set(body), {"error", "message"})
        self.assertEqual(body["message"], "User table not found")

    def test_test_path_is_disabled_by_default(self):
        self.assertEqual(self.client.get("/api/recommendations/test-profiles").status_code, 404)

    def test_test_path_when_enabled(self):
        settings = get_settings()
        settings.export_test_path_enabled = True
        try:
            response = self.client.get("/api/recommendations/test-profiles")
        finally:
            settings.export_test_path_enabled = False

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["metadata"]["requestedBy"], "")


if __name__ == "__main__":
    unittest.main()
