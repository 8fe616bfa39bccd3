import os
import tempfile
import unittest

from fakes import FakeResumeServer, SwitchableStoreFactory, make_database

from labportal.schemas.profile import ResumeDetails
from labportal.services.document_upload import DocumentFile, DocumentUploadCoordinator
from labportal.services.profile_store import ProfileStore, UserSession


class ProfileLifecycleTests(unittest.IsolatedAsyncioTestCase):
    """Save a profile, check completeness, upload a resume, check again."""

    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.engine, session_maker = await make_database(self.tmp.name)
        self.server = FakeResumeServer()
        self.store = ProfileStore(
            UserSession(user_id="student-1", email="s1@example.edu", id_token="id-token"),
            record_store_factory=SwitchableStoreFactory(session_maker),
            api=self.server.api(),
            cache_dir=os.path.join(self.tmp.name, "cache"),
        )

    async def asyncTearDown(self):
        await self.engine.dispose()
        self.tmp.cleanup()

    async def test_upload_completes_the_profile(self):
        saved = await self.store.save(ResumeDetails.model_validate({
            "education": [{"institution": "X", "degree": "BS", "major": "CS", "seniority": "senior"}],
            "skills": ["Python", "SQL"],
        }))
        self.assertTrue(saved)

        before = await self.store.completeness()
        self.assertTrue(before.education_complete)
        self.assertTrue(before.skills_complete)
        self.assertFalse(before.resume_file_uploaded)
        self.assertFalse(before.is_complete)

        coordinator = DocumentUploadCoordinator(self.store)
        await coordinator.upload(DocumentFile("resume.pdf", b"%PDF-1.4" + b"0" * (2 * 1024 * 1024)))

        after = await self.store.completeness()
        self.assertTrue(after.resume_file_uploaded)
        self.assertTrue(after.is_complete)
        self.assertGreater(after.overall_score, before.overall_score)

        # The upload re-sent the saved details rather than overwriting them
        details = await self.store.load()
        self.assertEqual(details.skills, ["Python", "SQL"])
        self.assertEqual(details.education[0].institution, "X")


if __name__ == "__main__":
    unittest.main()
