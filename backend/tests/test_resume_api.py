import json
import os
import tempfile
import unittest

import httpx

from fakes import FakeResumeServer

from labportal.services.errors import AuthError, TransientBackendError
from labportal.services.local_cache import LocalCache, cached_user_ids
from labportal.services.resume_api import ResumeApiClient


def _client(handler, token="id-token"):
    return ResumeApiClient(token, transport=httpx.MockTransport(handler))


class ResumeApiClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_alternate_negotiation_field_names(self):
        def handler(request):
            return httpx.Response(200, json={"uploadUrl": "https://put.test", "objectKey": "k.pdf"})

        self.assertEqual(
            await _client(handler).request_upload_url("k.pdf", "application/pdf", 4),
            ("https://put.test", "k.pdf"),
        )

    async def test_incomplete_negotiation_response(self):
        def handler(request):
            return httpx.Response(200, json={"fileKey": "k.pdf"})

        with self.assertRaises(TransientBackendError):
            await _client(handler).request_upload_url("k.pdf", "application/pdf", 4)

    async def test_network_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(TransientBackendError):
            await _client(handler).update_user_resume({"resumeData": "{}"})

    async def test_error_detail_in_message(self):
        def handler(request):
            return httpx.Response(403, json={"message": "Forbidden bucket"})

        with self.assertRaises(TransientBackendError) as ctx:
            await _client(handler).get_read_url("k.pdf")
        self.assertIn("Forbidden bucket", ctx.exception.message)

    async def test_read_url_needs_url_field(self):
        def handler(request):
            return httpx.Response(200, text="ok")

        with self.assertRaises(TransientBackendError):
            await _client(handler).get_read_url("k.pdf")

    async def test_no_token(self):
        server = FakeResumeServer()
        with self.assertRaises(AuthError):
            await server.api(None).confirm_upload("k.pdf")
        self.assertEqual(server.requests, [])

    async def test_bodies(self):
        server = FakeResumeServer()
        await server.api().confirm_upload("k.pdf")

        request = server.calls("/confirm")[0]
        self.assertEqual(request.url.path, "/uploadResume/confirm")
        self.assertEqual(json.loads(request.content), {"fileKey": "k.pdf"})


class LocalCacheTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    async def asyncTearDown(self):
        self.tmp.cleanup()

    async def test_round_trip_and_separate_entries(self):
        cache = LocalCache("user/../1", self.tmp.name)
        self.assertIsNone(await cache.read_resume_details())
        self.assertIsNone(await cache.read_document_key())

        await cache.write_resume_details({"skills": ["Go"]})
        await cache.write_document_key("resumes/cv.pdf")

        self.assertEqual(await cache.read_resume_details(), {"skills": ["Go"]})
        self.assertEqual(await cache.read_document_key(), "resumes/cv.pdf")
        self.assertTrue(cache.directory.startswith(self.tmp.name))
        self.assertEqual(os.listdir(self.tmp.name), [os.path.basename(cache.directory)])

    async def test_ids_that_differ_only_in_punctuation_keep_separate_caches(self):
        first = LocalCache("alice@lab.edu", self.tmp.name)
        second = LocalCache("alice_lab_edu", self.tmp.name)

        await first.write_resume_details({"skills": ["Go"]})

        self.assertNotEqual(first.directory, second.directory)
        self.assertIsNone(await second.read_resume_details())

    async def test_cached_user_ids_returns_original_ids(self):
        await LocalCache("alice@lab.edu", self.tmp.name).write_resume_details({"skills": ["Go"]})
        await LocalCache("bob", self.tmp.name).write_document_key("resumes/bob/cv.pdf")
        os.makedirs(os.path.join(self.tmp.name, "stray"))

        self.assertEqual(cached_user_ids(self.tmp.name), ["alice@lab.edu", "bob"])
        self.assertEqual(cached_user_ids(os.path.join(self.tmp.name, "missing")), [])

    async def test_corrupt_cache_reads_as_empty(self):
        cache = LocalCache("user-1", self.tmp.name)
        await cache.write_document_key("k")
        with open(os.path.join(cache.directory, "resume_details.json"), "w") as f:
            f.write("{truncated")

        self.assertIsNone(await cache.read_resume_details())


if __name__ == "__main__":
    unittest.main()
