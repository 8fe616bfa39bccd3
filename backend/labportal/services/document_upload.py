"""
Document Upload Coordinator - resume upload through a short-lived write URL.

FLOW:
1. Validate size and extension locally -> FAIL FAST, no network traffic
2. Ask the upload endpoint for a write URL and object key
3. PUT the raw bytes straight to the object store
4. Confirm with the upload endpoint; if that fails, post the file pointer
   plus the full resume snapshot to the update-record endpoint
5. Independently, point the primary record at the new object
6. Cache the object key locally whatever the remote outcome

Steps 4 and 5 run concurrently. Any one of the three record-update paths
succeeding is enough for the record to converge.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import Settings, get_settings
from ..schemas.profile import ResumeDetails, UploadResult, ViewUrl
from .errors import (
    AuthError,
    DocumentRecordError,
    DocumentTooLargeError,
    DocumentTransferError,
    TransientBackendError,
    UnsupportedDocumentTypeError,
)
from .profile_store import ProfilePayload, ProfileStore
from .record_store import utc_now
from .resume_api import ResumeApiClient

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ["pdf", "doc", "docx"]
CONTENT_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
OBJECT_STORE_HOST_MARKER = "amazonaws.com/"
PUBLIC_PREFIX = "public/"


def file_extension(file_name: str) -> Optional[str]:
    if not file_name or "." not in file_name:
        return None
    return file_name.rsplit(".", 1)[-1].lower() or None


def content_type_for(file_name: str) -> str:
    return CONTENT_TYPES.get(file_extension(file_name) or "", "application/octet-stream")


def normalize_object_key(reference: str) -> str:
    """Object key from a stored key or a full object-store URL."""
    key = reference
    if OBJECT_STORE_HOST_MARKER in key:
        key = key.split(OBJECT_STORE_HOST_MARKER, 1)[1]
    key = key.split("?", 1)[0]
    if key.startswith(PUBLIC_PREFIX):
        key = key[len(PUBLIC_PREFIX):]
    return key


@dataclass
class DocumentFile:
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


class DocumentUploadCoordinator:
    def __init__(
        self,
        profile_store: ProfileStore,
        api: Optional[ResumeApiClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.profile_store = profile_store
        self.api = api or profile_store.api
        self.settings = settings or get_settings()

    def validate(self, file: DocumentFile) -> str:
        """Reject oversized or unsupported files before any request is made."""
        limit = self.settings.max_resume_size_bytes
        if file.size > limit:
            raise DocumentTooLargeError(file.size, limit)
        extension = file_extension(file.name)
        if extension not in ALLOWED_EXTENSIONS:
            raise UnsupportedDocumentTypeError(extension, ALLOWED_EXTENSIONS)
        return extension

    def object_url(self, file_key: str) -> str:
        return (
            f"https://{self.settings.resume_bucket}.s3.{self.settings.aws_region}"
            f".amazonaws.com/{file_key}"
        )

    async def upload(self, file: DocumentFile) -> UploadResult:
        self.validate(file)
        content_type = file.content_type or content_type_for(file.name)

        logger.info(f"Requesting upload URL for {file.name} ({file.size} bytes)")
        try:
            upload_url, file_key = await self.api.request_upload_url(file.name, content_type, file.size)
        except TransientBackendError as e:
            raise DocumentTransferError(f"Failed to get upload URL: {e.message}")

        try:
            await self.api.put_object(upload_url, file.content, content_type)
        except TransientBackendError as e:
            raise DocumentTransferError(e.message)
        logger.info(f"Uploaded {file_key} to object store")

        file_url = self.object_url(file_key)
        snapshot = await self.profile_store.load()

        (confirmed, fallback_recorded), store_recorded = await asyncio.gather(
            self._confirm(file_key, file_url, snapshot),
            self.profile_store.record_document(file_key, file_url, snapshot),
        )

        await self.profile_store.remember_document_key(file_key)

        if not (confirmed or fallback_recorded or store_recorded):
            logger.error(f"No record-update path succeeded for {file_key}")
            raise DocumentRecordError(file_key)

        return UploadResult(
            file_key=file_key,
            confirmed=confirmed,
            fallback_recorded=fallback_recorded,
            store_recorded=store_recorded,
        )

    async def _confirm(self, file_key: str, file_url: str, snapshot: ResumeDetails) -> Tuple[bool, bool]:
        """Confirmation endpoint first, update-record endpoint when it fails."""
        try:
            await self.api.confirm_upload(file_key)
            logger.info("Upload confirmed with server")
            return True, False
        except (TransientBackendError, AuthError) as e:
            logger.warning(f"Failed to confirm upload with server, trying fallback endpoint: {e}")

        # Re-send the snapshot so unsaved edits are not lost by a pointer-only write
        body = ProfilePayload(snapshot, utc_now()).rest_body()
        body.update({"resumeFileName": file_key, "resumeUrl": file_url})
        try:
            await self.api.update_user_resume(body)
            logger.info("Updated user record using fallback endpoint")
            return False, True
        except (TransientBackendError, AuthError) as e:
            logger.warning(f"Fallback endpoint also failed: {e}")
            return False, False

    async def get_view_url(self, reference: str) -> ViewUrl:
        """
        Fresh viewing reference for a stored document.

        PDFs open inline and Word documents download, both through a newly
        issued read URL. Anything else is returned for a direct open.
        """
        key = normalize_object_key(reference)
        extension = file_extension(key)

        if extension == "pdf":
            url = await self.api.get_read_url(key)
            return ViewUrl(url=url, key=key, disposition="inline")

        if extension in ("doc", "docx"):
            url = await self.api.get_read_url(key)
            return ViewUrl(url=url, key=key, disposition="attachment", file_name=f"resume.{extension}")

        return ViewUrl(url=reference, key=key, disposition="direct")
