"""
Resume API client - the server endpoints used by the upload protocol and
by the REST fallback tier of the profile store.

All calls carry the caller's bearer token. Any network failure or non-2xx
answer is raised as TransientBackendError so callers can move on to the
next path.
"""
import logging
from typing import Any, Dict, Optional, Tuple

import httpx

from ..config import Settings, get_settings
from .errors import AuthError, TransientBackendError

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
        if isinstance(data, dict):
            return str(data.get("message") or data.get("error") or data)
    except ValueError:
        pass
    return response.text[:500] if response.text else "Unknown error"


class ResumeApiClient:
    def __init__(
        self,
        id_token: Optional[str],
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.id_token = id_token
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            transport=self._transport,
        )

    def _auth_headers(self) -> Dict[str, str]:
        if not self.id_token:
            raise AuthError("No auth token available")
        return {
            "Authorization": f"Bearer {self.id_token}",
            "Content-Type": "application/json",
        }

    async def _post_json(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._auth_headers()
        try:
            async with self._client() as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise TransientBackendError(f"POST {url} failed: {e}")

        if not response.is_success:
            raise TransientBackendError(
                f"POST {url} returned {response.status_code}: {_error_detail(response)}"
            )
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    # ========== Upload protocol ==========

    async def request_upload_url(self, file_name: str, file_type: str, file_size: int) -> Tuple[str, str]:
        """Ask the upload endpoint for a short-lived write URL and the object key."""
        data = await self._post_json(
            self.settings.endpoint("resume_upload_endpoint"),
            {"fileName": file_name, "fileType": file_type, "fileSize": file_size},
        )
        upload_url = data.get("presignedUrl") or data.get("uploadUrl")
        file_key = data.get("fileKey") or data.get("objectKey")
        if not upload_url or not file_key:
            raise TransientBackendError("Invalid response from upload endpoint")
        return upload_url, file_key

    async def put_object(self, upload_url: str, content: bytes, content_type: str) -> None:
        """Send the raw bytes straight to the object store."""
        try:
            async with self._client() as client:
                response = await client.put(
                    upload_url,
                    content=content,
                    headers={"Content-Type": content_type},
                )
        except httpx.HTTPError as e:
            raise TransientBackendError(f"Upload to object store failed: {e}")
        if not response.is_success:
            raise TransientBackendError(
                f"Failed to upload file to object store. Status: {response.status_code}"
            )

    async def confirm_upload(self, file_key: str) -> None:
        await self._post_json(
            f"{self.settings.endpoint('resume_upload_endpoint')}/confirm",
            {"fileKey": file_key},
        )

    # ========== Record update ==========

    async def update_user_resume(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post_json(self.settings.endpoint("update_user_resume_endpoint"), body)

    # ========== Read URLs ==========

    async def get_read_url(self, key: str) -> str:
        """Fresh short-lived read URL for an object key."""
        headers = self._auth_headers()
        url = self.settings.endpoint("resume_url_endpoint")
        try:
            async with self._client() as client:
                response = await client.get(url, params={"key": key}, headers=headers)
        except httpx.HTTPError as e:
            raise TransientBackendError(f"GET {url} failed: {e}")
        if not response.is_success:
            raise TransientBackendError(
                f"Failed to get resume URL: {response.status_code} - {_error_detail(response)}"
            )
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict) or not data.get("url"):
            raise TransientBackendError("Invalid response from resume URL endpoint")
        return data["url"]
