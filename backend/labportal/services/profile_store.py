"""
Profile Store - tiered persistence of a user's resume details.

Tiers, in priority order:
  1. local cache      (always written first, best-effort)
  2. primary store    (users table; update if the record exists, else create)
  3. REST fallback    (update-record endpoint, only when the primary tier failed)

`save` succeeds when any sink succeeded, including the local cache alone.
Tiers that diverge that way stay diverged until `sync` is called; there is
no background reconciliation.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config import get_settings
from ..schemas.profile import ApplicationSnapshot, CompletenessReport, ResumeDetails
from .completeness import evaluate
from .errors import AuthError, NotFoundError, TransientBackendError
from .local_cache import LocalCache
from .profile_normalizer import (
    default_resume_details,
    legacy_form,
    load_stored_resume,
    normalize,
    structured_form,
)
from .record_store import RecordStoreFactory, utc_now
from .resume_api import ResumeApiClient

logger = logging.getLogger(__name__)


@dataclass
class UserSession:
    """The authenticated caller a store instance acts for."""
    user_id: str
    email: str = ""
    id_token: Optional[str] = None


@dataclass
class ProfilePayload:
    """One save: both resume forms share a single timestamp across all sinks."""
    details: ResumeDetails
    timestamp: datetime

    @property
    def resume_data(self) -> str:
        return legacy_form(self.details)

    @property
    def resume(self) -> Dict[str, Any]:
        return structured_form(self.details, self.timestamp.isoformat())

    def store_fields(self) -> Dict[str, Any]:
        return {
            "resume_data": self.resume_data,
            "resume": self.resume,
            "resume_last_updated": self.timestamp,
        }

    def rest_body(self) -> Dict[str, Any]:
        resume = self.resume
        return {
            "resumeData": self.resume_data,
            "resume": resume,
            "education": resume["education"],
            "experience": resume["experience"],
            "skills": resume["skills"],
            "projects": resume["projects"],
        }


# ============================================================================
# Sinks
# ============================================================================

class ProfileSink:
    name = "sink"

    async def try_save(self, payload: ProfilePayload) -> bool:
        raise NotImplementedError


class LocalCacheSink(ProfileSink):
    name = "local cache"

    def __init__(self, cache: LocalCache):
        self.cache = cache

    async def try_save(self, payload: ProfilePayload) -> bool:
        try:
            await self.cache.write_resume_details(payload.details.to_wire())
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save resume details to local cache: {e}")
            return False


class PrimaryStoreSink(ProfileSink):
    name = "primary store"

    def __init__(self, factory: RecordStoreFactory, session: UserSession):
        self.factory = factory
        self.session = session

    async def try_save(self, payload: ProfilePayload) -> bool:
        result = await self.factory.get()
        if not result.ok:
            return False
        try:
            await result.store.upsert(self.session.user_id, self.session.email, payload.store_fields())
            return True
        except (TransientBackendError, NotFoundError) as e:
            logger.error(f"Error saving resume details to primary store: {e}")
            return False


class RestFallbackSink(ProfileSink):
    name = "REST fallback"

    def __init__(self, api: ResumeApiClient):
        self.api = api

    async def try_save(self, payload: ProfilePayload) -> bool:
        try:
            await self.api.update_user_resume(payload.rest_body())
            return True
        except (TransientBackendError, AuthError) as e:
            logger.error(f"REST fallback failed: {e}")
            return False


# ============================================================================
# Store
# ============================================================================

class ProfileStore:
    def __init__(
        self,
        session: UserSession,
        record_store_factory: Optional[RecordStoreFactory] = None,
        api: Optional[ResumeApiClient] = None,
        cache_dir: Optional[str] = None,
    ):
        self.session = session
        self.factory = record_store_factory or RecordStoreFactory()
        self.api = api or ResumeApiClient(session.id_token)
        self.cache_dir = cache_dir or get_settings().local_cache_dir
        self.cache = self.cache_for(session.user_id)

        self.local_sink = LocalCacheSink(self.cache)
        self.remote_sinks: List[ProfileSink] = [
            PrimaryStoreSink(self.factory, session),
            RestFallbackSink(self.api),
        ]

    def cache_for(self, user_id: str) -> LocalCache:
        return LocalCache(user_id, self.cache_dir)

    async def _write_remote(self, payload: ProfilePayload) -> bool:
        """Remote tiers in order; stop at the first one that takes the payload."""
        for sink in self.remote_sinks:
            if await sink.try_save(payload):
                logger.info(f"Resume details for {self.session.user_id} saved to {sink.name}")
                return True
            logger.warning(f"{sink.name} did not accept resume details, trying next tier")
        return False

    async def _fetch_record(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = await self.factory.get()
        if not result.ok:
            return None
        try:
            return await result.store.get(user_id)
        except TransientBackendError as e:
            logger.error(f"Error loading user record from primary store: {e}")
            return None

    async def load(self, user_id: Optional[str] = None) -> ResumeDetails:
        """Resume details from the first tier that has them. Never raises."""
        user_id = user_id or self.session.user_id
        cache = self.cache_for(user_id)

        record = await self._fetch_record(user_id)
        if record:
            details = load_stored_resume(record.get("resume"), record.get("resumeData"))
            if details is not None:
                try:
                    await cache.write_resume_details(details.to_wire())
                except (OSError, TypeError, ValueError) as e:
                    logger.warning(f"Could not cache resume details locally: {e}")
                return details
            logger.info(f"No usable resume data in primary store for {user_id}")

        cached = await cache.read_resume_details()
        if cached is not None:
            logger.info(f"Loaded resume details for {user_id} from local cache")
            return normalize(cached)

        return default_resume_details()

    async def save(self, details: ResumeDetails) -> bool:
        payload = ProfilePayload(normalize(details.to_wire()), utc_now())

        cached = await self.local_sink.try_save(payload)
        remote = await self._write_remote(payload)

        if not remote:
            logger.warning(
                f"Resume details for {self.session.user_id} not saved remotely"
                + ("; kept in local cache until sync" if cached else "")
            )
        if not (cached or remote):
            logger.error(f"Every tier failed to save resume details for {self.session.user_id}")
        return cached or remote

    async def sync(self) -> bool:
        """Push the locally cached resume details to the remote tiers."""
        raw = await self.cache.read_resume_details()
        if raw is None:
            logger.info("No local resume data to sync")
            return False

        synced = await self._write_remote(ProfilePayload(normalize(raw), utc_now()))
        if synced:
            logger.info(f"Synced local resume data for {self.session.user_id}")
        else:
            logger.warning(f"Failed to sync local resume data for {self.session.user_id}")
        return synced

    # ========== Document pointer ==========

    async def remember_document_key(self, file_key: str) -> bool:
        try:
            await self.cache.write_document_key(file_key)
            return True
        except OSError as e:
            logger.warning(f"Could not cache document key locally: {e}")
            return False

    async def has_uploaded_document(self) -> bool:
        if await self.cache.read_document_key():
            return True

        record = await self._fetch_record(self.session.user_id)
        if record and record.get("resumeFileName"):
            await self.remember_document_key(record["resumeFileName"])
            return True
        return False

    async def record_document(self, file_key: str, file_url: str, snapshot: ResumeDetails) -> bool:
        """Point the primary record at an uploaded document, re-sending the snapshot."""
        result = await self.factory.get()
        if not result.ok:
            return False

        payload = ProfilePayload(snapshot, utc_now())
        fields = payload.store_fields()
        fields.update({"resume_file_name": file_key, "resume_url": file_url})
        try:
            await result.store.upsert(self.session.user_id, self.session.email, fields)
            return True
        except (TransientBackendError, NotFoundError) as e:
            logger.error(f"Error updating user record, but file was uploaded: {e}")
            return False

    # ========== Derived views ==========

    async def completeness(self) -> CompletenessReport:
        details = await self.load()
        return evaluate(details, await self.has_uploaded_document())

    async def application_snapshot(self) -> ApplicationSnapshot:
        """Resume details plus the document pointer, as attached to an application."""
        details = await self.load()
        record = await self._fetch_record(self.session.user_id) or {}
        return ApplicationSnapshot(
            resume_details=details,
            resume_file_name=record.get("resumeFileName") or await self.cache.read_document_key(),
            resume_file_url=record.get("resumeUrl"),
            user_email=self.session.email or record.get("email"),
        )
