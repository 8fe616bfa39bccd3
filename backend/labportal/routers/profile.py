"""
Profile Router - resume details, completeness, and resume document upload
"""
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Query, status

from ..schemas.profile import ResumeDetails, CompletenessReport, ViewUrl
from ..services.auth import get_current_session
from ..services.document_upload import DocumentFile, DocumentUploadCoordinator
from ..services.errors import AuthError, TransientBackendError, ValidationError
from ..services.profile_store import ProfileStore, UserSession
from ..services.record_store import RecordStoreFactory

router = APIRouter(prefix="/api/profile", tags=["Profile"])

# One factory per process; it keeps the store once connected
record_store_factory = RecordStoreFactory()


# ============================================================================
# Dependencies
# ============================================================================

async def get_profile_store(session: UserSession = Depends(get_current_session)) -> ProfileStore:
    return ProfileStore(session, record_store_factory)


async def get_upload_coordinator(
    store: ProfileStore = Depends(get_profile_store)
) -> DocumentUploadCoordinator:
    return DocumentUploadCoordinator(store)


# ============================================================================
# Resume Details
# ============================================================================

@router.get("/resume", response_model=ResumeDetails)
async def get_resume(store: ProfileStore = Depends(get_profile_store)):
    """Resume details from the first tier that has them (defaults otherwise)."""
    return await store.load()


@router.put("/resume")
async def save_resume(details: ResumeDetails, store: ProfileStore = Depends(get_profile_store)):
    """
    Save resume details to every tier that will take them.

    Reports success when any tier persisted, the local cache included.
    """
    success = await store.save(details)
    if not success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save resume details. Please try again."
        )
    return {"success": True}


@router.post("/resume/sync")
async def sync_resume(store: ProfileStore = Depends(get_profile_store)):
    """Push locally cached resume details to the remote tiers."""
    return {"success": await store.sync()}


@router.get("/completeness", response_model=CompletenessReport)
async def get_completeness(store: ProfileStore = Depends(get_profile_store)):
    return await store.completeness()


# ============================================================================
# Resume Document
# ============================================================================

@router.post("/upload-resume")
async def upload_resume(
    file: UploadFile = File(...),
    coordinator: DocumentUploadCoordinator = Depends(get_upload_coordinator)
):
    """
    Upload a resume document straight to the object store.

    FLOW:
    1. Validate size and type -> FAIL FAST, nothing sent
    2. Transfer through a short-lived write URL
    3. Record the object key (confirm / fallback endpoint / primary store)
    """
    content = await file.read()
    document = DocumentFile(
        name=file.filename or "",
        content=content,
        content_type=file.content_type if file.content_type != "application/octet-stream" else None,
    )

    try:
        result = await coordinator.upload(document)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except TransientBackendError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    return {"fileKey": result.file_key}


@router.get("/resume-url", response_model=ViewUrl)
async def get_resume_url(
    key: str = Query(..., min_length=1),
    coordinator: DocumentUploadCoordinator = Depends(get_upload_coordinator)
):
    """Fresh viewing or download reference for a stored resume document."""
    try:
        return await coordinator.get_view_url(key)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message)
    except TransientBackendError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
