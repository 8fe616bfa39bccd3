from .errors import (
    PortalError,
    ValidationError,
    DocumentTooLargeError,
    UnsupportedDocumentTypeError,
    AuthError,
    ExportForbiddenError,
    NotFoundError,
    TransientBackendError,
    DocumentTransferError,
    DocumentRecordError,
    MalformedDataError
)
from .profile_normalizer import (
    StoredResume,
    normalize,
    default_resume_details,
    load_stored_resume
)
from .completeness import evaluate
from .record_store import (
    RecordStore,
    RecordStoreFactory,
    StoreResult,
    SqlUserRecordSource
)
from .profile_store import ProfileStore, UserSession
from .document_upload import (
    DocumentFile,
    DocumentUploadCoordinator,
    content_type_for
)
from .recommendation_export import (
    RecommendationExporter,
    ExportResult,
    derive_years_of_experience
)
from .auth import (
    CallerContext,
    get_current_session,
    get_export_caller,
    oauth2_scheme
)

__all__ = [
    # Errors
    "PortalError",
    "ValidationError",
    "DocumentTooLargeError",
    "UnsupportedDocumentTypeError",
    "AuthError",
    "ExportForbiddenError",
    "NotFoundError",
    "TransientBackendError",
    "DocumentTransferError",
    "DocumentRecordError",
    "MalformedDataError",
    # Normalization
    "StoredResume",
    "normalize",
    "default_resume_details",
    "load_stored_resume",
    "evaluate",
    # Persistence
    "RecordStore",
    "RecordStoreFactory",
    "StoreResult",
    "SqlUserRecordSource",
    "ProfileStore",
    "UserSession",
    # Documents
    "DocumentFile",
    "DocumentUploadCoordinator",
    "content_type_for",
    # Export
    "RecommendationExporter",
    "ExportResult",
    "derive_years_of_experience",
    # Auth
    "CallerContext",
    "get_current_session",
    "get_export_caller",
    "oauth2_scheme"
]
