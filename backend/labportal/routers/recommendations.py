"""
Recommendations Router - student profile export for the recommendation engine
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse, Response

from ..config import get_settings
from ..schemas.recommendation import ExportOptions
from ..services.auth import CallerContext, TEST, get_export_caller
from ..services.errors import ExportForbiddenError, PortalError
from ..services.recommendation_export import RecommendationExporter
from ..services.record_store import SqlUserRecordSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recommendations", tags=["Recommendations"])

CSV_FILENAME = "student-profiles.csv"


def get_exporter() -> RecommendationExporter:
    return RecommendationExporter(SqlUserRecordSource())


async def _export(caller: CallerContext, exporter: RecommendationExporter, options: ExportOptions):
    try:
        result = await exporter.build(caller, options)
    except ExportForbiddenError as e:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "error": e.message,
                "yourRoles": e.your_roles,
                "requiredRoles": e.required_roles,
            }
        )
    except PortalError as e:
        logger.error(f"Error exporting user profiles: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to export user profiles", "message": e.message}
        )

    if result.is_csv:
        return Response(
            content=result.csv_text,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{CSV_FILENAME}"'}
        )
    return JSONResponse(content=result.response.to_wire())


@router.get("/profiles")
async def export_profiles(
    format: str = Query("json"),
    include_incomplete: bool = Query(False, alias="includeIncomplete"),
    caller: CallerContext = Depends(get_export_caller),
    exporter: RecommendationExporter = Depends(get_exporter)
):
    """
    Student profiles for the recommendation engine.

    Requires Admin, Professor or LabAssistant group membership, or an API key.
    """
    options = ExportOptions(format=format, include_incomplete=include_incomplete)
    return await _export(caller, exporter, options)


@router.get("/test-profiles")
async def export_test_profiles(
    format: str = Query("json"),
    include_incomplete: bool = Query(False, alias="includeIncomplete"),
    exporter: RecommendationExporter = Depends(get_exporter)
):
    """Unauthenticated export for integration testing; off unless enabled in settings."""
    if not get_settings().export_test_path_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    options = ExportOptions(format=format, include_incomplete=include_incomplete)
    return await _export(CallerContext(kind=TEST), exporter, options)
