"""
Recommendation Export - student profiles for the external recommendation engine.

One call = one full scan of the user records:
1. Authorize the caller (before any read)
2. Keep students only
3. Normalize each stored resume (structured, else legacy, else empty)
4. Derive years of experience when none was entered
5. Drop incomplete profiles unless asked for them
6. Encode as JSON or CSV

A failed scan aborts the whole export; there are no partial results.
"""
import calendar
import csv
import io
import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.user import UserRole
from ..schemas.profile import Experience
from ..schemas.recommendation import (
    ExportMetadata,
    ExportOptions,
    ExportResponse,
    RecommendationProfile,
)
from .auth import CallerContext
from .errors import ExportForbiddenError
from .profile_normalizer import default_resume_details, load_stored_resume
from .record_store import UserRecordSource, utc_now

logger = logging.getLogger(__name__)

REQUIRED_ROLES = [UserRole.ADMIN.value, UserRole.PROFESSOR.value, UserRole.LAB_ASSISTANT.value]

CSV_HEADERS = [
    "userId", "email", "education", "experience", "skills",
    "seniority", "yearsOfExperience", "careerGoals", "profileComplete", "lastUpdated",
]

_MONTHS = {name.lower(): i for i, name in enumerate(calendar.month_name) if name}
_MONTHS.update({name.lower(): i for i, name in enumerate(calendar.month_abbr) if name})
_DATE_PATTERN = re.compile(r"^\s*(\d{4})(?:-(\d{1,2}))?")


# ============================================================================
# Years of experience
# ============================================================================

def _month_number(value: str) -> Optional[int]:
    value = (value or "").strip().lower()
    if value.isdigit() and 1 <= int(value) <= 12:
        return int(value)
    return _MONTHS.get(value)


def _month_index(year_text: str, month_text: str, date_text: str) -> Optional[int]:
    """Months since year 0; split year/month fields win over the single date."""
    year_text = (year_text or "").strip()
    if year_text.isdigit():
        return int(year_text) * 12 + (_month_number(month_text) or 1) - 1

    match = _DATE_PATTERN.match(date_text or "")
    if not match:
        return None
    month = int(match.group(2)) if match.group(2) else 1
    if not 1 <= month <= 12:
        return None
    return int(match.group(1)) * 12 + month - 1


def experience_months(entry: Experience, now: datetime) -> int:
    start = _month_index(entry.start_year, entry.start_month, entry.start_date)
    if start is None:
        return 0

    now_index = now.year * 12 + now.month - 1
    end = None if entry.is_current else _month_index(entry.end_year, entry.end_month, entry.end_date)
    if end is None:
        end = now_index
    return max(0, end - start)


def derive_years_of_experience(experience: List[Experience], now: Optional[datetime] = None) -> float:
    """Summed months of every dated entry, in years, rounded half-up to 0.1."""
    now = now or utc_now()
    total_months = sum(experience_months(entry, now) for entry in experience)
    return math.floor(total_months / 12 * 10 + 0.5) / 10


def _stored_years(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


# ============================================================================
# Record -> profile
# ============================================================================

def parse_roles(roles: Any) -> List[str]:
    if isinstance(roles, list):
        return [str(role) for role in roles]
    if isinstance(roles, str):
        return [role.strip() for role in roles.split(",")]
    return []


def is_student(record: Dict[str, Any]) -> bool:
    return UserRole.STUDENT.value in parse_roles(record.get("roles"))


def build_profile(record: Dict[str, Any], now: Optional[datetime] = None) -> RecommendationProfile:
    now = now or utc_now()
    details = load_stored_resume(record.get("resume"), record.get("resumeData"))
    if details is None:
        details = default_resume_details()

    years = _stored_years(record.get("yearsOfExperience"))
    if years <= 0:
        years = derive_years_of_experience(details.experience, now)

    stored_skills = record.get("skills")
    if isinstance(stored_skills, list) and stored_skills:
        skills = [str(skill) for skill in stored_skills]
    else:
        skills = [skill for skill in details.skills if skill.strip()]

    return RecommendationProfile(
        user_id=record.get("id") or record.get("userId") or "",
        email=record.get("email") or "",
        education=details.education,
        experience=details.experience,
        skills=skills,
        seniority=record.get("seniority") or "Unknown",
        years_of_experience=years,
        career_goals=record.get("careerGoals") or "",
        resume_description=record.get("resumeDescription") or "",
        profile_complete=record.get("profileComplete") is True,
        last_updated=record.get("updatedAt") or record.get("createdAt") or now.isoformat(),
        lab_ids=record.get("labIds") or [],
    )


def _csv_cell(value: Any) -> str:
    return json.dumps(value)


def encode_csv(profiles: List[RecommendationProfile]) -> str:
    """Header plus one row per profile; list fields become JSON text in one cell."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for profile in profiles:
        wire = profile.to_wire()
        writer.writerow([
            profile.user_id,
            profile.email,
            _csv_cell(wire.get("education", [])),
            _csv_cell(wire.get("experience", [])),
            _csv_cell(profile.skills),
            profile.seniority,
            str(profile.years_of_experience),
            profile.career_goals,
            "true" if profile.profile_complete else "false",
            profile.last_updated,
        ])
    return buffer.getvalue()


@dataclass
class ExportResult:
    response: ExportResponse
    csv_text: Optional[str] = None

    @property
    def is_csv(self) -> bool:
        return self.csv_text is not None


# ============================================================================
# Exporter
# ============================================================================

class RecommendationExporter:
    def __init__(self, source: UserRecordSource):
        self.source = source

    def authorize(self, caller: CallerContext) -> None:
        if caller.is_trusted:
            logger.info(f"Export requested via {caller.kind} path, skipping role check")
            return
        if not any(role in caller.roles for role in REQUIRED_ROLES):
            logger.warning(f"Export denied for {caller.user_id} with roles {caller.roles}")
            raise ExportForbiddenError(list(caller.roles), list(REQUIRED_ROLES))

    async def build(
        self,
        caller: CallerContext,
        options: Optional[ExportOptions] = None,
        now: Optional[datetime] = None,
    ) -> ExportResult:
        options = options or ExportOptions()
        self.authorize(caller)
        now = now or utc_now()

        records = await self.source.scan()
        profiles = [build_profile(record, now) for record in records if is_student(record)]
        logger.info(f"Built {len(profiles)} student profiles from {len(records)} user records")

        if not options.include_incomplete:
            profiles = [profile for profile in profiles if profile.profile_complete]

        response = ExportResponse(
            profiles=profiles,
            count=len(profiles),
            metadata=ExportMetadata(
                generated_at=now.isoformat(),
                included_incomplete=options.include_incomplete,
                requested_by=caller.user_id,
            ),
        )
        if (options.format or "").lower() == "csv":
            return ExportResult(response=response, csv_text=encode_csv(profiles))
        return ExportResult(response=response)
