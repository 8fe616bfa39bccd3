"""
Profile Normalizer - turns whatever is stored for a user into ResumeDetails.

Stored records carry either the structured `resume` object or the older
`resumeData` JSON string (often both). Reads always migrate legacy input to
the structured shape; writers keep emitting both forms.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..schemas.profile import Education, Experience, PersonalLinks, Project, ResumeDetails
from .errors import MalformedDataError

logger = logging.getLogger(__name__)

LEGACY = "legacy"
STRUCTURED = "structured"

_EDUCATION_FIELDS = [
    "institution", "degree", "major",
    "graduationStartMonth", "graduationStartYear",
    "graduationEndMonth", "graduationEndYear",
    "gpa", "yearsOfExperience", "seniority",
]
_EXPERIENCE_FIELDS = [
    "company", "position", "description",
    "startMonth", "startYear", "endMonth", "endYear",
    "startDate", "endDate",
]
_PROJECT_FIELDS = ["title", "description", "technologies", "url"]
_LINK_FIELDS = ["linkedin", "website", "github"]


def default_resume_details() -> ResumeDetails:
    """One empty row per section so form rows stay addressable by index."""
    return ResumeDetails()


# ============================================================================
# Field coercion
# ============================================================================

def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _pick(entry: Any, fields: List[str]) -> Dict[str, str]:
    source = entry if isinstance(entry, dict) else {}
    return {field: _text(source.get(field)) for field in fields}


def _education(entry: Any) -> Education:
    values = _pick(entry, _EDUCATION_FIELDS)
    # Legacy single graduation field is kept next to the split fields
    if isinstance(entry, dict) and entry.get("graduationDate"):
        values["graduationDate"] = _text(entry["graduationDate"])
    return Education.model_validate(values)


def _experience(entry: Any) -> Experience:
    values: Dict[str, Any] = _pick(entry, _EXPERIENCE_FIELDS)
    current = entry.get("isCurrent") if isinstance(entry, dict) else False
    values["isCurrent"] = current is True or (isinstance(current, str) and current.lower() == "true")
    return Experience.model_validate(values)


def _project(entry: Any) -> Project:
    return Project.model_validate(_pick(entry, _PROJECT_FIELDS))


def _section(raw: Any, build, default: list) -> list:
    if not isinstance(raw, list):
        return default
    entries = [build(entry) for entry in raw]
    return entries or default


def normalize(raw: Any) -> ResumeDetails:
    """
    Coerce arbitrary stored data into ResumeDetails. Never raises.

    Missing sections get the default single-placeholder list, missing fields
    become empty strings, and empty lists are replaced by the default list.
    """
    defaults = default_resume_details()
    if not isinstance(raw, dict):
        return defaults

    try:
        links = raw.get("personalLinks")
        return ResumeDetails(
            education=_section(raw.get("education"), _education, defaults.education),
            experience=_section(raw.get("experience"), _experience, defaults.experience),
            skills=_section(
                raw.get("skills"),
                lambda skill: skill if isinstance(skill, str) else "",
                defaults.skills,
            ),
            projects=_section(raw.get("projects"), _project, defaults.projects),
            personal_links=PersonalLinks.model_validate(_pick(links, _LINK_FIELDS))
            if isinstance(links, dict) else defaults.personal_links,
        )
    except (TypeError, ValueError) as e:
        logger.error(f"Could not normalize resume data, using defaults: {e}")
        return defaults


# ============================================================================
# Stored representation
# ============================================================================

@dataclass(frozen=True)
class StoredResume:
    """Tagged stored resume: `structured` holds a dict, `legacy` a JSON string."""
    version: str
    payload: Any

    @classmethod
    def from_record(cls, resume: Any, resume_data: Any) -> Optional["StoredResume"]:
        """Prefer the structured field; fall back to the legacy string."""
        if isinstance(resume, dict):
            return cls(STRUCTURED, resume)
        # Some writers stored the structured object JSON-encoded; decode it like the legacy string
        if isinstance(resume, str) and resume.strip().startswith("{"):
            return cls(LEGACY, resume)
        if isinstance(resume_data, str) and resume_data.strip():
            return cls(LEGACY, resume_data)
        return None


def decode_stored_resume(stored: StoredResume) -> Dict[str, Any]:
    """Migrate a stored resume to the structured dict shape."""
    if stored.version == STRUCTURED:
        return stored.payload
    try:
        data = json.loads(stored.payload)
    except (TypeError, ValueError) as e:
        raise MalformedDataError(f"Legacy resume data is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedDataError("Legacy resume data is not a JSON object")
    return data


def load_stored_resume(resume: Any, resume_data: Any) -> Optional[ResumeDetails]:
    """
    Normalized resume from a stored record, or None when the record holds
    nothing usable. A malformed legacy string counts as absent.
    """
    stored = StoredResume.from_record(resume, resume_data)
    if stored is None:
        return None
    try:
        return normalize(decode_stored_resume(stored))
    except MalformedDataError as e:
        logger.warning(f"Ignoring malformed legacy resume data: {e}")

    # A string-encoded resume that failed to decode leaves resumeData to try
    if isinstance(resume, str) and stored.payload is resume:
        return load_stored_resume(None, resume_data)
    return None


def structured_form(details: ResumeDetails, last_updated: str) -> Dict[str, Any]:
    """Structured `resume` object as written next to the legacy string."""
    wire = details.to_wire()
    return {
        "education": wire["education"],
        "experience": wire["experience"],
        "skills": wire["skills"],
        "projects": wire["projects"],
        "personalLinks": wire["personalLinks"],
        "lastUpdated": last_updated,
    }


def legacy_form(details: ResumeDetails) -> str:
    """Legacy `resumeData` JSON string."""
    return json.dumps(details.to_wire())
