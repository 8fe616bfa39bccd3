"""
Recommendation export schemas
"""
from typing import List
from pydantic import BaseModel, Field

from .profile import CamelModel, Education, Experience


class RecommendationProfile(CamelModel):
    """Built fresh per export call, never persisted"""
    user_id: str
    email: str = ""
    education: List[Education] = Field(default_factory=list)
    experience: List[Experience] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    seniority: str = "Unknown"
    years_of_experience: float = 0.0
    career_goals: str = ""
    resume_description: str = ""
    profile_complete: bool = False
    last_updated: str
    lab_ids: List[str] = Field(default_factory=list)


class ExportMetadata(CamelModel):
    generated_at: str
    filter_applied: str = "students_only"
    included_incomplete: bool
    requested_by: str = ""
    api_version: str = "1.0"


class ExportResponse(CamelModel):
    profiles: List[RecommendationProfile]
    count: int
    metadata: ExportMetadata


class ExportOptions(BaseModel):
    format: str = "json"
    include_incomplete: bool = False
