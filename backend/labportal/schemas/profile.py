"""
Profile schemas - canonical resume details and the shapes built from them
"""
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Stored JSON and wire payloads use camelCase keys"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Resume Details
# ============================================================================

class Education(CamelModel):
    institution: str = ""
    degree: str = ""
    major: str = ""
    graduation_start_month: str = ""
    graduation_start_year: str = ""
    graduation_end_month: str = ""
    graduation_end_year: str = ""
    graduation_date: Optional[str] = None  # legacy single field, kept when present
    gpa: str = ""
    years_of_experience: str = ""
    seniority: str = ""


class Experience(CamelModel):
    company: str = ""
    position: str = ""
    description: str = ""
    start_month: str = ""
    start_year: str = ""
    end_month: str = ""
    end_year: str = ""
    start_date: str = ""  # legacy "YYYY-MM"
    end_date: str = ""
    is_current: bool = False


class Project(CamelModel):
    title: str = ""
    description: str = ""
    technologies: str = ""  # comma-delimited free text
    url: str = ""


class PersonalLinks(CamelModel):
    linkedin: str = ""
    website: str = ""
    github: str = ""


class ResumeDetails(CamelModel):
    """Editable professional profile. Every list keeps at least one entry."""
    education: List[Education] = Field(default_factory=lambda: [Education()])
    experience: List[Experience] = Field(default_factory=lambda: [Experience()])
    skills: List[str] = Field(default_factory=lambda: [""])
    projects: List[Project] = Field(default_factory=lambda: [Project()])
    personal_links: PersonalLinks = Field(default_factory=PersonalLinks)


# ============================================================================
# Derived / Response Schemas
# ============================================================================

class CompletenessReport(CamelModel):
    education_score: float
    experience_score: float
    skills_score: float
    projects_score: float
    document_score: float
    overall_score: int
    label: str

    education_complete: bool
    skills_complete: bool
    resume_file_uploaded: bool
    is_complete: bool


class ViewUrl(CamelModel):
    """Short-lived document reference; never cached"""
    url: str
    key: str
    disposition: str  # "inline", "attachment" or "direct"
    file_name: Optional[str] = None


class UploadResult(CamelModel):
    file_key: str
    confirmed: bool = False
    fallback_recorded: bool = False
    store_recorded: bool = False


class ApplicationSnapshot(CamelModel):
    resume_details: ResumeDetails
    resume_file_name: Optional[str] = None
    resume_file_url: Optional[str] = None
    user_email: Optional[str] = None
