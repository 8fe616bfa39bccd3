"""
Profile completeness scoring.
"""
from typing import List

from ..schemas.profile import CompletenessReport, ResumeDetails

EDUCATION_FIELDS = ["institution", "degree", "major", "seniority"]
EXPERIENCE_FIELDS = ["company", "position", "description"]
PROJECT_FIELDS = ["title", "description"]
SKILLS_TARGET = 5


def _filled(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _entry_score(entries: list, fields: List[str]) -> float:
    # Only the first entry is scored
    if not entries:
        return 0.0
    first = entries[0]
    filled = sum(1 for field in fields if _filled(getattr(first, field, "")))
    return filled / len(fields) * 100


def skills_score(skills: List[str]) -> float:
    count = sum(1 for skill in skills if _filled(skill))
    return min(count / SKILLS_TARGET, 1) * 100


def completion_label(score: float) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 50:
        return "Good Progress"
    return "Needs Attention"


def evaluate(details: ResumeDetails, document_uploaded: bool) -> CompletenessReport:
    education = _entry_score(details.education, EDUCATION_FIELDS)
    experience = _entry_score(details.experience, EXPERIENCE_FIELDS)
    skills = skills_score(details.skills)
    projects = _entry_score(details.projects, PROJECT_FIELDS)
    document = 100.0 if document_uploaded else 0.0

    mean = (education + experience + skills + projects + document) / 5
    overall = round(mean)

    education_complete = any(
        _filled(edu.institution) and _filled(edu.degree) and _filled(edu.major)
        for edu in details.education
    )
    skills_complete = any(_filled(skill) for skill in details.skills)

    return CompletenessReport(
        education_score=education,
        experience_score=experience,
        skills_score=skills,
        projects_score=projects,
        document_score=document,
        overall_score=overall,
        label=completion_label(mean),
        education_complete=education_complete,
        skills_complete=skills_complete,
        resume_file_uploaded=document_uploaded,
        is_complete=education_complete and skills_complete and document_uploaded,
    )
