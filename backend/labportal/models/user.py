from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, Boolean, Float, JSON
from sqlalchemy.sql import func
from ..database import Base
import enum


class UserRole(str, enum.Enum):
    ADMIN = "Admin"
    PROFESSOR = "Professor"
    LAB_ASSISTANT = "LabAssistant"
    STUDENT = "Student"


def _iso(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class User(Base):
    """Stored user record holding both resume representations and the file pointer"""
    __tablename__ = "users"

    id = Column(String(128), primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    email = Column(String(255), nullable=False, default="")
    roles = Column(JSON, default=list)  # ["Admin", "Professor", "LabAssistant", "Student"]
    lab_ids = Column(JSON, default=list)
    status = Column(String(50), nullable=True)

    # Resume: legacy JSON string kept alongside the structured object
    resume_data = Column(Text, nullable=True)
    resume = Column(JSON, nullable=True)
    resume_file_name = Column(String(500), nullable=True)  # object key
    resume_url = Column(String(1000), nullable=True)
    resume_last_updated = Column(DateTime(timezone=True), nullable=True)
    profile_complete = Column(Boolean, nullable=True)
    skills = Column(JSON, nullable=True)

    # Recommendation fields
    career_goals = Column(Text, nullable=True)
    seniority = Column(String(100), nullable=True)
    years_of_experience = Column(Float, nullable=True)
    resume_description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def to_record(self) -> dict:
        """camelCase view of the row, as external readers and the exporter see it"""
        return {
            "id": self.id,
            "userId": self.user_id,
            "email": self.email,
            "roles": self.roles,
            "labIds": self.lab_ids,
            "status": self.status,
            "resumeData": self.resume_data,
            "resume": self.resume,
            "resumeFileName": self.resume_file_name,
            "resumeUrl": self.resume_url,
            "resumeLastUpdated": _iso(self.resume_last_updated),
            "profileComplete": self.profile_complete,
            "skills": self.skills,
            "careerGoals": self.career_goals,
            "seniority": self.seniority,
            "yearsOfExperience": self.years_of_experience,
            "resumeDescription": self.resume_description,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
