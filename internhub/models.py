"""
SQLAlchemy ORM models — these map directly to Postgres tables.

Tables:
- users: identity records, one role each (INTERN / ORGANIZATION / ADMIN)
- intern_profiles / organization_profiles: 1:1 role-specific extension of a user
- internships: organization-owned postings (draft -> published -> approved)
- tasks: units of work inside an internship, with their resources
- applications: an intern's request to join an internship
- task_submissions: an intern's deliverable for a task (one per task per intern)
- task_evaluations: an organization's score for a submission (one per submission)
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, DateTime, Enum, Float, ForeignKey, Index, Integer, JSON, String, Text,
    UniqueConstraint, text,
)
from sqlalchemy.orm import relationship

from internhub.database import Base


def utcnow() -> datetime:
    # Naive UTC, matching what the DateTime columns hand back
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    INTERN = "INTERN"
    ORGANIZATION = "ORGANIZATION"
    ADMIN = "ADMIN"


class InternshipType(str, enum.Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"
    STIPEND = "STIPEND"


class ResourceType(str, enum.Enum):
    FILE = "FILE"
    URL = "URL"


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class SubmissionStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    NEEDS_REVISION = "NEEDS_REVISION"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


# Once a submission reaches one of these the intern can no longer touch it
FINAL_SUBMISSION_STATUSES = {SubmissionStatus.ACCEPTED, SubmissionStatus.REJECTED}


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    role = Column(Enum(Role, name="user_role"), nullable=False)
    image = Column(Text, nullable=True)
    password_hash = Column(String(255), nullable=True)      # null when the identity provider owns credentials
    created_at = Column(DateTime, default=utcnow)

    intern_profile = relationship("InternProfile", back_populates="user", uselist=False,
                                  cascade="all, delete-orphan")
    organization_profile = relationship("OrganizationProfile", back_populates="user", uselist=False,
                                        cascade="all, delete-orphan")


class InternProfile(Base):
    __tablename__ = "intern_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    university = Column(String(255), nullable=False)
    major = Column(String(255), nullable=True)
    graduation_year = Column(String(16), nullable=True)
    gpa = Column(Float, nullable=True)
    skills = Column(Text, nullable=True)                    # free text, e.g. "Python, SQL"
    bio = Column(Text, nullable=True)
    experience = Column(Text, nullable=True)
    resume = Column(Text, nullable=True)                    # upload path
    phone = Column(String(64), nullable=True)
    linkedin = Column(Text, nullable=True)
    github = Column(Text, nullable=True)
    portfolio = Column(Text, nullable=True)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="intern_profile")
    applications = relationship("Application", back_populates="intern", cascade="all, delete-orphan")
    submissions = relationship("TaskSubmission", back_populates="intern", cascade="all, delete-orphan")


class OrganizationProfile(Base):
    __tablename__ = "organization_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    organization_name = Column(String(255), nullable=False)
    contact_first_name = Column(String(255), nullable=False)
    contact_last_name = Column(String(255), nullable=False)
    job_title = Column(String(255), nullable=False)
    industry = Column(String(255), nullable=True)
    company_size = Column(String(64), nullable=True)
    website = Column(Text, nullable=True)
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    internship_goals = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="organization_profile")
    internships = relationship("Internship", back_populates="organization", cascade="all, delete-orphan")


class Internship(Base):
    __tablename__ = "internships"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organization_profiles.id", ondelete="CASCADE"),
                             nullable=False, index=True)
    title = Column(String(500), nullable=False)
    slug = Column(String(255), nullable=False, unique=True)    # frozen once published
    description = Column(Text, nullable=False)
    requirements = Column(Text, nullable=False)
    duration = Column(String(255), nullable=False)
    type = Column(Enum(InternshipType, name="internship_type"), nullable=False)
    amount = Column(Float, nullable=True)                       # required iff PAID
    location = Column(String(255), nullable=False)
    skills = Column(JSON, nullable=False, default=list)
    deadline = Column(DateTime, nullable=False)
    published = Column(Boolean, nullable=False, default=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    organization = relationship("OrganizationProfile", back_populates="internships")
    # Sibling tasks are displayed in insertion order
    tasks = relationship("Task", back_populates="internship", cascade="all, delete-orphan",
                         order_by="Task.id")
    applications = relationship("Application", back_populates="internship")

    @property
    def is_visible(self) -> bool:
        """Only published AND approved internships are listed publicly."""
        return bool(self.published and self.approved)

    @property
    def organization_name(self) -> str:
        return self.organization.organization_name

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    @property
    def application_count(self) -> int:
        return len(self.applications)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    internship_id = Column(Integer, ForeignKey("internships.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    slug = Column(String(255), nullable=False)
    overview = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text, nullable=False)
    background = Column(Text, nullable=True)
    video_url = Column(Text, nullable=True)
    submission_instructions = Column(Text, nullable=False, default="")
    submit_as_file = Column(Boolean, nullable=False, default=False)
    submit_as_text = Column(Boolean, nullable=False, default=False)
    submit_as_url = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    internship = relationship("Internship", back_populates="tasks")
    resources = relationship("Resource", back_populates="task", cascade="all, delete-orphan",
                             order_by="Resource.id")
    submissions = relationship("TaskSubmission", back_populates="task", cascade="all, delete-orphan")


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(Enum(ResourceType, name="resource_type"), nullable=False)
    url = Column(Text, nullable=True)       # required iff URL
    file = Column(Text, nullable=True)      # required iff FILE
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    task = relationship("Task", back_populates="resources")


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    intern_id = Column(Integer, ForeignKey("intern_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    internship_id = Column(Integer, ForeignKey("internships.id"), nullable=False, index=True)
    status = Column(Enum(ApplicationStatus, name="application_status"), nullable=False,
                    default=ApplicationStatus.PENDING)
    cover_letter = Column(Text, nullable=True)
    resume = Column(Text, nullable=True)        # copied from the profile when not attached
    portfolio_link = Column(Text, nullable=True)
    availability = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    intern = relationship("InternProfile", back_populates="applications")
    internship = relationship("Internship", back_populates="applications")

    # One live application per (intern, internship); withdrawn rows stay as history
    __table_args__ = (
        Index(
            "uq_application_live",
            "intern_id", "internship_id",
            unique=True,
            sqlite_where=text("status != 'WITHDRAWN'"),
            postgresql_where=text("status != 'WITHDRAWN'"),
        ),
    )


class TaskSubmission(Base):
    __tablename__ = "task_submissions"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    intern_id = Column(Integer, ForeignKey("intern_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(SubmissionStatus, name="submission_status"), nullable=False,
                    default=SubmissionStatus.SUBMITTED)
    text_content = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    url = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    task = relationship("Task", back_populates="submissions")
    intern = relationship("InternProfile", back_populates="submissions")
    evaluation = relationship("TaskEvaluation", back_populates="task_submission", uselist=False,
                              cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("task_id", "intern_id", name="uq_submission_task_intern"),
    )


class TaskEvaluation(Base):
    __tablename__ = "task_evaluations"

    id = Column(Integer, primary_key=True, index=True)
    task_submission_id = Column(Integer, ForeignKey("task_submissions.id", ondelete="CASCADE"),
                                nullable=False, unique=True)
    organization_id = Column(Integer, ForeignKey("organization_profiles.id", ondelete="CASCADE"), nullable=False,
                             index=True)
    score = Column(Float, nullable=False)
    feedback = Column(Text, nullable=True)
    evaluated_at = Column(DateTime, default=utcnow, index=True)

    task_submission = relationship("TaskSubmission", back_populates="evaluation")
    organization = relationship("OrganizationProfile")
