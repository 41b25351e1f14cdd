"""
Pydantic schemas for request/response validation.

These define the shape of data going in and out of our API endpoints.
FastAPI uses these to auto-validate requests and generate API docs.
Rules that only need the request body (PAID needs an amount, a task needs at
least one submission type, ...) live here; rules that need database state
live in the routers.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    AfterValidator, BaseModel, EmailStr, Field, StringConstraints, field_validator, model_validator,
)

from internhub.models import (
    ApplicationStatus, InternshipType, ResourceType, Role, SubmissionStatus,
)


def _check_url(value: str) -> str:
    if not value.startswith(("http://", "https://")):
        raise ValueError("Must be an http(s) URL")
    return value


def _empty_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


UrlStr = Annotated[str, AfterValidator(_check_url)]
NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _future_deadline(value: datetime) -> datetime:
    # Stored as naive UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    if value <= datetime.now(timezone.utc).replace(tzinfo=None):
        raise ValueError("Deadline must be in the future")
    return value


def task_accepts_submission(submit_as_file: bool, submit_as_text: bool, submit_as_url: bool) -> bool:
    """A task must accept at least one submission format."""
    return bool(submit_as_file or submit_as_text or submit_as_url)


# ─── Auth & users ───────────────────────────────────────────────────

class _RegisterBase(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    confirm_password: str = Field(min_length=6)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class InternRegister(_RegisterBase):
    role: Literal["INTERN"]
    first_name: NonEmpty
    last_name: NonEmpty
    university: NonEmpty
    major: Optional[str] = None
    skills: Optional[str] = None
    bio: Optional[str] = None


class OrganizationRegister(_RegisterBase):
    role: Literal["ORGANIZATION"]
    organization_name: NonEmpty
    contact_first_name: NonEmpty
    contact_last_name: NonEmpty
    job_title: NonEmpty
    industry: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[UrlStr] = None
    location: NonEmpty
    description: NonEmpty
    internship_goals: Optional[str] = None


RegisterRequest = Annotated[Union[InternRegister, OrganizationRegister], Field(discriminator="role")]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    image: Optional[str] = None

    class Config:
        from_attributes = True


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


# ─── Profiles ───────────────────────────────────────────────────────

class InternProfileUpdate(BaseModel):
    first_name: NonEmpty
    last_name: NonEmpty
    university: NonEmpty
    major: Optional[str] = None
    skills: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[UrlStr] = None
    github: Optional[UrlStr] = None
    portfolio: Optional[UrlStr] = None
    location: Optional[str] = None
    graduation_year: Optional[str] = None
    gpa: Optional[float] = Field(default=None, ge=0, le=10)
    experience: Optional[str] = None
    resume: Optional[str] = None
    image: Optional[str] = None

    # The profile form sends "" for cleared link fields
    @field_validator("linkedin", "github", "portfolio", mode="before")
    @classmethod
    def blank_links(cls, value):
        return _empty_to_none(value)


class OrganizationProfileUpdate(BaseModel):
    organization_name: NonEmpty
    contact_first_name: NonEmpty
    contact_last_name: NonEmpty
    job_title: NonEmpty
    industry: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[UrlStr] = None
    location: NonEmpty
    description: NonEmpty
    internship_goals: Optional[str] = None

    @field_validator("website", mode="before")
    @classmethod
    def blank_website(cls, value):
        return _empty_to_none(value)


class InternProfileOut(BaseModel):
    type: Literal["intern"] = "intern"
    id: int
    user_id: int
    first_name: str
    last_name: str
    university: str
    major: Optional[str] = None
    graduation_year: Optional[str] = None
    gpa: Optional[float] = None
    skills: Optional[str] = None
    bio: Optional[str] = None
    experience: Optional[str] = None
    resume: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    portfolio: Optional[str] = None
    location: Optional[str] = None

    class Config:
        from_attributes = True


class OrganizationProfileOut(BaseModel):
    type: Literal["organization"] = "organization"
    id: int
    user_id: int
    organization_name: str
    contact_first_name: str
    contact_last_name: str
    job_title: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    website: Optional[str] = None
    location: str
    description: str
    internship_goals: Optional[str] = None

    class Config:
        from_attributes = True


# ─── Internships ────────────────────────────────────────────────────

class InternshipCreate(BaseModel):
    """What an organization sends from the first step of the creation wizard."""
    title: NonEmpty
    description: NonEmpty
    requirements: NonEmpty
    duration: NonEmpty
    type: InternshipType
    amount: Optional[float] = Field(default=None, gt=0)
    location: NonEmpty
    skills: list[str] = []
    deadline: datetime

    @field_validator("deadline")
    @classmethod
    def deadline_in_future(cls, value: datetime) -> datetime:
        return _future_deadline(value)

    @model_validator(mode="after")
    def paid_needs_amount(self):
        if self.type == InternshipType.PAID and self.amount is None:
            raise ValueError("Amount is required for paid internships")
        return self


class InternshipUpdate(BaseModel):
    """Partial update; the PAID/amount rule is re-checked against the stored row."""
    title: Optional[NonEmpty] = None
    description: Optional[NonEmpty] = None
    requirements: Optional[NonEmpty] = None
    duration: Optional[NonEmpty] = None
    type: Optional[InternshipType] = None
    amount: Optional[float] = Field(default=None, gt=0)
    location: Optional[NonEmpty] = None
    skills: Optional[list[str]] = None
    deadline: Optional[datetime] = None

    @field_validator("deadline")
    @classmethod
    def deadline_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        return _future_deadline(value)


class ApprovalRequest(BaseModel):
    approved: bool = True


class ApplicationBrief(BaseModel):
    """The caller's own application, attached to internship views."""
    id: int
    status: ApplicationStatus
    created_at: datetime

    class Config:
        from_attributes = True


class InternshipOut(BaseModel):
    id: int
    organization_id: int
    organization_name: str
    title: str
    slug: str
    description: str
    requirements: str
    duration: str
    type: InternshipType
    amount: Optional[float] = None
    location: str
    skills: list[str]
    deadline: datetime
    published: bool
    approved: bool
    created_at: datetime
    task_count: int
    application_count: int

    class Config:
        from_attributes = True


class InternshipBrowseItem(InternshipOut):
    application: Optional[ApplicationBrief] = None


class InternshipBrowsePage(BaseModel):
    items: list[InternshipBrowseItem]
    total: int


# ─── Tasks & resources ──────────────────────────────────────────────

class ResourceIn(BaseModel):
    name: NonEmpty
    type: ResourceType
    url: Optional[UrlStr] = None
    file: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def location_matches_type(self):
        if self.type == ResourceType.URL and not self.url:
            raise ValueError("URL resources need a url")
        if self.type == ResourceType.FILE and not self.file:
            raise ValueError("FILE resources need a file")
        return self


class ResourceCreate(ResourceIn):
    task_id: int


class ResourceUpdate(BaseModel):
    name: Optional[NonEmpty] = None
    type: Optional[ResourceType] = None
    url: Optional[UrlStr] = None
    file: Optional[str] = None
    description: Optional[str] = None


class ResourceOut(BaseModel):
    id: int
    task_id: int
    name: str
    type: ResourceType
    url: Optional[str] = None
    file: Optional[str] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    internship_id: int
    title: NonEmpty
    overview: NonEmpty
    description: NonEmpty
    instructions: NonEmpty
    background: Optional[str] = None
    video_url: Optional[UrlStr] = None
    submission_instructions: str = ""
    submit_as_file: bool = False
    submit_as_text: bool = False
    submit_as_url: bool = False
    resources: list[ResourceIn] = []

    @model_validator(mode="after")
    def needs_submission_type(self):
        if not task_accepts_submission(self.submit_as_file, self.submit_as_text, self.submit_as_url):
            raise ValueError("At least one submission type is required")
        return self


class TaskUpdate(BaseModel):
    """Partial update; `resources`, when given, replaces the whole list."""
    title: Optional[NonEmpty] = None
    overview: Optional[NonEmpty] = None
    description: Optional[NonEmpty] = None
    instructions: Optional[NonEmpty] = None
    background: Optional[str] = None
    video_url: Optional[UrlStr] = None
    submission_instructions: Optional[str] = None
    submit_as_file: Optional[bool] = None
    submit_as_text: Optional[bool] = None
    submit_as_url: Optional[bool] = None
    resources: Optional[list[ResourceIn]] = None


class TaskOut(BaseModel):
    id: int
    internship_id: int
    title: str
    slug: str
    overview: str
    description: str
    instructions: str
    background: Optional[str] = None
    video_url: Optional[str] = None
    submission_instructions: str
    submit_as_file: bool
    submit_as_text: bool
    submit_as_url: bool
    resources: list[ResourceOut] = []
    created_at: datetime

    class Config:
        from_attributes = True


class InternshipDetail(InternshipOut):
    tasks: list[TaskOut] = []
    user_application: Optional[ApplicationBrief] = None


# ─── Applications ───────────────────────────────────────────────────

class ApplicationCreate(BaseModel):
    """What an intern sends from the apply page (file fields are upload paths)."""
    internship_id: int
    cover_letter: Optional[str] = None
    resume: Optional[str] = None
    portfolio_link: Optional[UrlStr] = None
    availability: NonEmpty


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus

    @field_validator("status")
    @classmethod
    def decision_only(cls, value: ApplicationStatus) -> ApplicationStatus:
        if value not in (ApplicationStatus.ACCEPTED, ApplicationStatus.REJECTED):
            raise ValueError("Status must be ACCEPTED or REJECTED")
        return value


class ApplicationOut(BaseModel):
    id: int
    intern_id: int
    internship_id: int
    status: ApplicationStatus
    cover_letter: Optional[str] = None
    resume: Optional[str] = None
    portfolio_link: Optional[str] = None
    availability: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ─── Submissions & evaluations ──────────────────────────────────────

class SubmissionContent(BaseModel):
    text_content: Optional[str] = None
    file_url: Optional[str] = None
    url: Optional[UrlStr] = None

    @field_validator("text_content", "file_url", "url", mode="before")
    @classmethod
    def blank_content(cls, value):
        return _empty_to_none(value)

    def provided_formats(self) -> set[str]:
        """Which of the task's submitAs* formats this content uses."""
        formats = set()
        if self.file_url is not None:
            formats.add("file")
        if self.text_content is not None:
            formats.add("text")
        if self.url is not None:
            formats.add("url")
        return formats


class SubmissionCreate(SubmissionContent):
    task_id: int

    @model_validator(mode="after")
    def has_content(self):
        if not self.provided_formats():
            raise ValueError("A submission needs a file, a text or a url")
        return self


class SubmissionUpdate(SubmissionContent):
    pass


class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus


class EvaluationUpsert(BaseModel):
    task_submission_id: int
    score: float = Field(ge=0, le=100)
    feedback: Optional[str] = None


class EvaluationOut(BaseModel):
    id: int
    task_submission_id: int
    organization_id: int
    score: float
    feedback: Optional[str] = None
    evaluated_at: datetime

    class Config:
        from_attributes = True


class SubmissionOut(BaseModel):
    id: int
    task_id: int
    intern_id: int
    status: SubmissionStatus
    text_content: Optional[str] = None
    file_url: Optional[str] = None
    url: Optional[str] = None
    submitted_at: datetime
    evaluation: Optional[EvaluationOut] = None

    class Config:
        from_attributes = True


# ─── Workspace ──────────────────────────────────────────────────────

TaskProgressStatus = Literal["NOT_STARTED", "IN_PROGRESS", "COMPLETED"]


class WorkspaceTask(BaseModel):
    task: TaskOut
    submission: Optional[SubmissionOut] = None
    progress: TaskProgressStatus


class Workspace(BaseModel):
    """What an accepted intern sees for an internship."""
    internship: InternshipOut
    application: ApplicationBrief
    tasks: list[WorkspaceTask]
    progress: int                   # percent of tasks completed


# ─── Uploads ────────────────────────────────────────────────────────

UploadKind = Literal["cover-letter", "resume", "profile-resume", "avatar"]


class UploadOut(BaseModel):
    path: str
    file_name: str
