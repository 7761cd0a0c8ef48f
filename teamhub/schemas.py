# teamhub/schemas.py
# ------------------------------------------------------------
# Pydantic v2 schemas, organized by domain
# ------------------------------------------------------------
from datetime import datetime
import re
from typing import Literal, Optional, List, Sequence

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from teamhub.models.enums import (
    ExperienceLevel,
    MessageType,
    ProjectCategory,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    TeamType,
    TimeCommitment,
)


_CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_SCRIPT_TAG_RE = re.compile(r"<\s*/?\s*script", re.IGNORECASE)
_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)


def _sanitize_single_line_text(value: str | None, *, allow_empty: bool = False) -> str | None:
    if value is None:
        return value
    if not isinstance(value, str):
        raise TypeError("Expected string input")
    cleaned = _CONTROL_CHAR_RE.sub("", value).strip()
    if not allow_empty and not cleaned:
        raise ValueError("Value cannot be empty")
    if any(ch in {"\n", "\r"} for ch in cleaned):
        raise ValueError("Value must be a single line of text")
    if "<" in cleaned or ">" in cleaned:
        raise ValueError("HTML tags are not allowed in this field")
    return cleaned


def _sanitize_multiline_text(value: str | None, *, allow_empty: bool = False) -> str | None:
    if value is None:
        return value
    if not isinstance(value, str):
        raise TypeError("Expected string input")
    cleaned = _CONTROL_CHAR_RE.sub("", value).strip()
    if not allow_empty and not cleaned:
        raise ValueError("Value cannot be empty")
    if _SCRIPT_TAG_RE.search(cleaned):
        raise ValueError("Script tags are not allowed")
    return cleaned


def _sanitize_tags(value: Sequence[str] | str | None) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = [value]
    cleaned: list[str] = []
    for tag in value:
        sanitized = _sanitize_single_line_text(str(tag), allow_empty=True)
        if sanitized:
            cleaned.append(sanitized)
    return cleaned


def _sanitize_url(value: str | None) -> str | None:
    if value is None:
        return value
    cleaned = _sanitize_single_line_text(value, allow_empty=True)
    if not cleaned:
        return None
    if not _URL_RE.match(cleaned):
        raise ValueError("Links must be http(s) URLs")
    return cleaned


# ============================================================
# Users
# ============================================================

class UserRegister(BaseModel):
    username: str = Field(min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

    @field_validator("username", mode="before")
    @classmethod
    def _clean_username(cls, value: str) -> str:
        return _sanitize_single_line_text(value)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str


class AdminBootstrapRequest(BaseModel):
    token: str = Field(min_length=8, max_length=128)

    @field_validator("token", mode="before")
    @classmethod
    def _clean_token(cls, value: str) -> str:
        return _sanitize_single_line_text(value)


# ============================================================
# Profiles
# ============================================================

class ProfileBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=64)
    last_name: str = Field(min_length=1, max_length=64)
    bio: Optional[str] = Field(default=None, max_length=2000)
    skills: List[str] = Field(default_factory=list)
    experience: ExperienceLevel
    linkedin_url: Optional[str] = Field(default=None, max_length=512)
    github_url: Optional[str] = Field(default=None, max_length=512)
    portfolio_url: Optional[str] = Field(default=None, max_length=512)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _clean_names(cls, value: str) -> str:
        return _sanitize_single_line_text(value)

    @field_validator("bio", mode="before")
    @classmethod
    def _clean_bio(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_multiline_text(value, allow_empty=True) if value is not None else value

    @field_validator("skills", mode="before")
    @classmethod
    def _clean_skills(cls, value):
        return _sanitize_tags(value) or []

    @field_validator("linkedin_url", "github_url", "portfolio_url", mode="before")
    @classmethod
    def _clean_links(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_url(value)


class ProfileCreate(ProfileBase):
    pass


class ProfileUpdate(BaseModel):
    # all optional; only supplied fields are patched
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=64)
    bio: Optional[str] = Field(default=None, max_length=2000)
    skills: Optional[List[str]] = None
    experience: Optional[ExperienceLevel] = None
    linkedin_url: Optional[str] = Field(default=None, max_length=512)
    github_url: Optional[str] = Field(default=None, max_length=512)
    portfolio_url: Optional[str] = Field(default=None, max_length=512)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def _clean_optional_names(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_single_line_text(value) if value is not None else value

    @field_validator("bio", mode="before")
    @classmethod
    def _clean_bio(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_multiline_text(value, allow_empty=True) if value is not None else value

    @field_validator("skills", mode="before")
    @classmethod
    def _clean_skills(cls, value):
        return _sanitize_tags(value)

    @field_validator("linkedin_url", "github_url", "portfolio_url", mode="before")
    @classmethod
    def _clean_links(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_url(value)


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    first_name: str
    last_name: str
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: str
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    resume_id: Optional[str] = None
    is_verified: bool = False
    created_at: datetime


class ResumeUpload(BaseModel):
    resume_id: str = Field(min_length=1, max_length=64)


# ============================================================
# Storage
# ============================================================

class UploadUrlRead(BaseModel):
    storage_id: str
    upload_url: str
    method: str = "PUT"


class StoredFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    storage_id: str
    filename: Optional[str] = None
    content_type: Optional[str] = None
    filesize: Optional[int] = None
    is_uploaded: bool


class FileUrlRead(BaseModel):
    url: Optional[str] = None


# ============================================================
# Teams
# ============================================================

class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=2000)
    type: TeamType
    max_members: int = Field(ge=1, le=100)
    tags: List[str] = Field(default_factory=list)
    requirements: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        return _sanitize_single_line_text(value)

    @field_validator("description", "requirements", mode="before")
    @classmethod
    def _clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_multiline_text(value, allow_empty=True) if value is not None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value):
        return _sanitize_tags(value) or []


class TeamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    type: str
    status: str
    max_members: int
    current_members: int
    created_by: int
    created_at: datetime
    formed_at: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    requirements: Optional[str] = None


class TeamListItem(TeamRead):
    creator: Optional[ProfileRead] = None
    members_count: int = 0


class TeamWithRole(TeamRead):
    role: str


class TeamMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    user_id: int
    role: str
    joined_at: datetime
    profile: Optional[ProfileRead] = None


class TeamDetails(TeamRead):
    members: List[TeamMemberRead] = Field(default_factory=list)


class FormGroupsRequest(BaseModel):
    application_ids: List[int] = Field(min_length=1)


class FormGroupsResult(BaseModel):
    team_ids: List[int]
    unplaced_application_ids: List[int] = Field(default_factory=list)
    missing_application_ids: List[int] = Field(default_factory=list)


# ============================================================
# Applications
# ============================================================

class GroupApplicationCreate(BaseModel):
    resume_id: str = Field(min_length=1, max_length=64)
    cover_letter: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("cover_letter", mode="before")
    @classmethod
    def _clean_cover_letter(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _sanitize_multiline_text(value, allow_empty=True) or None


class TeamApplicationCreate(GroupApplicationCreate):
    team_id: int


class ApplicationReview(BaseModel):
    status: Literal["approved", "rejected", "shortlisted"]
    review_notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("review_notes", mode="before")
    @classmethod
    def _clean_notes(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_multiline_text(value, allow_empty=True) if value is not None else value


class ApplicationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    applicant_id: int
    team_id: Optional[int] = None
    type: str
    status: str
    resume_id: str
    cover_letter: Optional[str] = None
    applied_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    review_notes: Optional[str] = None


class ApplicationWithTeam(ApplicationRead):
    team: Optional[TeamRead] = None


class ApplicationWithProfile(ApplicationRead):
    profile: Optional[ProfileRead] = None


# ============================================================
# Tasks
# ============================================================

class TaskCreate(BaseModel):
    team_id: int
    title: str = Field(min_length=1, max_length=128)
    description: str = Field(min_length=1, max_length=5000)
    due_date: datetime
    priority: TaskPriority = TaskPriority.medium
    week: int = Field(ge=1, le=53)

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: str) -> str:
        return _sanitize_single_line_text(value)

    @field_validator("description", mode="before")
    @classmethod
    def _clean_description(cls, value: str) -> str:
        return _sanitize_multiline_text(value)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    submission_notes: Optional[str] = Field(default=None, max_length=5000)

    @field_validator("submission_notes", mode="before")
    @classmethod
    def _clean_notes(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_multiline_text(value, allow_empty=True) if value is not None else value


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    title: str
    description: str
    assigned_by: int
    due_date: datetime
    status: str
    priority: str
    assigned_at: datetime
    completed_at: Optional[datetime] = None
    submission_notes: Optional[str] = None
    week: int


class TaskWithTeam(TaskRead):
    team: Optional[TeamRead] = None


# ============================================================
# Chat
# ============================================================

class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    type: MessageType = MessageType.text
    file_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator("content", mode="before")
    @classmethod
    def _clean_content(cls, value: str) -> str:
        return _sanitize_multiline_text(value)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    sender_id: int
    content: str
    type: str
    file_id: Optional[str] = None
    sent_at: datetime
    edited_at: Optional[datetime] = None
    is_deleted: bool = False


class MessageWithSender(MessageRead):
    sender: Optional[ProfileRead] = None
    file_url: Optional[str] = None


# ============================================================
# Notifications
# ============================================================

class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    title: str
    message: str
    is_read: bool
    related_id: Optional[str] = None
    created_at: datetime


class UnreadCount(BaseModel):
    count: int


class MarkAllReadResult(BaseModel):
    updated: int


# ============================================================
# Projects
# ============================================================

class ProjectCreate(BaseModel):
    title: str = Field(min_length=3, max_length=128)
    description: str = Field(min_length=1, max_length=5000)
    category: ProjectCategory
    required_skills: List[str] = Field(default_factory=list)
    time_commitment: TimeCommitment
    duration: Optional[str] = Field(default=None, max_length=64)
    compensation: Optional[str] = Field(default=None, max_length=128)
    spots_available: int = Field(ge=1, le=1000)
    application_deadline: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("title", "duration", "compensation", mode="before")
    @classmethod
    def _clean_single_line_fields(cls, value: Optional[str]) -> Optional[str]:
        return _sanitize_single_line_text(value) if value is not None else value

    @field_validator("description", mode="before")
    @classmethod
    def _clean_description(cls, value: str) -> str:
        return _sanitize_multiline_text(value)

    @field_validator("required_skills", "tags", mode="before")
    @classmethod
    def _clean_lists(cls, value):
        return _sanitize_tags(value) or []


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    category: str
    status: str
    created_by: int
    team_id: Optional[int] = None
    required_skills: List[str] = Field(default_factory=list)
    time_commitment: str
    duration: Optional[str] = None
    compensation: Optional[str] = None
    spots_available: int
    application_deadline: Optional[datetime] = None
    created_at: datetime
    tags: List[str] = Field(default_factory=list)


class ProjectWithCreator(ProjectRead):
    creator: Optional[ProfileRead] = None
