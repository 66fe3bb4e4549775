"""
ScriptSentries API Schemas
==========================
Pydantic models for API request/response validation.
All API contracts are defined here for type safety and documentation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from core.models import (
    ClearanceStatus,
    DocumentStatus,
    ProjectRole,
    RiskCategory,
    RiskSeverity,
    RiskSubCategory,
)


# === Users ===

class UserCreateRequest(BaseModel):
    """Register a workspace user."""
    username: str = Field(..., min_length=1, max_length=64, pattern=r"^\w+$")
    email: str = Field(..., min_length=3)


class UserSchema(BaseModel):
    id: str
    username: str
    email: str


# === Projects ===

class MemberInviteSchema(BaseModel):
    user_id: str = Field(..., description="User to add")
    role: ProjectRole = Field(..., description="Role within the project")


class ProjectDetailsSchema(BaseModel):
    """Optional production metadata."""
    studio_name: str | None = None
    director: str | None = None
    producer: str | None = None
    production_email: str | None = None
    production_phone: str | None = None
    genre: str | None = None
    logline: str | None = None
    expected_release: str | None = None
    imdb_link: str | None = None
    notes: str | None = None


class ProjectCreateRequest(ProjectDetailsSchema):
    name: str = Field(..., min_length=1)
    members: list[MemberInviteSchema] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Midnight Run",
                "studio_name": "Northlight Pictures",
                "genre": "Thriller",
                "members": [{"user_id": "usr-abc123def456", "role": "ANALYST"}]
            }
        }


class ProjectUpdateRequest(ProjectDetailsSchema):
    name: str | None = None


class MemberResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    role: ProjectRole
    joined_at: datetime


class ProjectResponse(ProjectDetailsSchema):
    id: str
    name: str
    created_by: str
    created_at: datetime
    deleted_at: datetime | None = None
    members: list[MemberResponse] = Field(default_factory=list)


class TimelineEntrySchema(BaseModel):
    id: str
    filename: str
    version_name: str | None
    status: DocumentStatus
    total_pages: int
    uploaded_at: datetime
    uploaded_by: str | None
    high_count: int
    medium_count: int
    low_count: int
    total_risks: int


class ProjectTimelineResponse(BaseModel):
    project_id: str
    project_name: str
    studio_name: str | None
    versions: list[TimelineEntrySchema]
    total_versions: int
    total_high_risks: int


class DeleteResponse(BaseModel):
    message: str
    id: str


# === Scripts & Findings ===

class RiskFindingSchema(BaseModel):
    """Schema for one classified risk."""
    id: str
    document_id: str
    page_number: int
    category: RiskCategory
    sub_category: RiskSubCategory
    severity: RiskSeverity
    status: ClearanceStatus
    entity_name: str | None = None
    snippet: str | None = None
    reason: str | None = None
    suggestion: str | None = None
    comments: str | None = None
    restrictions: str | None = None
    is_redacted: bool
    created_at: datetime


class DocumentResponse(BaseModel):
    """A script with its findings sorted by severity, then page."""
    id: str
    filename: str
    project_id: str
    uploaded_by: str | None = None
    version_name: str | None = None
    total_pages: int
    risk_count: int
    status: DocumentStatus
    uploaded_at: datetime
    risks: list[RiskFindingSchema] | None = None
    failed_pages: list[int] = Field(default_factory=list)
    all_pages_failed: bool = False


class RenameVersionRequest(BaseModel):
    version_name: str | None = Field(None, description="Blank synthesizes 'Draft N'")


class AssignVersionRequest(BaseModel):
    project_id: str
    version_name: str | None = None


class RiskUpdateRequest(BaseModel):
    """Reviewer edits; only provided fields change."""
    status: ClearanceStatus | None = None
    comments: str | None = None
    restrictions: str | None = None
    is_redacted: bool | None = None


# === Collaboration ===

class CommentRequest(BaseModel):
    risk_id: str = Field(..., description="Finding being discussed")
    text: str = Field(..., description="Comment text; @username mentions notify users")

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment text is required")
        return v


class CommentResponse(BaseModel):
    id: str
    finding_id: str
    author_id: str
    text: str
    created_at: datetime


class NotificationResponse(BaseModel):
    id: str
    message: str
    finding_id: str | None = None
    is_read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread: int


# === Error & Health ===

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(None, description="Additional error details")


class HealthCheckResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Current timestamp")
    services: dict[str, str] = Field(..., description="Status of dependent services")
