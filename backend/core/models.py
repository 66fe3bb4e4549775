"""
ScriptSentries Domain Models
============================
Records shared by the pipeline, the lifecycle manager and the exporter.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


def new_id(prefix: str) -> str:
    """Generate a unique, prefixed identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class ProjectRole(str, Enum):
    """Per-project role, highest first."""
    ATTORNEY = "ATTORNEY"
    ANALYST = "ANALYST"
    MAIN_PRODUCTION_CONTACT = "MAIN_PRODUCTION_CONTACT"
    PRODUCTION_ASSISTANT = "PRODUCTION_ASSISTANT"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        """5 for ATTORNEY down to 1 for VIEWER."""
        return len(ProjectRole) - list(ProjectRole).index(self)

    @property
    def is_read_only(self) -> bool:
        return self in (ProjectRole.VIEWER, ProjectRole.PRODUCTION_ASSISTANT)

    def can(self, action: "Action") -> bool:
        """Whether this role may perform `action`."""
        from core.authorization import capability
        return capability(self, action)


class Action(str, Enum):
    """Mutations gated by project role."""
    UPLOAD = "upload"
    EDIT_FINDING = "editFinding"
    FINALIZE = "finalize"
    RENAME_VERSION = "renameVersion"
    DELETE_DOCUMENT = "deleteDocument"
    DELETE_PROJECT = "deleteProject"
    MANAGE_MEMBERS = "manageMembers"
    ADD_VIEWER = "addViewer"


class DocumentStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class RiskSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def sort_order(self) -> int:
        return {"HIGH": 1, "MEDIUM": 2, "LOW": 3}[self.value]


class RiskCategory(str, Enum):
    FACT_BASED_ISSUES = "FACT_BASED_ISSUES"
    GOVERNMENT = "GOVERNMENT"
    LIKENESS = "LIKENESS"
    LOCATIONS = "LOCATIONS"
    MARKETING_ADDED_VALUE = "MARKETING_ADDED_VALUE"
    MUSIC_CHOREOGRAPHY = "MUSIC_CHOREOGRAPHY"
    NAMES_NUMBERS = "NAMES_NUMBERS"
    PLAYBACK = "PLAYBACK"
    PRODUCT_MISUSE = "PRODUCT_MISUSE"
    PROPS_SET_DRESSING = "PROPS_SET_DRESSING"
    REFERENCES = "REFERENCES"
    VEHICLES = "VEHICLES"
    WARDROBE = "WARDROBE"
    OTHER = "OTHER"


class RiskSubCategory(str, Enum):
    REAL_LIFE_CHARACTER_PORTRAYALS = "REAL_LIFE_CHARACTER_PORTRAYALS"
    REAL_LIFE_INCIDENT_DEPICTIONS = "REAL_LIFE_INCIDENT_DEPICTIONS"
    REAL_LOCALES_ENTITIES_LOGOS = "REAL_LOCALES_ENTITIES_LOGOS"
    BEHAVIOR_OF_NOTE = "BEHAVIOR_OF_NOTE"
    CAMEOS = "CAMEOS"
    CROWD_ATMOSPHERE_EXTRAS = "CROWD_ATMOSPHERE_EXTRAS"
    NAME_AND_LIKENESS_USE = "NAME_AND_LIKENESS_USE"
    PARODIES_SPOOFS_IMITATIONS = "PARODIES_SPOOFS_IMITATIONS"
    ADDRESSES_URLS_LICENSE_NUMBERS = "ADDRESSES_URLS_LICENSE_NUMBERS"
    NAMES_BUSINESS_ORGS = "NAMES_BUSINESS_ORGS"
    NAMES_CHARACTERS = "NAMES_CHARACTERS"
    TELEPHONE_NUMBERS = "TELEPHONE_NUMBERS"
    ALCOHOL_USE = "ALCOHOL_USE"
    ARTWORK = "ARTWORK"
    BRAND_NAME_PRODUCTS = "BRAND_NAME_PRODUCTS"
    LOGOS_GRAPHICS = "LOGOS_GRAPHICS"
    TOBACCO = "TOBACCO"
    TOYS = "TOYS"
    GOVERNMENT_AGENCIES_SEALS = "GOVERNMENT_AGENCIES_SEALS"
    MUSIC = "MUSIC"
    PLAYBACK = "PLAYBACK"
    PRODUCT_MISUSE = "PRODUCT_MISUSE"
    REFERENCES = "REFERENCES"
    VEHICLES = "VEHICLES"
    WARDROBE = "WARDROBE"
    UNKNOWN = "UNKNOWN"


class ClearanceStatus(str, Enum):
    PENDING = "PENDING"
    CLEARED = "CLEARED"
    NOT_CLEAR = "NOT_CLEAR"
    NEGOTIATED_BY_ATTORNEY = "NEGOTIATED_BY_ATTORNEY"
    BRANDED_INTEGRATION = "BRANDED_INTEGRATION"
    NO_CLEARANCE_NECESSARY = "NO_CLEARANCE_NECESSARY"
    PERMISSIBLE = "PERMISSIBLE"


@dataclass
class User:
    """A workspace user. Credentials live outside this service."""
    username: str
    email: str
    id: str = field(default_factory=lambda: new_id("usr"))
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "username": self.username, "email": self.email}


@dataclass
class Project:
    """A production workspace owning documents and memberships."""
    name: str
    created_by: str
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
    id: str = field(default_factory=lambda: new_id("prj"))
    created_at: datetime = field(default_factory=datetime.utcnow)
    deleted_at: datetime | None = None

    # Optional production fields accepted on create/update
    DETAIL_FIELDS = (
        "studio_name", "director", "producer", "production_email",
        "production_phone", "genre", "logline", "expected_release",
        "imdb_link", "notes",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict[str, Any]:
        data = {"id": self.id, "name": self.name}
        data.update({name: getattr(self, name) for name in self.DETAIL_FIELDS})
        data.update({
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "deleted_at": _iso(self.deleted_at),
        })
        return data


@dataclass
class Membership:
    """Binds one user to one project with exactly one role."""
    project_id: str
    user_id: str
    role: ProjectRole
    id: str = field(default_factory=lambda: new_id("mem"))
    joined_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "joined_at": _iso(self.joined_at),
        }


@dataclass
class Document:
    """One uploaded script tracked through analysis and versioning."""
    filename: str
    project_id: str
    uploaded_by: str | None = None
    version_name: str | None = None
    total_pages: int = 0
    risk_count: int = 0
    status: DocumentStatus = DocumentStatus.PROCESSING
    id: str = field(default_factory=lambda: new_id("doc"))
    uploaded_at: datetime = field(default_factory=datetime.utcnow)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "project_id": self.project_id,
            "uploaded_by": self.uploaded_by,
            "version_name": self.version_name,
            "total_pages": self.total_pages,
            "risk_count": self.risk_count,
            "status": self.status.value,
            "uploaded_at": _iso(self.uploaded_at),
            "deleted_at": _iso(self.deleted_at),
        }


@dataclass
class RiskFinding:
    """One classified legal/IP risk on a specific page."""
    document_id: str
    page_number: int
    category: RiskCategory = RiskCategory.OTHER
    sub_category: RiskSubCategory = RiskSubCategory.UNKNOWN
    severity: RiskSeverity = RiskSeverity.MEDIUM
    status: ClearanceStatus = ClearanceStatus.PENDING
    entity_name: str | None = None
    snippet: str | None = None
    reason: str | None = None
    suggestion: str | None = None
    comments: str | None = None
    restrictions: str | None = None
    # Hidden by default; classifier output opts out explicitly
    is_redacted: bool = True
    id: str = field(default_factory=lambda: new_id("rsk"))
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.severity.sort_order, self.page_number)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "page_number": self.page_number,
            "category": self.category.value,
            "sub_category": self.sub_category.value,
            "severity": self.severity.value,
            "status": self.status.value,
            "entity_name": self.entity_name,
            "snippet": self.snippet,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "comments": self.comments,
            "restrictions": self.restrictions,
            "is_redacted": self.is_redacted,
            "created_at": _iso(self.created_at),
        }


def sort_findings(findings: list[RiskFinding]) -> list[RiskFinding]:
    """Order findings by severity (HIGH first), then page number."""
    return sorted(findings, key=lambda f: f.sort_key)


@dataclass
class Comment:
    finding_id: str
    author_id: str
    text: str
    id: str = field(default_factory=lambda: new_id("cmt"))
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "finding_id": self.finding_id,
            "author_id": self.author_id,
            "text": self.text,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Notification:
    recipient_id: str
    message: str
    finding_id: str | None = None
    is_read: bool = False
    id: str = field(default_factory=lambda: new_id("ntf"))
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "message": self.message,
            "finding_id": self.finding_id,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
        }
