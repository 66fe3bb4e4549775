"""
ScriptSentries Core Module
==========================
Core business logic for script clearance analysis.

Modules:
- models: Domain records and enumerations
- authorization: Role capability table and membership checks
- extractor: PDF page extraction
- classifier: Per-page LLM risk classification
- pipeline: Zero-retention analysis orchestration
- lifecycle: Projects, versions, soft-delete and members
- collaboration: Comments and mention notifications
- exporter: Redaction-aware spreadsheet export
- store: In-memory persistence
- config: Application configuration
"""

from core.authorization import ROLE_CAPABILITIES, authorize, capability, require_membership
from core.classifier import RiskClassifier, parse_enum
from core.collaboration import CollaborationService
from core.config import get_settings
from core.errors import (
    AlreadyMember,
    CannotRemoveCreator,
    ClassificationFailed,
    Forbidden,
    NotAMember,
    NotFound,
    PipelineFailed,
    RetentionCleanupFailed,
    ScriptSentriesError,
    ValidationFailed,
)
from core.exporter import generate_report
from core.extractor import PageExtractor
from core.lifecycle import LifecycleManager
from core.models import (
    Action,
    ClearanceStatus,
    Document,
    DocumentStatus,
    Membership,
    Project,
    ProjectRole,
    RiskCategory,
    RiskFinding,
    RiskSeverity,
    RiskSubCategory,
    User,
)
from core.pipeline import AnalysisPipeline, DocumentResult
from core.store import WorkspaceStore, get_store

__all__ = [
    # Authorization
    "ROLE_CAPABILITIES",
    "capability",
    "authorize",
    "require_membership",
    # Analysis
    "PageExtractor",
    "RiskClassifier",
    "parse_enum",
    "AnalysisPipeline",
    "DocumentResult",
    # Lifecycle & collaboration
    "LifecycleManager",
    "CollaborationService",
    "generate_report",
    # Storage
    "WorkspaceStore",
    "get_store",
    # Models
    "Action",
    "ClearanceStatus",
    "Document",
    "DocumentStatus",
    "Membership",
    "Project",
    "ProjectRole",
    "RiskCategory",
    "RiskFinding",
    "RiskSeverity",
    "RiskSubCategory",
    "User",
    # Errors
    "ScriptSentriesError",
    "NotFound",
    "NotAMember",
    "Forbidden",
    "AlreadyMember",
    "CannotRemoveCreator",
    "ValidationFailed",
    "ClassificationFailed",
    "PipelineFailed",
    "RetentionCleanupFailed",
    # Config
    "get_settings",
]
