"""
ScriptSentries Lifecycle Manager
================================
Project and document lifecycle: creation, detail edits, soft-delete,
version labels, membership, and reviewer edits on findings.

Every mutation resolves the requester's membership and checks the
capability table before touching any record.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from core.authorization import authorize, ensure_removable, require_membership
from core.errors import AlreadyMember, NotFound, ValidationFailed
from core.models import (
    Action,
    ClearanceStatus,
    Document,
    Membership,
    Project,
    ProjectRole,
    RiskFinding,
    RiskSeverity,
)
from core.store import WorkspaceStore

logger = logging.getLogger(__name__)


def synthesize_version_label(
    store: WorkspaceStore,
    project_id: str,
    exclude_document_id: str | None = None
) -> str:
    """
    Next "Draft N" label for a project.

    N is one more than the number of active documents, read from the
    store at call time so concurrent uploads see persisted state.
    """
    count = store.count_active_documents(project_id, exclude_id=exclude_document_id)
    return f"Draft {count + 1}"


def resolve_version_label(
    store: WorkspaceStore,
    project_id: str,
    label: str | None,
    exclude_document_id: str | None = None
) -> str:
    """Keep a non-blank label, otherwise synthesize one."""
    if label is None or not label.strip():
        return synthesize_version_label(store, project_id, exclude_document_id)
    return label.strip()


@dataclass
class MemberInvite:
    user_id: str
    role: ProjectRole


@dataclass
class TimelineEntry:
    """One active version in a project timeline."""
    document: Document
    high_count: int
    medium_count: int
    low_count: int

    def to_dict(self) -> dict[str, Any]:
        data = self.document.to_dict()
        data.update({
            "high_count": self.high_count,
            "medium_count": self.medium_count,
            "low_count": self.low_count,
            "total_risks": self.high_count + self.medium_count + self.low_count,
        })
        return data


class LifecycleManager:
    """Permission-gated operations on projects, documents and findings."""

    def __init__(self, store: WorkspaceStore):
        self.store = store

    # === Projects ===

    def create_project(
        self,
        creator_id: str,
        name: str,
        details: dict[str, str | None] | None = None,
        members: list[MemberInvite] | None = None
    ) -> Project:
        """
        Create a project. The creator becomes an ATTORNEY member.

        Initial invites for unknown users, existing members or the creator
        are skipped.
        """
        creator = self.store.get_user(creator_id)
        if not name or not name.strip():
            raise ValidationFailed("name", "must not be blank")

        project = Project(name=name.strip(), created_by=creator.id)
        for key, value in (details or {}).items():
            if key in Project.DETAIL_FIELDS:
                setattr(project, key, value)
        self.store.save_project(project)
        self.store.save_membership(
            Membership(project_id=project.id, user_id=creator.id, role=ProjectRole.ATTORNEY)
        )

        for invite in members or []:
            if invite.user_id == creator.id or invite.user_id not in self.store.users:
                continue
            if self.store.find_membership(project.id, invite.user_id):
                continue
            self.store.save_membership(
                Membership(project_id=project.id, user_id=invite.user_id, role=invite.role)
            )

        logger.info(f"Project '{project.name}' created by @{creator.username}")
        return project

    def update_project(
        self,
        project_id: str,
        requester_id: str,
        changes: dict[str, str | None]
    ) -> Project:
        """Apply non-None detail changes. Requires the editFinding capability."""
        project = self.store.get_project(project_id)
        authorize(self.store, project, requester_id, Action.EDIT_FINDING)

        if "name" in changes and changes["name"] is not None:
            if not changes["name"].strip():
                raise ValidationFailed("name", "must not be blank")
            project.name = changes["name"].strip()
        for key in Project.DETAIL_FIELDS:
            if changes.get(key) is not None:
                setattr(project, key, changes[key])

        self.store.save_project(project)
        return project

    def list_projects(self, user_id: str) -> list[Project]:
        self.store.get_user(user_id)
        return self.store.active_projects_for_user(user_id)

    def get_project(self, project_id: str, requester_id: str) -> Project:
        project = self.store.get_project(project_id)
        require_membership(self.store, project, requester_id)
        return project

    def timeline(self, project_id: str, requester_id: str) -> list[TimelineEntry]:
        """Active versions of a project, newest first, with severity counts."""
        project = self.get_project(project_id, requester_id)
        entries = []
        for document in self.store.project_documents(project.id):
            findings = self.store.document_findings(document.id)
            counts = {severity: 0 for severity in RiskSeverity}
            for finding in findings:
                counts[finding.severity] += 1
            entries.append(TimelineEntry(
                document=document,
                high_count=counts[RiskSeverity.HIGH],
                medium_count=counts[RiskSeverity.MEDIUM],
                low_count=counts[RiskSeverity.LOW]
            ))
        return entries

    def delete_project(self, project_id: str, requester_id: str) -> Project:
        """Soft-delete a project and, at the same instant, all its documents."""
        project = self.store.get_project(project_id)
        authorize(self.store, project, requester_id, Action.DELETE_PROJECT)

        now = datetime.utcnow()
        project.deleted_at = now
        for document in self.store.project_documents(project.id, include_deleted=True):
            document.deleted_at = now
            self.store.save_document(document)
        self.store.save_project(project)

        logger.info(f"Project '{project.name}' soft-deleted by {requester_id}")
        return project

    # === Documents ===

    def _document_project(self, document: Document) -> Project:
        return self.store.get_project(document.project_id)

    def get_document(self, document_id: str, requester_id: str) -> Document:
        document = self.store.get_document(document_id)
        require_membership(self.store, self._document_project(document), requester_id)
        return document

    def document_findings(self, document_id: str, requester_id: str) -> list[RiskFinding]:
        """Findings sorted by severity, then page."""
        document = self.get_document(document_id, requester_id)
        return self.store.document_findings(document.id)

    def delete_document(self, document_id: str, requester_id: str) -> Document:
        document = self.store.get_document(document_id)
        authorize(self.store, self._document_project(document), requester_id, Action.DELETE_DOCUMENT)

        document.deleted_at = datetime.utcnow()
        self.store.save_document(document)
        logger.info(f"Script '{document.filename}' soft-deleted by {requester_id}")
        return document

    def rename_version(self, document_id: str, new_label: str | None, requester_id: str) -> Document:
        document = self.store.get_document(document_id)
        authorize(self.store, self._document_project(document), requester_id, Action.RENAME_VERSION)

        document.version_name = resolve_version_label(
            self.store, document.project_id, new_label, exclude_document_id=document.id
        )
        self.store.save_document(document)
        return document

    def assign_version(
        self,
        document_id: str,
        project_id: str,
        version_label: str | None,
        uploader_id: str
    ) -> Document:
        """Attach a document to a project under a version label."""
        document = self.store.get_document(document_id)
        project = self.store.get_project(project_id)
        authorize(self.store, project, uploader_id, Action.UPLOAD)

        document.version_name = resolve_version_label(
            self.store, project.id, version_label, exclude_document_id=document.id
        )
        document.project_id = project.id
        document.uploaded_by = uploader_id
        self.store.save_document(document)
        return document

    # === Members ===

    def add_member(
        self,
        project_id: str,
        requester_id: str,
        user_id: str,
        role: ProjectRole
    ) -> Membership:
        project = self.store.get_project(project_id)
        authorize(self.store, project, requester_id, Action.MANAGE_MEMBERS)
        if role is ProjectRole.VIEWER:
            authorize(self.store, project, requester_id, Action.ADD_VIEWER)

        user = self.store.get_user(user_id)
        if self.store.find_membership(project.id, user.id):
            raise AlreadyMember(project.id, user.id)

        membership = self.store.save_membership(
            Membership(project_id=project.id, user_id=user.id, role=role)
        )
        logger.info(f"@{user.username} added to project '{project.name}' as {role.value}")
        return membership

    def remove_member(self, project_id: str, requester_id: str, user_id: str) -> None:
        project = self.store.get_project(project_id)
        ensure_removable(project, user_id)
        authorize(self.store, project, requester_id, Action.MANAGE_MEMBERS)

        if self.store.delete_membership(project.id, user_id):
            logger.info(f"{user_id} removed from project '{project.name}'")

    def members(self, project_id: str, requester_id: str) -> list[Membership]:
        project = self.get_project(project_id, requester_id)
        return self.store.project_members(project.id)

    # === Findings ===

    def update_finding(
        self,
        finding_id: str,
        requester_id: str,
        status: ClearanceStatus | None = None,
        comments: str | None = None,
        restrictions: str | None = None,
        is_redacted: bool | None = None
    ) -> RiskFinding:
        """Reviewer edits on a finding. Only provided fields change."""
        finding = self.store.get_finding(finding_id)
        document = self.store.get_document(finding.document_id, include_deleted=True)
        if document.is_deleted:
            raise NotFound("RiskFinding", finding_id)
        authorize(self.store, self._document_project(document), requester_id, Action.EDIT_FINDING)

        if status is not None:
            finding.status = status
        if comments is not None:
            finding.comments = comments
        if restrictions is not None:
            finding.restrictions = restrictions
        if is_redacted is not None:
            finding.is_redacted = is_redacted
            logger.info(
                f"Redaction {'ENABLED' if is_redacted else 'DISABLED'} on risk {finding.id} "
                f"(entity: '{finding.entity_name}')"
            )

        return self.store.save_finding(finding)
