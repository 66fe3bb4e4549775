"""
ScriptSentries Workspace Store
==============================
In-memory record store (replace with a database in production).

Holds users, projects, memberships, documents, findings, comments and
notifications, and exposes the queries the services need. Soft-deleted
records stay in the store; the `active_*` queries filter them out.
"""

import logging
from functools import lru_cache

from core.errors import NotFound
from core.models import (
    Comment,
    Document,
    Membership,
    Notification,
    Project,
    RiskFinding,
    User,
    sort_findings,
)

logger = logging.getLogger(__name__)


class WorkspaceStore:
    """Dictionary-backed persistence for the workspace."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.projects: dict[str, Project] = {}
        self.memberships: dict[tuple[str, str], Membership] = {}
        self.documents: dict[str, Document] = {}
        self.findings: dict[str, RiskFinding] = {}
        self.comments: dict[str, Comment] = {}
        self.notifications: dict[str, Notification] = {}

    # === Users ===

    def save_user(self, user: User) -> User:
        self.users[user.id] = user
        return user

    def get_user(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def find_user_by_username(self, username: str) -> User | None:
        wanted = username.lower()
        for user in self.users.values():
            if user.username.lower() == wanted:
                return user
        return None

    # === Projects ===

    def save_project(self, project: Project) -> Project:
        self.projects[project.id] = project
        return project

    def get_project(self, project_id: str, include_deleted: bool = False) -> Project:
        project = self.projects.get(project_id)
        if project is None or (project.is_deleted and not include_deleted):
            raise NotFound("Project", project_id)
        return project

    def active_projects_for_user(self, user_id: str) -> list[Project]:
        """Active projects the user is a member of, newest first."""
        projects = [
            self.projects[m.project_id]
            for m in self.memberships.values()
            if m.user_id == user_id and m.project_id in self.projects
        ]
        return sorted(
            (p for p in projects if not p.is_deleted),
            key=lambda p: p.created_at,
            reverse=True
        )

    # === Memberships ===

    def save_membership(self, membership: Membership) -> Membership:
        self.memberships[(membership.project_id, membership.user_id)] = membership
        return membership

    def find_membership(self, project_id: str, user_id: str) -> Membership | None:
        return self.memberships.get((project_id, user_id))

    def delete_membership(self, project_id: str, user_id: str) -> bool:
        return self.memberships.pop((project_id, user_id), None) is not None

    def project_members(self, project_id: str) -> list[Membership]:
        members = [m for m in self.memberships.values() if m.project_id == project_id]
        return sorted(members, key=lambda m: m.joined_at)

    # === Documents ===

    def save_document(self, document: Document) -> Document:
        self.documents[document.id] = document
        return document

    def get_document(self, document_id: str, include_deleted: bool = False) -> Document:
        document = self.documents.get(document_id)
        if document is None or (document.is_deleted and not include_deleted):
            raise NotFound("Document", document_id)
        return document

    def project_documents(self, project_id: str, include_deleted: bool = False) -> list[Document]:
        """Documents of a project, newest first."""
        documents = [
            d for d in self.documents.values()
            if d.project_id == project_id and (include_deleted or not d.is_deleted)
        ]
        return sorted(documents, key=lambda d: d.uploaded_at, reverse=True)

    def count_active_documents(self, project_id: str, exclude_id: str | None = None) -> int:
        return sum(
            1 for d in self.documents.values()
            if d.project_id == project_id and not d.is_deleted and d.id != exclude_id
        )

    def active_documents(self) -> list[Document]:
        """Active documents in active projects, newest first."""
        documents = [
            d for d in self.documents.values()
            if not d.is_deleted
            and d.project_id in self.projects
            and not self.projects[d.project_id].is_deleted
        ]
        return sorted(documents, key=lambda d: d.uploaded_at, reverse=True)

    # === Findings ===

    def save_findings(self, findings: list[RiskFinding]) -> None:
        for finding in findings:
            self.findings[finding.id] = finding

    def save_finding(self, finding: RiskFinding) -> RiskFinding:
        self.findings[finding.id] = finding
        return finding

    def get_finding(self, finding_id: str) -> RiskFinding:
        finding = self.findings.get(finding_id)
        if finding is None:
            raise NotFound("RiskFinding", finding_id)
        return finding

    def document_findings(self, document_id: str) -> list[RiskFinding]:
        """Findings of one document sorted by severity, then page."""
        return sort_findings([
            f for f in self.findings.values() if f.document_id == document_id
        ])

    # === Comments & Notifications ===

    def save_comment(self, comment: Comment) -> Comment:
        self.comments[comment.id] = comment
        return comment

    def finding_comments(self, finding_id: str) -> list[Comment]:
        comments = [c for c in self.comments.values() if c.finding_id == finding_id]
        return sorted(comments, key=lambda c: c.created_at)

    def save_notification(self, notification: Notification) -> Notification:
        self.notifications[notification.id] = notification
        return notification

    def user_notifications(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        notifications = [
            n for n in self.notifications.values()
            if n.recipient_id == user_id and not (unread_only and n.is_read)
        ]
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)


@lru_cache
def get_store() -> WorkspaceStore:
    """Get the process-wide store instance."""
    logger.info("Initializing in-memory workspace store")
    return WorkspaceStore()
