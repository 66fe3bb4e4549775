"""
ScriptSentries Collaboration
============================
Comments on findings and @mention notifications.
"""

import logging
import re

from core.authorization import require_membership
from core.errors import ValidationFailed
from core.models import Comment, Notification, RiskFinding, User
from core.store import WorkspaceStore

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"@(\w+)")


def _shorten(text: str, max_length: int = 80) -> str:
    return text[:max_length] + "..." if len(text) > max_length else text


class CollaborationService:
    """Comment threads on findings; notifications are created only here."""

    def __init__(self, store: WorkspaceStore):
        self.store = store

    def add_comment(self, finding_id: str, author_id: str, text: str) -> Comment:
        """
        Add a comment to a finding and notify every mentioned user.

        The author must be a member of the finding's project (any role).
        """
        if not text or not text.strip():
            raise ValidationFailed("text", "comment text is required")

        author = self.store.get_user(author_id)
        finding = self.store.get_finding(finding_id)
        document = self.store.get_document(finding.document_id)
        project = self.store.get_project(document.project_id)
        require_membership(self.store, project, author.id)

        comment = self.store.save_comment(
            Comment(finding_id=finding.id, author_id=author.id, text=text)
        )
        logger.info(f"Comment saved by @{author.username} on risk {finding.id}")

        self._notify_mentions(text, author, finding)
        return comment

    def list_comments(self, finding_id: str, requester_id: str) -> list[Comment]:
        """Comments on a finding, for members of its project."""
        finding = self.store.get_finding(finding_id)
        document = self.store.get_document(finding.document_id)
        project = self.store.get_project(document.project_id)
        require_membership(self.store, project, requester_id)
        return self.store.finding_comments(finding.id)

    def notifications(self, user_id: str) -> list[Notification]:
        self.store.get_user(user_id)
        return self.store.user_notifications(user_id)

    def unread_count(self, user_id: str) -> int:
        self.store.get_user(user_id)
        return len(self.store.user_notifications(user_id, unread_only=True))

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification read; returns how many changed."""
        self.store.get_user(user_id)
        unread = self.store.user_notifications(user_id, unread_only=True)
        for notification in unread:
            notification.is_read = True
            self.store.save_notification(notification)
        return len(unread)

    def search_users(self, query: str) -> list[User]:
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            u for u in self.store.users.values()
            if needle in u.username.lower() or needle in u.email.lower()
        ]

    def _notify_mentions(self, text: str, author: User, finding: RiskFinding) -> list[Notification]:
        notified: set[str] = set()
        created = []
        for username in MENTION_PATTERN.findall(text):
            key = username.lower()
            if key == author.username.lower() or key in notified:
                continue
            mentioned = self.store.find_user_by_username(username)
            if mentioned is None:
                continue

            message = (
                f"@{author.username} mentioned you in a comment on risk #{finding.id} "
                f"({finding.entity_name}): \"{_shorten(text)}\""
            )
            created.append(self.store.save_notification(
                Notification(recipient_id=mentioned.id, message=message, finding_id=finding.id)
            ))
            notified.add(key)
            logger.info(f"Notification created for @{mentioned.username} mentioned by @{author.username}")
        return created
