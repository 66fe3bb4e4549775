"""
ScriptSentries Authorization Model
==================================
Project roles, their capabilities, and membership lookup.

The capability matrix below is the single source of truth for what each
role may do. Every mutating operation resolves the acting user's membership
first, then checks the relevant action against this table.
"""

import logging

from core.errors import CannotRemoveCreator, Forbidden, NotAMember
from core.models import Action, Membership, Project, ProjectRole
from core.store import WorkspaceStore

logger = logging.getLogger(__name__)


ROLE_CAPABILITIES: dict[ProjectRole, frozenset[Action]] = {
    ProjectRole.ATTORNEY: frozenset(Action),
    ProjectRole.ANALYST: frozenset({
        Action.UPLOAD,
        Action.EDIT_FINDING,
        Action.DELETE_DOCUMENT,
        Action.MANAGE_MEMBERS,
        Action.ADD_VIEWER,
    }),
    ProjectRole.MAIN_PRODUCTION_CONTACT: frozenset({
        Action.UPLOAD,
        Action.RENAME_VERSION,
    }),
    ProjectRole.PRODUCTION_ASSISTANT: frozenset({
        Action.UPLOAD,
    }),
    ProjectRole.VIEWER: frozenset(),
}


def capability(role: ProjectRole, action: Action) -> bool:
    """Whether `role` may perform `action`."""
    return action in ROLE_CAPABILITIES[role]


def require_membership(store: WorkspaceStore, project: Project, user_id: str) -> Membership:
    """
    Resolve the user's membership in a project.

    Raises:
        NotAMember: If the user holds no membership in the project
    """
    membership = store.find_membership(project.id, user_id)
    if membership is None:
        logger.info(f"Rejected non-member {user_id} on project {project.id}")
        raise NotAMember(project.id, user_id)
    return membership


def require_capability(membership: Membership, action: Action) -> None:
    """Raise Forbidden unless the membership's role allows the action."""
    if not capability(membership.role, action):
        logger.info(
            f"Rejected {action.value} for {membership.user_id} "
            f"(role {membership.role.value}) on project {membership.project_id}"
        )
        raise Forbidden(action, membership.role)


def authorize(
    store: WorkspaceStore,
    project: Project,
    user_id: str,
    action: Action
) -> Membership:
    """Membership check followed by the capability check."""
    membership = require_membership(store, project, user_id)
    require_capability(membership, action)
    return membership


def ensure_removable(project: Project, user_id: str) -> None:
    """The project creator is a permanent member."""
    if project.created_by == user_id:
        raise CannotRemoveCreator(project.id)
