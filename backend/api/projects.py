"""
ScriptSentries Projects API
===========================
Project workspace: details, members, timeline and soft-delete.
"""

from fastapi import APIRouter, status

from api.deps import CurrentUser, Lifecycle, Store
from core.lifecycle import MemberInvite
from core.models import Project
from core.store import WorkspaceStore
from schemas import (
    DeleteResponse,
    ErrorResponse,
    MemberInviteSchema,
    MemberResponse,
    ProjectCreateRequest,
    ProjectResponse,
    ProjectTimelineResponse,
    ProjectUpdateRequest,
    TimelineEntrySchema,
)

router = APIRouter(prefix="/projects", tags=["Projects"])

AUTH_ERRORS = {
    403: {"model": ErrorResponse, "description": "Not a member or not permitted"},
    404: {"model": ErrorResponse, "description": "Project not found"},
}


def to_project_response(project: Project, store: WorkspaceStore) -> ProjectResponse:
    return ProjectResponse(
        **project.to_dict(),
        members=[MemberResponse(**m.to_dict()) for m in store.project_members(project.id)]
    )


@router.post(
    "",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
    description="The creator becomes a permanent ATTORNEY member."
)
async def create_project(
    request: ProjectCreateRequest,
    user_id: CurrentUser,
    lifecycle: Lifecycle,
    store: Store
) -> ProjectResponse:
    details = request.model_dump(exclude={"name", "members"})
    project = lifecycle.create_project(
        user_id,
        request.name,
        details=details,
        members=[MemberInvite(user_id=m.user_id, role=m.role) for m in request.members]
    )
    return to_project_response(project, store)


@router.get("", response_model=list[ProjectResponse], summary="List my projects")
async def list_projects(user_id: CurrentUser, lifecycle: Lifecycle, store: Store) -> list[ProjectResponse]:
    return [to_project_response(p, store) for p in lifecycle.list_projects(user_id)]


@router.get("/{project_id}", response_model=ProjectResponse, responses=AUTH_ERRORS)
async def get_project(
    project_id: str,
    user_id: CurrentUser,
    lifecycle: Lifecycle,
    store: Store
) -> ProjectResponse:
    return to_project_response(lifecycle.get_project(project_id, user_id), store)


@router.patch(
    "/{project_id}",
    response_model=ProjectResponse,
    responses=AUTH_ERRORS,
    summary="Update project details"
)
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    user_id: CurrentUser,
    lifecycle: Lifecycle,
    store: Store
) -> ProjectResponse:
    project = lifecycle.update_project(project_id, user_id, request.model_dump(exclude_none=True))
    return to_project_response(project, store)


@router.delete(
    "/{project_id}",
    response_model=DeleteResponse,
    responses=AUTH_ERRORS,
    summary="Soft-delete a project and all its scripts"
)
async def delete_project(project_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> DeleteResponse:
    lifecycle.delete_project(project_id, user_id)
    return DeleteResponse(message="Project deleted successfully", id=project_id)


@router.get(
    "/{project_id}/timeline",
    response_model=ProjectTimelineResponse,
    responses=AUTH_ERRORS,
    summary="Active script versions, newest first"
)
async def get_timeline(project_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> ProjectTimelineResponse:
    project = lifecycle.get_project(project_id, user_id)
    entries = lifecycle.timeline(project_id, user_id)
    return ProjectTimelineResponse(
        project_id=project.id,
        project_name=project.name,
        studio_name=project.studio_name,
        versions=[TimelineEntrySchema(**e.to_dict()) for e in entries],
        total_versions=len(entries),
        total_high_risks=sum(e.high_count for e in entries)
    )


# === Members ===

@router.get("/{project_id}/members", response_model=list[MemberResponse], responses=AUTH_ERRORS)
async def list_members(project_id: str, user_id: CurrentUser, lifecycle: Lifecycle) -> list[MemberResponse]:
    return [MemberResponse(**m.to_dict()) for m in lifecycle.members(project_id, user_id)]


@router.post(
    "/{project_id}/members",
    response_model=MemberResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**AUTH_ERRORS, 409: {"model": ErrorResponse, "description": "Already a member"}},
    summary="Add a member"
)
async def add_member(
    project_id: str,
    invite: MemberInviteSchema,
    user_id: CurrentUser,
    lifecycle: Lifecycle
) -> MemberResponse:
    membership = lifecycle.add_member(project_id, user_id, invite.user_id, invite.role)
    return MemberResponse(**membership.to_dict())


@router.delete(
    "/{project_id}/members/{target_user_id}",
    responses={**AUTH_ERRORS, 400: {"model": ErrorResponse, "description": "Cannot remove creator"}},
    summary="Remove a member"
)
async def remove_member(
    project_id: str,
    target_user_id: str,
    user_id: CurrentUser,
    lifecycle: Lifecycle
) -> dict[str, str]:
    lifecycle.remove_member(project_id, user_id, target_user_id)
    return {"message": "Member removed"}
