"""
ScriptSentries Collaboration API
================================
Comments on findings and mention notifications.
"""

from fastapi import APIRouter, status

from api.deps import Collaboration, CurrentUser
from schemas import (
    CommentRequest,
    CommentResponse,
    ErrorResponse,
    NotificationResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/collab", tags=["Collaboration"])


@router.post(
    "/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Not a project member"},
        404: {"model": ErrorResponse, "description": "Finding not found"}
    },
    summary="Comment on a finding",
    description="Every `@username` in the text notifies that user once."
)
async def add_comment(
    request: CommentRequest,
    user_id: CurrentUser,
    collaboration: Collaboration
) -> CommentResponse:
    comment = collaboration.add_comment(request.risk_id, user_id, request.text)
    return CommentResponse(**comment.to_dict())


@router.get(
    "/comments/{finding_id}",
    response_model=list[CommentResponse],
    responses={
        403: {"model": ErrorResponse, "description": "Not a project member"},
        404: {"model": ErrorResponse, "description": "Finding not found"}
    }
)
async def list_comments(
    finding_id: str,
    user_id: CurrentUser,
    collaboration: Collaboration
) -> list[CommentResponse]:
    comments = collaboration.list_comments(finding_id, user_id)
    return [CommentResponse(**c.to_dict()) for c in comments]


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(user_id: CurrentUser, collaboration: Collaboration) -> list[NotificationResponse]:
    return [NotificationResponse(**n.to_dict()) for n in collaboration.notifications(user_id)]


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def unread_count(user_id: CurrentUser, collaboration: Collaboration) -> UnreadCountResponse:
    return UnreadCountResponse(unread=collaboration.unread_count(user_id))


@router.post("/notifications/mark-read", response_model=UnreadCountResponse)
async def mark_read(user_id: CurrentUser, collaboration: Collaboration) -> UnreadCountResponse:
    collaboration.mark_all_read(user_id)
    return UnreadCountResponse(unread=0)
