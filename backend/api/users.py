"""
ScriptSentries Users API
========================
Minimal user registry for membership and mentions.
"""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from api.deps import Collaboration, Store
from core.models import User
from schemas import ErrorResponse, UserCreateRequest, UserSchema

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=UserSchema,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Username taken"}},
    summary="Register a user"
)
async def create_user(request: UserCreateRequest, store: Store) -> UserSchema:
    if store.find_user_by_username(request.username):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "UsernameTaken",
                "message": f"Username '{request.username}' is already registered."
            }
        )
    user = store.save_user(User(username=request.username, email=request.email))
    logger.info(f"Registered user @{user.username}")
    return UserSchema(**user.to_dict())


@router.get("/search", response_model=list[UserSchema], summary="Search users")
async def search_users(
    collaboration: Collaboration,
    q: str = Query(..., min_length=1, description="Username or email fragment")
) -> list[UserSchema]:
    """Used by the mention picker and the member dialog."""
    return [UserSchema(**u.to_dict()) for u in collaboration.search_users(q)]
