"""
ScriptSentries API Dependencies
===============================
Shared FastAPI dependencies: the acting user and service singletons.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from core.collaboration import CollaborationService
from core.lifecycle import LifecycleManager
from core.pipeline import AnalysisPipeline
from core.store import WorkspaceStore, get_store


def get_current_user_id(
    x_user_id: Annotated[str, Header(description="Acting user; issued by the auth gateway")]
) -> str:
    """Acting user id. Credential verification happens upstream."""
    return x_user_id


def get_lifecycle(store: Annotated[WorkspaceStore, Depends(get_store)]) -> LifecycleManager:
    return LifecycleManager(store)


def get_collaboration(store: Annotated[WorkspaceStore, Depends(get_store)]) -> CollaborationService:
    return CollaborationService(store)


@lru_cache
def get_pipeline() -> AnalysisPipeline:
    """Process-wide pipeline sharing the workspace store."""
    return AnalysisPipeline(get_store())


CurrentUser = Annotated[str, Depends(get_current_user_id)]
Store = Annotated[WorkspaceStore, Depends(get_store)]
Lifecycle = Annotated[LifecycleManager, Depends(get_lifecycle)]
Collaboration = Annotated[CollaborationService, Depends(get_collaboration)]
Pipeline = Annotated[AnalysisPipeline, Depends(get_pipeline)]
