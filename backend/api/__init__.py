"""
ScriptSentries API Module
=========================
FastAPI routers for the ScriptSentries API.
"""

from api.collab import router as collab_router
from api.projects import router as projects_router
from api.scripts import router as scripts_router
from api.users import router as users_router

__all__ = ["users_router", "projects_router", "scripts_router", "collab_router"]
