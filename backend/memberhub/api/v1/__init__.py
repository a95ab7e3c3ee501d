"""
API v1 routers.
"""
from memberhub.api.v1.auth import router as auth_router
from memberhub.api.v1.membership_types import router as membership_types_router
from memberhub.api.v1.memberships import router as memberships_router
from memberhub.api.v1.workflows import router as workflows_router
from memberhub.api.v1.audit_log import router as audit_log_router
from memberhub.api.v1.users import router as users_router

__all__ = [
    "auth_router",
    "membership_types_router",
    "memberships_router",
    "workflows_router",
    "audit_log_router",
    "users_router",
]
