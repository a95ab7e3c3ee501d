"""
SQLAlchemy models for MemberHub.
"""
# Core models
from memberhub.models.organization import Organization
from memberhub.models.user import User, UserRole, UserStatus

# Membership module
from memberhub.models.membership_type import MembershipType, CustomField
from memberhub.models.membership import (
    Membership,
    MembershipStatus,
    PaymentStatus,
    LinkedMember,
    VALID_STATUS_TRANSITIONS,
)

# Workflows
from memberhub.models.workflow import (
    Workflow,
    WorkflowExecution,
    WorkflowExecutionStatus,
    WorkflowTrigger,
)

# Audit
from memberhub.models.audit_log import AuditLog

__all__ = [
    # Core
    "Organization",
    "User",
    "UserRole",
    "UserStatus",
    # Membership
    "MembershipType",
    "CustomField",
    "Membership",
    "MembershipStatus",
    "PaymentStatus",
    "LinkedMember",
    "VALID_STATUS_TRANSITIONS",
    # Workflows
    "Workflow",
    "WorkflowExecution",
    "WorkflowExecutionStatus",
    "WorkflowTrigger",
    # Audit
    "AuditLog",
]
