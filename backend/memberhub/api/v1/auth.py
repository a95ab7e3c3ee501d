"""
Authentication endpoints.

Endpoints:
- POST /auth/register - Self-registration with a membership application
- POST /auth/login    - Login with email/password
- GET  /auth/me       - Current user profile
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from memberhub.core.config import settings
from memberhub.core.deps import get_current_user, request_meta
from memberhub.core.exceptions import (
    AuthenticationError, AuthorizationError, NotFoundError, ValidationError
)
from memberhub.core.security import get_password_hash, verify_password, create_access_token
from memberhub.db.base import get_db
from memberhub.models.organization import Organization
from memberhub.models.user import User, UserRole, UserStatus
from memberhub.schemas.auth import (
    LoginRequest, RegisterRequest, RegisterResponse, TokenResponse,
    UserEnvelope, UserResponse
)
from memberhub.services.memberships import apply_for_membership

logger = logging.getLogger(__name__)

router = APIRouter()


def user_to_response(user: User) -> UserResponse:
    """Convert User model to UserResponse schema."""
    return UserResponse(
        id=user.id,
        organization_id=user.organization_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
        role=user.role.value,
        status=user.status.value,
        created=user.created,
    )


@router.post("/auth/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    meta: dict = Depends(request_meta),
):
    """
    Register a new user and submit their membership application.

    The user starts as a pending member; approving the membership activates
    the account.
    """
    organization_id = data.organization_id or settings.DEFAULT_ORGANIZATION_ID
    if not organization_id:
        raise ValidationError("No organization configured")

    org_result = await db.execute(select(Organization.id).where(Organization.id == organization_id))
    if org_result.scalar_one_or_none() is None:
        raise NotFoundError("Organization not found")

    email = data.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError("Email already registered")

    user = User(
        organization_id=organization_id,
        email=email,
        password_hash=get_password_hash(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        role=UserRole.MEMBER,
        status=UserStatus.PENDING,
    )
    db.add(user)
    await db.flush()

    await apply_for_membership(
        db,
        organization_id=organization_id,
        user_id=user.id,
        membership_type_id=data.membership_type_id,
        custom_data=data.custom_data,
        meta=meta,
    )
    logger.info("User %s registered in org %s", user.id, organization_id)

    return RegisterResponse(
        message="Registration successful. Your application is pending approval.",
        user=user_to_response(user),
    )


@router.post("/auth/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email/password."""
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(credentials.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    if user.status != UserStatus.ACTIVE:
        raise AuthorizationError("Account is not active")

    token = create_access_token(subject=user.id)
    return TokenResponse(token=token, user=user_to_response(user))


@router.get("/auth/me", response_model=UserEnvelope)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(user=user_to_response(current_user))
