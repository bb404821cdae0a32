"""Account store: users, roles, profiles and session rows.

Every call goes through ``_run`` so a stalled database surfaces as
``StoreTimeout`` instead of hanging the request. Queries are ORM
expressions only; values are always bound parameters.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from axioquan.core.config import get_settings
from axioquan.core.exceptions import (
    AccountStoreError,
    DuplicateAccountError,
    StoreTimeout,
    UnknownRoleError,
)
from axioquan.models.role import DEFAULT_ROLES, Role
from axioquan.models.session import UserSession
from axioquan.models.user import User
from axioquan.models.user_profile import UserProfile
from axioquan.models.user_role import UserRole

logger = structlog.get_logger(__name__)

PROFILE_FIELDS = ("name", "bio", "timezone", "locale")


@dataclass
class UserWithRoles:
    user: User
    roles: list[str] = field(default_factory=list)
    primary_role: str | None = None


async def _run(awaitable: Awaitable[Any], operation: str) -> Any:
    try:
        return await asyncio.wait_for(awaitable, timeout=get_settings().db_timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise StoreTimeout(operation) from exc


async def email_or_username_taken(db: AsyncSession, email: str, username: str) -> bool:
    result = await _run(
        db.execute(select(User.id).where(or_(User.email == email, User.username == username)).limit(1)),
        "email_or_username_taken",
    )
    return result.first() is not None


async def create_account(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    hashed_password: str,
    name: str,
    role_name: str,
) -> User:
    """Insert user, primary role and empty profile as one transaction."""
    try:
        user = User(username=username, email=email, hashed_password=hashed_password, name=name)
        db.add(user)
        await _run(db.flush(), "insert_user")
        if user.id is None:
            raise AccountStoreError("User creation failed - no record returned")
        # load server defaults (created_at) while the transaction is still open
        await _run(db.refresh(user), "refresh_user")

        result = await _run(db.execute(select(Role.id).where(Role.name == role_name)), "resolve_role")
        role_id = result.scalar_one_or_none()
        if role_id is None:
            raise UnknownRoleError(role_name)

        db.add(UserRole(user_id=user.id, role_id=role_id, is_primary=True))
        db.add(UserProfile(user_id=user.id))
        await _run(db.commit(), "commit_account")
    except IntegrityError as exc:
        await db.rollback()
        # lost the race against a concurrent signup with the same email/username
        raise DuplicateAccountError() from exc
    except BaseException:
        await db.rollback()
        raise

    return user


async def _roles_for(db: AsyncSession, user_id: str) -> tuple[list[str], str | None]:
    result = await _run(
        db.execute(
            select(Role.name, UserRole.is_primary)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(UserRole.assigned_at, UserRole.id)
        ),
        "load_roles",
    )
    roles = []
    primary = None
    for name, is_primary in result.all():
        roles.append(name)
        if is_primary and primary is None:
            primary = name
    return roles, primary


async def get_active_user_with_roles(
    db: AsyncSession,
    *,
    email: str | None = None,
    user_id: str | None = None,
) -> UserWithRoles | None:
    """Active user by email or id, with every assigned role and the primary one."""
    if email is None and user_id is None:
        raise ValueError("email or user_id is required")
    user = await get_active_user_by_email(db, email) if email is not None else await get_active_user_by_id(db, user_id)
    if user is None:
        return None
    roles, primary = await _roles_for(db, user.id)
    return UserWithRoles(user=user, roles=roles, primary_role=primary)


async def get_active_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await _run(
        db.execute(select(User).where(User.email == email, User.is_active.is_(True)).limit(1)),
        "get_user_by_email",
    )
    return result.scalar_one_or_none()


async def get_active_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await _run(
        db.execute(select(User).where(User.id == user_id, User.is_active.is_(True)).limit(1)),
        "get_user_by_id",
    )
    return result.scalar_one_or_none()


async def stamp_last_login(db: AsyncSession, user_id: str) -> None:
    await _run(
        db.execute(update(User).where(User.id == user_id).values(last_login=datetime.now(timezone.utc))),
        "stamp_last_login",
    )
    await _run(db.commit(), "commit_last_login")


async def update_user_profile(db: AsyncSession, user_id: str, fields: dict[str, Any]) -> User | None:
    """Overwrite only the provided (non-None) fields of an active user."""
    user = await get_active_user_by_id(db, user_id)
    if user is None:
        return None
    for key in PROFILE_FIELDS:
        value = fields.get(key)
        if value is not None:
            setattr(user, key, value)
    user.updated_at = datetime.now(timezone.utc)
    try:
        await _run(db.commit(), "commit_profile")
    except BaseException:
        await db.rollback()
        raise
    await _run(db.refresh(user), "refresh_user")
    return user


async def assign_role(db: AsyncSession, user_id: str, role_name: str, primary: bool = False) -> None:
    """Grant a role; with primary=True the previous primary row is demoted."""
    result = await _run(db.execute(select(Role.id).where(Role.name == role_name)), "resolve_role")
    role_id = result.scalar_one_or_none()
    if role_id is None:
        raise UnknownRoleError(role_name)

    try:
        result = await _run(
            db.execute(select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)),
            "load_user_role",
        )
        link = result.scalar_one_or_none()
        if primary:
            await _run(
                db.execute(
                    update(UserRole)
                    .where(UserRole.user_id == user_id, UserRole.role_id != role_id)
                    .values(is_primary=False)
                ),
                "demote_primary",
            )
        if link is None:
            db.add(UserRole(user_id=user_id, role_id=role_id, is_primary=primary))
        elif primary:
            link.is_primary = True
        await _run(db.commit(), "commit_role")
    except BaseException:
        await db.rollback()
        raise
    logger.info("role_assigned", user_id=user_id, role=role_name, primary=primary)


async def delete_user_sessions(db: AsyncSession, user_id: str) -> int:
    result = await _run(db.execute(delete(UserSession).where(UserSession.user_id == user_id)), "delete_sessions")
    await _run(db.commit(), "commit_delete_sessions")
    return result.rowcount or 0


async def seed_roles(db: AsyncSession) -> None:
    """Insert the reference roles that are missing. Idempotent."""
    result = await db.execute(select(Role.name))
    existing = set(result.scalars().all())
    missing = [Role(name=name, description=desc) for name, desc in DEFAULT_ROLES.items() if name not in existing]
    if not missing:
        return
    db.add_all(missing)
    await db.commit()
    logger.info("roles_seeded", roles=[r.name for r in missing])
