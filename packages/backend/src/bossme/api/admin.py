"""Admin API routes — user listing, roles, stats, and soft deletion.

Learn: The whole router is admin-only; the role check is declared once
on the router instead of on every route.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bossme.auth.dependencies import require_roles
from bossme.db.engine import get_db
from bossme.db.models import ROLE_ADMIN, ROLES, User
from bossme.schemas.user import RoleUpdate, UserDeleted, UserRead, UserStats
from bossme.services.user_service import (
    SelfModificationError,
    UserNotFoundError,
    UserService,
)

_admin = require_roles(ROLE_ADMIN)

router = APIRouter(prefix="/admin", dependencies=[Depends(_admin)])


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/users", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_svc)):
    return await svc.list_users()


@router.get("/roles", response_model=list[str])
async def list_roles():
    return list(ROLES)


@router.put("/users/{user_id}/role", response_model=UserRead)
async def update_role(
    user_id: int,
    body: RoleUpdate,
    admin: User = Depends(_admin),
    svc: UserService = Depends(_svc),
):
    try:
        return await svc.set_role(admin, user_id, body.role)
    except SelfModificationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/users/{user_id}/stats", response_model=UserStats)
async def user_stats(user_id: int, svc: UserService = Depends(_svc)):
    try:
        return await svc.stats(user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/users/{user_id}", response_model=UserDeleted)
async def delete_user(
    user_id: int,
    admin: User = Depends(_admin),
    svc: UserService = Depends(_svc),
):
    """Anonymize and deactivate a user. Their content stays up."""
    try:
        user = await svc.soft_delete(admin, user_id)
    except SelfModificationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return UserDeleted(
        message="User has been marked as deleted and anonymized",
        username=user.username,
    )
