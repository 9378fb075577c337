"""Route dependencies resolving the proxy-authenticated account and its role."""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.student import Student
from app.services.auth import get_user_by_email


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> Student:
    """The account behind the identity header.

    401 when the header is missing, 403 when the email has no account yet
    (accounts are created by an admin).
    """
    email = getattr(request.state, "user_email", None)
    if not email:
        raise HTTPException(status_code=401, detail="Not authenticated")
    account = await get_user_by_email(db, email)
    if account is None:
        raise HTTPException(status_code=403, detail="Not registered")
    return account


def _role_guard(role: str):
    async def guard(account: Student = Depends(get_current_user)) -> Student:
        if account.role != role:
            raise HTTPException(status_code=403, detail=f"{role.capitalize()} access required")
        return account

    guard.__name__ = f"require_{role}"
    return guard


# Students take courses and log progress; admins manage the curriculum
require_student = _role_guard("student")
require_admin = _role_guard("admin")
