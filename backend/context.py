# context.py — Per-request caller resolution
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth import AuthService, InvalidToken
from database import get_db_session
from errors import Unauthorized
from models import User, RecordStatus

logger = logging.getLogger("kanbex.context")

# auto_error=False: a missing header means anonymous, not 403
security = HTTPBearer(auto_error=False)


@dataclass
class Context:
    db: AsyncSession
    user: Optional[User] = None
    request_id: Optional[str] = None

    def require_user(self) -> User:
        if self.user is None:
            raise Unauthorized()
        return self.user


async def resolve_user(token: Optional[str], db: AsyncSession) -> Optional[User]:
    """Map a bearer token to an active user, or None"""
    if not token:
        return None
    try:
        external_id = AuthService.verify_token(token)
    except InvalidToken as e:
        logger.debug(f"Treating request as anonymous: {e}")
        return None

    stmt = select(User).where(
        User.external_id == external_id,
        User.status == RecordStatus.ACTIVE,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> Context:
    token = credentials.credentials if credentials else None
    user = await resolve_user(token, db)
    return Context(
        db=db,
        user=user,
        request_id=getattr(request.state, "request_id", None),
    )
