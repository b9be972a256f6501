# routers/users.py — The caller's own profile
import logging
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from auth import AuthService
from context import Context
from errors import NotFound
from models import User, RecordStatus
from procedures import ProcedureRouter, EmptyOutput
from schemas import ExternalIdInput, check_password_bytes

logger = logging.getLogger("kanbex.routers.users")

router = ProcedureRouter("user")


# --- Schemas ---

class UserOut(BaseModel):
    external_id: str
    username: str
    name: str
    email: str


class UserEnvelope(BaseModel):
    user: UserOut


class UserUpdate(BaseModel):
    external_id: UUID
    name: Optional[str] = Field(default=None, min_length=3, max_length=200)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)


# --- Helpers ---

def _user_to_out(u: User) -> UserOut:
    return UserOut(external_id=u.external_id, username=u.username, name=u.name, email=u.email)


def _own_account(ctx: Context, external_id: UUID) -> User:
    """Users may only address themselves; anything else looks missing"""
    user = ctx.require_user()
    if str(external_id) != user.external_id:
        raise NotFound("User not found")
    return user


# --- Procedures ---

@router.query("me", path="/user/me", output=UserEnvelope, summary="Get the current user")
async def me(ctx: Context, data) -> UserEnvelope:
    return UserEnvelope(user=_user_to_out(ctx.require_user()))


@router.mutation(
    "update", method="PATCH", path="/user/{external_id}",
    input=UserUpdate, output=UserEnvelope, summary="Update the current user",
)
async def update_user(ctx: Context, data: UserUpdate) -> UserEnvelope:
    user = _own_account(ctx, data.external_id)

    if data.name is not None:
        user.name = data.name
    if data.email is not None:
        user.email = data.email
    if data.password is not None:
        user.password_hash = AuthService.hash_password(data.password)

    ctx.db.add(user)
    await ctx.db.commit()
    await ctx.db.refresh(user)
    logger.info(f"Updated user {user.external_id}")
    return UserEnvelope(user=_user_to_out(user))


@router.mutation(
    "delete", method="DELETE", path="/user/{external_id}",
    input=ExternalIdInput, output=EmptyOutput, summary="Delete the current user",
)
async def delete_user(ctx: Context, data: ExternalIdInput) -> EmptyOutput:
    user = _own_account(ctx, data.external_id)
    user.status = RecordStatus.DELETED
    ctx.db.add(user)
    await ctx.db.commit()
    logger.info(f"Deleted user {user.external_id}")
    return EmptyOutput()
