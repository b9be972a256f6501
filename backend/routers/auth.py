# routers/auth.py — Registration and login (the only public procedures)
import logging

from pydantic import BaseModel, EmailStr, Field, field_validator
from sqlalchemy import select

from auth import AuthService
from context import Context
from errors import BadRequest
from models import User, RecordStatus
from procedures import ProcedureRouter
from schemas import check_password_bytes

logger = logging.getLogger("kanbex.routers.auth")

router = ProcedureRouter("auth")


# --- Schemas ---

class RegisterInput(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    name: str = Field(..., min_length=3, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v):
        return check_password_bytes(v)


class RegisteredUser(BaseModel):
    external_id: str
    username: str
    email: str


class RegisterOutput(BaseModel):
    user: RegisteredUser


class LoginInput(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginOutput(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int


# --- Procedures ---

@router.mutation(
    "register", method="POST", path="/register",
    input=RegisterInput, output=RegisterOutput, protected=False,
    summary="Register a new user",
)
async def register(ctx: Context, data: RegisterInput) -> RegisterOutput:
    db = ctx.db
    # Usernames stay reserved after a soft delete
    result = await db.execute(select(User.id).where(User.username == data.username))
    if result.first() is not None:
        raise BadRequest("User already exists")

    user = User(
        username=data.username,
        name=data.name,
        email=data.email,
        password_hash=AuthService.hash_password(data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"Registered user {user.external_id}")

    return RegisterOutput(user=RegisteredUser(
        external_id=user.external_id,
        username=user.username,
        email=user.email,
    ))


@router.mutation(
    "login", method="POST", path="/login",
    input=LoginInput, output=LoginOutput, protected=False,
    summary="Login a user",
)
async def login(ctx: Context, data: LoginInput) -> LoginOutput:
    stmt = select(User).where(User.username == data.username)
    result = await ctx.db.execute(stmt)
    user = result.scalar_one_or_none()

    if (
        user is None
        or user.status != RecordStatus.ACTIVE
        or not AuthService.verify_password(data.password, user.password_hash)
    ):
        logger.info(f"Rejected login for {data.username!r}")
        raise BadRequest("Invalid credentials")

    return LoginOutput(
        token=AuthService.create_access_token(user.external_id),
        expires_in=AuthService.token_lifetime_seconds(),
    )
