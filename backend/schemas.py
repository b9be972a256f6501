# schemas.py — Pydantic shapes shared across resource routers
from uuid import UUID

from pydantic import BaseModel, Field

from auth import MAX_PASSWORD_BYTES
from models import User, Board, Stage


class PageInput(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class ExternalIdInput(BaseModel):
    external_id: UUID


class OwnerRef(BaseModel):
    external_id: str
    username: str


class BoardRef(BaseModel):
    external_id: str
    title: str


class StageRef(BaseModel):
    external_id: str
    title: str


class StageWithBoardRef(StageRef):
    board: BoardRef


def owner_ref(u: User) -> OwnerRef:
    return OwnerRef(external_id=u.external_id, username=u.username)


def board_ref(b: Board) -> BoardRef:
    return BoardRef(external_id=b.external_id, title=b.title)


def stage_ref(s: Stage) -> StageWithBoardRef:
    return StageWithBoardRef(external_id=s.external_id, title=s.title, board=board_ref(s.board))


def check_password_bytes(v):
    """Field validator body: bcrypt counts bytes, not characters"""
    if v is not None and len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return v
