# routers/boards.py — Boards owned by the caller
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.orm import selectinload

from context import Context
from errors import BadRequest
from models import Board
from procedures import ProcedureRouter, EmptyOutput
from schemas import ExternalIdInput, OwnerRef, PageInput, owner_ref
from store import get_owned, list_owned, title_taken, soft_delete, live

logger = logging.getLogger("kanbex.routers.boards")

router = ProcedureRouter("board")


# ============================================================
# SCHEMAS
# ============================================================

class BoardCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class BoardUpdate(BaseModel):
    external_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class BoardOut(BaseModel):
    external_id: str
    title: str
    description: str
    created_by: OwnerRef


class BoardStageOut(BaseModel):
    external_id: str
    title: str
    description: Optional[str] = None


class BoardDetailOut(BoardOut):
    stages: List[BoardStageOut] = []
    created_at: datetime
    updated_at: datetime


class BoardList(BaseModel):
    boards: List[BoardOut]


class BoardEnvelope(BaseModel):
    board: BoardOut


class BoardDetailEnvelope(BaseModel):
    board: BoardDetailOut


# ============================================================
# HELPERS
# ============================================================

def _board_out(b: Board) -> BoardOut:
    return BoardOut(
        external_id=b.external_id,
        title=b.title,
        description=b.description or "",
        created_by=owner_ref(b.owner),
    )


# ============================================================
# PROCEDURES
# ============================================================

@router.query("list", path="/board", input=PageInput, output=BoardList, summary="Get all boards")
async def list_boards(ctx: Context, data: PageInput) -> BoardList:
    boards = await list_owned(ctx.db, Board, ctx.require_user(), data.limit, data.offset)
    return BoardList(boards=[_board_out(b) for b in boards])


@router.query(
    "get", path="/board/{external_id}",
    input=ExternalIdInput, output=BoardDetailEnvelope, summary="Get a board",
)
async def get_board(ctx: Context, data: ExternalIdInput) -> BoardDetailEnvelope:
    board = await get_owned(
        ctx.db, Board, data.external_id, ctx.require_user(),
        extra_options=(selectinload(Board.stages),),
    )
    out = _board_out(board)
    return BoardDetailEnvelope(board=BoardDetailOut(
        **out.model_dump(),
        stages=[
            BoardStageOut(external_id=s.external_id, title=s.title, description=s.description)
            for s in live(board.stages)
        ],
        created_at=board.created_at,
        updated_at=board.updated_at,
    ))


@router.mutation(
    "create", method="POST", path="/board",
    input=BoardCreate, output=BoardEnvelope, summary="Create a board",
)
async def create_board(ctx: Context, data: BoardCreate) -> BoardEnvelope:
    user = ctx.require_user()
    if await title_taken(ctx.db, Board, user, data.title):
        raise BadRequest("A board with this title already exists")

    board = Board(title=data.title, description=data.description or "", owner_id=user.id)
    ctx.db.add(board)
    await ctx.db.commit()
    logger.info(f"Created board {board.external_id}")

    # Re-fetch with relationships
    board = await get_owned(ctx.db, Board, board.external_id, user)
    return BoardEnvelope(board=_board_out(board))


@router.mutation(
    "update", method="PATCH", path="/board/{external_id}",
    input=BoardUpdate, output=BoardEnvelope, summary="Update a board",
)
async def update_board(ctx: Context, data: BoardUpdate) -> BoardEnvelope:
    user = ctx.require_user()
    board = await get_owned(ctx.db, Board, data.external_id, user)

    if data.title is not None and data.title != board.title:
        if await title_taken(ctx.db, Board, user, data.title, exclude_id=board.id):
            raise BadRequest("A board with this title already exists")
        board.title = data.title
    if data.description is not None:
        board.description = data.description

    await ctx.db.commit()
    board = await get_owned(ctx.db, Board, board.external_id, user)
    logger.info(f"Updated board {board.external_id}")
    return BoardEnvelope(board=_board_out(board))


@router.mutation(
    "delete", method="DELETE", path="/board/{external_id}",
    input=ExternalIdInput, output=EmptyOutput, summary="Delete a board",
)
async def delete_board(ctx: Context, data: ExternalIdInput) -> EmptyOutput:
    board = await get_owned(ctx.db, Board, data.external_id, ctx.require_user())
    await soft_delete(ctx.db, board)
    logger.info(f"Deleted board {board.external_id}")
    return EmptyOutput()
