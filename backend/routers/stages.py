# routers/stages.py — Stages (columns) on the caller's boards
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.orm import selectinload

from context import Context
from errors import BadRequest
from models import Board, Stage
from procedures import ProcedureRouter, EmptyOutput
from schemas import (
    ExternalIdInput, PageInput, OwnerRef, BoardRef, owner_ref, board_ref,
)
from store import get_owned, list_owned, title_taken, soft_delete, live

logger = logging.getLogger("kanbex.routers.stages")

router = ProcedureRouter("stage")


# --- Schemas ---

class StageListInput(PageInput):
    board_external_id: Optional[UUID] = None


class StageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    board_external_id: UUID


class StageUpdate(BaseModel):
    external_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


class StageOut(BaseModel):
    external_id: str
    title: str
    description: Optional[str] = None
    created_by: OwnerRef
    board: BoardRef


class StageTaskOut(BaseModel):
    external_id: str
    title: str


class StageDetailOut(StageOut):
    tasks: List[StageTaskOut] = []
    created_at: datetime
    updated_at: datetime


class StageList(BaseModel):
    stages: List[StageOut]


class StageEnvelope(BaseModel):
    stage: StageOut


class StageDetailEnvelope(BaseModel):
    stage: StageDetailOut


def _stage_out(s: Stage) -> StageOut:
    return StageOut(
        external_id=s.external_id,
        title=s.title,
        description=s.description,
        created_by=owner_ref(s.owner),
        board=board_ref(s.board),
    )


# --- Procedures ---

@router.query("list", path="/stage", input=StageListInput, output=StageList, summary="Get all stages")
async def list_stages(ctx: Context, data: StageListInput) -> StageList:
    user = ctx.require_user()
    where = []
    if data.board_external_id is not None:
        where.append(Board.external_id == str(data.board_external_id))
    stages = await list_owned(ctx.db, Stage, user, data.limit, data.offset, where=where)
    return StageList(stages=[_stage_out(s) for s in stages])


@router.query(
    "get", path="/stage/{external_id}",
    input=ExternalIdInput, output=StageDetailEnvelope, summary="Get a single stage",
)
async def get_stage(ctx: Context, data: ExternalIdInput) -> StageDetailEnvelope:
    stage = await get_owned(
        ctx.db, Stage, data.external_id, ctx.require_user(),
        extra_options=(selectinload(Stage.tasks),),
    )
    out = _stage_out(stage)
    return StageDetailEnvelope(stage=StageDetailOut(
        **out.model_dump(),
        tasks=[StageTaskOut(external_id=t.external_id, title=t.title) for t in live(stage.tasks)],
        created_at=stage.created_at,
        updated_at=stage.updated_at,
    ))


@router.mutation(
    "create", method="POST", path="/stage",
    input=StageCreate, output=StageEnvelope, summary="Create a stage",
)
async def create_stage(ctx: Context, data: StageCreate) -> StageEnvelope:
    user = ctx.require_user()
    board = await get_owned(ctx.db, Board, data.board_external_id, user)

    if await title_taken(ctx.db, Stage, user, data.title, where=[Stage.board_id == board.id]):
        raise BadRequest("A stage with this title already exists on this board")

    stage = Stage(
        title=data.title,
        description=data.description,
        owner_id=user.id,
        board_id=board.id,
    )
    ctx.db.add(stage)
    await ctx.db.commit()
    logger.info(f"Created stage {stage.external_id} on board {board.external_id}")

    stage = await get_owned(ctx.db, Stage, stage.external_id, user)
    return StageEnvelope(stage=_stage_out(stage))


@router.mutation(
    "update", method="PATCH", path="/stage/{external_id}",
    input=StageUpdate, output=StageEnvelope, summary="Update a stage",
)
async def update_stage(ctx: Context, data: StageUpdate) -> StageEnvelope:
    user = ctx.require_user()
    stage = await get_owned(ctx.db, Stage, data.external_id, user)

    if data.title is not None and data.title != stage.title:
        taken = await title_taken(
            ctx.db, Stage, user, data.title,
            where=[Stage.board_id == stage.board_id], exclude_id=stage.id,
        )
        if taken:
            raise BadRequest("A stage with this title already exists on this board")
        stage.title = data.title
    if data.description is not None:
        stage.description = data.description

    await ctx.db.commit()
    stage = await get_owned(ctx.db, Stage, stage.external_id, user)
    logger.info(f"Updated stage {stage.external_id}")
    return StageEnvelope(stage=_stage_out(stage))


@router.mutation(
    "delete", method="DELETE", path="/stage/{external_id}",
    input=ExternalIdInput, output=EmptyOutput, summary="Delete a stage",
)
async def delete_stage(ctx: Context, data: ExternalIdInput) -> EmptyOutput:
    stage = await get_owned(ctx.db, Stage, data.external_id, ctx.require_user())
    await soft_delete(ctx.db, stage)
    logger.info(f"Deleted stage {stage.external_id}")
    return EmptyOutput()
