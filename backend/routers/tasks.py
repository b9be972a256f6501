# routers/tasks.py — Task cards on the caller's stages
import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from context import Context
from models import Stage, Task, TaskPriority, utcnow
from procedures import ProcedureRouter, EmptyOutput
from schemas import (
    ExternalIdInput, PageInput, OwnerRef, StageWithBoardRef, owner_ref, stage_ref,
)
from store import get_owned, list_owned, soft_delete

logger = logging.getLogger("kanbex.routers.tasks")

router = ProcedureRouter("task")

MIN_PRIORITY = TaskPriority.LOW.value
MAX_PRIORITY = TaskPriority.URGENT.value


# --- Schemas ---

class TaskListInput(PageInput):
    stage_external_id: Optional[UUID] = None


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: int = Field(default=MIN_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    stage_external_id: UUID


class TaskUpdate(BaseModel):
    external_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[int] = Field(default=None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    stage_external_id: Optional[UUID] = None


class TaskOut(BaseModel):
    external_id: str
    title: str
    description: Optional[str] = None
    due_date: datetime
    priority: int
    created_by: OwnerRef
    stage: StageWithBoardRef


class TaskDetailOut(TaskOut):
    created_at: datetime
    updated_at: datetime


class TaskList(BaseModel):
    tasks: List[TaskOut]


class TaskEnvelope(BaseModel):
    task: TaskOut


class TaskDetailEnvelope(BaseModel):
    task: TaskDetailOut


def _task_out(t: Task) -> TaskOut:
    return TaskOut(
        external_id=t.external_id,
        title=t.title,
        description=t.description,
        due_date=t.due_date,
        priority=t.priority,
        created_by=owner_ref(t.owner),
        stage=stage_ref(t.stage),
    )


# --- Procedures ---

@router.query("list", path="/task", input=TaskListInput, output=TaskList, summary="Get all tasks")
async def list_tasks(ctx: Context, data: TaskListInput) -> TaskList:
    where = []
    if data.stage_external_id is not None:
        where.append(Stage.external_id == str(data.stage_external_id))
    tasks = await list_owned(ctx.db, Task, ctx.require_user(), data.limit, data.offset, where=where)
    return TaskList(tasks=[_task_out(t) for t in tasks])


@router.query(
    "get", path="/task/{external_id}",
    input=ExternalIdInput, output=TaskDetailEnvelope, summary="Get a single task",
)
async def get_task(ctx: Context, data: ExternalIdInput) -> TaskDetailEnvelope:
    task = await get_owned(ctx.db, Task, data.external_id, ctx.require_user())
    return TaskDetailEnvelope(task=TaskDetailOut(
        **_task_out(task).model_dump(),
        created_at=task.created_at,
        updated_at=task.updated_at,
    ))


@router.mutation(
    "create", method="POST", path="/task",
    input=TaskCreate, output=TaskEnvelope, summary="Create a task",
)
async def create_task(ctx: Context, data: TaskCreate) -> TaskEnvelope:
    user = ctx.require_user()
    stage = await get_owned(ctx.db, Stage, data.stage_external_id, user)

    task = Task(
        title=data.title,
        description=data.description,
        due_date=data.due_date or utcnow(),
        priority=data.priority,
        owner_id=user.id,
        stage_id=stage.id,
    )
    ctx.db.add(task)
    await ctx.db.commit()
    logger.info(f"Created task {task.external_id} on stage {stage.external_id}")

    task = await get_owned(ctx.db, Task, task.external_id, user)
    return TaskEnvelope(task=_task_out(task))


@router.mutation(
    "update", method="PATCH", path="/task/{external_id}",
    input=TaskUpdate, output=TaskEnvelope, summary="Update a task",
)
async def update_task(ctx: Context, data: TaskUpdate) -> TaskEnvelope:
    user = ctx.require_user()
    task = await get_owned(ctx.db, Task, data.external_id, user)

    if data.stage_external_id is not None and str(data.stage_external_id) != task.stage.external_id:
        task.stage = await get_owned(ctx.db, Stage, data.stage_external_id, user)
    if data.title is not None:
        task.title = data.title
    if data.description is not None:
        task.description = data.description
    if data.due_date is not None:
        task.due_date = data.due_date
    # priority 0 is a real value, not "unset"
    if data.priority is not None:
        task.priority = data.priority

    await ctx.db.commit()
    task = await get_owned(ctx.db, Task, task.external_id, user)
    logger.info(f"Updated task {task.external_id}")
    return TaskEnvelope(task=_task_out(task))


@router.mutation(
    "delete", method="DELETE", path="/task/{external_id}",
    input=ExternalIdInput, output=EmptyOutput, summary="Delete a task",
)
async def delete_task(ctx: Context, data: ExternalIdInput) -> EmptyOutput:
    task = await get_owned(ctx.db, Task, data.external_id, ctx.require_user())
    await soft_delete(ctx.db, task)
    logger.info(f"Deleted task {task.external_id}")
    return EmptyOutput()
