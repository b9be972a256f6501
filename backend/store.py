# store.py — Owner-scoped access to boards, stages and tasks
#
# Every read or write of a Board, Stage or Task goes through ``owned_by``.
# The predicate requires the row and each of its ancestors to be ACTIVE and
# owned by the caller, so a stage on another user's board (or a task under a
# deleted stage) is never reachable.

from typing import Optional, Sequence, Type

from sqlalchemy import Select, select
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from errors import NotFound
from models import Board, Stage, Task, User, RecordStatus

# Relationship path from each model up to its root board
OWNERSHIP_CHAIN = {
    Board: (),
    Stage: (Stage.board,),
    Task: (Task.stage, Stage.board),
}

# Relationships the routers render in their output
LOAD_OPTIONS = {
    Board: (selectinload(Board.owner),),
    Stage: (selectinload(Stage.owner), selectinload(Stage.board)),
    Task: (selectinload(Task.owner), selectinload(Task.stage).selectinload(Stage.board)),
}

LABELS = {Board: "Board", Stage: "Stage", Task: "Task"}


def owned_by(model: Type, owner: User) -> Select:
    """SELECT for live rows of ``model`` that ``owner`` owns through the whole chain"""
    stmt = select(model).where(
        model.status == RecordStatus.ACTIVE,
        model.owner_id == owner.id,
    )
    for rel in OWNERSHIP_CHAIN[model]:
        parent = rel.property.mapper.class_
        stmt = stmt.join(rel).where(
            parent.status == RecordStatus.ACTIVE,
            parent.owner_id == owner.id,
        )
    return stmt


async def get_owned(
    db: AsyncSession,
    model: Type,
    external_id: str,
    owner: User,
    extra_options: Sequence = (),
):
    """Fetch one owned row by external id or raise NotFound"""
    stmt = (
        owned_by(model, owner)
        .where(model.external_id == str(external_id))
        .options(*LOAD_OPTIONS[model], *extra_options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    try:
        return result.scalar_one()
    except NoResultFound:
        raise NotFound(f"{LABELS[model]} not found")


async def list_owned(
    db: AsyncSession,
    model: Type,
    owner: User,
    limit: int,
    offset: int,
    where: Sequence = (),
) -> list:
    stmt = (
        owned_by(model, owner)
        .where(*where)
        .options(*LOAD_OPTIONS[model])
        .order_by(model.created_at.asc(), model.id.asc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def title_taken(
    db: AsyncSession,
    model: Type,
    owner: User,
    title: str,
    where: Sequence = (),
    exclude_id: Optional[int] = None,
) -> bool:
    """True when another live row of ``model`` owned by ``owner`` uses ``title``"""
    stmt = owned_by(model, owner).where(model.title == title, *where)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.first() is not None


async def soft_delete(db: AsyncSession, row) -> None:
    row.status = RecordStatus.DELETED
    db.add(row)
    await db.commit()


def live(rows) -> list:
    """Filter an already-loaded collection down to ACTIVE rows"""
    return [r for r in rows if r.status == RecordStatus.ACTIVE]
