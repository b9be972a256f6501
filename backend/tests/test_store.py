# tests/test_store.py — Ownership predicate applied directly against the database
import pytest
import pytest_asyncio

from errors import NotFound
from models import Board, Stage, Task, RecordStatus
from store import get_owned, list_owned, title_taken, soft_delete


@pytest_asyncio.fixture
async def chain(db_session, test_user):
    board = Board(title="Board", owner_id=test_user.id)
    db_session.add(board)
    await db_session.flush()
    stage = Stage(title="Stage", owner_id=test_user.id, board_id=board.id)
    db_session.add(stage)
    await db_session.flush()
    task = Task(title="Task", owner_id=test_user.id, stage_id=stage.id)
    db_session.add(task)
    await db_session.commit()
    return board, stage, task


@pytest.mark.asyncio
async def test_owner_reaches_whole_chain(db_session, test_user, chain):
    board, stage, task = chain
    assert (await get_owned(db_session, Board, board.external_id, test_user)).id == board.id
    assert (await get_owned(db_session, Stage, stage.external_id, test_user)).id == stage.id
    found = await get_owned(db_session, Task, task.external_id, test_user)
    assert found.stage.board.external_id == board.external_id


@pytest.mark.asyncio
async def test_other_user_reaches_nothing(db_session, other_user, chain):
    for model, row in zip((Board, Stage, Task), chain):
        with pytest.raises(NotFound):
            await get_owned(db_session, model, row.external_id, other_user)
        assert await list_owned(db_session, model, other_user, limit=10, offset=0) == []


@pytest.mark.asyncio
async def test_mismatched_parent_owner_breaks_chain(db_session, test_user, other_user, chain):
    board, stage, task = chain
    # A task row claiming test_user while its board belongs to someone else
    board.owner_id = other_user.id
    await db_session.commit()

    with pytest.raises(NotFound):
        await get_owned(db_session, Task, task.external_id, test_user)
    with pytest.raises(NotFound):
        await get_owned(db_session, Stage, stage.external_id, test_user)


@pytest.mark.asyncio
async def test_deleted_ancestor_hides_descendants(db_session, test_user, chain):
    board, stage, task = chain
    await soft_delete(db_session, board)
    assert board.status == RecordStatus.DELETED

    for model in (Board, Stage, Task):
        assert await list_owned(db_session, model, test_user, limit=10, offset=0) == []


@pytest.mark.asyncio
async def test_title_taken_ignores_deleted_and_excluded(db_session, test_user, chain):
    board, _, _ = chain
    assert await title_taken(db_session, Board, test_user, "Board")
    assert not await title_taken(db_session, Board, test_user, "Board", exclude_id=board.id)
    await soft_delete(db_session, board)
    assert not await title_taken(db_session, Board, test_user, "Board")
