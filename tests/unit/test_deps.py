"""Unit tests for the request-scoped database session dependency."""

import pytest
from sqlalchemy import func, select

from workwave.api import deps
from workwave.models import Worker, WorkerStatus


def _worker() -> Worker:
    return Worker(
        name="Kiran Das",
        phone="+919000000042",
        email="kiran@example.com",
        photo_url="https://example.com/kiran.png",
        profession="Painter",
        experience=2,
        location="Mysuru",
        status=WorkerStatus.ACTIVE,
        click_count=0,
    )


async def _count(session_factory) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(Worker.id)))).scalar_one()


@pytest.mark.asyncio
async def test_get_db_commits_when_request_succeeds(session_factory, monkeypatch):
    monkeypatch.setattr(deps, "async_session_factory", session_factory)
    dependency = deps.get_db()

    session = await dependency.__anext__()
    session.add(_worker())
    with pytest.raises(StopAsyncIteration):
        await dependency.__anext__()

    assert await _count(session_factory) == 1


@pytest.mark.asyncio
async def test_get_db_rolls_back_when_request_fails(session_factory, monkeypatch):
    monkeypatch.setattr(deps, "async_session_factory", session_factory)
    dependency = deps.get_db()

    session = await dependency.__anext__()
    session.add(_worker())
    await session.flush()
    with pytest.raises(RuntimeError, match="handler failed"):
        await dependency.athrow(RuntimeError("handler failed"))

    assert session.in_transaction() is False
    assert await _count(session_factory) == 0
