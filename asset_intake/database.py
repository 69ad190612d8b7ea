"""Async engine, session factory and the declarative base.

Every table (admin_users, submissions, intake_sessions) hangs off the one
`Base`. `get_db()` is the request-scoped session: the handler's writes
are committed when it returns and rolled back if it raises, so a failed
wizard step or submit never leaves a half-written record.

Side effects that must only happen once the data is durable (dropping
cached dashboard stats) are registered with `on_commit()` and run by
`commit()` right after the transaction commits.
"""

from typing import AsyncGenerator, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from asset_intake.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=5,
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

_AFTER_COMMIT = "after_commit"


class Base(DeclarativeBase):
    pass


def on_commit(session: AsyncSession, callback: Callable[[], Awaitable]) -> None:
    """Run `callback` after the session's current transaction commits."""
    session.info.setdefault(_AFTER_COMMIT, []).append(callback)


async def commit(session: AsyncSession) -> None:
    await session.commit()
    for callback in session.info.pop(_AFTER_COMMIT, []):
        await callback()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            session.info.pop(_AFTER_COMMIT, None)
            await session.rollback()
            raise
