from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.errors import ConflictOfState


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def commit_or_conflict(db: AsyncSession, detail: str) -> None:
    """Commit, turning a unique-constraint violation into ``ConflictOfState``.

    Pre-checks give friendly errors; the constraints catch the concurrent
    submissions that slip past them.
    """
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictOfState(detail) from exc
