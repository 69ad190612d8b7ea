"""Record store queries for the admin dashboard.

Listing is newest first. `asset` filters on a selected label; `q` is a
case-insensitive substring match over the employee's name, id, contact
and designation.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.database import on_commit
from asset_intake.middleware.exceptions import ResourceNotFoundError
from asset_intake.models.submission import Submission
from asset_intake.utils.cache import invalidate_cache

logger = logging.getLogger(__name__)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so `%` and `_` match literally (escape char: backslash)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class SubmissionFilters:
    company: str | None = None
    department: str | None = None
    asset: str | None = None
    q: str | None = None
    created_from: date | None = None
    created_to: date | None = None

    def apply(self, stmt):
        if self.company:
            stmt = stmt.where(Submission.company == self.company)
        if self.department:
            stmt = stmt.where(Submission.department == self.department)
        if self.asset:
            # selected_assets is a JSON list of labels; match the quoted label
            stmt = stmt.where(
                cast(Submission.selected_assets, String).like(
                    f'%"{_escape_like(self.asset)}"%', escape="\\"
                )
            )
        if self.q:
            needle = f"%{_escape_like(self.q.strip())}%"
            stmt = stmt.where(
                or_(
                    Submission.employee_name.ilike(needle, escape="\\"),
                    Submission.employee_id.ilike(needle, escape="\\"),
                    Submission.employee_number.ilike(needle, escape="\\"),
                    Submission.employee_email.ilike(needle, escape="\\"),
                    Submission.designation.ilike(needle, escape="\\"),
                )
            )
        if self.created_from:
            stmt = stmt.where(
                Submission.created_at >= datetime.combine(self.created_from, time.min)
            )
        if self.created_to:
            # Inclusive of the whole end day
            stmt = stmt.where(
                Submission.created_at
                < datetime.combine(self.created_to + timedelta(days=1), time.min)
            )
        return stmt


async def list_submissions(
    db: AsyncSession,
    filters: SubmissionFilters | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Submission], int]:
    """Return one page of submissions and the filtered total."""
    filters = filters or SubmissionFilters()

    count_stmt = filters.apply(select(func.count(Submission.id)))
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = (
        filters.apply(select(Submission))
        .order_by(Submission.created_at.desc(), Submission.id.desc())
        .limit(limit)
        .offset(offset)
    )
    items = (await db.execute(stmt)).scalars().all()
    return list(items), total


async def all_submissions(db: AsyncSession, filters: SubmissionFilters | None = None) -> list[Submission]:
    stmt = (filters or SubmissionFilters()).apply(select(Submission))
    result = await db.execute(stmt.order_by(Submission.created_at.desc()))
    return list(result.scalars().all())


async def get_submission(db: AsyncSession, submission_id: str) -> Submission:
    result = await db.execute(select(Submission).where(Submission.id == submission_id))
    submission = result.scalar_one_or_none()
    if not submission:
        raise ResourceNotFoundError("Submission", submission_id)
    return submission


async def delete_submission(db: AsyncSession, submission_id: str, deleted_by: str | None = None) -> None:
    submission = await get_submission(db, submission_id)
    await db.delete(submission)
    await db.flush()
    logger.info(
        f"Deleted submission {submission_id}",
        extra={"submission_id": submission_id, "deleted_by": deleted_by},
    )
    on_commit(db, lambda: invalidate_cache("submissions:*"))


def all_images(asset_details: dict | None) -> list[str]:
    """Every image URL of a submission, in block order."""
    images: list[str] = []
    for block in (asset_details or {}).values():
        if isinstance(block, dict):
            images.extend(block.get("images") or [])
    return images
