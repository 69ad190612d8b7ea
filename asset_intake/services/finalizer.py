"""Submission Finalizer: turns a confirmed draft into a stored record.

The draft maps 1:1 onto the flat `submissions` row:

  employee.fullName   → employee_name
  employee.employeeId → employee_id
  employee.contact    → employee_number (phone mode) | employee_email (email mode)
  job.*               → company / department / designation
  selectedAssets      → selected_assets
  assetDetails        → asset_details (camelCase blocks, verbatim)

A failed insert raises PersistenceError and leaves the draft untouched so
the caller can retry.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.database import on_commit
from asset_intake.intake.draft import SubmissionDraft
from asset_intake.middleware.exceptions import DraftNotConfirmedError, PersistenceError
from asset_intake.models.submission import Submission
from asset_intake.utils.cache import invalidate_cache

logger = logging.getLogger(__name__)


def to_record(draft: SubmissionDraft, contact_mode: str = "phone") -> dict:
    """Flatten a draft into `Submission` column values."""
    if draft.employee is None or draft.job is None:
        raise DraftNotConfirmedError("Submission is missing employee or job details")
    data = draft.to_dict()
    contact = draft.employee.contact
    return {
        "employee_name": draft.employee.full_name,
        "employee_id": draft.employee.employee_id,
        "employee_number": contact if contact_mode == "phone" else None,
        "employee_email": contact if contact_mode == "email" else None,
        "company": draft.job.company,
        "department": draft.job.department,
        "designation": draft.job.designation,
        "selected_assets": data["selectedAssets"],
        "asset_details": data["assetDetails"],
        "confirmed": draft.confirmed,
    }


async def finalize(
    draft: SubmissionDraft,
    db: AsyncSession,
    contact_mode: str = "phone",
) -> str:
    """Insert the submission and return its id.

    Raises:
        DraftNotConfirmedError if the draft was never confirmed.
        PersistenceError if the record store rejects the insert.
    """
    if not draft.confirmed:
        raise DraftNotConfirmedError()

    submission = Submission(**to_record(draft, contact_mode))
    try:
        db.add(submission)
        await db.flush()
    except SQLAlchemyError as e:
        logger.error(
            "Failed to persist submission",
            extra={"employee_id": submission.employee_id, "error": str(e)},
        )
        raise PersistenceError() from e

    logger.info(
        f"Stored submission {submission.id} for {submission.employee_id} "
        f"({', '.join(submission.selected_assets)})"
    )
    # Cached stats are dropped once the insert is durable
    on_commit(db, lambda: invalidate_cache("submissions:*"))
    return submission.id
