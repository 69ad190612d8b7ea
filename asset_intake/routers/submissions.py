"""Admin dashboard routes over stored submissions.

  GET    /api/submissions/          → paginated list, newest first
  GET    /api/submissions/stats     → counts per company / department / asset
  GET    /api/submissions/export    → .xlsx download
  GET    /api/submissions/{id}      → one submission incl. image URLs
  DELETE /api/submissions/{id}      → remove a submission
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.auth.deps import get_current_admin
from asset_intake.config import settings
from asset_intake.database import get_db
from asset_intake.intake.catalog import get_catalog
from asset_intake.models.admin_user import AdminUser
from asset_intake.schemas.common import PaginatedResponse
from asset_intake.schemas.submission import SubmissionDetail, SubmissionStats, SubmissionSummary
from asset_intake.services import export as export_service
from asset_intake.services.stats import submission_stats
from asset_intake.services.submissions import (
    SubmissionFilters,
    all_images,
    all_submissions,
    delete_submission,
    get_submission,
    list_submissions,
)

router = APIRouter()


def _filters(
    company: str | None = None,
    department: str | None = None,
    asset: str | None = None,
    q: str | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
) -> SubmissionFilters:
    return SubmissionFilters(
        company=company,
        department=department,
        asset=asset,
        q=q,
        created_from=created_from,
        created_to=created_to,
    )


@router.get("/", response_model=PaginatedResponse[SubmissionSummary])
async def list_all(
    filters: SubmissionFilters = Depends(_filters),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: AdminUser = Depends(get_current_admin),
):
    items, total = await list_submissions(db, filters, limit=limit, offset=offset)
    return PaginatedResponse[SubmissionSummary](
        items=[SubmissionSummary.model_validate(s) for s in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=SubmissionStats)
async def stats(
    db: AsyncSession = Depends(get_db),
    _user: AdminUser = Depends(get_current_admin),
):
    return await submission_stats(db)


@router.get("/export")
async def export_xlsx(
    filters: SubmissionFilters = Depends(_filters),
    db: AsyncSession = Depends(get_db),
    _user: AdminUser = Depends(get_current_admin),
):
    submissions = await all_submissions(db, filters)
    content = export_service.build_workbook(submissions, get_catalog(settings.asset_catalog))
    filename = f"asset-submissions-{datetime.utcnow().strftime('%Y%m%d-%H%M%S')}.xlsx"
    return StreamingResponse(
        iter([content]),
        media_type=export_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{submission_id}", response_model=SubmissionDetail)
async def get_one(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    _user: AdminUser = Depends(get_current_admin),
):
    submission = await get_submission(db, submission_id)
    detail = SubmissionDetail.model_validate(submission)
    detail.images = all_images(submission.asset_details)
    return detail


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_one(
    submission_id: str,
    db: AsyncSession = Depends(get_db),
    user: AdminUser = Depends(get_current_admin),
):
    await delete_submission(db, submission_id, deleted_by=user.email)
