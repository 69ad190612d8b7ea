"""Intake wizard: the employee-facing asset form with save/resume.

Endpoints (all under /api/intake):
  GET    /options                                  → catalog + form settings
  POST   /sessions                                 → start a new form
  GET    /sessions/{id}                            → current progress
  POST   /sessions/{id}/employee                   → Next on step 1
  POST   /sessions/{id}/job                        → Next on step 2
  POST   /sessions/{id}/assets                     → Next on step 3 (selection)
  POST   /sessions/{id}/asset-details              → Next on step 4
  POST   /sessions/{id}/review                     → confirm on step 5
  POST   /sessions/{id}/back                       → previous step
  POST   /sessions/{id}/go-to/{step}               → jump back to an earlier step
  PATCH  /sessions/{id}/assets/{key}               → edit one asset sub-form
  POST   /sessions/{id}/assets/{key}/accessories   → toggle an accessory
  POST   /sessions/{id}/assets/{key}/images        → upload a batch of photos
  DELETE /sessions/{id}/assets/{key}/images/{idx}  → remove a photo
  POST   /sessions/{id}/submit                     → persist the submission
  POST   /sessions/{id}/reset                      → start over

Design:
  - The whole wizard is stored as one JSON snapshot per session row and
    rebuilt on every request. The row is loaded FOR UPDATE so two
    requests on one session run one after the other.
  - An upload marks its block in flight and commits, then pushes the
    photo bytes to the object store without holding the row lock. The
    URLs are appended to the block by asset key under the lock again;
    if the type was deselected meanwhile they are discarded.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from asset_intake.config import settings
from asset_intake.database import commit, get_db
from asset_intake.intake.assembler import UploadReport
from asset_intake.intake.profile import IntakeProfile
from asset_intake.intake.wizard import IntakeWizard, WizardStep
from asset_intake.middleware.exceptions import ResourceNotFoundError, WizardStateError
from asset_intake.models.intake_session import IntakeSession
from asset_intake.schemas.intake import AccessoryToggle, IntakeOptions, IntakeProgress, UploadResult
from asset_intake.services.finalizer import finalize
from asset_intake.storage.base import ImageFile
from asset_intake.storage.local import LocalObjectStore, get_object_store

logger = logging.getLogger(__name__)

router = APIRouter()


def get_profile() -> IntakeProfile:
    """FastAPI dependency: the deployment's intake profile."""
    return IntakeProfile.from_settings(settings)


# ── Helpers ──────────────────────────────────────────────────

async def _get_session_row(db: AsyncSession, session_id: str, lock: bool = True) -> IntakeSession:
    stmt = select(IntakeSession).where(IntakeSession.id == session_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    row = (await db.execute(stmt)).scalar_one_or_none()
    if not row:
        raise ResourceNotFoundError("Intake session", session_id)
    return row


async def _save(db: AsyncSession, row: IntakeSession, wizard: IntakeWizard) -> IntakeProgress:
    row.state = wizard.snapshot()
    row.current_step = wizard.step.value
    row.is_complete = wizard.step == WizardStep.SUCCESS
    row.submission_id = wizard.submission_id
    await db.flush()
    return _make_progress(row, wizard)


def _make_progress(row: IntakeSession, wizard: IntakeWizard) -> IntakeProgress:
    snapshot = wizard.snapshot()
    return IntakeProgress(
        session_id=row.id,
        step=wizard.step.value,
        step_title=wizard.step.display_name,
        completed_steps=snapshot["completed"],
        can_submit=wizard.ready_to_submit(),
        submission_id=wizard.submission_id,
        draft=snapshot["draft"],
        blocks=snapshot["blocks"],
        updated_at=row.updated_at,
    )


def _expect_step(wizard: IntakeWizard, step: WizardStep) -> None:
    if wizard.step != step:
        raise WizardStateError(
            f"'{step.display_name}' is not the active step (currently '{wizard.step.display_name}')"
        )


async def _step_next(
    session_id: str,
    step: WizardStep,
    payload: dict,
    db: AsyncSession,
    profile: IntakeProfile,
) -> IntakeProgress:
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    _expect_step(wizard, step)
    wizard.advance(payload)
    return await _save(db, row, wizard)


# ── Options / session lifecycle ─────────────────────────────

@router.get("/options", response_model=IntakeOptions)
async def get_options(profile: IntakeProfile = Depends(get_profile)):
    return IntakeOptions(
        contact_mode=profile.contact_mode,
        require_images=profile.require_images,
        catalog=profile.catalog.to_dict(),
    )


@router.post("/sessions", response_model=IntakeProgress, status_code=status.HTTP_201_CREATED)
async def create_session(
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    wizard = IntakeWizard(profile)
    row = IntakeSession()
    db.add(row)
    progress = await _save(db, row, wizard)
    logger.info(f"Started intake session {row.id}")
    return progress


@router.get("/sessions/{session_id}", response_model=IntakeProgress)
async def get_progress(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id, lock=False)
    return _make_progress(row, IntakeWizard.restore(profile, row.state))


# ── Step "Next" transitions ─────────────────────────────────

@router.post("/sessions/{session_id}/employee", response_model=IntakeProgress)
async def save_employee(
    session_id: str,
    body: dict,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    return await _step_next(session_id, WizardStep.EMPLOYEE, body, db, profile)


@router.post("/sessions/{session_id}/job", response_model=IntakeProgress)
async def save_job(
    session_id: str,
    body: dict,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    return await _step_next(session_id, WizardStep.JOB, body, db, profile)


@router.post("/sessions/{session_id}/assets", response_model=IntakeProgress)
async def save_selection(
    session_id: str,
    body: dict,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    return await _step_next(session_id, WizardStep.ASSET_SELECTION, body, db, profile)


@router.post("/sessions/{session_id}/asset-details", response_model=IntakeProgress)
async def save_asset_details(
    session_id: str,
    body: dict | None = None,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    """Validate every asset sub-form. The body may carry last-moment field
    edits keyed by asset key, e.g. {"laptop": {"brand": "Dell"}}."""
    return await _step_next(session_id, WizardStep.ASSET_DETAILS, body or {}, db, profile)


@router.post("/sessions/{session_id}/review", response_model=IntakeProgress)
async def confirm_review(
    session_id: str,
    body: dict,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    return await _step_next(session_id, WizardStep.REVIEW, body, db, profile)


# ── Navigation ───────────────────────────────────────────────

@router.post("/sessions/{session_id}/back", response_model=IntakeProgress)
async def go_back(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    wizard.back()
    return await _save(db, row, wizard)


@router.post("/sessions/{session_id}/go-to/{step}", response_model=IntakeProgress)
async def go_to_step(
    session_id: str,
    step: WizardStep,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    wizard.go_to(step)
    return await _save(db, row, wizard)


# ── Asset sub-forms ──────────────────────────────────────────

@router.patch("/sessions/{session_id}/assets/{key}", response_model=IntakeProgress)
async def update_asset_fields(
    session_id: str,
    key: str,
    body: dict,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    _expect_step(wizard, WizardStep.ASSET_DETAILS)
    wizard.assembler.set_fields(key, body)
    return await _save(db, row, wizard)


@router.post("/sessions/{session_id}/assets/{key}/accessories", response_model=IntakeProgress)
async def toggle_accessory(
    session_id: str,
    key: str,
    body: AccessoryToggle,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    _expect_step(wizard, WizardStep.ASSET_DETAILS)
    wizard.assembler.toggle_accessory(key, body.accessory)
    return await _save(db, row, wizard)


@router.post("/sessions/{session_id}/assets/{key}/images", response_model=UploadResult)
async def upload_images(
    session_id: str,
    key: str,
    files: list[UploadFile] = File(...),
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
    store: LocalObjectStore = Depends(get_object_store),
):
    """Upload photos for one asset block.

    Files are checked and stored one by one; a rejected file shows up in
    `report.failures` and does not stop the rest of the batch. While the
    batch runs the block is marked in flight, so Next on Asset Details
    is refused until it lands.
    """
    images = [
        ImageFile(filename=f.filename or "upload", data=await f.read(), content_type=f.content_type)
        for f in files
    ]

    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    _expect_step(wizard, WizardStep.ASSET_DETAILS)
    wizard.assembler.begin_upload(key)
    await _save(db, row, wizard)
    # Releases the row lock and makes the in-flight mark visible to other requests
    await commit(db)

    report = UploadReport(key=key)
    try:
        report = await wizard.assembler.store_batch(
            key,
            images,
            store,
            timeout=settings.upload_timeout_seconds,
            max_bytes=settings.max_image_bytes,
        )
    finally:
        row = await _get_session_row(db, session_id)
        wizard = IntakeWizard.restore(profile, row.state)
        if not wizard.accept_uploads(key, report.uploaded):
            report.discarded = True
            logger.info(
                f"Discarding {len(report.uploaded)} upload(s) for asset '{key}'",
                extra={"session_id": session_id, "step": wizard.step.value},
            )
        progress = await _save(db, row, wizard)
        await commit(db)
    return UploadResult(progress=progress, report=report.to_dict())


@router.delete("/sessions/{session_id}/assets/{key}/images/{index}", response_model=IntakeProgress)
async def remove_image(
    session_id: str,
    key: str,
    index: int,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
    store: LocalObjectStore = Depends(get_object_store),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    _expect_step(wizard, WizardStep.ASSET_DETAILS)
    url = wizard.assembler.remove_image(key, index)
    name = store.name_from_url(url)
    if name:
        await store.delete(name)
    return await _save(db, row, wizard)


# ── Submit / reset ───────────────────────────────────────────

@router.post("/sessions/{session_id}/submit", response_model=IntakeProgress)
async def submit(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    """Persist the confirmed draft. On failure the session is unchanged."""
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)

    async def _finalizer(draft):
        return await finalize(draft, db, contact_mode=profile.contact_mode)

    await wizard.submit(_finalizer)
    return await _save(db, row, wizard)


@router.post("/sessions/{session_id}/reset", response_model=IntakeProgress)
async def reset(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    profile: IntakeProfile = Depends(get_profile),
):
    row = await _get_session_row(db, session_id)
    wizard = IntakeWizard.restore(profile, row.state)
    wizard.reset()
    return await _save(db, row, wizard)
