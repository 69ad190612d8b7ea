"""Intake wizard: the step state machine behind the asset form.

Steps:
  EMPLOYEE → JOB → ASSET_SELECTION → ASSET_DETAILS → REVIEW → (SUCCESS)

Rules:
  - `advance(payload)` validates the active step. On success the validated
    slice is merged into the draft, the step is marked complete and the
    pointer moves forward. On failure StepRejectedError is raised and
    neither the step nor the draft changes.
  - `back()` / `go_to(step)` only move the pointer, and only backwards.
  - Changing the asset selection drops blocks for deselected types and
    re-opens ASSET_DETAILS, so the draft can never reach REVIEW with a
    block missing or left over.
  - REVIEW's "Next" is `confirm()`; `submit()` is the only way into
    SUCCESS, and `reset()` starts over with an empty draft.
"""

from __future__ import annotations

import enum
import logging
from typing import Awaitable, Callable

from asset_intake.intake.assembler import AssetDetailAssembler
from asset_intake.intake.draft import SubmissionDraft
from asset_intake.intake.profile import IntakeProfile
from asset_intake.intake.schemas import (
    AssetSelection,
    EmployeeDetails,
    JobDetails,
    ReviewConfirmation,
    check,
)
from asset_intake.middleware.exceptions import StepRejectedError, WizardStateError

logger = logging.getLogger(__name__)


class WizardStep(str, enum.Enum):
    EMPLOYEE = "employee"
    JOB = "job"
    ASSET_SELECTION = "asset_selection"
    ASSET_DETAILS = "asset_details"
    REVIEW = "review"
    SUCCESS = "success"

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self)

    @property
    def display_name(self) -> str:
        return STEP_TITLES[self]


STEP_ORDER: list[WizardStep] = list(WizardStep)
FORM_STEPS: list[WizardStep] = STEP_ORDER[:-1]

STEP_TITLES: dict[WizardStep, str] = {
    WizardStep.EMPLOYEE: "Employee details",
    WizardStep.JOB: "Job details",
    WizardStep.ASSET_SELECTION: "Asset selection",
    WizardStep.ASSET_DETAILS: "Asset details",
    WizardStep.REVIEW: "Review & submit",
    WizardStep.SUCCESS: "Submitted",
}

# finalizer(draft) -> submission id
Finalizer = Callable[[SubmissionDraft], Awaitable[str]]


class IntakeWizard:
    def __init__(self, profile: IntakeProfile):
        self.profile = profile
        self.step = WizardStep.EMPLOYEE
        self.completed: set[WizardStep] = set()
        self.draft = SubmissionDraft()
        self.assembler = AssetDetailAssembler(profile)
        self.submission_id: str | None = None

    # ── Navigation ───────────────────────────────────────────

    def _require_step(self, *steps: WizardStep) -> None:
        if self.step not in steps:
            expected = " or ".join(s.display_name for s in steps)
            raise WizardStateError(
                f"Not available from '{self.step.display_name}' (expected {expected})"
            )

    def _complete(self, step: WizardStep) -> None:
        self.completed.add(step)
        # Any change before REVIEW needs a fresh confirmation
        self.completed.discard(WizardStep.REVIEW)
        self.draft.confirmed = False
        self.step = STEP_ORDER[step.index + 1]

    def back(self) -> WizardStep:
        self._require_step(*FORM_STEPS[1:])
        self.step = STEP_ORDER[self.step.index - 1]
        return self.step

    def go_to(self, step: WizardStep) -> WizardStep:
        """Jump back to an earlier step. Forward jumps are refused."""
        if self.step == WizardStep.SUCCESS:
            raise WizardStateError("Submission already sent, reset to start again")
        if step.index > self.step.index:
            raise WizardStateError(f"Complete '{self.step.display_name}' before moving on")
        self.step = step
        return self.step

    # ── Next transitions ─────────────────────────────────────

    def advance(self, payload: dict | None = None) -> SubmissionDraft:
        """Validate the active step and merge it into the draft."""
        handlers = {
            WizardStep.EMPLOYEE: self._advance_employee,
            WizardStep.JOB: self._advance_job,
            WizardStep.ASSET_SELECTION: self._advance_selection,
            WizardStep.ASSET_DETAILS: self._advance_details,
            WizardStep.REVIEW: self._advance_review,
        }
        handler = handlers.get(self.step)
        if handler is None:
            raise WizardStateError("Submission already sent, reset to start again")
        handler(payload or {})
        return self.draft

    def _advance_employee(self, payload: dict) -> None:
        result = check(EmployeeDetails, payload, self.profile)
        if not result.ok:
            raise StepRejectedError(result.errors)
        self.draft.employee = result.value
        self._complete(WizardStep.EMPLOYEE)

    def _advance_job(self, payload: dict) -> None:
        result = check(JobDetails, payload, self.profile)
        if not result.ok:
            raise StepRejectedError(result.errors)
        self.draft.job = result.value
        self._complete(WizardStep.JOB)

    def _advance_selection(self, payload: dict) -> None:
        result = check(AssetSelection, payload, self.profile)
        if not result.ok:
            raise StepRejectedError(result.errors)
        selected = result.value.selected_assets
        if selected != self.draft.selected_assets:
            # Blocks must be re-validated against the new selection
            self.completed.discard(WizardStep.ASSET_DETAILS)
            self.completed.discard(WizardStep.REVIEW)
        self.draft.selected_assets = selected
        keys = self.profile.catalog.keys_for(selected)
        self.draft.prune_to(keys)
        self.assembler.sync(selected)
        self._complete(WizardStep.ASSET_SELECTION)

    def _advance_details(self, payload: dict) -> None:
        # Optional bulk edit: {"laptop": {"brand": ..., "serialNumber": ...}, ...}
        for key, values in payload.items():
            self.assembler.set_fields(key, values or {})
        self.draft.asset_details = self.assembler.validate_all()
        self._complete(WizardStep.ASSET_DETAILS)

    def _advance_review(self, payload: dict) -> None:
        result = check(ReviewConfirmation, payload, self.profile)
        if not result.ok:
            raise StepRejectedError(result.errors)
        # REVIEW is the last form step: confirming keeps the pointer here
        self.draft.confirmed = True
        self.completed.add(WizardStep.REVIEW)

    def confirm(self) -> SubmissionDraft:
        self._require_step(WizardStep.REVIEW)
        return self.advance({"confirmed": True})

    # ── Uploads ──────────────────────────────────────────────

    def accept_uploads(self, key: str, urls: list[str]) -> bool:
        """Attach a finished upload batch to its block.

        Returns False (nothing attached) when the type was deselected or
        the draft was already submitted. If Asset Details had been passed
        meanwhile it is re-opened, so the new photos reach the draft only
        through its validation.
        """
        state = self.assembler.end_upload(key)
        if state is None or self.step == WizardStep.SUCCESS:
            return False
        if urls and self.step.index > WizardStep.ASSET_DETAILS.index:
            self.completed.discard(WizardStep.ASSET_DETAILS)
            self.completed.discard(WizardStep.REVIEW)
            self.draft.confirmed = False
            self.step = WizardStep.ASSET_DETAILS
            logger.info(f"Re-opening asset details for late upload to '{key}'")
        self.assembler.add_images(key, urls)
        return True

    # ── Submit / reset ───────────────────────────────────────

    def ready_to_submit(self) -> bool:
        return (
            self.step == WizardStep.REVIEW
            and self.draft.confirmed
            and set(FORM_STEPS) <= self.completed
        )

    async def submit(self, finalizer: Finalizer) -> str:
        """Hand the draft to the finalizer. The draft is kept if it fails."""
        self._require_step(WizardStep.REVIEW)
        missing = [s.display_name for s in FORM_STEPS[:-1] if s not in self.completed]
        if missing:
            raise WizardStateError(f"Cannot submit yet, incomplete: {', '.join(missing)}")
        # The finalizer refuses an unconfirmed draft
        submission_id = await finalizer(self.draft)
        self.submission_id = submission_id
        self.step = WizardStep.SUCCESS
        logger.info(f"Intake submitted as {submission_id}")
        return submission_id

    def reset(self) -> None:
        self.step = WizardStep.EMPLOYEE
        self.completed = set()
        self.draft = SubmissionDraft()
        self.assembler = AssetDetailAssembler(self.profile)
        self.submission_id = None

    # ── Save / resume ────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "step": self.step.value,
            "completed": [s.value for s in STEP_ORDER if s in self.completed],
            "draft": self.draft.to_dict(),
            "blocks": self.assembler.snapshot(),
            "submissionId": self.submission_id,
        }

    @classmethod
    def restore(cls, profile: IntakeProfile, data: dict | None) -> "IntakeWizard":
        wizard = cls(profile)
        if not data:
            return wizard
        wizard.step = WizardStep(data.get("step", WizardStep.EMPLOYEE.value))
        wizard.completed = {WizardStep(s) for s in data.get("completed") or []}
        wizard.draft = SubmissionDraft.from_dict(data.get("draft"), profile.catalog)
        wizard.assembler.restore(data.get("blocks"))
        wizard.submission_id = data.get("submissionId")
        return wizard
