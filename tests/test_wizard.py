"""Intake wizard state machine tests."""

import pytest

from asset_intake.intake.profile import IntakeProfile
from asset_intake.intake.wizard import IntakeWizard, WizardStep
from asset_intake.middleware.exceptions import (
    PersistenceError,
    StepRejectedError,
    WizardStateError,
)

LAPTOP = {"brand": "Dell", "serialNumber": "SN-123"}
IMAGE = "http://test/media/asset-images/1-abc.png"


def wizard_at_details(profile, employee, job, labels) -> IntakeWizard:
    wizard = IntakeWizard(profile)
    wizard.advance(employee)
    wizard.advance(job)
    wizard.advance({"selectedAssets": labels})
    return wizard


def fill_laptop(wizard: IntakeWizard) -> None:
    wizard.assembler.set_fields("laptop", LAPTOP)
    wizard.assembler.add_images("laptop", [IMAGE])


def wizard_at_review(profile, employee, job) -> IntakeWizard:
    wizard = wizard_at_details(profile, employee, job, ["Laptop"])
    fill_laptop(wizard)
    wizard.advance()
    return wizard


@pytest.mark.unit
class TestStepTransitions:
    def test_starts_empty_at_employee(self, profile):
        wizard = IntakeWizard(profile)
        assert wizard.step == WizardStep.EMPLOYEE
        assert wizard.draft.employee is None
        assert not wizard.completed

    def test_valid_next_merges_and_moves_forward(self, profile, employee_payload):
        wizard = IntakeWizard(profile)
        draft = wizard.advance(employee_payload)
        assert wizard.step == WizardStep.JOB
        assert draft.employee.full_name == "Jane Roe"
        assert WizardStep.EMPLOYEE in wizard.completed

    def test_rejected_next_leaves_step_and_draft_unchanged(self, profile, employee_payload):
        wizard = IntakeWizard(profile)
        with pytest.raises(StepRejectedError) as exc:
            wizard.advance({**employee_payload, "contact": "12345"})
        assert exc.value.field_errors == {"contact": "Enter a valid 10-digit mobile number"}
        assert wizard.step == WizardStep.EMPLOYEE
        assert wizard.draft.employee is None

    def test_back_keeps_entered_data(self, profile, employee_payload, job_payload):
        wizard = IntakeWizard(profile)
        wizard.advance(employee_payload)
        wizard.advance(job_payload)
        assert wizard.back() == WizardStep.JOB
        assert wizard.back() == WizardStep.EMPLOYEE
        assert wizard.draft.employee.employee_id == "EMP-001"
        assert wizard.draft.job.company == "AUTOZONE"

    def test_back_from_first_step_refused(self, profile):
        with pytest.raises(WizardStateError):
            IntakeWizard(profile).back()

    def test_forward_jump_refused(self, profile, employee_payload):
        wizard = IntakeWizard(profile)
        wizard.advance(employee_payload)
        with pytest.raises(WizardStateError):
            wizard.go_to(WizardStep.REVIEW)
        assert wizard.step == WizardStep.JOB

    def test_empty_selection_rejected(self, profile, employee_payload, job_payload):
        wizard = IntakeWizard(profile)
        wizard.advance(employee_payload)
        wizard.advance(job_payload)
        with pytest.raises(StepRejectedError) as exc:
            wizard.advance({"selectedAssets": []})
        assert exc.value.field_errors == {"selectedAssets": "Select at least one asset"}
        assert wizard.step == WizardStep.ASSET_SELECTION


@pytest.mark.unit
class TestAssetDetailsStep:
    def test_blocks_follow_selection(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop", "SIM Card"])
        assert wizard.assembler.keys == ["laptop", "sim_card"]

        fill_laptop(wizard)
        wizard.assembler.set_fields("sim_card", {"simNumber": "9876543210"})
        draft = wizard.advance()

        assert wizard.step == WizardStep.REVIEW
        assert list(draft.asset_details) == ["laptop", "sim_card"]
        assert draft.asset_details["sim_card"].to_form() == {"simNumber": "9876543210"}

    def test_deselecting_drops_block_and_reopens_details(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop", "SIM Card"])
        fill_laptop(wizard)
        wizard.assembler.set_fields("sim_card", {"simNumber": "9876543210"})
        wizard.advance()

        wizard.go_to(WizardStep.ASSET_SELECTION)
        wizard.advance({"selectedAssets": ["Laptop"]})

        assert wizard.step == WizardStep.ASSET_DETAILS
        assert WizardStep.ASSET_DETAILS not in wizard.completed
        assert "sim_card" not in wizard.draft.asset_details
        assert wizard.assembler.keys == ["laptop"]
        # The kept block's sub-form survives the round trip
        assert wizard.assembler.block("laptop").fields == LAPTOP

        draft = wizard.advance()
        assert list(draft.asset_details) == ["laptop"]

    def test_structured_block_needs_an_image(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop"])
        wizard.assembler.set_fields("laptop", LAPTOP)

        with pytest.raises(StepRejectedError) as exc:
            wizard.advance()
        assert exc.value.field_errors == {"laptop": {"images": "Upload at least one image"}}

        wizard.assembler.add_images("laptop", [IMAGE])
        wizard.advance()
        assert wizard.step == WizardStep.REVIEW

    def test_images_optional_when_profile_allows(self, employee_payload, job_payload):
        wizard = wizard_at_details(
            IntakeProfile(require_images=False), employee_payload, job_payload, ["Laptop"]
        )
        wizard.assembler.set_fields("laptop", LAPTOP)
        wizard.advance()
        assert wizard.draft.asset_details["laptop"].images == []

    def test_all_failing_blocks_reported_together(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop", "Headset"])
        with pytest.raises(StepRejectedError) as exc:
            wizard.advance()
        assert set(exc.value.field_errors) == {"laptop", "headset"}
        assert exc.value.field_errors["headset"] == {"brand": "Brand is required"}
        assert exc.value.message == "Incomplete: Laptop, Headset"

    def test_fail_fast_stops_at_first_block(self, employee_payload, job_payload):
        wizard = wizard_at_details(
            IntakeProfile(collect_all_errors=False), employee_payload, job_payload, ["Laptop", "Headset"]
        )
        with pytest.raises(StepRejectedError) as exc:
            wizard.advance()
        assert list(exc.value.field_errors) == ["laptop"]

    def test_bulk_edit_in_next_payload(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Headset"])
        draft = wizard.advance({"headset": {"brand": "Jabra"}})
        assert draft.asset_details["headset"].brand == "Jabra"


@pytest.mark.unit
@pytest.mark.asyncio
class TestReviewAndSubmit:
    async def test_confirm_then_submit(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        assert not wizard.ready_to_submit()

        wizard.confirm()
        assert wizard.draft.confirmed
        assert wizard.ready_to_submit()

        seen = []

        async def finalizer(draft):
            seen.append(draft)
            return "sub-1"

        assert await wizard.submit(finalizer) == "sub-1"
        assert wizard.step == WizardStep.SUCCESS
        assert wizard.submission_id == "sub-1"
        assert seen[0].confirmed

    async def test_unconfirmed_review_rejected(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        with pytest.raises(StepRejectedError):
            wizard.advance({"confirmed": False})
        assert not wizard.draft.confirmed

    async def test_editing_earlier_step_clears_confirmation(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        wizard.confirm()
        wizard.go_to(WizardStep.JOB)
        wizard.advance({**job_payload, "designation": "Lead Engineer"})
        assert not wizard.draft.confirmed
        assert WizardStep.REVIEW not in wizard.completed

    async def test_submit_before_review_refused(self, profile, employee_payload):
        wizard = IntakeWizard(profile)
        wizard.advance(employee_payload)

        async def finalizer(draft):
            return "never"

        with pytest.raises(WizardStateError):
            await wizard.submit(finalizer)

    async def test_failed_submit_keeps_draft(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        wizard.confirm()

        async def finalizer(draft):
            raise PersistenceError()

        with pytest.raises(PersistenceError):
            await wizard.submit(finalizer)
        assert wizard.step == WizardStep.REVIEW
        assert wizard.draft.confirmed
        assert wizard.draft.employee.full_name == "Jane Roe"

    async def test_no_transitions_after_success_except_reset(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        wizard.confirm()

        async def finalizer(draft):
            return "sub-2"

        await wizard.submit(finalizer)
        with pytest.raises(WizardStateError):
            wizard.advance(employee_payload)
        with pytest.raises(WizardStateError):
            wizard.go_to(WizardStep.EMPLOYEE)

        wizard.reset()
        assert wizard.step == WizardStep.EMPLOYEE
        assert wizard.draft.employee is None
        assert wizard.assembler.keys == []
        assert wizard.submission_id is None


@pytest.mark.unit
def test_snapshot_restore_resumes_the_form(profile, employee_payload, job_payload):
    wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop", "Mobile Phone"])
    fill_laptop(wizard)
    wizard.assembler.toggle_accessory("mobile", "Earbuds")

    restored = IntakeWizard.restore(profile, wizard.snapshot())

    assert restored.step == WizardStep.ASSET_DETAILS
    assert restored.completed == wizard.completed
    assert restored.draft.to_dict() == wizard.draft.to_dict()
    assert restored.assembler.block("laptop").images == [IMAGE]
    assert restored.assembler.block("mobile").accessories == ["Earbuds"]

    restored.assembler.set_fields("mobile", {"brand": "Apple", "imeiNumber": "356938035643809"})
    restored.assembler.add_images("mobile", [IMAGE])
    draft = restored.advance()
    assert draft.asset_details["mobile"].accessories == ["Earbuds"]


@pytest.mark.unit
class TestUploadsAcrossRequests:
    def test_in_flight_mark_survives_snapshot_and_blocks_next(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop"])
        fill_laptop(wizard)
        wizard.assembler.begin_upload("laptop")

        restored = IntakeWizard.restore(profile, wizard.snapshot())
        with pytest.raises(StepRejectedError) as exc:
            restored.advance()
        assert exc.value.field_errors["laptop"] == {"images": "Image upload in progress"}
        assert restored.step == WizardStep.ASSET_DETAILS

        assert restored.accept_uploads("laptop", ["http://test/media/asset-images/2-def.png"])
        draft = restored.advance()
        assert draft.asset_details["laptop"].images == [IMAGE, "http://test/media/asset-images/2-def.png"]

    def test_late_upload_reopens_passed_details(self, profile, employee_payload, job_payload):
        wizard = wizard_at_review(profile, employee_payload, job_payload)
        wizard.confirm()

        assert wizard.accept_uploads("laptop", ["late.png"])
        assert wizard.step == WizardStep.ASSET_DETAILS
        assert not wizard.draft.confirmed
        assert WizardStep.ASSET_DETAILS not in wizard.completed
        assert not wizard.ready_to_submit()

        draft = wizard.advance()
        assert draft.asset_details["laptop"].images == [IMAGE, "late.png"]

    def test_late_upload_for_deselected_type_is_discarded(self, profile, employee_payload, job_payload):
        wizard = wizard_at_details(profile, employee_payload, job_payload, ["Laptop", "Headset"])
        wizard.assembler.begin_upload("laptop")
        wizard.back()
        wizard.advance({"selectedAssets": ["Headset"]})

        assert not wizard.accept_uploads("laptop", ["late.png"])
        assert wizard.assembler.keys == ["headset"]
