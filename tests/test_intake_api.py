"""Intake wizard endpoint tests."""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from asset_intake.main import app
from asset_intake.models import IntakeSession, Submission
from asset_intake.storage.local import get_object_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def start(client: AsyncClient) -> str:
    resp = await client.post("/api/intake/sessions")
    assert resp.status_code == 201
    return resp.json()["session_id"]


async def to_details(client: AsyncClient, sid: str, employee: dict, job: dict, labels: list[str]) -> dict:
    assert (await client.post(f"/api/intake/sessions/{sid}/employee", json=employee)).status_code == 200
    assert (await client.post(f"/api/intake/sessions/{sid}/job", json=job)).status_code == 200
    resp = await client.post(f"/api/intake/sessions/{sid}/assets", json={"selectedAssets": labels})
    assert resp.status_code == 200
    return resp.json()


def image_files(*names: str) -> list:
    return [("files", (name, PNG_BYTES, "image/png")) for name in names]


class HeldStore:
    """Parks every upload until `release` is set; `started` fires on the first one."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def upload(self, data, name, content_type=None):
        self.started.set()
        await self.release.wait()

    def public_url(self, name):
        return f"http://test/media/asset-images/{name}"


async def start_held_upload(client: AsyncClient, sid: str, key: str, *names: str):
    store = HeldStore()
    app.dependency_overrides[get_object_store] = lambda: store
    task = asyncio.create_task(
        client.post(f"/api/intake/sessions/{sid}/assets/{key}/images", files=image_files(*names))
    )
    await asyncio.wait_for(store.started.wait(), timeout=5)
    return store, task


@pytest.mark.api
@pytest.mark.asyncio
class TestIntakeSessions:
    async def test_options_expose_catalog(self, client: AsyncClient):
        resp = await client.get("/api/intake/options")
        assert resp.status_code == 200
        data = resp.json()
        assert data["contact_mode"] == "phone"
        assert data["catalog"]["name"] == "standard"
        assert len(data["catalog"]["assets"]) == 7

    async def test_new_session_starts_at_employee(self, client: AsyncClient):
        resp = await client.post("/api/intake/sessions")
        data = resp.json()
        assert data["step"] == "employee"
        assert data["completed_steps"] == []
        assert data["draft"]["employee"] is None
        assert not data["can_submit"]

    async def test_unknown_session(self, client: AsyncClient):
        resp = await client.get("/api/intake/sessions/does-not-exist")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    async def test_rejected_step_returns_field_errors(self, client: AsyncClient, employee_payload):
        sid = await start(client)
        resp = await client.post(
            f"/api/intake/sessions/{sid}/employee",
            json={**employee_payload, "fullName": ""},
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "STEP_REJECTED"
        assert error["details"]["fields"] == {"fullName": "Full name is required"}

        progress = (await client.get(f"/api/intake/sessions/{sid}")).json()
        assert progress["step"] == "employee"

    async def test_posting_to_inactive_step_conflicts(self, client: AsyncClient, job_payload):
        sid = await start(client)
        resp = await client.post(f"/api/intake/sessions/{sid}/job", json=job_payload)
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "WIZARD_STATE"

    async def test_back_and_go_to(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Headset"])

        resp = await client.post(f"/api/intake/sessions/{sid}/back")
        assert resp.json()["step"] == "asset_selection"

        resp = await client.post(f"/api/intake/sessions/{sid}/go-to/employee")
        data = resp.json()
        assert data["step"] == "employee"
        assert data["draft"]["employee"]["fullName"] == "Jane Roe"

        resp = await client.post(f"/api/intake/sessions/{sid}/go-to/review")
        assert resp.status_code == 409


@pytest.mark.api
@pytest.mark.asyncio
class TestAssetSubForms:
    async def test_edit_toggle_and_images(self, client: AsyncClient, object_store, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop"])

        resp = await client.patch(
            f"/api/intake/sessions/{sid}/assets/laptop",
            json={"brand": "Dell", "serialNumber": "SN-123"},
        )
        assert resp.status_code == 200
        assert resp.json()["blocks"][0]["fields"] == {"brand": "Dell", "serialNumber": "SN-123"}

        resp = await client.post(f"/api/intake/sessions/{sid}/assets/laptop/accessories", json={"accessory": "Mouse"})
        assert resp.json()["blocks"][0]["accessories"] == ["Mouse"]

        resp = await client.post(
            f"/api/intake/sessions/{sid}/assets/laptop/images",
            files=image_files("a.png", "b.png", "c.png"),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["report"]["uploaded"]) == 3
        images = data["progress"]["blocks"][0]["images"]
        assert images == data["report"]["uploaded"]
        assert len(list(object_store.bucket_path.iterdir())) == 3

        resp = await client.delete(f"/api/intake/sessions/{sid}/assets/laptop/images/1")
        assert resp.json()["blocks"][0]["images"] == [images[0], images[2]]
        assert len(list(object_store.bucket_path.iterdir())) == 2

    async def test_non_image_upload_reported_per_file(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop"])

        resp = await client.post(
            f"/api/intake/sessions/{sid}/assets/laptop/images",
            files=[("files", ("notes.txt", b"hello", "text/plain"))] + image_files("ok.png"),
        )
        report = resp.json()["report"]
        assert len(report["uploaded"]) == 1
        assert report["failures"] == [{"filename": "notes.txt", "reason": "Only image files are accepted"}]

    async def test_accessories_must_be_a_list(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop"])
        resp = await client.patch(f"/api/intake/sessions/{sid}/assets/laptop", json={"accessories": "Mouse"})
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["fields"] == {"accessories": "Accessories must be a list of names"}

        progress = (await client.get(f"/api/intake/sessions/{sid}")).json()
        assert progress["blocks"][0]["accessories"] == []

    async def test_unknown_asset_block(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop"])
        resp = await client.patch(f"/api/intake/sessions/{sid}/assets/mobile", json={"brand": "Apple"})
        assert resp.status_code == 404

    async def test_incomplete_details_name_failing_blocks(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop", "SIM Card"])
        resp = await client.post(
            f"/api/intake/sessions/{sid}/asset-details",
            json={"sim_card": {"simNumber": "5876543210"}},
        )
        assert resp.status_code == 422
        fields = resp.json()["error"]["details"]["fields"]
        assert set(fields) == {"laptop", "sim_card"}
        assert fields["sim_card"] == {"simNumber": "Enter a valid 10-digit SIM number"}


@pytest.mark.api
@pytest.mark.asyncio
class TestSubmitFlow:
    async def test_full_flow_creates_submission(
        self, client: AsyncClient, db_session, employee_payload, job_payload
    ):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop", "SIM Card"])
        await client.patch(f"/api/intake/sessions/{sid}/assets/laptop", json={"brand": "Dell", "serialNumber": "SN-123"})
        upload = await client.post(f"/api/intake/sessions/{sid}/assets/laptop/images", files=image_files("a.png"))
        url = upload.json()["report"]["uploaded"][0]

        resp = await client.post(
            f"/api/intake/sessions/{sid}/asset-details",
            json={"sim_card": {"simNumber": "9876543210"}},
        )
        assert resp.status_code == 200
        assert resp.json()["step"] == "review"

        # Submitting without confirming is refused
        resp = await client.post(f"/api/intake/sessions/{sid}/submit")
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "NOT_CONFIRMED"

        resp = await client.post(f"/api/intake/sessions/{sid}/review", json={"confirmed": True})
        assert resp.json()["can_submit"] is True

        resp = await client.post(f"/api/intake/sessions/{sid}/submit")
        assert resp.status_code == 200
        data = resp.json()
        assert data["step"] == "success"
        submission_id = data["submission_id"]

        row = (await db_session.execute(select(Submission).where(Submission.id == submission_id))).scalar_one()
        assert row.selected_assets == ["Laptop", "SIM Card"]
        assert row.asset_details["laptop"]["images"] == [url]
        assert row.asset_details["sim_card"] == {"simNumber": "9876543210"}

        session_row = (await db_session.execute(select(IntakeSession).where(IntakeSession.id == sid))).scalar_one()
        assert session_row.is_complete
        assert session_row.submission_id == submission_id

        # A second submit is refused
        resp = await client.post(f"/api/intake/sessions/{sid}/submit")
        assert resp.status_code == 409

        resp = await client.post(f"/api/intake/sessions/{sid}/reset")
        assert resp.json()["step"] == "employee"
        assert resp.json()["draft"]["selectedAssets"] == []

    async def test_submit_before_review(self, client: AsyncClient, employee_payload):
        sid = await start(client)
        await client.post(f"/api/intake/sessions/{sid}/employee", json=employee_payload)
        resp = await client.post(f"/api/intake/sessions/{sid}/submit")
        assert resp.status_code == 409


@pytest.mark.api
@pytest.mark.asyncio
class TestUploadInFlight:
    async def test_next_refused_until_upload_lands(self, client: AsyncClient, employee_payload, job_payload):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop"])
        await client.patch(f"/api/intake/sessions/{sid}/assets/laptop", json={"brand": "Dell", "serialNumber": "SN-123"})
        first = await client.post(f"/api/intake/sessions/{sid}/assets/laptop/images", files=image_files("a.png"))
        first_url = first.json()["report"]["uploaded"][0]

        store, upload = await start_held_upload(client, sid, "laptop", "b.png")

        progress = (await client.get(f"/api/intake/sessions/{sid}")).json()
        assert progress["blocks"][0]["uploading"] is True

        resp = await client.post(f"/api/intake/sessions/{sid}/asset-details")
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["fields"]["laptop"] == {"images": "Image upload in progress"}

        store.release.set()
        resp = await upload
        assert resp.status_code == 200
        report = resp.json()["report"]
        assert report["discarded"] is False
        second_url = report["uploaded"][0]
        assert resp.json()["progress"]["blocks"][0]["uploading"] is False

        resp = await client.post(f"/api/intake/sessions/{sid}/asset-details")
        assert resp.status_code == 200
        assert resp.json()["step"] == "review"
        assert resp.json()["draft"]["assetDetails"]["laptop"]["images"] == [first_url, second_url]

    async def test_upload_for_deselected_type_is_discarded(
        self, client: AsyncClient, employee_payload, job_payload
    ):
        sid = await start(client)
        await to_details(client, sid, employee_payload, job_payload, ["Laptop", "Headset"])

        store, upload = await start_held_upload(client, sid, "laptop", "a.png")
        await client.post(f"/api/intake/sessions/{sid}/back")
        resp = await client.post(f"/api/intake/sessions/{sid}/assets", json={"selectedAssets": ["Headset"]})
        assert resp.status_code == 200

        store.release.set()
        resp = await upload
        data = resp.json()
        assert data["report"]["discarded"] is True
        assert [b["key"] for b in data["progress"]["blocks"]] == ["headset"]
