"""Request/response bodies for the intake wizard API.

Step payloads themselves are validated by the wizard's field schemas, so
requests here are plain dicts; only the envelope is typed.
"""

from datetime import datetime

from pydantic import BaseModel


class IntakeProgress(BaseModel):
    session_id: str
    step: str
    step_title: str
    completed_steps: list[str]
    can_submit: bool
    submission_id: str | None = None
    draft: dict
    blocks: list[dict]
    updated_at: datetime | None = None


class IntakeOptions(BaseModel):
    """Everything the form UI needs to render the closed lists."""
    contact_mode: str
    require_images: bool
    catalog: dict


class AccessoryToggle(BaseModel):
    accessory: str


class UploadResult(BaseModel):
    progress: IntakeProgress
    report: dict
