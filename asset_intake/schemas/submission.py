from datetime import datetime

from pydantic import BaseModel


class SubmissionSummary(BaseModel):
    """Row of the dashboard table."""
    id: str
    employee_name: str
    employee_id: str
    employee_number: str | None = None
    employee_email: str | None = None
    company: str
    department: str
    designation: str
    selected_assets: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmissionDetail(SubmissionSummary):
    asset_details: dict
    confirmed: bool
    images: list[str] = []


class SubmissionStats(BaseModel):
    total: int
    by_company: dict[str, int]
    by_department: dict[str, int]
    by_asset: dict[str, int]
    images: int
